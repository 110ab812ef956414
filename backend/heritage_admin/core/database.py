from contextlib import contextmanager

from sqlmodel import Session, SQLModel, create_engine

from heritage_admin.core.config import settings

connect_args = {"check_same_thread": False} if settings.database_url.startswith("sqlite") else {}

engine = create_engine(
    settings.database_url,
    echo=settings.debug,
    connect_args=connect_args,
    pool_pre_ping=True,
)


def init_db() -> None:
    import heritage_admin.models  # noqa: F401 - ensure models are registered
    SQLModel.metadata.create_all(engine)


def get_session():
    with Session(engine) as session:
        yield session


@contextmanager
def session_scope():
    """Session for code running outside a request (panel sockets, change feed)."""
    with Session(engine) as session:
        yield session
