"""Shared plumbing for the table-backed domain services."""

import logging
from contextlib import contextmanager
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from heritage_admin.core.errors import BackendError
from heritage_admin.services.realtime import ChangeEvent, RealtimeHub

logger = logging.getLogger(__name__)


class TableService:

    def __init__(self, session: Session, hub: RealtimeHub | None = None) -> None:
        self.session = session
        self.hub = hub

    @contextmanager
    def backend_call(self, action: str):
        """Re-raise database failures as a readable BackendError, rolling back the unit of work."""
        try:
            yield
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Failed to {action}: {e}")
            raise BackendError(f"Failed to {action}") from e

    def save(self, action: str, *rows: Any) -> None:
        with self.backend_call(action):
            for row in rows:
                self.session.add(row)
            self.session.commit()
            for row in rows:
                self.session.refresh(row)

    def publish(self, table: str, event_type: str, new: dict[str, Any], old: dict[str, Any] | None = None) -> None:
        if self.hub is not None:
            self.hub.publish(ChangeEvent(table=table, event_type=event_type, new=new, old=old or {}))
