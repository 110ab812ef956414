import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from heritage_admin.core.config import settings
from heritage_admin.core.database import init_db
from heritage_admin.core.errors import ServiceError
from heritage_admin.api import (
    auth,
    bookings,
    call_requests,
    chat,
    feedback,
    heritage_sites,
    marketing,
    masters,
    notifications,
    realtime,
    reports,
    users,
    verification,
)
from heritage_admin.services.realtime import get_hub
from heritage_admin.services.realtime.change_feed import change_feed_loop

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Configure logging based on debug setting
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s" if settings.debug
        else "%(levelname)-8s %(name)s: %(message)s",
    )

    if settings.auto_create_tables:
        init_db()

    # Publish rows written by the mobile app to connected consoles
    feed_task = None
    if settings.change_feed_enabled:
        feed_task = asyncio.create_task(change_feed_loop(get_hub(), settings.change_feed_interval_seconds))

    yield

    if feed_task is not None:
        feed_task.cancel()
        try:
            await feed_task
        except asyncio.CancelledError:
            pass


app = FastAPI(title=settings.app_name, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
app.include_router(users.router, prefix="/api/users", tags=["users"])
app.include_router(bookings.router, prefix="/api/bookings", tags=["bookings"])
app.include_router(chat.router, prefix="/api/chat", tags=["chat"])
app.include_router(realtime.router, prefix="/api/realtime", tags=["realtime"])
app.include_router(feedback.router, prefix="/api/feedback", tags=["feedback"])
app.include_router(masters.router, prefix="/api/masters", tags=["masters"])
app.include_router(marketing.router, prefix="/api/marketing", tags=["marketing"])
app.include_router(reports.router, prefix="/api/reports", tags=["reports"])
app.include_router(call_requests.router, prefix="/api/call-requests", tags=["call-requests"])
app.include_router(notifications.router, prefix="/api/notifications", tags=["notifications"])
app.include_router(heritage_sites.router, prefix="/api/heritage-sites", tags=["heritage-sites"])
app.include_router(verification.router, prefix="/api/verification", tags=["verification"])


@app.get("/api/health")
async def health():
    return {"status": "ok", "app": settings.app_name}
