from heritage_admin.core.config import settings
from heritage_admin.services.realtime.hub import (  # noqa: F401
    ALL_EVENTS,
    DELETE,
    INSERT,
    UPDATE,
    ChangeEvent,
    RealtimeHub,
    Subscription,
)

_hub: RealtimeHub | None = None


def get_hub() -> RealtimeHub:
    """Process-wide hub shared by services, the change feed and sockets."""
    global _hub
    if _hub is None:
        _hub = RealtimeHub(buffer_size=settings.realtime_buffer_size)
    return _hub


def reset_hub() -> None:
    global _hub
    _hub = None
