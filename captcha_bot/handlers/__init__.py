from .bot_lifecycle import bot_lifecycle_router
from .group_events import group_events_router

__all__ = ["bot_lifecycle_router", "group_events_router"]
