from .engine import create_db_engine
from .schema import ensure_tables, events, metadata, users
from .store import Clock, EventStore, TelegramProfile, UserStore, day_window

__all__ = [
    "Clock",
    "EventStore",
    "TelegramProfile",
    "UserStore",
    "create_db_engine",
    "day_window",
    "ensure_tables",
    "events",
    "metadata",
    "users",
]
