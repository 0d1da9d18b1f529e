from orderdesk.database.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from orderdesk.database.engine import async_session, engine
from orderdesk.database.session import atomic, get_db

__all__ = [
    "Base",
    "TimestampMixin",
    "UUIDPrimaryKeyMixin",
    "async_session",
    "atomic",
    "engine",
    "get_db",
]
