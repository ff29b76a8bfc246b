"""
Database model mixins for common functionality.
"""
import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, String


def new_uuid() -> str:
    """Generate a new UUID4 string identifier."""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """
    Normalize a datetime read back from the store to aware UTC.

    SQLite drops tzinfo on DateTime(timezone=True) columns.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class UUIDPrimaryKeyMixin:
    """
    Mixin for UUID string primary keys.

    Uses 36-character strings so ids round-trip identically on SQLite and PostgreSQL.
    """
    id = Column(String(36), primary_key=True, default=new_uuid, index=True)
