from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.types import TypeDecorator
from redirector_app.database.connection import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware UTC datetime on every backend.

    SQLite drops the offset on write, so values are stored as UTC and
    tagged with UTC again when loaded.
    """
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None and value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return value
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class Visit(Base):
    """
    One successful redirect. Rows are only ever appended.
    """
    __tablename__ = "visits"

    id = Column(Integer, primary_key=True, autoincrement=True)
    url_id = Column(Integer, ForeignKey("urls.id"), nullable=False, index=True)
    ip = Column(String, nullable=False)
    agent = Column(String, nullable=True)
    referer = Column(String, nullable=True)
    accessed_at = Column(UTCDateTime(), nullable=False, default=_utcnow)
