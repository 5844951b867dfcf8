import enum
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Index, Integer, String, Text, TypeDecorator

from linkshortener.database import Base


def utc_now() -> datetime:
    return datetime.now(timezone.utc)

def as_utc(value: datetime | None) -> datetime | None:
    """Treat naive datetimes as UTC; convert aware ones to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class UTCDateTime(TypeDecorator):
    """DateTime that always comes back timezone-aware (SQLite drops tzinfo)."""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return as_utc(value)

    def process_result_value(self, value, dialect):
        return as_utc(value)


class LinkStatus(str, enum.Enum):
    ACTIVE = "active"
    EXPIRED = "expired"
    DELETED = "deleted"


class ShortLink(Base):
    __tablename__ = "short_links"

    id = Column(Integer, primary_key=True, index=True)
    original_url = Column(String(2048), nullable=False)
    short_code = Column(String(20), unique=True, index=True, nullable=False)
    custom_alias = Column(String(20), unique=True, nullable=True)
    click_count = Column(Integer, nullable=False, default=0)
    expires_at = Column(UTCDateTime, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_by = Column(String(45), nullable=False, default="anonymous")
    created_at = Column(UTCDateTime, nullable=False, default=utc_now)
    updated_at = Column(UTCDateTime, nullable=False, default=utc_now, onupdate=utc_now)

    def is_expired(self, now: datetime | None = None) -> bool:
        if self.expires_at is None:
            return False
        return as_utc(self.expires_at) < (now or utc_now())

    def status(self, now: datetime | None = None) -> LinkStatus:
        # Soft delete wins over expiry: deleted links are invisible, expired ones are "gone"
        if not self.is_active:
            return LinkStatus.DELETED
        if self.is_expired(now):
            return LinkStatus.EXPIRED
        return LinkStatus.ACTIVE

    def __repr__(self):
        return f"<ShortLink {self.short_code} -> {self.original_url}>"


class Click(Base):
    __tablename__ = "clicks"

    id = Column(Integer, primary_key=True, index=True)
    # Plain value reference: clicks outlive soft-deleted links
    short_code = Column(String(20), index=True, nullable=False)
    timestamp = Column(UTCDateTime, nullable=False, default=utc_now, index=True)
    ip_address = Column(String(45), nullable=False)
    user_agent = Column(Text, nullable=False, default="")
    referrer = Column(Text, nullable=False, default="")
    country = Column(String(64), nullable=False, default="Unknown")
    city = Column(String(128), nullable=False, default="Unknown")
    visitor_id = Column(String(64), index=True)

    __table_args__ = (
        Index("ix_clicks_short_code_timestamp", "short_code", "timestamp"),
        Index("ix_clicks_short_code_visitor_id", "short_code", "visitor_id"),
    )

    def __repr__(self):
        return f"<Click {self.id} for {self.short_code} at {self.timestamp}>"
