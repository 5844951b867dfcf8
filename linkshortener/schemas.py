from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LinkCreate(CamelModel):
    # Plain strings: malformed values must come back as 400 with our own messages
    original_url: str | None = None
    custom_alias: str | None = None
    expires_at: str | None = None

class LinkOut(CamelModel):
    original_url: str
    short_url: str
    short_code: str
    expires_at: datetime | None
    created_at: datetime

class LinkListItem(CamelModel):
    original_url: str
    short_url: str
    short_code: str
    custom_alias: str | None
    click_count: int
    expires_at: datetime | None
    created_at: datetime
    is_expired: bool

class PaginatedLinks(CamelModel):
    items: list[LinkListItem]
    total: int
    page: int
    pages: int
    limit: int

class LinkSummary(CamelModel):
    original_url: str
    short_url: str
    short_code: str
    created_at: datetime
    expires_at: datetime | None
    is_expired: bool
    is_active: bool

class RecentClick(CamelModel):
    timestamp: datetime
    country: str
    city: str
    referrer: str

class ClickAnalytics(CamelModel):
    total_clicks: int
    unique_visitors: int
    clicks_by_date: dict[str, int]
    clicks_by_country: dict[str, int]
    recent_clicks: list[RecentClick]

class AnalyticsOut(CamelModel):
    url: LinkSummary
    analytics: ClickAnalytics

class QRCodeOut(CamelModel):
    qr_code: str
    short_url: str

class MessageOut(BaseModel):
    ok: bool
    detail: str

class HealthOut(BaseModel):
    status: Literal["OK"]
    timestamp: datetime
    uptime: float
