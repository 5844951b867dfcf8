import logging
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Iterable

from sqlalchemy import update
from sqlalchemy.orm import sessionmaker

from linkshortener import models
from linkshortener.visitors import GeoLocator, visitor_id

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_DAYS = 7
RECENT_CLICKS_LIMIT = 10


def window_start(days: int = DEFAULT_WINDOW_DAYS, now: datetime | None = None) -> datetime:
    return (now or datetime.now(timezone.utc)) - timedelta(days=days)

def aggregate_clicks(
    total_clicks: int,
    clicks: Iterable[models.Click],
    recent_limit: int = RECENT_CLICKS_LIMIT,
) -> dict:
    """Summarise the clicks of one link inside a lookback window.

    `total_clicks` is the link's stored counter and is reported as-is: it is
    the lifetime total and may exceed the number of recorded click rows.
    """
    clicks = list(clicks)
    by_date = Counter(models.as_utc(c.timestamp).strftime("%Y-%m-%d") for c in clicks)
    by_country = Counter(c.country for c in clicks)
    recent = sorted(clicks, key=lambda c: models.as_utc(c.timestamp), reverse=True)[:recent_limit]

    return {
        "total_clicks": total_clicks,
        "unique_visitors": len({c.visitor_id for c in clicks}),
        "clicks_by_date": dict(sorted(by_date.items())),
        "clicks_by_country": dict(by_country.most_common()),
        "recent_clicks": [
            {
                "timestamp": models.as_utc(c.timestamp),
                "country": c.country,
                "city": c.city,
                "referrer": c.referrer or "Direct",
            }
            for c in recent
        ],
    }

def record_click(
    session_factory: sessionmaker,
    geolocator: GeoLocator,
    short_code: str,
    ip: str,
    user_agent: str = "",
    referrer: str = "",
) -> bool:
    """Persist one click and bump the link counter. Runs after the redirect.

    Failures are logged and rolled back, never raised: the visitor already
    has their redirect.
    """
    db = session_factory()
    try:
        geo = geolocator.lookup(ip)
        db.add(models.Click(
            short_code=short_code,
            ip_address=ip,
            user_agent=user_agent,
            referrer=referrer,
            country=geo.country,
            city=geo.city,
            visitor_id=visitor_id(ip, user_agent),
        ))
        db.execute(
            update(models.ShortLink)
            .where(models.ShortLink.short_code == short_code)
            .values(click_count=models.ShortLink.click_count + 1)
        )
        db.commit()
        return True
    except Exception:
        db.rollback()
        logger.exception("Error saving analytics for %s", short_code)
        return False
    finally:
        db.close()
