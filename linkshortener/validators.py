import re
from datetime import datetime, timezone
from urllib.parse import urlparse

ALIAS_PATTERN = re.compile(r"[A-Za-z0-9_-]{3,20}")
ALLOWED_SCHEMES = {"http", "https"}


def sanitize_url(url: str) -> str:
    return url.strip()

def is_valid_url(url: str) -> bool:
    """Absolute http(s) URL with a host; anything else is rejected."""
    if not url or not isinstance(url, str) or any(ch.isspace() for ch in url):
        return False
    try:
        parts = urlparse(url)
        parts.port  # raises ValueError on a malformed port
    except ValueError:
        return False
    return parts.scheme in ALLOWED_SCHEMES and bool(parts.hostname)

def parse_expiration_date(value: str | datetime | None) -> datetime | None:
    """Parse an ISO-8601 date or date-time; naive values are taken as UTC.

    Raises ValueError if the value is not a real calendar date/time.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        # Bare dates ("2030-01-31") parse as midnight
        parsed = datetime.fromisoformat(value.strip())
    else:
        raise TypeError(f"Unsupported expiration value: {value!r}")
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)

def is_valid_expiration_date(value: str | datetime | None, now: datetime | None = None) -> bool:
    try:
        parsed = parse_expiration_date(value)
    except (TypeError, ValueError):
        return False
    if parsed is None:
        return True  # optional field
    return parsed > (now or datetime.now(timezone.utc))

def validate_custom_alias(alias: str) -> bool:
    return isinstance(alias, str) and alias.isascii() and ALIAS_PATTERN.fullmatch(alias) is not None
