"""Visitor identity and geography

`client_ip` trusts X-Forwarded-For unconditionally. Behind a proxy that sets
the header this is what we want; without one a client can spoof its address
for both rate limiting and click logging. Accepted limitation.
"""

import hashlib
import logging
from functools import lru_cache
from typing import NamedTuple

import geoip2.database
import geoip2.errors
import maxminddb
from fastapi import Request

from linkshortener import config

logger = logging.getLogger(__name__)

UNKNOWN = "Unknown"
DEFAULT_IP = "0.0.0.0"


class GeoInfo(NamedTuple):
    country: str = UNKNOWN
    city: str = UNKNOWN


def visitor_id(ip: str, user_agent: str) -> str:
    return hashlib.sha256(f"{ip}{user_agent}".encode("utf-8")).hexdigest()

def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = request.headers.get("x-real-ip", "").strip()
    if real_ip:
        return real_ip
    if request.client and request.client.host:
        return request.client.host
    return DEFAULT_IP


class GeoLocator:
    """Resolve an IP to (country, city) with a MaxMind City database.

    Without a database every lookup is a miss.
    """

    def __init__(self, database_path: str | None = None):
        self._reader = geoip2.database.Reader(database_path) if database_path else None

    def lookup(self, ip: str) -> GeoInfo:
        if self._reader is None:
            return GeoInfo()
        try:
            result = self._reader.city(ip)
        except (geoip2.errors.AddressNotFoundError, ValueError):
            return GeoInfo()
        return GeoInfo(
            country=result.country.iso_code or UNKNOWN,
            city=result.city.name or UNKNOWN,
        )

    def close(self) -> None:
        if self._reader is not None:
            self._reader.close()


@lru_cache(maxsize=1)
def get_geolocator() -> GeoLocator:
    if not config.GEOIP_DATABASE:
        logger.info("GEOIP_DATABASE not set; click geography will be 'Unknown'")
        return GeoLocator(None)
    try:
        return GeoLocator(config.GEOIP_DATABASE)
    except (OSError, maxminddb.InvalidDatabaseError):
        logger.exception("Cannot open GEOIP_DATABASE %s; click geography will be 'Unknown'", config.GEOIP_DATABASE)
        return GeoLocator(None)
