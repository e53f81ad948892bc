"""GeoIP service for IP to location lookup."""

import ipaddress
from dataclasses import dataclass
from pathlib import Path

import geoip2.database
import geoip2.errors
import httpx
import structlog
from maxminddb.errors import InvalidDatabaseError

from linkly.core.config import get_settings

logger = structlog.get_logger()

IP_API_URL = "http://ip-api.com/json/{ip}"
IP_API_TIMEOUT = 0.5


@dataclass(frozen=True)
class GeoLocation:
    """Geographic location data from IP lookup."""

    country: str | None = None  # ISO 3166-1 alpha-2 country code
    city: str | None = None


class GeoIPService:
    """Looks up the country and city of a client IP address.

    Backends, in order of preference:
    1. GeoIP2 database (MaxMind) when a database file is configured
    2. IP-API.com over HTTP when GEOIP_API_ENABLED is set (off by default)
    3. Nothing: every lookup returns an empty location

    A lookup never raises. Unknown, private and malformed addresses give an
    empty ``GeoLocation``.
    """

    def __init__(
        self,
        geoip_database_path: str | None = None,
        api_enabled: bool | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        settings = get_settings()
        self._geoip_reader: geoip2.database.Reader | None = None
        self._database_path = geoip_database_path or settings.geoip_database_path
        self._api_enabled = settings.geoip_api_enabled if api_enabled is None else api_enabled
        self._http_client = http_client
        self._owns_http_client = http_client is None

        if self._database_path:
            self._init_geoip2()

    def _init_geoip2(self) -> None:
        """Initialize GeoIP2 database reader."""
        path = Path(self._database_path)
        if not path.exists():
            logger.warning("GeoIP2 database not found", path=str(path))
            return
        try:
            self._geoip_reader = geoip2.database.Reader(str(path))
            logger.info("GeoIP2 database loaded", path=str(path))
        except (OSError, InvalidDatabaseError) as e:
            logger.error("Failed to load GeoIP2 database", path=str(path), error=str(e))

    async def lookup(self, ip_address: str | None) -> GeoLocation:
        """Look up geographic location for an IP address."""
        if not ip_address or not self._is_public_ip(ip_address):
            return GeoLocation()

        if self._geoip_reader:
            return self._lookup_geoip2(ip_address)

        if self._api_enabled:
            return await self._lookup_ip_api(ip_address)

        return GeoLocation()

    @staticmethod
    def _is_public_ip(ip_address: str) -> bool:
        try:
            ip = ipaddress.ip_address(ip_address)
        except ValueError:
            return False
        return ip.is_global

    def _lookup_geoip2(self, ip_address: str) -> GeoLocation:
        """Look up location using GeoIP2 database."""
        try:
            response = self._geoip_reader.city(ip_address)
        except (geoip2.errors.GeoIP2Error, InvalidDatabaseError, OSError, ValueError) as e:
            logger.debug("GeoIP2 lookup failed", ip=ip_address, error=str(e))
            return GeoLocation()
        return GeoLocation(country=response.country.iso_code, city=response.city.name)

    def _get_http_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=IP_API_TIMEOUT)
        return self._http_client

    async def _lookup_ip_api(self, ip_address: str) -> GeoLocation:
        """Look up location using IP-API.com (free tier).

        Note: IP-API has rate limits (45 requests/minute for free tier).
        Use GeoIP2 database for production.
        """
        try:
            response = await self._get_http_client().get(
                IP_API_URL.format(ip=ip_address),
                params={"fields": "status,countryCode,city"},
                timeout=IP_API_TIMEOUT,
            )
            if response.status_code == 200:
                data = response.json()
                if data.get("status") == "success":
                    return GeoLocation(
                        country=data.get("countryCode") or None,
                        city=data.get("city") or None,
                    )
        except (httpx.HTTPError, ValueError) as e:
            logger.debug("IP-API lookup failed", ip=ip_address, error=str(e))

        return GeoLocation()

    async def close(self) -> None:
        """Close the GeoIP2 database reader and the HTTP client."""
        if self._geoip_reader:
            self._geoip_reader.close()
            self._geoip_reader = None
        if self._http_client is not None and self._owns_http_client:
            await self._http_client.aclose()
            self._http_client = None
