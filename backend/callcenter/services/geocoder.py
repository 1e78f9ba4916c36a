"""Address geocoding via OpenStreetMap Nominatim."""

import logging

import httpx
from cachetools import TTLCache

from callcenter.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()


class GeocoderError(Exception):
    """Geocoder could not be reached or answered with an error."""

    pass


class Geocoder:
    """
    Resolves a free-text address to coordinates.

    Successful lookups are kept in a bounded TTL cache.
    """

    def __init__(
        self,
        base_url: str = settings.geocoder_url,
        user_agent: str = settings.geocoder_user_agent,
        timeout: float = settings.geocoder_timeout_seconds,
        cache_size: int = settings.geocoder_cache_size,
        cache_ttl: int = settings.geocoder_cache_ttl_seconds,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url
        self.timeout = timeout
        self.transport = transport
        self.headers = {"User-Agent": user_agent, "Accept": "application/json"}
        self._cache: TTLCache[str, tuple[float, float]] = TTLCache(maxsize=cache_size, ttl=cache_ttl)

    async def geocode(self, address: str) -> tuple[float, float] | None:
        """
        Look up an address.

        Returns (lat, lng), or None when nothing matched.
        Raises GeocoderError on transport or server failure.
        """
        key = " ".join(address.lower().split())
        if not key:
            return None
        if key in self._cache:
            return self._cache[key]

        params = {"q": address, "format": "json", "limit": 1}
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.get(self.base_url, headers=self.headers, params=params)
                response.raise_for_status()
                results = response.json()
        except httpx.HTTPError as e:
            raise GeocoderError(f"Geocoder request failed: {e!r}") from e
        except ValueError as e:
            raise GeocoderError("Geocoder returned a non-JSON body") from e

        if not results:
            logger.info(f"No geocoding match for {address!r}")
            return None

        try:
            point = (float(results[0]["lat"]), float(results[0]["lon"]))
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise GeocoderError("Unexpected geocoder response") from e

        logger.info(f"Geocoded {address!r} -> {point[0]:.4f}, {point[1]:.4f}")
        self._cache[key] = point
        return point
