import asyncio
import logging
from dataclasses import dataclass, field

import httpx

from advo.core.config import settings

logger = logging.getLogger(__name__)

GOOGLE_GEOCODE_URL = "https://maps.googleapis.com/maps/api/geocode/json"


class GeocodingError(Exception):
    """Raised when an address cannot be turned into coordinates."""


@dataclass(frozen=True)
class Coordinates:
    latitude: float
    longitude: float

    def as_dict(self) -> dict[str, float]:
        return {"latitude": self.latitude, "longitude": self.longitude}


@dataclass
class BatchGeocodeOutcome:
    results: dict[str, Coordinates] = field(default_factory=dict)
    errors: dict[str, str] = field(default_factory=dict)
    requested: int | None = None

    @property
    def total_processed(self) -> int:
        """Number of addresses submitted, repeats included."""
        if self.requested is not None:
            return self.requested
        return len(self.results) + len(self.errors)

    @property
    def success_count(self) -> int:
        return len(self.results)

    @property
    def error_count(self) -> int:
        return len(self.errors)


class Geocoder:
    """Google Geocoding API client with an in-process result cache."""

    def __init__(
        self,
        api_key: str | None = None,
        *,
        timeout: float | None = None,
        base_url: str = GOOGLE_GEOCODE_URL,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key if api_key is not None else settings.GOOGLE_MAPS_API_KEY
        self.timeout = timeout if timeout is not None else settings.GEOCODE_TIMEOUT_SECONDS
        self.base_url = base_url
        self._transport = transport
        self._cache: dict[str, Coordinates] = {}

    @staticmethod
    def _cache_key(address: str) -> str:
        return address.strip().lower()

    async def geocode(self, address: str) -> Coordinates:
        key = self._cache_key(address or "")
        if not key:
            raise GeocodingError("Empty or invalid address provided for geocoding")

        cached = self._cache.get(key)
        if cached is not None:
            logger.debug("Using cached geocode result for %s", key)
            return cached

        if not self.api_key:
            logger.error("Google Maps API key is not set")
            raise GeocodingError("Google Maps API key is not configured")

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(
                    self.base_url, params={"address": address.strip(), "key": self.api_key}
                )
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPStatusError as exc:
            raise GeocodingError(
                f"Geocoding API error: {exc.response.status_code} - {exc.response.reason_phrase}"
            ) from exc
        except httpx.HTTPError as exc:
            raise GeocodingError(f"Geocoding request failed: {exc}") from exc
        except ValueError as exc:
            raise GeocodingError("Geocoding API returned malformed JSON") from exc

        if not isinstance(payload, dict):
            raise GeocodingError("Geocoding API returned malformed JSON")
        status = payload.get("status")
        results = payload.get("results") or []
        if status != "OK" or not results:
            logger.warning("Geocoding failed for %r with status %s", address, status)
            raise GeocodingError(f"Geocoding failed: {status or 'Unknown error'}")

        try:
            location = results[0]["geometry"]["location"]
            coordinates = Coordinates(
                latitude=float(location["lat"]), longitude=float(location["lng"])
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise GeocodingError("Geocoding API returned no usable location") from exc

        self._cache[key] = coordinates
        return coordinates

    async def geocode_zip_code(self, zip_code: str) -> Coordinates:
        return await self.geocode(f"{zip_code.strip()}, USA")

    async def geocode_many(
        self,
        addresses: list[str],
        *,
        batch_size: int | None = None,
        delay: float | None = None,
    ) -> BatchGeocodeOutcome:
        """Geocode addresses in fixed-size concurrent batches.

        Every member of a batch finishes before the next batch starts, with
        ``delay`` seconds between batches. Failures are reported per address in
        ``errors`` instead of being raised.
        """
        batch_size = batch_size or settings.GEOCODE_BATCH_SIZE
        delay = settings.GEOCODE_BATCH_DELAY_SECONDS if delay is None else delay
        pending = list(dict.fromkeys(addresses))
        outcome = BatchGeocodeOutcome(requested=len(addresses))

        for start in range(0, len(pending), batch_size):
            batch = pending[start:start + batch_size]
            answers = await asyncio.gather(
                *(self.geocode(address) for address in batch), return_exceptions=True
            )
            for address, answer in zip(batch, answers):
                if isinstance(answer, GeocodingError):
                    logger.error("Error geocoding address %s: %s", address, answer)
                    outcome.errors[address] = str(answer)
                elif isinstance(answer, BaseException):
                    raise answer
                else:
                    outcome.results[address] = answer

            if delay > 0 and start + batch_size < len(pending):
                await asyncio.sleep(delay)

        return outcome

    def clear_cache(self) -> None:
        self._cache.clear()


_geocoder_instance = None


def get_geocoder() -> Geocoder:
    """Lazily creates the process-wide geocoder so its cache is shared."""
    global _geocoder_instance
    if _geocoder_instance is None:
        _geocoder_instance = Geocoder()
    return _geocoder_instance
