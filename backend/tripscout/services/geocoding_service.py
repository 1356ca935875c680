"""Geocoding service: resolves location codes to coordinates with caching and batch dedup."""

import asyncio
import logging
import re
import time
from typing import Awaitable, Callable, Protocol

import httpx

from tripscout.config import settings
from tripscout.data.iata_cities import get_city_name
from tripscout.errors import (
    AmbiguousLocationError,
    AuthError,
    LocationNotFoundError,
    NotFoundError,
    UpstreamError,
    ValidationError,
)
from tripscout.services.cache_service import TTLCache, geocoding_cache, location_key
from tripscout.services.token_service import TokenService, token_service
from tripscout.services.types import Coordinates, LocationRecord, is_valid_coordinates

logger = logging.getLogger(__name__)

CODE_PATTERN = re.compile(r"^[A-Z]{3}$")
LOCATIONS_PATH = "/v1/reference-data/locations"


def normalize_code(code: str) -> str:
    """Uppercase and validate a three-letter location code."""
    normalized = (code or "").strip().upper()
    if not CODE_PATTERN.match(normalized):
        raise ValidationError(f"Invalid location code: {code!r} (must be 3 letters)")
    return normalized


class LocationLookup(Protocol):
    name: str

    @property
    def is_available(self) -> bool: ...

    async def lookup(self, code: str) -> LocationRecord: ...


class AmadeusLocationLookup:
    """Amadeus City/Airport search (needs a bearer token)."""

    name = "amadeus"

    def __init__(self, tokens: TokenService | None = None):
        self._tokens = tokens or token_service

    @property
    def is_available(self) -> bool:
        return self._tokens.is_configured

    async def lookup(self, code: str) -> LocationRecord:
        resp = await self._tokens.authorized_get(
            LOCATIONS_PATH,
            {"subType": "CITY,AIRPORT", "keyword": code, "page[limit]": 5},
        )
        if resp.status_code == 404:
            raise LocationNotFoundError(f"No location found for {code}")
        if resp.status_code >= 400:
            raise UpstreamError(
                f"Amadeus location search failed: {resp.status_code}", resp.status_code
            )
        try:
            results = resp.json().get("data") or []
        except (ValueError, AttributeError) as e:
            raise UpstreamError("Amadeus location search returned invalid JSON") from e

        if not results:
            raise LocationNotFoundError(f"No location found for {code}")

        # Prefer the entry whose own code matches, e.g. the airport over a same-named city
        match = next((r for r in results if r.get("iataCode") == code), results[0])
        geo = match.get("geoCode") or {}
        lat, lon = geo.get("latitude"), geo.get("longitude")
        if lat is None or lon is None or not is_valid_coordinates(lat, lon):
            raise AmbiguousLocationError(f"No coordinates found for {code}")

        address = match.get("address") or {}
        return LocationRecord(
            code=code,
            display_name=match.get("name") or code,
            city_name=address.get("cityName") or match.get("name") or code,
            country_code=address.get("countryCode") or "",
            coordinates=Coordinates(float(lat), float(lon)),
            timezone_offset=match.get("timeZoneOffset"),
            source=self.name,
        )


class OpenMeteoLookup:
    """Open-Meteo geocoding by city name (free, no authentication)."""

    name = "open-meteo"

    def __init__(self, http_client: httpx.AsyncClient | None = None):
        self._client = http_client

    @property
    def is_available(self) -> bool:
        return True

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=settings.http_timeout_seconds)
        return self._client

    async def lookup(self, code: str) -> LocationRecord:
        city = get_city_name(code)
        if city is None:
            logger.warning(f"No city mapping for {code}, searching by code")
            city = code

        client = await self._get_client()
        try:
            resp = await client.get(
                settings.open_meteo_geocoding_url,
                params={"name": city, "count": 1, "language": "en", "format": "json"},
                headers={"Accept": "application/json"},
            )
            resp.raise_for_status()
            data = resp.json()
        except httpx.TimeoutException as e:
            raise UpstreamError(f"Geocoding timeout for {city}") from e
        except httpx.HTTPStatusError as e:
            raise UpstreamError(
                f"Open-Meteo geocoding failed: {e.response.status_code}",
                e.response.status_code,
            ) from e
        except httpx.RequestError as e:
            raise UpstreamError(f"Open-Meteo geocoding request failed: {e}") from e
        except ValueError as e:
            raise UpstreamError("Open-Meteo geocoding returned invalid JSON") from e

        results = (data.get("results") if isinstance(data, dict) else None) or []
        if not results:
            raise LocationNotFoundError(f"No results for city: {city}")

        result = results[0]
        lat, lon = result.get("latitude"), result.get("longitude")
        if lat is None or lon is None or not is_valid_coordinates(lat, lon):
            raise AmbiguousLocationError(f"No coordinates found for {code}")

        name = result.get("name") or city
        return LocationRecord(
            code=code,
            display_name=name,
            city_name=name.upper(),
            country_code=(result.get("country_code") or "").upper(),
            coordinates=Coordinates(float(lat), float(lon)),
            timezone_offset=None,
            source=self.name,
        )

    async def close(self):
        if self._client:
            await self._client.aclose()
            self._client = None


class GeocodingService:
    """Resolves codes cache-first, then through an ordered chain of lookup strategies."""

    def __init__(
        self,
        strategies: list[LocationLookup] | None = None,
        cache: TTLCache | None = None,
        batch_delay_ms: int | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.strategies = (
            strategies if strategies is not None
            else [AmadeusLocationLookup(), OpenMeteoLookup()]
        )
        self.cache = cache if cache is not None else geocoding_cache
        self._batch_delay = (
            settings.geocoding_batch_delay_ms if batch_delay_ms is None else batch_delay_ms
        ) / 1000
        self._sleep = sleep
        self.network_lookups = 0

    async def resolve(self, code: str) -> LocationRecord:
        """Resolve one code. Raises ValidationError, NotFoundError or UpstreamError."""
        normalized = normalize_code(code)
        cached = self.cache.get(location_key(normalized))
        if cached is not None:
            return cached
        return await self._lookup_and_cache(normalized)

    async def _lookup_and_cache(self, code: str) -> LocationRecord:
        self.network_lookups += 1
        last_error: Exception | None = None

        for strategy in self.strategies:
            if not strategy.is_available:
                continue
            try:
                location = await strategy.lookup(code)
            except (NotFoundError, UpstreamError, AuthError) as e:
                logger.warning(f"Geocoding via {strategy.name} failed for {code}: {e}")
                last_error = e
                continue

            self.cache.set(location_key(code), location)
            logger.info(
                f"Geocoded {code} via {strategy.name}: "
                f"({location.coordinates.latitude}, {location.coordinates.longitude})"
            )
            return location

        if last_error is None:
            raise UpstreamError(f"No geocoding strategy available for {code}")
        raise last_error

    async def resolve_batch(self, codes: list[str]) -> dict[str, LocationRecord]:
        """Resolve many codes, each unique code at most once.

        The result is keyed by normalised code, so duplicated or lower-case
        inputs all map to the same record. Failed codes are simply absent.
        """
        start = time.monotonic()
        unique: list[str] = []
        seen: set[str] = set()
        for code in codes:
            try:
                normalized = normalize_code(code)
            except ValidationError as e:
                logger.warning(f"Skipping invalid code in batch: {e}")
                continue
            if normalized not in seen:
                seen.add(normalized)
                unique.append(normalized)

        logger.info(
            f"Batch geocoding {len(codes)} codes "
            f"({len(unique)} unique, {len(codes) - len(unique)} duplicates)"
        )

        locations: dict[str, LocationRecord] = {}
        uncached: list[str] = []
        for code in unique:
            cached = self.cache.get(location_key(code))
            if cached is not None:
                locations[code] = cached
            else:
                uncached.append(code)

        failures = 0
        for index, code in enumerate(uncached):
            if index > 0 and self._batch_delay > 0:
                await self._sleep(self._batch_delay)
            try:
                locations[code] = await self._lookup_and_cache(code)
            except (NotFoundError, UpstreamError, AuthError) as e:
                failures += 1
                logger.warning(f"Failed to geocode {code}: {e}")

        elapsed_ms = int((time.monotonic() - start) * 1000)
        stats = self.cache.stats()
        logger.info(
            f"Batch geocoding done in {elapsed_ms}ms: {len(locations)}/{len(unique)} resolved, "
            f"{len(unique) - len(uncached)} from cache, {failures} failed, "
            f"cache hit rate {stats.hit_rate}%"
        )
        return locations

    async def resolve_aligned(self, codes: list[str]) -> list[LocationRecord | None]:
        """Positionally aligned view of resolve_batch."""
        locations = await self.resolve_batch(codes)
        aligned: list[LocationRecord | None] = []
        for code in codes:
            try:
                aligned.append(locations.get(normalize_code(code)))
            except ValidationError:
                aligned.append(None)
        return aligned

    def cache_stats(self) -> dict:
        return self.cache.stats().as_dict()

    async def close(self):
        for strategy in self.strategies:
            close = getattr(strategy, "close", None)
            if close is not None:
                await close()


geocoding_service = GeocodingService()
