"""Shared fixtures and fakes for the TripScout test suite."""
from datetime import date, timedelta

import pytest

from tripscout.errors import UpstreamError
from tripscout.services.cache_service import TTLCache
from tripscout.services.types import (
    Candidate,
    Coordinates,
    LocationRecord,
    TravelPreferences,
    TravelStyle,
    WeatherPreference,
)
from tripscout.services.weather_service import ClimatologyProvider

CITY_COORDS = {
    "BCN": ("Barcelona", "ES", 41.39, 2.17),
    "WAW": ("Warsaw", "PL", 52.23, 21.01),
    "PRG": ("Prague", "CZ", 50.08, 14.44),
    "LIS": ("Lisbon", "PT", 38.72, -9.14),
    "BUD": ("Budapest", "HU", 47.50, 19.04),
    "CPH": ("Copenhagen", "DK", 55.68, 12.57),
}


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


def make_location(code: str, source: str = "fake") -> LocationRecord:
    city, country, lat, lon = CITY_COORDS[code]
    return LocationRecord(
        code=code,
        display_name=city,
        city_name=city.upper(),
        country_code=country,
        coordinates=Coordinates(lat, lon),
        source=source,
    )


def make_candidate(code: str, name: str, price: float, stops: int = 0, **kwargs) -> Candidate:
    departure = kwargs.pop("departure_date", date(2026, 6, 1))
    return Candidate(
        id=f"test-WAW-{code}",
        origin_code="WAW",
        destination_code=code,
        destination_name=name,
        price=price,
        currency="PLN",
        departure_date=departure,
        return_date=departure + timedelta(days=5),
        trip_duration_label="5 days",
        stop_count=stops,
        **kwargs,
    )


class FakeLookup:
    """Location strategy that records every code it is asked for."""

    def __init__(self, name: str = "fake", fail: set[str] | None = None, error=None):
        self.name = name
        self.calls: list[str] = []
        self.fail = fail or set()
        self.error = error
        self.is_available = True

    async def lookup(self, code: str) -> LocationRecord:
        self.calls.append(code)
        if self.error is not None:
            raise self.error
        if code in self.fail or code not in CITY_COORDS:
            raise UpstreamError(f"lookup failed for {code}")
        return make_location(code, source=self.name)


class FailingProvider:
    """Weather provider that always fails."""

    name = "open-meteo"

    def __init__(self):
        self.calls = 0

    async def get_forecast(self, location, start_date, end_date):
        self.calls += 1
        raise UpstreamError("forecast service unavailable", 503)

    async def is_available(self) -> bool:
        return False


class StaticProvider(ClimatologyProvider):
    """Deterministic provider posing as the primary one."""

    name = "open-meteo"

    def __init__(self):
        self.calls = 0

    async def get_forecast(self, location, start_date, end_date):
        self.calls += 1
        return await super().get_forecast(location, start_date, end_date)


class NoSleep:
    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, seconds: float):
        self.delays.append(seconds)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def location_cache(clock):
    return TTLCache("test-geocoding", ttl_seconds=60, max_size=50, clock=clock)


@pytest.fixture
def forecast_cache(clock):
    return TTLCache("test-weather", ttl_seconds=60, max_size=200, clock=clock)


@pytest.fixture
def culture_preferences():
    return TravelPreferences(
        origin="WAW",
        budget=1000,
        travel_style=TravelStyle.CULTURE,
        weather_preference=WeatherPreference.MILD,
        departure_date=date(2026, 6, 1),
        return_date=date(2026, 6, 6),
    )
