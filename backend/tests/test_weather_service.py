"""Tests for forecast retrieval, caching and the degraded provider chain."""
from dataclasses import replace
from datetime import date

import httpx
import pytest

from conftest import FailingProvider, FakeLookup, NoSleep, StaticProvider, make_location
from tripscout.errors import ValidationError
from tripscout.services.geocoding_service import GeocodingService
from tripscout.services.types import OutcomeStatus
from tripscout.services.weather_service import (
    ClimatologyProvider,
    OpenMeteoProvider,
    WeatherService,
    condition_for_code,
    round_half_up,
)

START = date(2026, 6, 1)

OPEN_METEO_DAILY = {
    "daily": {
        "time": ["2026-06-01", "2026-06-02"],
        "temperature_2m_max": [24.6, 26.2],
        "temperature_2m_min": [16.4, 17.0],
        "temperature_2m_mean": [20.4, 21.5],
        "apparent_temperature_max": [25.1, 27.0],
        "apparent_temperature_min": [15.9, 16.8],
        "precipitation_sum": [0.0, 2.4],
        "precipitation_probability_max": [5, 60],
        "precipitation_hours": [0.0, 3.0],
        "rain_sum": [0.0, 2.4],
        "snowfall_sum": [0.0, 0.0],
        "showers_sum": [0.0, 0.0],
        "wind_speed_10m_max": [12.3, 18.7],
        "wind_gusts_10m_max": [25.0, 33.1],
        "wind_direction_10m_dominant": [180, 200],
        "weather_code": [1, 61],
        "sunrise": ["2026-06-01T06:18", "2026-06-02T06:18"],
        "sunset": ["2026-06-01T21:21", "2026-06-02T21:22"],
        "daylight_duration": [54180.0, 54240.0],
        "sunshine_duration": [48000.0, 30000.0],
        "uv_index_max": [7.6, 5.2],
    }
}


def make_weather(forecast_cache, location_cache, providers, lookup=None) -> WeatherService:
    geocoder = GeocodingService(strategies=[lookup or FakeLookup()], cache=location_cache, sleep=NoSleep())
    return WeatherService(geocoder=geocoder, providers=providers, cache=forecast_cache)


def test_condition_codes_normalise():
    assert condition_for_code(0).main == "Clear"
    assert condition_for_code(95).main == "Thunderstorm"
    assert condition_for_code(1234).main == "Unknown"
    assert condition_for_code(None).description == "unknown"


@pytest.mark.asyncio
async def test_open_meteo_daily_payload_is_parsed():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["start_date"] == "2026-06-01"
        assert request.url.params["end_date"] == "2026-06-02"
        return httpx.Response(200, json=OPEN_METEO_DAILY)

    provider = OpenMeteoProvider(httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    days = await provider.get_forecast(make_location("BCN"), START, date(2026, 6, 2))

    assert len(days) == 2
    first, second = days
    assert first.temperature.min == 16
    assert first.temperature.max == 25
    assert first.temperature.avg == 20
    assert first.condition.main == "Clouds"
    assert first.humidity is None
    assert first.uv_index == 8
    assert second.condition.main == "Rain"
    assert second.precipitation.probability == 60
    assert second.wind.gusts == 33


@pytest.mark.asyncio
async def test_forecast_is_cached_per_day(forecast_cache, location_cache):
    primary = StaticProvider()
    service = make_weather(forecast_cache, location_cache, [primary])

    first = await service.forecast("bcn", START, 3)
    second = await service.forecast("BCN", START, 3)

    assert first.status == OutcomeStatus.OK
    assert second.status == OutcomeStatus.OK
    assert primary.calls == 1
    assert [d.date for d in second.value] == [d.date for d in first.value]


@pytest.mark.asyncio
async def test_cached_forecast_expires_after_ttl(forecast_cache, location_cache, clock):
    primary = StaticProvider()
    service = make_weather(forecast_cache, location_cache, [primary])

    await service.forecast("BCN", START, 3)
    clock.advance(30)
    await service.forecast("BCN", START, 3)
    assert primary.calls == 1

    clock.advance(31)
    outcome = await service.forecast("BCN", START, 3)

    assert outcome.status == OutcomeStatus.OK
    assert primary.calls == 2


@pytest.mark.asyncio
async def test_fallback_provider_gives_degraded_and_deterministic_forecast(forecast_cache, location_cache):
    failing = FailingProvider()
    service = make_weather(forecast_cache, location_cache, [failing, ClimatologyProvider()])

    first = await service.forecast("PRG", START, 5)
    second = await service.forecast("PRG", START, 5)

    assert first.status == OutcomeStatus.DEGRADED
    assert first.source == "climatology"
    assert first.value == second.value
    # Degraded forecasts are not cached, so the primary is retried
    assert failing.calls == 2


@pytest.mark.asyncio
async def test_all_providers_failing_gives_absent(forecast_cache, location_cache):
    service = make_weather(forecast_cache, location_cache, [FailingProvider()])

    outcome = await service.forecast("PRG", START, 3)

    assert outcome.is_absent
    assert outcome.value is None


@pytest.mark.asyncio
async def test_unresolvable_code_gives_absent(forecast_cache, location_cache):
    service = make_weather(forecast_cache, location_cache, [StaticProvider()])

    outcome = await service.forecast("XQZ", START, 3)

    assert outcome.is_absent


@pytest.mark.asyncio
async def test_invalid_inputs_raise_validation_error(forecast_cache, location_cache):
    service = make_weather(forecast_cache, location_cache, [StaticProvider()])

    with pytest.raises(ValidationError):
        await service.forecast("B4N", START, 3)
    with pytest.raises(ValidationError):
        await service.forecast_for_location(make_location("BCN"), START, 17)


@pytest.mark.asyncio
@pytest.mark.parametrize("days", [0, 17])
async def test_invalid_days_rejected_before_geocoding(forecast_cache, location_cache, days):
    lookup = FakeLookup()
    primary = StaticProvider()
    service = make_weather(forecast_cache, location_cache, [primary], lookup)

    with pytest.raises(ValidationError):
        await service.forecast("BCN", START, days)
    assert lookup.calls == []
    assert primary.calls == 0


@pytest.mark.asyncio
async def test_summary_averages_over_window(forecast_cache, location_cache):
    service = make_weather(forecast_cache, location_cache, [StaticProvider()])
    outcome = await service.forecast("LIS", START, 4)

    summary = service.summarize(outcome.value)

    expected = round_half_up(sum(d.temperature.avg for d in outcome.value) / 4)
    assert summary.temperature == expected
    assert summary.destination_code == "LIS"
    assert service.summarize([]) is None


def test_round_half_up():
    assert round_half_up(14.5) == 15
    assert round_half_up(24.5) == 25
    assert round_half_up(14.49) == 14
    assert round_half_up(-0.5) == 0
    assert round_half_up(-1.5) == -1


@pytest.mark.asyncio
async def test_half_degrees_round_up_when_parsed_and_summarised():
    payload = {
        "daily": {
            "time": ["2026-06-01", "2026-06-02"],
            "temperature_2m_max": [18.5, 28.5],
            "temperature_2m_min": [10.5, 20.5],
            "temperature_2m_mean": [14.5, 24.5],
            "weather_code": [0, 0],
            "uv_index_max": [4.5, 6.5],
        }
    }

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=payload)

    provider = OpenMeteoProvider(httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    days = await provider.get_forecast(make_location("BCN"), START, date(2026, 6, 2))

    assert [d.temperature.avg for d in days] == [15, 25]
    assert [d.temperature.min for d in days] == [11, 21]
    assert [d.temperature.max for d in days] == [19, 29]
    assert [d.uv_index for d in days] == [5, 7]
    cooler = replace(days[1], temperature=replace(days[1].temperature, avg=14))
    assert WeatherService.summarize([days[0], cooler]).temperature == 15
