"""Tests for geocoding resolution, caching and batch dedup."""
import httpx
import pytest

from conftest import FakeLookup, NoSleep
from tripscout.errors import (
    AmbiguousLocationError,
    AuthError,
    LocationNotFoundError,
    UpstreamError,
    ValidationError,
)
from tripscout.services.geocoding_service import (
    AmadeusLocationLookup,
    GeocodingService,
    OpenMeteoLookup,
    normalize_code,
)
from tripscout.services.token_service import TOKEN_PATH, TokenService

BASE_URL = "https://amadeus.test"


def make_service(cache, *strategies, sleep=None) -> GeocodingService:
    return GeocodingService(
        strategies=list(strategies),
        cache=cache,
        batch_delay_ms=100,
        sleep=sleep or NoSleep(),
    )


def test_normalize_code():
    assert normalize_code(" bcn ") == "BCN"
    for bad in ["", "BC", "BCNX", "BC1", None]:
        with pytest.raises(ValidationError):
            normalize_code(bad)


@pytest.mark.asyncio
async def test_batch_looks_up_each_unique_code_once(location_cache):
    lookup = FakeLookup()
    sleep = NoSleep()
    service = make_service(location_cache, lookup, sleep=sleep)

    result = await service.resolve_batch(["BCN", "WAW", "BCN", "PRG"])

    assert lookup.calls == ["BCN", "WAW", "PRG"]
    assert set(result) == {"BCN", "WAW", "PRG"}
    assert service.network_lookups == 3
    # Pacing delay before every lookup but the first
    assert sleep.delays == [0.1, 0.1]


@pytest.mark.asyncio
async def test_aligned_batch_repeats_identical_record(location_cache):
    service = make_service(location_cache, FakeLookup())

    aligned = await service.resolve_aligned(["BCN", "WAW", "bcn", "PRG"])

    assert aligned[0] is aligned[2]
    assert [loc.code for loc in aligned] == ["BCN", "WAW", "BCN", "PRG"]


@pytest.mark.asyncio
async def test_batch_skips_invalid_and_failed_codes(location_cache):
    lookup = FakeLookup(fail={"PRG"})
    service = make_service(location_cache, lookup)

    result = await service.resolve_batch(["BCN", "12X", "PRG"])

    assert list(result) == ["BCN"]
    assert lookup.calls == ["BCN", "PRG"]

    aligned = await service.resolve_aligned(["12X", "BCN"])
    assert aligned[0] is None
    assert aligned[1].code == "BCN"


@pytest.mark.asyncio
async def test_batch_serves_cached_codes_without_network(location_cache):
    lookup = FakeLookup()
    service = make_service(location_cache, lookup)
    await service.resolve("BCN")

    await service.resolve_batch(["BCN", "WAW"])

    assert lookup.calls == ["BCN", "WAW"]


@pytest.mark.asyncio
async def test_cached_location_expires_after_ttl(location_cache, clock):
    lookup = FakeLookup()
    service = make_service(location_cache, lookup)

    await service.resolve("BCN")
    await service.resolve("BCN")
    assert service.network_lookups == 1

    clock.advance(61)
    await service.resolve("BCN")
    assert service.network_lookups == 2


@pytest.mark.asyncio
async def test_invalid_code_raises_before_lookup(location_cache):
    lookup = FakeLookup()
    service = make_service(location_cache, lookup)

    with pytest.raises(ValidationError):
        await service.resolve("B1N")
    assert lookup.calls == []


@pytest.mark.asyncio
async def test_falls_back_to_next_strategy(location_cache):
    primary = FakeLookup(name="amadeus", error=AuthError("credentials rejected"))
    secondary = FakeLookup(name="open-meteo")
    service = make_service(location_cache, primary, secondary)

    location = await service.resolve("LIS")

    assert location.source == "open-meteo"
    assert primary.calls == ["LIS"]
    assert secondary.calls == ["LIS"]


@pytest.mark.asyncio
async def test_last_error_raised_when_every_strategy_fails(location_cache):
    primary = FakeLookup(name="amadeus", error=UpstreamError("boom", 500))
    secondary = FakeLookup(name="open-meteo", error=LocationNotFoundError("nothing"))
    service = make_service(location_cache, primary, secondary)

    with pytest.raises(LocationNotFoundError):
        await service.resolve("LIS")
    assert "location:LIS" not in location_cache


@pytest.mark.asyncio
async def test_open_meteo_lookup_searches_by_city_name():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen.update(request.url.params)
        return httpx.Response(200, json={"results": [{
            "name": "Barcelona", "latitude": 41.38879, "longitude": 2.15899, "country_code": "ES",
        }]})

    lookup = OpenMeteoLookup(httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    location = await lookup.lookup("BCN")

    assert seen["name"] == "Barcelona"
    assert location.code == "BCN"
    assert location.coordinates.latitude == 41.38879
    assert location.country_code == "ES"
    assert location.source == "open-meteo"


@pytest.mark.asyncio
async def test_open_meteo_lookup_without_results_is_not_found():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"generationtime_ms": 0.5})

    lookup = OpenMeteoLookup(httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    with pytest.raises(LocationNotFoundError):
        await lookup.lookup("XQZ")


def amadeus_lookup(payload: dict, clock, status: int = 200, seen: dict | None = None) -> AmadeusLocationLookup:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == TOKEN_PATH:
            return httpx.Response(200, json={"access_token": "tok", "expires_in": 1799})
        if seen is not None:
            seen.update(request.url.params)
        return httpx.Response(status, json=payload)

    http = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url=BASE_URL)
    tokens = TokenService(
        client_id="id", client_secret="secret", base_url=BASE_URL, http_client=http, clock=clock
    )
    return AmadeusLocationLookup(tokens)


@pytest.mark.asyncio
async def test_amadeus_lookup_prefers_exact_code_match(clock):
    payload = {"data": [
        {
            "subType": "CITY", "name": "BARCELONA", "iataCode": "BCX",
            "geoCode": {"latitude": 41.0, "longitude": 2.0},
            "address": {"cityName": "BARCELONA", "countryCode": "VE"},
        },
        {
            "subType": "AIRPORT", "name": "EL PRAT", "iataCode": "BCN", "timeZoneOffset": "+02:00",
            "geoCode": {"latitude": 41.29694, "longitude": 2.07833},
            "address": {"cityName": "BARCELONA", "countryCode": "ES"},
        },
    ]}
    seen = {}
    lookup = amadeus_lookup(payload, clock, seen=seen)

    location = await lookup.lookup("BCN")

    assert seen["keyword"] == "BCN"
    assert seen["subType"] == "CITY,AIRPORT"
    assert location.code == "BCN"
    assert location.display_name == "EL PRAT"
    assert location.city_name == "BARCELONA"
    assert location.country_code == "ES"
    assert location.coordinates.latitude == 41.29694
    assert location.coordinates.longitude == 2.07833
    assert location.timezone_offset == "+02:00"
    assert location.source == "amadeus"


@pytest.mark.asyncio
@pytest.mark.parametrize("status,payload", [(200, {"data": []}), (200, {"meta": {"count": 0}}), (404, {"errors": []})])
async def test_amadeus_lookup_without_data_is_not_found(clock, status, payload):
    lookup = amadeus_lookup(payload, clock, status=status)

    with pytest.raises(LocationNotFoundError):
        await lookup.lookup("XQZ")


@pytest.mark.asyncio
@pytest.mark.parametrize("geo", [None, {"latitude": 41.3}, {"latitude": 141.3, "longitude": 2.1}])
async def test_amadeus_lookup_without_usable_coordinates_is_ambiguous(clock, geo):
    entry = {"subType": "CITY", "name": "BARCELONA", "iataCode": "BCN"}
    if geo is not None:
        entry["geoCode"] = geo
    lookup = amadeus_lookup({"data": [entry]}, clock)

    with pytest.raises(AmbiguousLocationError):
        await lookup.lookup("BCN")


@pytest.mark.asyncio
async def test_amadeus_lookup_server_error_is_upstream(clock):
    lookup = amadeus_lookup({"errors": []}, clock, status=500)

    with pytest.raises(UpstreamError) as exc_info:
        await lookup.lookup("BCN")
    assert exc_info.value.status_code == 500
