"""Weather service: multi-day forecasts with caching and a degraded fallback provider."""

import hashlib
import logging
import math
import random
from datetime import date, datetime, timedelta, timezone
from typing import Any, Protocol

import httpx

from tripscout.config import settings
from tripscout.errors import AuthError, NotFoundError, UpstreamError, ValidationError
from tripscout.services.cache_service import TTLCache, forecast_key, weather_cache
from tripscout.services.geocoding_service import GeocodingService, geocoding_service
from tripscout.services.types import (
    ApparentTemperature,
    Condition,
    ForecastDay,
    LocationRecord,
    Outcome,
    Precipitation,
    Temperature,
    WeatherSummary,
    Wind,
)

logger = logging.getLogger(__name__)

MAX_FORECAST_DAYS = 16

# WMO weather code → normalized condition
# https://open-meteo.com/en/docs
WMO_WEATHER_CODES: dict[int, tuple[str, str, str]] = {
    0: ("Clear", "clear sky", "01d"),
    1: ("Clouds", "mainly clear", "02d"),
    2: ("Clouds", "partly cloudy", "03d"),
    3: ("Clouds", "overcast", "04d"),
    45: ("Fog", "foggy", "50d"),
    48: ("Fog", "depositing rime fog", "50d"),
    51: ("Drizzle", "light drizzle", "09d"),
    53: ("Drizzle", "moderate drizzle", "09d"),
    55: ("Drizzle", "dense drizzle", "09d"),
    56: ("Drizzle", "light freezing drizzle", "09d"),
    57: ("Drizzle", "dense freezing drizzle", "09d"),
    61: ("Rain", "slight rain", "10d"),
    63: ("Rain", "moderate rain", "10d"),
    65: ("Rain", "heavy rain", "10d"),
    66: ("Rain", "light freezing rain", "10d"),
    67: ("Rain", "heavy freezing rain", "10d"),
    71: ("Snow", "slight snow", "13d"),
    73: ("Snow", "moderate snow", "13d"),
    75: ("Snow", "heavy snow", "13d"),
    77: ("Snow", "snow grains", "13d"),
    80: ("Rain", "slight rain showers", "09d"),
    81: ("Rain", "moderate rain showers", "09d"),
    82: ("Rain", "violent rain showers", "09d"),
    85: ("Snow", "slight snow showers", "13d"),
    86: ("Snow", "heavy snow showers", "13d"),
    95: ("Thunderstorm", "thunderstorm", "11d"),
    96: ("Thunderstorm", "thunderstorm with slight hail", "11d"),
    99: ("Thunderstorm", "thunderstorm with heavy hail", "11d"),
}

DAILY_METRICS = [
    "temperature_2m_max",
    "temperature_2m_min",
    "temperature_2m_mean",
    "apparent_temperature_max",
    "apparent_temperature_min",
    "precipitation_sum",
    "precipitation_probability_max",
    "precipitation_hours",
    "rain_sum",
    "snowfall_sum",
    "showers_sum",
    "wind_speed_10m_max",
    "wind_gusts_10m_max",
    "wind_direction_10m_dominant",
    "weather_code",
    "sunrise",
    "sunset",
    "daylight_duration",
    "sunshine_duration",
    "uv_index_max",
]


def condition_for_code(code: Any) -> Condition:
    try:
        main, description, icon = WMO_WEATHER_CODES[int(code)]
    except (KeyError, TypeError, ValueError):
        return Condition("Unknown", "unknown", "01d")
    return Condition(main, description, icon)


def round_half_up(value: float) -> int:
    """Halves round up (14.5 -> 15), unlike the banker's rounding of round()."""
    return math.floor(value + 0.5)


def _round(value: Any) -> int | None:
    if value is None:
        return None
    return round_half_up(float(value))


def _check_days(days: int) -> None:
    if days < 1 or days > MAX_FORECAST_DAYS:
        raise ValidationError(f"Days must be between 1 and {MAX_FORECAST_DAYS}")


def _num(value: Any, default: float = 0.0) -> float:
    return float(value) if value is not None else default


class WeatherProvider(Protocol):
    name: str

    async def get_forecast(
        self, location: LocationRecord, start_date: date, end_date: date
    ) -> list[ForecastDay]: ...

    async def is_available(self) -> bool: ...


class OpenMeteoProvider:
    """Open-Meteo daily forecast API (free, no key)."""

    name = "open-meteo"

    def __init__(self, http_client: httpx.AsyncClient | None = None):
        self._client = http_client

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=settings.http_timeout_seconds)
        return self._client

    async def get_forecast(
        self, location: LocationRecord, start_date: date, end_date: date
    ) -> list[ForecastDay]:
        coords = location.coordinates
        params = {
            "latitude": coords.latitude,
            "longitude": coords.longitude,
            "start_date": start_date.isoformat(),
            "end_date": end_date.isoformat(),
            "daily": ",".join(DAILY_METRICS),
            "timezone": "auto",
        }
        client = await self._get_client()
        try:
            resp = await client.get(
                settings.open_meteo_forecast_url,
                params=params,
                headers={"Accept": "application/json"},
            )
            resp.raise_for_status()
            data = resp.json()
        except httpx.TimeoutException as e:
            raise UpstreamError("Open-Meteo forecast request timed out") from e
        except httpx.HTTPStatusError as e:
            raise UpstreamError(
                f"Open-Meteo API error: {e.response.status_code}", e.response.status_code
            ) from e
        except httpx.RequestError as e:
            raise UpstreamError(f"Open-Meteo request failed: {e}") from e
        except ValueError as e:
            raise UpstreamError("Open-Meteo returned invalid JSON") from e

        forecasts = self._parse_daily(data, location)
        logger.info(f"Open-Meteo returned {len(forecasts)} days for {location.code}")
        return forecasts

    def _parse_daily(self, data: dict, location: LocationRecord) -> list[ForecastDay]:
        daily = data.get("daily") if isinstance(data, dict) else None
        if not isinstance(daily, dict) or not isinstance(daily.get("time"), list):
            raise UpstreamError("Open-Meteo response did not include daily data")

        def col(name: str) -> list:
            values = daily.get(name)
            return values if isinstance(values, list) else []

        def at(name: str, i: int) -> Any:
            values = col(name)
            return values[i] if i < len(values) else None

        forecasts = []
        try:
            for i, raw_day in enumerate(daily["time"]):
                t_min = _round(at("temperature_2m_min", i))
                t_max = _round(at("temperature_2m_max", i))
                t_mean = at("temperature_2m_mean", i)
                if t_min is None or t_max is None:
                    raise UpstreamError(f"Open-Meteo day {raw_day} is missing temperatures")
                t_avg = _round(t_mean) if t_mean is not None else round_half_up((t_min + t_max) / 2)

                app_min = _round(at("apparent_temperature_min", i))
                app_max = _round(at("apparent_temperature_max", i))
                apparent = (
                    ApparentTemperature(app_min, app_max)
                    if app_min is not None and app_max is not None
                    else None
                )

                forecasts.append(ForecastDay(
                    date=date.fromisoformat(str(raw_day)),
                    code=location.code,
                    provider=self.name,
                    coordinates=location.coordinates,
                    temperature=Temperature(min=t_min, max=t_max, avg=t_avg),
                    apparent_temperature=apparent,
                    condition=condition_for_code(at("weather_code", i)),
                    precipitation=Precipitation(
                        probability=_round(at("precipitation_probability_max", i)) or 0,
                        amount=_num(at("precipitation_sum", i)),
                        rain=_num(at("rain_sum", i)),
                        snow=_num(at("snowfall_sum", i)),
                        showers=_num(at("showers_sum", i)),
                        hours=_num(at("precipitation_hours", i)),
                    ),
                    wind=Wind(
                        speed=_round(at("wind_speed_10m_max", i)) or 0,
                        gusts=_round(at("wind_gusts_10m_max", i)),
                        direction=_round(at("wind_direction_10m_dominant", i)),
                    ),
                    # Not provided by the daily API
                    humidity=None,
                    visibility=None,
                    uv_index=_round(at("uv_index_max", i)) or 0,
                    sunrise=at("sunrise", i),
                    sunset=at("sunset", i),
                    daylight_duration=at("daylight_duration", i),
                    sunshine_duration=at("sunshine_duration", i),
                ))
        except (TypeError, ValueError) as e:
            raise UpstreamError(f"Open-Meteo daily payload was malformed: {e}") from e

        if not forecasts:
            raise UpstreamError("No forecast data returned")
        return forecasts

    async def is_available(self) -> bool:
        client = await self._get_client()
        try:
            resp = await client.get(
                settings.open_meteo_forecast_url,
                params={"latitude": 52.52, "longitude": 13.41, "daily": "temperature_2m_max"},
            )
            return resp.is_success
        except httpx.HTTPError:
            return False

    async def close(self):
        if self._client:
            await self._client.aclose()
            self._client = None


class ClimatologyProvider:
    """Low-fidelity offline forecast derived from latitude and season.

    Output is seeded by latitude and date, so repeated degraded calls for the
    same place return the same forecast.
    """

    name = "climatology"

    async def get_forecast(
        self, location: LocationRecord, start_date: date, end_date: date
    ) -> list[ForecastDay]:
        lat = location.coordinates.latitude
        forecasts = []
        day = start_date
        while day <= end_date:
            forecasts.append(self._generate_day(location, day, lat))
            day += timedelta(days=1)
        return forecasts

    def _generate_day(self, location: LocationRecord, day: date, lat: float) -> ForecastDay:
        seed_str = f"{lat:.2f}{day.isoformat()}"
        seed = int(hashlib.md5(seed_str.encode()).hexdigest()[:8], 16)
        rng = random.Random(seed)

        # Annual mean falls with latitude; seasonal swing grows with it.
        # Northern hemisphere peaks mid-July, southern mid-January.
        annual_mean = 27 - 0.4 * abs(lat)
        amplitude = 0.22 * abs(lat)
        peak_doy = 196 if lat >= 0 else 15
        doy = day.timetuple().tm_yday
        seasonal = amplitude * math.cos(2 * math.pi * (doy - peak_doy) / 365)
        avg = annual_mean + seasonal + rng.uniform(-2.0, 2.0)
        spread = rng.uniform(3.0, 6.0)

        t_avg = round_half_up(avg)
        t_min = round_half_up(avg - spread)
        t_max = round_half_up(avg + spread)

        if t_avg <= 0:
            code = rng.choices([0, 3, 71, 73], weights=[30, 30, 25, 15])[0]
        elif t_avg >= 24:
            code = rng.choices([0, 1, 2, 95], weights=[50, 25, 15, 10])[0]
        else:
            code = rng.choices([0, 2, 3, 45, 61, 80], weights=[25, 25, 20, 5, 15, 10])[0]
        condition = condition_for_code(code)

        wet = condition.main in ("Rain", "Drizzle", "Thunderstorm", "Snow")
        amount = round(rng.uniform(1.0, 12.0), 1) if wet else 0.0
        snow = round(amount * 0.7, 1) if condition.main == "Snow" else 0.0
        wind_speed = rng.randint(5, 30)

        return ForecastDay(
            date=day,
            code=location.code,
            provider=self.name,
            coordinates=location.coordinates,
            temperature=Temperature(min=t_min, max=t_max, avg=t_avg),
            apparent_temperature=ApparentTemperature(t_min - 1, t_max - 1),
            condition=condition,
            precipitation=Precipitation(
                probability=rng.randint(50, 90) if wet else rng.randint(0, 20),
                amount=amount,
                rain=0.0 if snow else amount,
                snow=snow,
                showers=0.0,
                hours=float(rng.randint(1, 8)) if wet else 0.0,
            ),
            wind=Wind(speed=wind_speed, gusts=wind_speed + rng.randint(5, 20), direction=rng.randint(0, 359)),
            humidity=None,
            visibility=None,
            uv_index=max(0, min(11, round_half_up((t_avg + 5) / 4))),
        )

    async def is_available(self) -> bool:
        return True


class WeatherService:
    """Forecast lookups: cache first, then providers in order until one succeeds."""

    def __init__(
        self,
        geocoder: GeocodingService | None = None,
        providers: list[WeatherProvider] | None = None,
        cache: TTLCache | None = None,
    ):
        self.geocoder = geocoder or geocoding_service
        self.providers = (
            providers if providers is not None
            else [OpenMeteoProvider(), ClimatologyProvider()]
        )
        self.cache = cache if cache is not None else weather_cache

    @property
    def primary_provider(self) -> str:
        return self.providers[0].name if self.providers else "none"

    async def forecast(self, code: str, start_date: date, days: int = 7) -> Outcome[list[ForecastDay]]:
        """Forecast by location code. Raises only ValidationError."""
        _check_days(days)
        try:
            location = await self.geocoder.resolve(code)
        except (NotFoundError, UpstreamError, AuthError) as e:
            logger.warning(f"No coordinates for {code}, skipping forecast: {e}")
            return Outcome.absent(str(e))
        return await self.forecast_for_location(location, start_date, days)

    async def forecast_for_location(
        self, location: LocationRecord, start_date: date, days: int = 7
    ) -> Outcome[list[ForecastDay]]:
        """Forecast for already-resolved coordinates over [start_date, start_date + days - 1]."""
        _check_days(days)

        window = [start_date + timedelta(days=i) for i in range(days)]
        cached = [self.cache.get(forecast_key(location.code, d.isoformat())) for d in window]
        if all(day is not None for day in cached):
            logger.debug(f"Forecast cache hit for {location.code} from {start_date}")
            return Outcome.ok(cached, source=cached[0].provider)

        end_date = window[-1]
        errors = []
        for index, provider in enumerate(self.providers):
            try:
                forecasts = await provider.get_forecast(location, start_date, end_date)
            except (UpstreamError, NotFoundError) as e:
                logger.warning(f"Weather provider {provider.name} failed for {location.code}: {e}")
                errors.append(f"{provider.name}: {e}")
                continue
            if not forecasts:
                errors.append(f"{provider.name}: empty forecast")
                continue

            if index == 0:
                for day in forecasts:
                    self.cache.set(forecast_key(location.code, day.date.isoformat()), day)
                return Outcome.ok(forecasts, source=provider.name)

            logger.info(f"Using degraded forecast from {provider.name} for {location.code}")
            return Outcome.degraded(forecasts, source=provider.name, error="; ".join(errors))

        logger.warning(f"No forecast available for {location.code}")
        return Outcome.absent("; ".join(errors) or "no weather providers configured")

    @staticmethod
    def summarize(forecast: list[ForecastDay] | tuple[ForecastDay, ...]) -> WeatherSummary | None:
        """Average temperature over the window plus the first day's conditions."""
        if not forecast:
            return None
        first = forecast[0]
        avg = round_half_up(sum(d.temperature.avg for d in forecast) / len(forecast))
        return WeatherSummary(
            destination_code=first.code,
            temperature=avg,
            condition=first.condition.main,
            description=first.condition.description,
            humidity=first.humidity,
            wind_speed=first.wind.speed,
            provider=first.provider,
            fetched_at=datetime.now(timezone.utc),
        )

    async def check_provider_health(self) -> list[dict]:
        health = []
        for provider in self.providers:
            available = await provider.is_available()
            health.append({"name": provider.name, "available": available})
        return health

    def cache_stats(self) -> dict:
        return self.cache.stats().as_dict()

    async def close(self):
        for provider in self.providers:
            close = getattr(provider, "close", None)
            if close is not None:
                await close()


weather_service = WeatherService()
