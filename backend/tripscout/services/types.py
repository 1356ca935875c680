"""Domain value types shared across the search pipeline."""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Generic, TypeVar

from tripscout.errors import ValidationError

T = TypeVar("T")


class TravelStyle(str, Enum):
    ADVENTURE = "adventure"
    RELAXATION = "relaxation"
    CULTURE = "culture"
    PARTY = "party"
    NATURE = "nature"


class WeatherPreference(str, Enum):
    HOT = "hot"
    MILD = "mild"
    COLD = "cold"
    ANY = "any"


@dataclass(frozen=True)
class Coordinates:
    latitude: float
    longitude: float

    def __post_init__(self):
        if not is_valid_coordinates(self.latitude, self.longitude):
            raise ValidationError(
                f"Coordinates out of range: ({self.latitude}, {self.longitude})"
            )


def is_valid_coordinates(lat: float, lon: float) -> bool:
    """True when both values are finite numbers inside the geographic bounds."""
    try:
        lat = float(lat)
        lon = float(lon)
    except (TypeError, ValueError):
        return False
    if lat != lat or lon != lon:  # NaN
        return False
    return -90 <= lat <= 90 and -180 <= lon <= 180


@dataclass(frozen=True)
class LocationRecord:
    """A resolved place for one location code."""
    code: str
    display_name: str
    city_name: str
    country_code: str
    coordinates: Coordinates
    timezone_offset: str | None = None
    source: str = "amadeus"


@dataclass(frozen=True)
class Temperature:
    min: int
    max: int
    avg: int


@dataclass(frozen=True)
class ApparentTemperature:
    min: int
    max: int


@dataclass(frozen=True)
class Condition:
    main: str
    description: str
    icon: str


@dataclass(frozen=True)
class Precipitation:
    probability: int = 0
    amount: float = 0.0  # mm
    rain: float = 0.0  # mm
    snow: float = 0.0  # cm
    showers: float = 0.0  # mm
    hours: float = 0.0


@dataclass(frozen=True)
class Wind:
    speed: int  # km/h
    gusts: int | None  # km/h
    direction: int | None  # degrees


@dataclass(frozen=True)
class ForecastDay:
    """One day of weather for a location, tied to (code, date, provider)."""
    date: date
    code: str
    provider: str
    coordinates: Coordinates
    temperature: Temperature
    apparent_temperature: ApparentTemperature | None
    condition: Condition
    precipitation: Precipitation
    wind: Wind
    humidity: int | None = None
    visibility: float | None = None
    uv_index: int = 0
    sunrise: str | None = None
    sunset: str | None = None
    daylight_duration: float | None = None  # seconds
    sunshine_duration: float | None = None  # seconds


@dataclass(frozen=True)
class WeatherSummary:
    """Compact weather view attached to a candidate."""
    destination_code: str
    temperature: int
    condition: str
    description: str
    humidity: int | None
    wind_speed: int
    provider: str
    fetched_at: datetime


@dataclass(frozen=True)
class Candidate:
    """A destination option within budget."""
    id: str
    origin_code: str
    destination_code: str
    destination_name: str
    price: float
    currency: str
    departure_date: date
    return_date: date
    carrier_label: str = "Various"
    trip_duration_label: str = ""
    stop_count: int = 0
    forecast: tuple[ForecastDay, ...] | None = None
    weather: WeatherSummary | None = None
    score: int | None = None


@dataclass(frozen=True)
class TravelPreferences:
    origin: str
    budget: float
    travel_style: TravelStyle
    weather_preference: WeatherPreference = WeatherPreference.ANY
    preferred_destinations: tuple[str, ...] = ()
    departure_date: date | None = None
    return_date: date | None = None


class OutcomeStatus(str, Enum):
    OK = "ok"
    DEGRADED = "degraded"
    ABSENT = "absent"


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Tagged result of one pipeline stage.

    ``ok`` comes from the primary strategy, ``degraded`` from a fallback and
    ``absent`` means every strategy failed. Expected degradation is reported
    through this value rather than raised.
    """
    status: OutcomeStatus
    value: T | None = None
    source: str = ""
    error: str | None = None

    @classmethod
    def ok(cls, value: T, source: str) -> "Outcome[T]":
        return cls(OutcomeStatus.OK, value, source)

    @classmethod
    def degraded(cls, value: T, source: str, error: str | None = None) -> "Outcome[T]":
        return cls(OutcomeStatus.DEGRADED, value, source, error)

    @classmethod
    def absent(cls, error: str | None = None) -> "Outcome[T]":
        return cls(OutcomeStatus.ABSENT, None, "absent", error)

    @property
    def is_ok(self) -> bool:
        return self.status == OutcomeStatus.OK

    @property
    def is_absent(self) -> bool:
        return self.status == OutcomeStatus.ABSENT


@dataclass
class SearchResult:
    recommendations: list[Candidate]
    rationale: str
    execution_time_ms: int
    stages_used: list[str] = field(default_factory=list)
