from datetime import date, datetime

from pydantic import BaseModel, Field

from tripscout.services.types import (
    Candidate,
    ForecastDay,
    SearchResult,
    TravelPreferences,
    TravelStyle,
    WeatherPreference,
    WeatherSummary,
)


class SearchRequest(BaseModel):
    origin: str = Field(min_length=3, max_length=3)
    budget: float = Field(ge=0)
    travel_style: TravelStyle
    weather_preference: WeatherPreference = WeatherPreference.ANY
    preferred_destinations: list[str] = []
    departure_date: date | None = None
    return_date: date | None = None

    def to_preferences(self) -> TravelPreferences:
        return TravelPreferences(
            origin=self.origin.upper(),
            budget=self.budget,
            travel_style=self.travel_style,
            weather_preference=self.weather_preference,
            preferred_destinations=tuple(self.preferred_destinations),
            departure_date=self.departure_date,
            return_date=self.return_date,
        )


class ForecastDayResponse(BaseModel):
    date: date
    provider: str
    temp_min: int
    temp_max: int
    temp_avg: int
    condition: str
    description: str
    icon: str
    precipitation_probability: int
    precipitation_amount: float
    wind_speed: int
    humidity: int | None = None
    uv_index: int = 0
    sunrise: str | None = None
    sunset: str | None = None

    @classmethod
    def from_day(cls, day: ForecastDay) -> "ForecastDayResponse":
        return cls(
            date=day.date,
            provider=day.provider,
            temp_min=day.temperature.min,
            temp_max=day.temperature.max,
            temp_avg=day.temperature.avg,
            condition=day.condition.main,
            description=day.condition.description,
            icon=day.condition.icon,
            precipitation_probability=day.precipitation.probability,
            precipitation_amount=day.precipitation.amount,
            wind_speed=day.wind.speed,
            humidity=day.humidity,
            uv_index=day.uv_index,
            sunrise=day.sunrise,
            sunset=day.sunset,
        )


class WeatherSummaryResponse(BaseModel):
    temperature: int
    condition: str
    description: str
    humidity: int | None
    wind_speed: int
    provider: str
    fetched_at: datetime

    model_config = {"from_attributes": True}


class RecommendationResponse(BaseModel):
    id: str
    origin: str
    destination: str
    destination_name: str
    price: float
    currency: str
    departure_date: date
    return_date: date
    airline: str
    duration: str
    stops: int
    score: int | None = None
    weather: WeatherSummaryResponse | None = None
    forecast: list[ForecastDayResponse] = []

    @classmethod
    def from_candidate(cls, c: Candidate) -> "RecommendationResponse":
        return cls(
            id=c.id,
            origin=c.origin_code,
            destination=c.destination_code,
            destination_name=c.destination_name,
            price=c.price,
            currency=c.currency,
            departure_date=c.departure_date,
            return_date=c.return_date,
            airline=c.carrier_label,
            duration=c.trip_duration_label,
            stops=c.stop_count,
            score=c.score,
            weather=_summary(c.weather),
            forecast=[ForecastDayResponse.from_day(d) for d in c.forecast or ()],
        )


class SearchResponse(BaseModel):
    recommendations: list[RecommendationResponse]
    reasoning: str
    execution_time_ms: int
    stages_used: list[str]

    @classmethod
    def from_result(cls, result: SearchResult) -> "SearchResponse":
        return cls(
            recommendations=[RecommendationResponse.from_candidate(c) for c in result.recommendations],
            reasoning=result.rationale,
            execution_time_ms=result.execution_time_ms,
            stages_used=result.stages_used,
        )


def _summary(summary: WeatherSummary | None) -> WeatherSummaryResponse | None:
    if summary is None:
        return None
    return WeatherSummaryResponse.model_validate(summary)
