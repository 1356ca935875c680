"""Scoring engine: ranks destination candidates against traveller preferences."""

from dataclasses import replace

from tripscout.config import settings
from tripscout.services.types import (
    Candidate,
    ForecastDay,
    TravelPreferences,
    TravelStyle,
    WeatherPreference,
)

# Destinations known to suit each travel style, by city name
STYLE_DESTINATIONS: dict[TravelStyle, frozenset[str]] = {
    TravelStyle.CULTURE: frozenset({"Prague", "Budapest", "Lisbon", "Barcelona"}),
    TravelStyle.PARTY: frozenset({"Barcelona", "Budapest", "Lisbon"}),
    TravelStyle.RELAXATION: frozenset({"Barcelona", "Lisbon", "Copenhagen"}),
    TravelStyle.ADVENTURE: frozenset({"Lisbon", "Copenhagen"}),
    TravelStyle.NATURE: frozenset({"Copenhagen", "Lisbon"}),
}

STYLE_POINTS = 10
WEATHER_POINTS = 5
CHEAP_POINTS = 5  # price < 50% of budget
FAIR_POINTS = 3  # price < 80% of budget
PREFERRED_POINTS = 15
DIRECT_POINTS = 3


def average_temperature(forecast: tuple[ForecastDay, ...] | None) -> float | None:
    """Mean of the daily average temperatures, or None without a forecast."""
    if not forecast:
        return None
    return sum(day.temperature.avg for day in forecast) / len(forecast)


def matches_weather(avg_temp: float | None, preference: WeatherPreference) -> bool:
    """
    Temperature bands: hot > 25, mild 15-25 inclusive, cold < 15.

    ``any`` always matches, even without a forecast.
    """
    if preference == WeatherPreference.ANY:
        return True
    if avg_temp is None:
        return False
    if preference == WeatherPreference.HOT:
        return avg_temp > 25
    if preference == WeatherPreference.MILD:
        return 15 <= avg_temp <= 25
    return avg_temp < 15


def matches_style(candidate: Candidate, style: TravelStyle) -> bool:
    return candidate.destination_name in STYLE_DESTINATIONS.get(style, frozenset())


def is_preferred(candidate: Candidate, preferred: tuple[str, ...]) -> bool:
    name = candidate.destination_name.casefold()
    code = candidate.destination_code.casefold()
    return any(p.strip().casefold() in (name, code) for p in preferred)


def score_candidate(candidate: Candidate, preferences: TravelPreferences) -> int:
    score = 0

    if matches_style(candidate, preferences.travel_style):
        score += STYLE_POINTS

    if matches_weather(average_temperature(candidate.forecast), preferences.weather_preference):
        score += WEATHER_POINTS

    if preferences.budget > 0:
        ratio = candidate.price / preferences.budget
        if ratio < 0.5:
            score += CHEAP_POINTS
        elif ratio < 0.8:
            score += FAIR_POINTS

    if is_preferred(candidate, preferences.preferred_destinations):
        score += PREFERRED_POINTS

    if candidate.stop_count == 0:
        score += DIRECT_POINTS

    return score


def rank_candidates(
    candidates: list[Candidate],
    preferences: TravelPreferences,
    limit: int | None = None,
) -> list[Candidate]:
    """
    Score every candidate and return the best ``limit`` of them.

    Sorting is stable, so equal scores keep their discovery order.
    Returns copies with ``score`` set; the inputs are not modified.
    """
    if limit is None:
        limit = settings.max_recommendations
    scored = [replace(c, score=score_candidate(c, preferences)) for c in candidates]
    scored = sorted(scored, key=lambda c: -c.score)
    return scored[:max(limit, 0)]
