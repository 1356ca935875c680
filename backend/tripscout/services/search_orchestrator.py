"""Search orchestrator: discovery, geocoding, weather enrichment and ranking for one request."""

import asyncio
import logging
import math
import time
from dataclasses import replace
from datetime import date, timedelta

from tripscout.config import settings
from tripscout.services.amadeus_client import (
    DEFAULT_DEPARTURE_OFFSET_DAYS,
    MAX_DURATION_DAYS,
    MIN_DURATION_DAYS,
    AmadeusClient,
    amadeus_client,
)
from tripscout.services.geocoding_service import GeocodingService, geocoding_service
from tripscout.services.narrative_generator import build_rationale
from tripscout.services.scoring_engine import rank_candidates
from tripscout.services.types import (
    Candidate,
    ForecastDay,
    LocationRecord,
    Outcome,
    SearchResult,
    TravelPreferences,
    TravelStyle,
)
from tripscout.services.weather_service import WeatherService, weather_service

logger = logging.getLogger(__name__)

STYLE_TRIP_DAYS: dict[TravelStyle, int] = {
    TravelStyle.ADVENTURE: 10,
    TravelStyle.RELAXATION: 7,
    TravelStyle.CULTURE: 5,
    TravelStyle.PARTY: 4,
    TravelStyle.NATURE: 8,
}

# Stage labels that mean a fallback was used somewhere
FALLBACK_STAGES = (
    "discovery:fallback",
    "geocoding:open-meteo",
    "geocoding:absent",
    "weather:climatology",
    "weather:absent",
)


def calculate_trip_days(preferences: TravelPreferences) -> int:
    """Trip length from explicit dates, else the default for the travel style."""
    if preferences.departure_date and preferences.return_date:
        delta = preferences.return_date - preferences.departure_date
        days = math.ceil(delta.total_seconds() / 86400)
        return max(MIN_DURATION_DAYS, min(MAX_DURATION_DAYS, days))
    return STYLE_TRIP_DAYS.get(preferences.travel_style, 7)


def resolve_departure(preferences: TravelPreferences) -> date:
    return preferences.departure_date or date.today() + timedelta(days=DEFAULT_DEPARTURE_OFFSET_DAYS)


class SearchOrchestrator:
    """Runs the full recommendation pipeline for a set of travel preferences."""

    def __init__(
        self,
        discovery: AmadeusClient | None = None,
        geocoder: GeocodingService | None = None,
        weather: WeatherService | None = None,
    ):
        self.discovery = discovery or amadeus_client
        self.geocoder = geocoder or geocoding_service
        self.weather = weather or weather_service

    async def search(self, preferences: TravelPreferences) -> SearchResult:
        """
        Execute a full search.

        Only ValidationError and AuthError escape; every other failure is
        absorbed as a fallback or a missing enrichment.
        """
        start_time = time.monotonic()
        stages: list[str] = []

        # 1. Trip window
        trip_days = calculate_trip_days(preferences)
        departure = resolve_departure(preferences)
        logger.info(
            f"Search from {preferences.origin}: budget={preferences.budget}, "
            f"style={preferences.travel_style.value}, days={trip_days}, departure={departure}"
        )

        # 2. Discover destinations within budget
        discovered = await self.discovery.discover(
            preferences.origin,
            preferences.budget,
            trip_days,
            departure_date=departure,
            travel_style=preferences.travel_style.value,
        )
        stages.append("discovery:amadeus" if discovered.is_ok else "discovery:fallback")
        candidates: list[Candidate] = discovered.value or []

        # 3. Coordinates for each unique destination, then forecasts
        if candidates:
            locations = await self.geocoder.resolve_batch(
                [c.destination_code for c in candidates]
            )
            for source in self._geocoding_sources(candidates, locations):
                stages.append(f"geocoding:{source}")

            forecast_days = min(trip_days, settings.max_forecast_days)
            candidates, weather_sources = await self._enrich_with_weather(
                candidates, locations, forecast_days
            )
            for source in weather_sources:
                label = f"weather:{source}"
                if label not in stages:
                    stages.append(label)

        # 4. Rank
        ranked = rank_candidates(candidates, preferences, settings.max_recommendations)
        stages.append("ranking")

        fallback_stages = [s for s in stages if s in FALLBACK_STAGES]
        rationale = build_rationale(
            ranked, preferences, self.discovery.currency, degraded_stages=fallback_stages
        )

        elapsed_ms = int((time.monotonic() - start_time) * 1000)
        logger.info(
            f"Search from {preferences.origin} done in {elapsed_ms}ms: "
            f"{len(ranked)} recommendations, stages={stages}"
        )
        return SearchResult(
            recommendations=ranked,
            rationale=rationale,
            execution_time_ms=elapsed_ms,
            stages_used=stages,
        )

    @staticmethod
    def _geocoding_sources(
        candidates: list[Candidate], locations: dict[str, LocationRecord]
    ) -> list[str]:
        """Distinct strategies that resolved the candidates, plus "absent" if any did not."""
        sources: list[str] = []
        for candidate in candidates:
            location = locations.get(candidate.destination_code)
            source = location.source if location is not None else "absent"
            if source not in sources:
                sources.append(source)
        return sources

    async def _enrich_with_weather(
        self,
        candidates: list[Candidate],
        locations: dict[str, LocationRecord],
        days: int,
    ) -> tuple[list[Candidate], list[str]]:
        """Fetch forecasts concurrently; one failed task only drops that candidate's weather."""
        coros = [
            self._forecast_for_candidate(c, locations.get(c.destination_code), days)
            for c in candidates
        ]
        results = await asyncio.gather(*coros, return_exceptions=True)

        enriched: list[Candidate] = []
        sources: list[str] = []
        for candidate, result in zip(candidates, results):
            if isinstance(result, Exception):
                logger.warning(f"Weather enrichment failed for {candidate.destination_code}: {result}")
                result = Outcome.absent(str(result))

            sources.append(result.source)
            if result.is_absent or not result.value:
                enriched.append(candidate)
                continue

            forecast: tuple[ForecastDay, ...] = tuple(result.value)
            enriched.append(replace(
                candidate,
                forecast=forecast,
                weather=self.weather.summarize(forecast),
            ))

        return enriched, sources

    async def _forecast_for_candidate(
        self,
        candidate: Candidate,
        location: LocationRecord | None,
        days: int,
    ) -> Outcome[list[ForecastDay]]:
        if location is None:
            return Outcome.absent(f"No coordinates for {candidate.destination_code}")
        return await self.weather.forecast_for_location(location, candidate.departure_date, days)


search_orchestrator = SearchOrchestrator()
