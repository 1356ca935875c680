"""Cache router: hit/miss statistics for the in-memory caches."""

from fastapi import APIRouter

from tripscout.services.geocoding_service import geocoding_service
from tripscout.services.weather_service import weather_service

router = APIRouter()


@router.get("/stats")
async def cache_stats():
    return {
        "geocoding": geocoding_service.cache_stats(),
        "weather": weather_service.cache_stats(),
    }
