"""Weather router: forecasts by location code and provider status."""

import logging
from datetime import date

from fastapi import APIRouter, HTTPException, Query

from tripscout.schemas.search import ForecastDayResponse
from tripscout.services.weather_service import weather_service

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/forecast/{code}")
async def get_forecast(
    code: str,
    start: date | None = Query(None, alias="date"),
    days: int = Query(7, ge=1, le=14),
):
    """Daily forecast for a location code, starting today unless a date is given."""
    outcome = await weather_service.forecast(code, start or date.today(), days)
    if outcome.is_absent:
        raise HTTPException(status_code=404, detail=f"No forecast available for {code.upper()}")

    return {
        "code": code.upper(),
        "status": outcome.status.value,
        "provider": outcome.source,
        "days": [ForecastDayResponse.from_day(d) for d in outcome.value],
    }


@router.get("/status")
async def get_status():
    """Availability of each weather provider."""
    providers = await weather_service.check_provider_health()
    return {
        "primary_provider": weather_service.primary_provider,
        "providers": providers,
        "cache": weather_service.cache_stats(),
    }
