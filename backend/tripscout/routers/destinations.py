"""Destinations router: browse the reference destination list."""

from fastapi import APIRouter, Query

from tripscout.data.destinations import REFERENCE_CURRENCY, list_reference_destinations
from tripscout.services.types import TravelStyle

router = APIRouter()


@router.get("")
async def list_destinations(
    travel_style: TravelStyle | None = Query(None),
    max_budget: float | None = Query(None, ge=0),
):
    """Reference destinations, optionally filtered by travel style and budget."""
    destinations = list_reference_destinations(
        travel_style.value if travel_style else None, max_budget
    )
    return {
        "count": len(destinations),
        "currency": REFERENCE_CURRENCY,
        "destinations": [
            {
                "code": d.code,
                "city": d.city,
                "country": d.country,
                "description": d.description,
                "best_for": list(d.best_for),
                "average_temp": d.average_temp,
                "estimated_price": d.estimated_price,
            }
            for d in destinations
        ],
    }
