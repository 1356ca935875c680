"""Search router: destination recommendations for a budget and travel style."""

import asyncio
import logging

from fastapi import APIRouter, HTTPException

from tripscout.config import settings
from tripscout.schemas.search import SearchRequest, SearchResponse
from tripscout.services.search_orchestrator import search_orchestrator

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", response_model=SearchResponse)
async def search_destinations(req: SearchRequest):
    """Run discovery, weather enrichment and ranking for one set of preferences."""
    preferences = req.to_preferences()
    try:
        result = await asyncio.wait_for(
            search_orchestrator.search(preferences),
            timeout=settings.search_timeout_seconds,
        )
    except asyncio.TimeoutError:
        logger.error(f"Search timed out for origin {preferences.origin}")
        raise HTTPException(status_code=504, detail="Search timed out. Please try again.")

    return SearchResponse.from_result(result)
