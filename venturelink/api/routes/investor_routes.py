"""
Investor Routes

GET /investors/matching-startups - Relaxed match from the investor's criteria
GET /investors/search-startups - Strict search by query filters
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from pymongo.database import Database

from venturelink.core.auth import get_current_user
from venturelink.db.mongodb import get_database
from venturelink.schemas.schemas import ApiResponse, ok
from venturelink.services.matching_service import MatchingService, get_matching_service

router = APIRouter(prefix="/investors", tags=["Investors"])


def get_service(db: Database = Depends(get_database)) -> MatchingService:
    return get_matching_service(db)


@router.get("/matching-startups", response_model=ApiResponse)
async def get_matching_startups(
    user: dict = Depends(get_current_user),
    service: MatchingService = Depends(get_service),
):
    startups = service.find_matching_startups(user["_id"])
    return ok(startups, "Matching startups retrieved successfully")


@router.get("/search-startups", response_model=ApiResponse)
async def search_startups(
    industry: Optional[str] = Query(None),
    stage: Optional[str] = Query(None),
    country: Optional[str] = Query(None),
    city: Optional[str] = Query(None),
    min_funding: Optional[str] = Query(None, alias="minFunding"),
    max_funding: Optional[str] = Query(None, alias="maxFunding"),
    min_success_score: Optional[str] = Query(None, alias="minSuccessScore"),
    user: dict = Depends(get_current_user),
    service: MatchingService = Depends(get_service),
):
    """Any authenticated user may search startups."""
    filters = {
        "industry": industry,
        "stage": stage,
        "country": country,
        "city": city,
        "minFunding": min_funding,
        "maxFunding": max_funding,
        "minSuccessScore": min_success_score,
    }
    return ok(service.search_startups(filters), "Startups retrieved successfully")
