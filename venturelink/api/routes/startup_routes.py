"""
Startup Routes

GET /startups/matching-investors - Relaxed match from the startup's profile
GET /startups/search-investors - Strict search by query filters
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from pymongo.database import Database

from venturelink.core.auth import get_current_user
from venturelink.db.mongodb import get_database
from venturelink.schemas.schemas import ApiResponse, ok
from venturelink.services.matching_service import MatchingService, get_matching_service

router = APIRouter(prefix="/startups", tags=["Startups"])


def get_service(db: Database = Depends(get_database)) -> MatchingService:
    return get_matching_service(db)


@router.get("/matching-investors", response_model=ApiResponse)
async def get_matching_investors(
    user: dict = Depends(get_current_user),
    service: MatchingService = Depends(get_service),
):
    """Investors sharing any criterion with the startup."""
    investors = service.find_matching_investors(user["_id"])
    return ok(investors, "Matching investors retrieved successfully")


@router.get("/search-investors", response_model=ApiResponse)
async def search_investors(
    industry: Optional[str] = Query(None),
    investor_type: Optional[str] = Query(None, alias="investorType"),
    country: Optional[str] = Query(None),
    city: Optional[str] = Query(None),
    min_investment: Optional[str] = Query(None, alias="minInvestment"),
    max_investment: Optional[str] = Query(None, alias="maxInvestment"),
    stage: Optional[str] = Query(None),
    user: dict = Depends(get_current_user),
    service: MatchingService = Depends(get_service),
):
    filters = {
        "industry": industry,
        "investorType": investor_type,
        "country": country,
        "city": city,
        "minInvestment": min_investment,
        "maxInvestment": max_investment,
        "stage": stage,
    }
    investors = service.search_investors(user["_id"], filters)
    return ok(investors, "Investors retrieved successfully")
