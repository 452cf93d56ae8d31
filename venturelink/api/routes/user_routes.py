"""
User Routes

PUT /users/investor-details - Register the investor profile
PUT /users/investment-criteria - Replace investment criteria
PUT /users/startup-details - Register the startup profile
DELETE /users/me - Delete the account and everything referencing it
"""

from fastapi import APIRouter, Depends
from pymongo.database import Database

from venturelink.core.auth import get_current_user
from venturelink.db.mongodb import get_database
from venturelink.models.user import InvestmentCriteria, InvestorProfile, StartupProfile
from venturelink.schemas.schemas import ApiResponse, ok
from venturelink.services.user_service import UserService, get_user_service

router = APIRouter(prefix="/users", tags=["Users"])


def get_service(db: Database = Depends(get_database)) -> UserService:
    return get_user_service(db)


@router.put("/investor-details", response_model=ApiResponse)
async def register_investor_details(
    data: InvestorProfile,
    user: dict = Depends(get_current_user),
    service: UserService = Depends(get_service),
):
    updated = service.register_investor_details(user["_id"], data)
    return ok(updated, "Investor details registered successfully")


@router.put("/investment-criteria", response_model=ApiResponse)
async def update_investment_criteria(
    data: InvestmentCriteria,
    user: dict = Depends(get_current_user),
    service: UserService = Depends(get_service),
):
    updated = service.update_investment_criteria(user["_id"], data)
    return ok(updated, "Investment criteria updated successfully")


@router.put("/startup-details", response_model=ApiResponse)
async def register_startup_details(
    data: StartupProfile,
    user: dict = Depends(get_current_user),
    service: UserService = Depends(get_service),
):
    updated = service.register_startup_details(user["_id"], data)
    return ok(updated, "Startup details registered successfully")


@router.delete("/me", response_model=ApiResponse)
async def delete_account(
    user: dict = Depends(get_current_user),
    service: UserService = Depends(get_service),
):
    removed = service.delete_user(user["_id"])
    return ok(removed, "Account deleted successfully")
