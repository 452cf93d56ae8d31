"""
Interaction Routes

POST /interactions/{receiver_id} - Send an interaction request
PUT /interactions/{interaction_id} - Accept / reject / expire (receiver only)
GET /interactions - Accepted interactions as cards
GET /interactions/pending - Pending requests received, with offer
GET /interactions/history - Investor's sent and received interactions
DELETE /interactions/{interaction_id} - Delete (either participant)
"""

from typing import Optional

from fastapi import APIRouter, Depends
from pymongo.database import Database

from venturelink.core.auth import get_current_user
from venturelink.db.mongodb import get_database
from venturelink.schemas.schemas import ApiResponse, SendInteractionRequest, StatusUpdate, ok
from venturelink.services.interaction_service import InteractionService, get_interaction_service

router = APIRouter(prefix="/interactions", tags=["Interactions"])


def get_service(db: Database = Depends(get_database)) -> InteractionService:
    return get_interaction_service(db)


@router.get("", response_model=ApiResponse)
async def get_interactions(
    user: dict = Depends(get_current_user),
    service: InteractionService = Depends(get_service),
):
    """Accepted interactions where the user is either party."""
    return ok(service.get_interactions(user["_id"]), "Interactions retrieved successfully")


@router.get("/pending", response_model=ApiResponse)
async def get_pending_interactions(
    user: dict = Depends(get_current_user),
    service: InteractionService = Depends(get_service),
):
    return ok(service.get_pending_interactions(user["_id"]), "Pending interactions retrieved successfully")


@router.get("/history", response_model=ApiResponse)
async def get_history(
    user: dict = Depends(get_current_user),
    service: InteractionService = Depends(get_service),
):
    return ok(service.get_history(user["_id"]), "Interaction history retrieved successfully")


@router.post("/{receiver_id}", response_model=ApiResponse, status_code=201)
async def send_interaction(
    receiver_id: str,
    data: Optional[SendInteractionRequest] = None,
    user: dict = Depends(get_current_user),
    service: InteractionService = Depends(get_service),
):
    """Send a request to an investor (as a startup) or a startup (as an investor)."""
    data = data or SendInteractionRequest()
    interaction = service.send_interaction(user["_id"], receiver_id, data.amount, data.message)
    return ok(interaction, "Interaction sent successfully")


@router.put("/{interaction_id}", response_model=ApiResponse)
async def update_interaction(
    interaction_id: str,
    data: StatusUpdate,
    user: dict = Depends(get_current_user),
    service: InteractionService = Depends(get_service),
):
    interaction = service.update_interaction(interaction_id, user["_id"], data.status)
    return ok(interaction, f"Interaction {data.status} successfully")


@router.delete("/{interaction_id}", response_model=ApiResponse)
async def delete_interaction(
    interaction_id: str,
    user: dict = Depends(get_current_user),
    service: InteractionService = Depends(get_service),
):
    service.delete_interaction(interaction_id, user["_id"])
    return ok(None, "Interaction deleted successfully")
