"""
Nudge Routes

POST /nudges/buy - Buy a nudge pack (startup)
GET /nudges/received - Nudges received (startup)
GET /nudges/history - Nudges and connections sent (investor)
POST /nudges/{receiver_id} - Nudge an investor (startup)
PUT /nudges/{nudge_id} - Answer a nudge (receiver only)
"""

from fastapi import APIRouter, Depends
from pymongo.database import Database

from venturelink.core.auth import get_current_user
from venturelink.db.mongodb import get_database
from venturelink.schemas.schemas import ApiResponse, BuyNudgesRequest, StatusUpdate, ok
from venturelink.services.nudge_service import NudgeService, get_nudge_service

router = APIRouter(prefix="/nudges", tags=["Nudges"])


def get_service(db: Database = Depends(get_database)) -> NudgeService:
    return get_nudge_service(db)


@router.post("/buy", response_model=ApiResponse)
async def buy_nudges(
    data: BuyNudgesRequest,
    user: dict = Depends(get_current_user),
    service: NudgeService = Depends(get_service),
):
    result = service.buy_nudges(user["_id"], data.quantity)
    return ok(result, f"Purchased {data.quantity} nudges for {result['cost']} VCR")


@router.get("/received", response_model=ApiResponse)
async def get_received_nudges(
    user: dict = Depends(get_current_user),
    service: NudgeService = Depends(get_service),
):
    return ok(service.get_nudges_sent_to_startup(user["_id"]), "Nudges retrieved successfully")


@router.get("/history", response_model=ApiResponse)
async def get_nudge_history(
    user: dict = Depends(get_current_user),
    service: NudgeService = Depends(get_service),
):
    return ok(
        service.get_investor_nudge_and_connection_history(user["_id"]),
        "Nudge and connection history retrieved successfully",
    )


@router.post("/{receiver_id}", response_model=ApiResponse, status_code=201)
async def send_nudge(
    receiver_id: str,
    user: dict = Depends(get_current_user),
    service: NudgeService = Depends(get_service),
):
    return ok(service.send_nudge(user["_id"], receiver_id), "Nudge sent successfully")


@router.put("/{nudge_id}", response_model=ApiResponse)
async def update_nudge(
    nudge_id: str,
    data: StatusUpdate,
    user: dict = Depends(get_current_user),
    service: NudgeService = Depends(get_service),
):
    nudge = service.update_nudge(nudge_id, user["_id"], data.status)
    return ok(nudge, f"Nudge {data.status} successfully")
