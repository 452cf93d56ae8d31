"""
Connection Routes

POST /connections/{receiver_id} - Connect with a startup (investor)
PUT /connections/{connection_id} - Accept / reject (receiver only)
GET /connections - Sent (investor) or received (startup) connections
"""

from fastapi import APIRouter, Depends
from pymongo.database import Database

from venturelink.core.auth import get_current_user
from venturelink.db.mongodb import get_database
from venturelink.schemas.schemas import ApiResponse, StatusUpdate, ok
from venturelink.services.nudge_service import ConnectionService, get_connection_service

router = APIRouter(prefix="/connections", tags=["Connections"])


def get_service(db: Database = Depends(get_database)) -> ConnectionService:
    return get_connection_service(db)


@router.get("", response_model=ApiResponse)
async def get_connections(
    user: dict = Depends(get_current_user),
    service: ConnectionService = Depends(get_service),
):
    return ok(service.get_connections(user["_id"]), "Connections retrieved successfully")


@router.post("/{receiver_id}", response_model=ApiResponse, status_code=201)
async def send_connection(
    receiver_id: str,
    user: dict = Depends(get_current_user),
    service: ConnectionService = Depends(get_service),
):
    return ok(service.send_connection(user["_id"], receiver_id), "Connection sent successfully")


@router.put("/{connection_id}", response_model=ApiResponse)
async def update_connection(
    connection_id: str,
    data: StatusUpdate,
    user: dict = Depends(get_current_user),
    service: ConnectionService = Depends(get_service),
):
    connection = service.update_connection(connection_id, user["_id"], data.status)
    return ok(connection, f"Connection {data.status} successfully")
