"""
Pydantic Schemas - Request/Response Validation

All API request and response schemas in one file for simplicity.
Profile bodies reuse the typed profiles from venturelink.models.user.
"""

from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, Field

from venturelink.models.interaction import MAX_MESSAGE_LENGTH

T = TypeVar("T")


# ============================================================
# ENVELOPE
# ============================================================

class ApiResponse(BaseModel, Generic[T]):
    """Every response body: {success, data, message}."""
    success: bool = True
    data: Optional[T] = None
    message: str = ""


def ok(data: Any = None, message: str = "") -> dict:
    return {"success": True, "data": data, "message": message}


def fail(message: str) -> dict:
    return {"success": False, "data": None, "message": message}


# ============================================================
# INTERACTION / NUDGE / CONNECTION SCHEMAS
# ============================================================

class SendInteractionRequest(BaseModel):
    amount: float = Field(0, ge=0)
    message: Optional[str] = Field(None, max_length=MAX_MESSAGE_LENGTH)


class StatusUpdate(BaseModel):
    # Allowed values depend on the record type; the service checks them
    status: str


class BuyNudgesRequest(BaseModel):
    quantity: int
