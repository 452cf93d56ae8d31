"""
Models module - entity shapes stored in MongoDB.

- user: UserType, the typed profiles and their enums
- interaction: Interaction / Connection / Nudge / Notification records
"""

from venturelink.models.interaction import (
    ConnectionStatus,
    Currency,
    InteractionStatus,
    NotificationType,
    PaymentStatus,
)
from venturelink.models.user import (
    Industry,
    InvestorProfile,
    InvestorType,
    StartupProfile,
    StartupStage,
    UserType,
)

__all__ = [
    "ConnectionStatus",
    "Currency",
    "InteractionStatus",
    "NotificationType",
    "PaymentStatus",
    "Industry",
    "InvestorProfile",
    "InvestorType",
    "StartupProfile",
    "StartupStage",
    "UserType",
]
