"""
User Service

Accounts and their per-type profiles.

Profiles are filled in by separate "register details"
calls. Each call validates the body against the typed profile for the
user's type before anything is written.

Deleting an account removes every record that references it (interactions,
connections, nudges, notifications) so no card ever points at a missing user.
"""

import logging
from typing import Optional, Union

from bson import ObjectId
from pydantic import ValidationError as PydanticValidationError
from pymongo.database import Database

from venturelink.core.errors import ForbiddenError, NotFoundError, ValidationError
from venturelink.db.mongodb import mongo_transaction
from venturelink.models.user import (
    InvestmentCriteria,
    InvestorProfile,
    StartupProfile,
    UserType,
    profile_to_document,
)
from venturelink.services.mongo_service import (
    ConnectionStore,
    InteractionStore,
    NotificationStore,
    NudgeStore,
    UserStore,
    serialize_doc,
)

logger = logging.getLogger(__name__)


def _validated(model, data):
    """Accept a model instance or a raw dict; raise our ValidationError on bad input."""
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(p) for p in first["loc"])
        raise ValidationError(f"Invalid {field}: {first['msg']}")


class UserService:
    """
    Handles user accounts and profile registration.
    """

    def __init__(self, db: Optional[Database] = None):
        self.db = db
        self.users = UserStore(db)
        self.interactions = InteractionStore(db)
        self.connections = ConnectionStore(db)
        self.nudges = NudgeStore(db)
        self.notifications = NotificationStore(db)

    def get_user(self, user_id: ObjectId) -> dict:
        user = self.users.get(user_id)
        if not user:
            raise NotFoundError("User not found")
        return serialize_doc(user)

    def _require(self, user_id: ObjectId, user_type: UserType) -> dict:
        user = self.users.get(user_id)
        if not user:
            raise NotFoundError("User not found")
        if user.get("userType") != user_type.value:
            raise ForbiddenError(f"Only {user_type.value}s can do this")
        return user

    def register_investor_details(self, user_id: ObjectId, data: Union[InvestorProfile, dict]) -> dict:
        self._require(user_id, UserType.investor)
        profile = _validated(InvestorProfile, data)
        user = self.users.set_profile(user_id, UserType.investor.value, profile_to_document(profile))
        logger.info(f"Investor details registered for {user_id}")
        return serialize_doc(user)

    def update_investment_criteria(self, user_id: ObjectId, data: Union[InvestmentCriteria, dict]) -> dict:
        """Replace only the investmentCriteria block of an investor profile."""
        self._require(user_id, UserType.investor)
        criteria = _validated(InvestmentCriteria, data)
        investment_range = criteria.investment_range
        if investment_range and investment_range.max and investment_range.min > investment_range.max:
            raise ValidationError("Investment range min cannot exceed max")

        self.users.set_fields(
            user_id, {"profile.investor.investmentCriteria": profile_to_document(criteria)}
        )
        logger.info(f"Investment criteria updated for {user_id}")
        return self.get_user(user_id)

    def register_startup_details(self, user_id: ObjectId, data: Union[StartupProfile, dict]) -> dict:
        self._require(user_id, UserType.startup)
        profile = _validated(StartupProfile, data)
        user = self.users.set_profile(user_id, UserType.startup.value, profile_to_document(profile))
        logger.info(f"Startup details registered for {user_id}")
        return serialize_doc(user)

    def delete_user(self, user_id: ObjectId) -> dict:
        """
        Delete the account and everything that references it.

        Returns:
            Number of deleted records per collection
        """
        if not self.users.get(user_id):
            raise NotFoundError("User not found")

        with mongo_transaction(self.db) as session:
            removed = {
                "interactions": self.interactions.delete_involving(user_id, session=session),
                "connections": self.connections.delete_involving(user_id, session=session),
                "nudges": self.nudges.delete_involving(user_id, session=session),
                "notifications": self.notifications.delete_for_user(user_id, session=session),
            }
            self.users.delete(user_id, session=session)

        logger.info(
            "User deleted",
            extra={"extra_fields": {"user_id": str(user_id), "removed": removed}},
        )
        return removed


def get_user_service(db: Optional[Database] = None) -> UserService:
    """Get user service instance."""
    return UserService(db)
