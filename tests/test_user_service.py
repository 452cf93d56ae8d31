"""
Unit tests for profile registration and account deletion.
"""
import pytest

from venturelink.core.errors import ForbiddenError, ValidationError
from venturelink.services.interaction_service import InteractionService
from venturelink.services.nudge_service import NudgeService
from venturelink.services.user_service import UserService


@pytest.fixture
def service(db):
    return UserService(db)


class TestProfiles:
    """Tests for register-details entry points."""

    def test_register_investor_details(self, service, make_user, investor_profile):
        user_id = make_user("investor", "Ivy", "Investor")

        user = service.register_investor_details(user_id, investor_profile)

        criteria = user["profile"]["investor"]["investmentCriteria"]
        assert criteria["investmentRange"]["max"] == 200000
        assert user["profile"]["investor"]["investorType"] == "Angel Investor"

    def test_investor_details_require_investor(self, service, startup, investor_profile):
        with pytest.raises(ForbiddenError):
            service.register_investor_details(startup, investor_profile)

    def test_too_many_criteria_industries(self, service, investor, investor_profile):
        criteria = dict(
            investor_profile["investmentCriteria"],
            industries=["Finance", "Technology", "Media", "Retail"],
        )

        with pytest.raises(ValidationError):
            service.update_investment_criteria(investor, criteria)

    def test_update_investment_criteria_keeps_bio(self, service, investor):
        user = service.update_investment_criteria(investor, {
            "industries": ["Media"],
            "investmentRange": {"min": 1000, "max": 2000},
        })

        investor_doc = user["profile"]["investor"]
        assert investor_doc["bio"] == "Early-stage fintech investor"
        assert investor_doc["investmentCriteria"]["industries"] == ["Media"]

    def test_inverted_range_rejected(self, service, investor):
        with pytest.raises(ValidationError):
            service.update_investment_criteria(investor, {"investmentRange": {"min": 5, "max": 1}})

    def test_register_startup_details(self, service, make_user, startup_profile):
        user_id = make_user("startup", "Sam", "Startup")

        user = service.register_startup_details(user_id, startup_profile)

        startup_doc = user["profile"]["startup"]
        assert startup_doc["pitchTitle"] == "PayNile"
        assert startup_doc["fundingGoal"]["amount"] == 100000

    def test_startup_industries_must_differ(self, service, startup, startup_profile):
        with pytest.raises(ValidationError):
            service.register_startup_details(startup, dict(startup_profile, industry2="Finance"))

    def test_startup_stage_required(self, service, startup, startup_profile):
        profile = {k: v for k, v in startup_profile.items() if k != "stage"}

        with pytest.raises(ValidationError):
            service.register_startup_details(startup, profile)


class TestDeleteUser:
    """Tests for delete_user."""

    def test_cascade(self, service, db, investor, startup):
        InteractionService(db).send_interaction(investor, str(startup))
        NudgeService(db).send_nudge(startup, str(investor))

        removed = service.delete_user(startup)

        assert removed["interactions"] == 1
        assert removed["nudges"] == 1
        assert removed["connections"] == 1
        assert removed["notifications"] == 1
        assert db["users"].find_one({"_id": startup}) is None
        assert db["interactions"].count_documents({}) == 0
        # The investor's own inbox survives
        assert db["notifications"].count_documents({"userId": investor}) == 1
