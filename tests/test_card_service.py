"""
Unit tests for card projection.
"""
from datetime import datetime

from bson import ObjectId

from venturelink.services.card_service import (
    card_location,
    counterpart_summary,
    investor_discovery_card,
    project_card,
    startup_discovery_card,
)


def _record(sender, receiver, **fields):
    now = datetime.utcnow()
    record = {
        "_id": ObjectId(),
        "sender": sender,
        "receiver": receiver,
        "status": "pending",
        "amount": 0,
        "message": None,
        "createdAt": now,
        "expiresAt": now,
    }
    record.update(fields)
    return record


def _user(user_type, profile=None, **fields):
    user = {"_id": ObjectId(), "userType": user_type, "firstName": "Ada", "lastName": "Lovelace"}
    if profile is not None:
        user["profile"] = {user_type: profile}
    user.update(fields)
    return user


class TestProjectCard:
    """Tests for project_card."""

    def test_investor_counterpart(self, investor_profile):
        investor = _user("investor", investor_profile, location={"country": "USA", "city": "Boston"})
        viewer = ObjectId()
        record = _record(investor["_id"], viewer)

        card = project_card(record, viewer, investor)

        assert card["id"] == str(investor["_id"])
        assert card["name"] == "Ada Lovelace"
        assert card["investorType"] == "Angel Investor"
        assert card["industries"] == ["Finance", "Technology"]
        assert card["investmentRange"] == {"min": 50000, "max": 200000}
        assert [k["label"] for k in card["keyPoints"]] == [
            "Investor Type", "Previous Investments", "Areas of Expertise",
        ]
        assert card["description"] == "Early-stage fintech investor"
        assert card["location"] == {"country": "USA", "city": "Boston", "flag": "🇺🇸"}
        assert card["interactionId"] == str(record["_id"])
        assert "amount" not in card

    def test_startup_counterpart(self, startup_profile):
        startup = _user("startup", startup_profile)
        viewer = ObjectId()
        record = _record(viewer, startup["_id"], status="accepted")

        card = project_card(record, viewer, startup)

        assert card["title"] == "PayNile"
        assert card["executive"] == "Mona Hassan"
        assert card["industries"] == ["Finance", "Software"]
        assert card["totalRequired"] == 100000
        assert card["minPerInvestor"] == 5000
        assert card["successPrediction"]["score"] == 72
        assert card["location"]["city"] == "Alexandria"
        assert card["status"] == "accepted"

    def test_defaults_for_empty_startup(self):
        startup = _user("startup", {"stage": "idea", "industry1": "Media"})
        viewer = ObjectId()

        card = project_card(_record(startup["_id"], viewer), viewer, startup)

        assert card["title"] == "Untitled"
        assert card["executive"] == "Unknown"
        assert card["description"] == "No description"
        assert card["location"] == {"country": "Unknown", "city": "Unknown"}
        assert card["industries"] == ["Media"]
        assert card["totalRequired"] == 0

    def test_offer_included_on_request(self, startup_profile):
        startup = _user("startup", startup_profile)
        viewer = ObjectId()
        record = _record(startup["_id"], viewer, amount=300, message="Hi")

        card = project_card(record, viewer, startup, include_offer=True)

        assert card["amount"] == 300
        assert card["message"] == "Hi"

    def test_missing_counterpart_yields_none(self):
        viewer = ObjectId()

        assert project_card(_record(ObjectId(), viewer), viewer, None) is None

    def test_wrong_counterpart_yields_none(self, startup_profile):
        viewer = ObjectId()
        stranger = _user("startup", startup_profile)

        assert project_card(_record(ObjectId(), viewer), viewer, stranger) is None

    def test_non_market_counterpart_yields_none(self):
        viewer = ObjectId()
        seeker = _user("jobseeker")

        assert project_card(_record(seeker["_id"], viewer), viewer, seeker) is None


class TestDiscoveryCards:
    """Tests for matching/search cards."""

    def test_investor_discovery_card(self, investor_profile):
        card = investor_discovery_card(_user("investor", investor_profile))

        assert card["name"] == "Ada Lovelace"
        assert len(card["keyPoints"]) == 2
        assert card["investmentCriteria"]["stage"] == ["mvp", "scaling"]
        assert card["location"] == {"country": "Unknown", "city": "Unknown"}

    def test_investor_discovery_card_without_profile(self):
        card = investor_discovery_card(_user("investor"))

        assert card["bio"] == "No bio available"
        assert card["investmentCriteria"]["investmentRange"] == {"min": 0, "max": 0}

    def test_startup_discovery_card(self, startup_profile):
        card = startup_discovery_card(_user("startup", startup_profile))

        assert card["title"] == "PayNile"
        assert card["location"]["flag"] == "🇪🇬"


class TestHelpers:
    """Tests for location and summary helpers."""

    def test_startup_location_falls_back_to_account(self):
        user = _user("startup", {"stage": "idea"}, location={"country": "uk", "city": "London"})

        assert card_location(user) == {"country": "uk", "city": "London", "flag": "🇬🇧"}

    def test_counterpart_summary(self):
        user = _user("investor", profilePicture="pic.png")

        summary = counterpart_summary(user)

        assert summary == {
            "_id": str(user["_id"]),
            "firstName": "Ada",
            "lastName": "Lovelace",
            "profilePicture": "pic.png",
            "userType": "investor",
        }
        assert counterpart_summary(None) is None
