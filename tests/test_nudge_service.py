"""
Unit tests for nudges, the nudge quota and connections.
"""
from datetime import datetime, timedelta
from unittest.mock import patch

import pytest
from bson import ObjectId

from venturelink.core.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    QuotaExceededError,
    ValidationError,
)
from venturelink.services.nudge_service import ConnectionService, NudgeService


@pytest.fixture
def nudges(db):
    return NudgeService(db)


@pytest.fixture
def connections(db):
    return ConnectionService(db)


class TestSendNudge:
    """Tests for send_nudge."""

    def test_creates_nudge_and_connection(self, nudges, db, startup, investor):
        nudge = nudges.send_nudge(startup, str(investor))

        assert nudge["status"] == "pending"
        assert nudge["amount"] == 0
        assert nudge["currency"] == "VCR"
        assert nudge["paymentStatus"] == "pending"
        assert nudge["expiresAt"] - nudge["createdAt"] == timedelta(days=7)

        connection = db["connections"].find_one({"_id": ObjectId(nudge["connection"])})
        assert connection["status"] == "pending"
        assert connection["sender"] == startup
        assert connection["receiver"] == investor
        assert connection["nudge"] == ObjectId(nudge["_id"])

        assert db["users"].find_one({"_id": startup})["nudgeUsage"] == 1

    def test_reuses_pending_connection(self, nudges, db, startup, investor):
        existing = db["connections"].insert_one({
            "sender": startup, "receiver": investor, "status": "pending", "nudge": None,
            "createdAt": datetime.utcnow(),
        }).inserted_id

        nudge = nudges.send_nudge(startup, str(investor))

        assert nudge["connection"] == str(existing)
        assert db["connections"].count_documents({}) == 1

    def test_rejected_connection_blocks_nudge(self, nudges, db, startup, investor):
        db["connections"].insert_one({
            "sender": startup, "receiver": investor, "status": "rejected", "nudge": None,
            "createdAt": datetime.utcnow(),
        })

        with pytest.raises(ConflictError, match="rejected connection"):
            nudges.send_nudge(startup, str(investor))
        assert db["users"].find_one({"_id": startup})["nudgeUsage"] == 0

    def test_only_startups_send(self, nudges, investor, startup):
        with pytest.raises(ForbiddenError):
            nudges.send_nudge(investor, str(startup))

    def test_receiver_must_be_investor(self, nudges, make_user, startup):
        other_startup = make_user("startup", "Other", "Startup")

        with pytest.raises(ValidationError):
            nudges.send_nudge(startup, str(other_startup))

    def test_self_nudge_rejected(self, nudges, startup):
        with pytest.raises(ValidationError):
            nudges.send_nudge(startup, str(startup))

    def test_second_nudge_to_same_investor_rejected(self, nudges, db, startup, investor):
        nudges.send_nudge(startup, str(investor))

        with pytest.raises(ConflictError, match="Nudge already pending"):
            nudges.send_nudge(startup, str(investor))
        assert db["users"].find_one({"_id": startup})["nudgeUsage"] == 1

    def test_quota_exhausted(self, nudges, db, make_user, startup_profile):
        startup = make_user("startup", "Broke", "Startup", profile=startup_profile, nudgeLimit=10, nudgeUsage=10)
        investor = make_user("investor", "Ivy", "Investor")

        with pytest.raises(QuotaExceededError, match="Nudge limit reached"):
            nudges.send_nudge(startup, str(investor))
        assert db["nudges"].count_documents({}) == 0
        assert db["users"].find_one({"_id": startup})["nudgeUsage"] == 10

    def test_last_nudge_of_quota_succeeds(self, nudges, db, make_user):
        startup = make_user("startup", "Almost", "Out", nudgeLimit=3, nudgeUsage=2)
        investor = make_user("investor", "Ivy", "Investor")

        nudges.send_nudge(startup, str(investor))

        user = db["users"].find_one({"_id": startup})
        assert user["nudgeUsage"] == user["nudgeLimit"] == 3

    def test_concurrent_usage_change_is_reread(self, nudges, db, make_user):
        startup = make_user("startup", "Busy", "Startup", nudgeLimit=2, nudgeUsage=0)
        investor = make_user("investor", "Ivy", "Investor")
        original_get = nudges.users.get
        calls = {"n": 0}

        def get_then_race(user_id, session=None, **scope):
            user = original_get(user_id, session=session, **scope)
            calls["n"] += 1
            if calls["n"] == 1:
                # Another request spends the last-but-one nudge after our read
                db["users"].update_one({"_id": startup}, {"$inc": {"nudgeUsage": 1}})
            return user

        with patch.object(nudges.users, "get", side_effect=get_then_race):
            nudges.send_nudge(startup, str(investor))

        assert db["users"].find_one({"_id": startup})["nudgeUsage"] == 2

    def test_concurrent_spend_of_last_nudge_is_refused(self, nudges, db, make_user):
        startup = make_user("startup", "Busy", "Startup", nudgeLimit=1, nudgeUsage=0)
        investor = make_user("investor", "Ivy", "Investor")
        original_get = nudges.users.get
        calls = {"n": 0}

        def get_then_race(user_id, session=None, **scope):
            user = original_get(user_id, session=session, **scope)
            calls["n"] += 1
            if calls["n"] == 1:
                db["users"].update_one({"_id": startup}, {"$inc": {"nudgeUsage": 1}})
            return user

        with patch.object(nudges.users, "get", side_effect=get_then_race):
            with pytest.raises(QuotaExceededError):
                nudges.send_nudge(startup, str(investor))

        assert db["users"].find_one({"_id": startup})["nudgeUsage"] == 1
        assert db["nudges"].count_documents({}) == 0

    def test_failed_send_is_rolled_back(self, nudges, db, startup, investor):
        with patch.object(nudges.nudges, "insert", side_effect=RuntimeError("write failed")):
            with pytest.raises(RuntimeError):
                nudges.send_nudge(startup, str(investor))

        assert db["users"].find_one({"_id": startup})["nudgeUsage"] == 0
        assert db["connections"].count_documents({}) == 0
        assert db["nudges"].count_documents({}) == 0

    def test_failed_back_link_removes_inserted_nudge(self, nudges, db, startup, investor):
        with patch.object(nudges.connections, "set_fields", side_effect=RuntimeError("write failed")):
            with pytest.raises(RuntimeError):
                nudges.send_nudge(startup, str(investor))

        assert db["users"].find_one({"_id": startup})["nudgeUsage"] == 0
        assert db["connections"].count_documents({}) == 0
        assert db["nudges"].count_documents({}) == 0

        # Nothing left behind blocks a retry
        nudge = nudges.send_nudge(startup, str(investor))
        assert nudge["status"] == "pending"


class TestUpdateNudge:
    """Tests for update_nudge and the connection cascade."""

    def test_accept_cascades_to_connection(self, nudges, db, startup, investor):
        nudge = nudges.send_nudge(startup, str(investor))

        updated = nudges.update_nudge(nudge["_id"], investor, "accepted")

        assert updated["status"] == "accepted"
        assert updated["connection"]["status"] == "accepted"
        connection = db["connections"].find_one({"_id": ObjectId(nudge["connection"])})
        assert connection["status"] == "accepted"

    def test_reject_leaves_connection_pending(self, nudges, db, startup, investor):
        nudge = nudges.send_nudge(startup, str(investor))

        nudges.update_nudge(nudge["_id"], investor, "rejected")

        connection = db["connections"].find_one({"_id": ObjectId(nudge["connection"])})
        assert connection["status"] == "pending"

    def test_only_receiver_answers(self, nudges, startup, investor):
        nudge = nudges.send_nudge(startup, str(investor))

        with pytest.raises(NotFoundError):
            nudges.update_nudge(nudge["_id"], startup, "accepted")

    def test_single_transition(self, nudges, startup, investor):
        nudge = nudges.send_nudge(startup, str(investor))
        nudges.update_nudge(nudge["_id"], investor, "rejected")

        with pytest.raises(ConflictError):
            nudges.update_nudge(nudge["_id"], investor, "accepted")

    def test_invalid_status(self, nudges, startup, investor):
        nudge = nudges.send_nudge(startup, str(investor))

        with pytest.raises(ValidationError):
            nudges.update_nudge(nudge["_id"], investor, "maybe")


class TestBuyNudges:
    """Tests for buy_nudges."""

    @pytest.mark.parametrize("quantity,cost", [(10, 50), (25, 100), (50, 180)])
    def test_tiers(self, nudges, db, startup, quantity, cost):
        result = nudges.buy_nudges(startup, quantity)

        assert result["cost"] == cost
        assert result["nudgeLimit"] == 10 + quantity
        assert db["users"].find_one({"_id": startup})["nudgeLimit"] == 10 + quantity

    def test_unknown_tier_rejected(self, nudges, db, startup):
        with pytest.raises(ValidationError):
            nudges.buy_nudges(startup, 7)
        assert db["users"].find_one({"_id": startup})["nudgeLimit"] == 10

    def test_investors_cannot_buy(self, nudges, investor):
        with pytest.raises(ForbiddenError):
            nudges.buy_nudges(investor, 10)

    def test_purchase_unblocks_exhausted_quota(self, nudges, make_user):
        startup = make_user("startup", "Broke", "Startup", nudgeLimit=10, nudgeUsage=10)
        investor = make_user("investor", "Ivy", "Investor")

        nudges.buy_nudges(startup, 10)
        nudge = nudges.send_nudge(startup, str(investor))

        assert nudge["status"] == "pending"


class TestNudgeQueries:
    """Tests for nudge listings."""

    def test_investor_history_lists_sent_connections(self, nudges, connections, investor, startup):
        connections.send_connection(investor, str(startup))

        history = nudges.get_investor_nudge_and_connection_history(investor)

        assert history["nudges"] == []
        assert len(history["connections"]) == 1
        assert history["connections"][0]["receiver"]["firstName"] == "Sara"

    def test_history_is_investor_only(self, nudges, startup):
        with pytest.raises(ForbiddenError):
            nudges.get_investor_nudge_and_connection_history(startup)

    def test_received_nudges_is_startup_only(self, nudges, investor, startup):
        assert nudges.get_nudges_sent_to_startup(startup) == []
        with pytest.raises(ForbiddenError):
            nudges.get_nudges_sent_to_startup(investor)

    def test_elapsed_nudge_expires_on_read(self, nudges, db, startup, investor):
        nudge = nudges.send_nudge(startup, str(investor))
        db["nudges"].update_one(
            {"_id": ObjectId(nudge["_id"])},
            {"$set": {"expiresAt": datetime.utcnow() - timedelta(days=1)}},
        )

        nudges.get_investor_nudge_and_connection_history(investor)

        assert db["nudges"].find_one({"_id": ObjectId(nudge["_id"])})["status"] == "expired"


class TestConnections:
    """Tests for the investor-initiated connection flow."""

    def test_send_connection(self, connections, investor, startup):
        connection = connections.send_connection(investor, str(startup))

        assert connection["status"] == "pending"
        assert connection["nudge"] is None

    def test_only_investors_send(self, connections, investor, startup):
        with pytest.raises(ForbiddenError):
            connections.send_connection(startup, str(investor))

    def test_receiver_must_be_startup(self, connections, make_user, investor):
        other = make_user("investor", "Olga", "Other")

        with pytest.raises(ValidationError):
            connections.send_connection(investor, str(other))

    def test_one_connection_per_pair_forever(self, connections, investor, startup):
        connection = connections.send_connection(investor, str(startup))
        connections.update_connection(connection["_id"], startup, "rejected")

        with pytest.raises(ConflictError, match="Connection already rejected"):
            connections.send_connection(investor, str(startup))

    def test_expired_is_not_a_connection_answer(self, connections, investor, startup):
        connection = connections.send_connection(investor, str(startup))

        with pytest.raises(ValidationError):
            connections.update_connection(connection["_id"], startup, "expired")

    def test_accept_cascades_to_pending_nudge(self, connections, nudges, db, startup, investor):
        nudge = nudges.send_nudge(startup, str(investor))

        connections.update_connection(nudge["connection"], investor, "accepted")

        assert db["nudges"].find_one({"_id": ObjectId(nudge["_id"])})["status"] == "accepted"

    def test_accept_does_not_revive_rejected_nudge(self, connections, nudges, db, startup, investor):
        nudge = nudges.send_nudge(startup, str(investor))
        db["nudges"].update_one({"_id": ObjectId(nudge["_id"])}, {"$set": {"status": "rejected"}})

        connections.update_connection(nudge["connection"], investor, "accepted")

        assert db["nudges"].find_one({"_id": ObjectId(nudge["_id"])})["status"] == "rejected"

    def test_get_connections_by_side(self, connections, investor, startup):
        connections.send_connection(investor, str(startup))

        sent = connections.get_connections(investor)
        received = connections.get_connections(startup)

        assert sent[0]["receiver"]["_id"] == str(startup)
        assert received[0]["sender"]["_id"] == str(investor)

    def test_jobseeker_cannot_list_connections(self, connections, make_user):
        seeker = make_user("jobseeker", "Jo", "Seeker")

        with pytest.raises(ForbiddenError):
            connections.get_connections(seeker)
