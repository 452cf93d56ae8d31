"""
Pytest configuration and shared fixtures for VentureLink tests.

Every test gets a fresh in-memory MongoDB (mongomock). Multi-document
transactions are switched off because mongomock has no sessions.
"""
import os
from datetime import datetime

import mongomock
import pytest

# Set env vars BEFORE any venturelink imports (settings are cached)
os.environ.setdefault("MONGODB_TRANSACTIONS", "false")
os.environ.setdefault("MONGODB_DB", "venturelink_test")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("ENVIRONMENT", "test")

from venturelink.core.auth import create_access_token  # noqa: E402
from venturelink.core.config import get_settings  # noqa: E402

get_settings.cache_clear()


@pytest.fixture
def db():
    """Fresh in-memory database."""
    client = mongomock.MongoClient()
    yield client["venturelink_test"]
    client.close()


def _insert_user(db, user_type, first_name, last_name, profile=None, **fields):
    now = datetime.utcnow()
    doc = {
        "email": f"{first_name.lower()}.{last_name.lower()}@example.com",
        "password": None,
        "firstName": first_name,
        "lastName": last_name,
        "userType": user_type,
        "profilePicture": None,
        "coverPicture": None,
        "location": {},
        "profile": {user_type: profile} if profile is not None else {},
        "nudgeLimit": 10 if user_type == "startup" else 0,
        "nudgeUsage": 0,
        "createdAt": now,
        "updatedAt": now,
    }
    doc.update(fields)
    return db["users"].insert_one(doc).inserted_id


@pytest.fixture
def make_user(db):
    """Factory: make_user("investor", "Ada", "Lovelace", profile={...}, location={...})."""
    def factory(user_type, first_name="Test", last_name="User", profile=None, **fields):
        return _insert_user(db, user_type, first_name, last_name, profile, **fields)
    return factory


@pytest.fixture
def investor_profile():
    return {
        "bio": "Early-stage fintech investor",
        "investorType": "Angel Investor",
        "areasOfExpertise": ["Payments", "Lending"],
        "numberOfPreviousInvestments": 12,
        "investmentCriteria": {
            "industries": ["Finance", "Technology"],
            "locations": [{"country": "EGYPT", "city": "Cairo"}],
            "investmentRange": {"min": 50000, "max": 200000},
            "stage": ["mvp", "scaling"],
        },
    }


@pytest.fixture
def startup_profile():
    return {
        "pitchTitle": "PayNile",
        "industry1": "Finance",
        "industry2": "Software",
        "location": {"country": "EGYPT", "city": "Alexandria"},
        "description": "Mobile payments for small merchants",
        "fundingGoal": {"amount": 100000, "currency": "USD"},
        "amountRaised": 20000,
        "minInvestmentPerInvestor": 5000,
        "stage": "mvp",
        "idealInvestorRole": "strategic",
        "previousFunding": 10000,
        "team": [{"name": "Mona Hassan", "role": "CEO"}],
        "successPrediction": {"score": 72, "details": None},
    }


@pytest.fixture
def investor(make_user, investor_profile):
    return make_user(
        "investor", "Ivan", "Investor", profile=investor_profile,
        location={"country": "USA", "city": "Boston"},
    )


@pytest.fixture
def startup(make_user, startup_profile):
    return make_user("startup", "Sara", "Startup", profile=startup_profile)


@pytest.fixture
def auth_headers():
    """Factory: bearer header for a user id."""
    def build(user_id):
        token = create_access_token({"sub": str(user_id)})
        return {"Authorization": f"Bearer {token}"}
    return build
