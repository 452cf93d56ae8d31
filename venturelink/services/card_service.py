"""
Card Projection

Turns raw profiles and request records into the flat "card" shape the UI
renders. The same interaction looks different to each participant: a card
always describes the OTHER party, branching on that party's userType.

All functions here are pure: they take documents that were already loaded
and never touch the database.
"""

from typing import Any, Optional

from bson import ObjectId

from venturelink.core.config import flag_for_country
from venturelink.models.user import UserType

UNKNOWN = "Unknown"


def _dig(doc: Optional[dict], *path, default=None) -> Any:
    """Follow a key path through nested dicts; default on any missing/None step."""
    current = doc
    for key in path:
        if not isinstance(current, dict):
            return default
        current = current.get(key)
    return default if current is None else current


def _id(value) -> Optional[str]:
    return str(value) if value is not None else None


def _investor(user: dict) -> dict:
    return _dig(user, "profile", "investor", default={})


def _startup(user: dict) -> dict:
    return _dig(user, "profile", "startup", default={})


def counterpart_id(record: dict, viewer_id: ObjectId) -> ObjectId:
    """The participant of record who is not the viewer."""
    return record["receiver"] if record["sender"] == viewer_id else record["sender"]


def card_location(user: dict) -> dict:
    """
    Location for a card. Startups prefer the location on their pitch and fall
    back to the account location; investors use the account location.
    """
    startup_location = _dig(_startup(user), "location", default={})
    user_location = user.get("location") or {}
    country = startup_location.get("country") or user_location.get("country") or UNKNOWN
    city = startup_location.get("city") or user_location.get("city") or UNKNOWN
    location = {"country": country, "city": city}
    flag = flag_for_country(country if country != UNKNOWN else None)
    if flag:
        location["flag"] = flag
    return location


def investor_name(user: dict) -> str:
    return f"{user.get('firstName') or ''} {user.get('lastName') or ''}"


def _industries(values) -> list:
    return [v for v in (values or []) if v]


def _investor_key_points(profile: dict) -> list:
    return [
        {"label": "Investor Type", "value": profile.get("investorType") or UNKNOWN},
        {"label": "Previous Investments", "value": profile.get("numberOfPreviousInvestments") or 0},
        {"label": "Areas of Expertise", "value": profile.get("areasOfExpertise") or []},
    ]


def _startup_key_points(profile: dict) -> list:
    return [
        {"label": "Stage", "value": profile.get("stage") or UNKNOWN},
        {"label": "Amount Raised", "value": profile.get("amountRaised") or 0},
        {"label": "Previous Funding", "value": profile.get("previousFunding") or 0},
    ]


def _executive(profile: dict) -> str:
    team = profile.get("team") or []
    if team and team[0].get("name"):
        return team[0]["name"]
    return UNKNOWN


def _success_prediction(profile: dict) -> dict:
    return profile.get("successPrediction") or {"score": None, "details": None}


# ============================================================
# INTERACTION / NUDGE CARDS
# ============================================================

def project_card(
    record: dict,
    viewer_id: ObjectId,
    counterpart: Optional[dict],
    include_offer: bool = False,
) -> Optional[dict]:
    """
    Project an interaction (or nudge) into a card about the other party.

    Args:
        record: Interaction/Nudge document
        viewer_id: User looking at the card
        counterpart: The other party's user document (None if it no longer exists)
        include_offer: Also copy amount and message (pending inbox view)

    Returns:
        Card dict, or None when the other party cannot be resolved so that
        callers drop the record instead of returning a half-empty card.
    """
    if counterpart is None or counterpart.get("_id") != counterpart_id(record, viewer_id):
        return None

    user_type = counterpart.get("userType")
    if user_type not in (UserType.investor.value, UserType.startup.value):
        return None

    investor = _investor(counterpart)
    startup = _startup(counterpart)

    card = {
        "id": _id(counterpart["_id"]),
        "profilePic": counterpart.get("profilePicture"),
        "coverPic": counterpart.get("coverPicture"),
        "location": card_location(counterpart),
        "description": startup.get("description") or investor.get("bio") or "No description",
    }

    if user_type == UserType.investor.value:
        card.update({
            "name": investor_name(counterpart),
            "investorType": investor.get("investorType") or UNKNOWN,
            "bio": investor.get("bio") or "No description",
            "keyPoints": _investor_key_points(investor),
            "industries": _industries(_dig(investor, "investmentCriteria", "industries")),
            "investmentRange": _dig(
                investor, "investmentCriteria", "investmentRange", default={"min": 0, "max": 0}
            ),
        })
    else:
        card.update({
            "title": startup.get("pitchTitle") or "Untitled",
            "executive": _executive(startup),
            "keyPoints": _startup_key_points(startup),
            "industries": _industries([startup.get("industry1"), startup.get("industry2")]),
            "totalRequired": _dig(startup, "fundingGoal", "amount", default=0),
            "minPerInvestor": startup.get("minInvestmentPerInvestor") or 0,
            "successPrediction": _success_prediction(startup),
        })

    card.update({
        "interactionId": _id(record["_id"]),
        "status": record.get("status"),
        "createdAt": record.get("createdAt"),
        "expiresAt": record.get("expiresAt"),
    })
    if include_offer:
        card["amount"] = record.get("amount", 0)
        card["message"] = record.get("message")
    return card


# ============================================================
# DISCOVERY CARDS (matching / search results)
# ============================================================

def investor_discovery_card(user: dict) -> dict:
    """Card for an investor shown to a startup browsing investors."""
    investor = _investor(user)
    criteria = investor.get("investmentCriteria") or {}
    location = user.get("location") or {}
    return {
        "id": _id(user["_id"]),
        "profilePic": user.get("profilePicture"),
        "coverPic": user.get("coverPicture"),
        "name": investor_name(user),
        "bio": investor.get("bio") or "No bio available",
        "investorType": investor.get("investorType") or UNKNOWN,
        "location": {
            "country": location.get("country") or UNKNOWN,
            "city": location.get("city") or UNKNOWN,
        },
        "keyPoints": _investor_key_points(investor)[:2],
        "investmentCriteria": {
            "industries": _industries(criteria.get("industries")),
            "locations": criteria.get("locations") or [],
            "investmentRange": criteria.get("investmentRange") or {"min": 0, "max": 0},
            "stage": criteria.get("stage") or [],
        },
    }


def startup_discovery_card(user: dict) -> dict:
    """Card for a startup shown to an investor browsing startups."""
    startup = _startup(user)
    return {
        "id": _id(user["_id"]),
        "profilePic": user.get("profilePicture"),
        "coverPic": user.get("coverPicture"),
        "executive": _executive(startup),
        "title": startup.get("pitchTitle") or "Untitled",
        "location": card_location(user),
        "description": startup.get("description") or "No description",
        "keyPoints": _startup_key_points(startup),
        "totalRequired": _dig(startup, "fundingGoal", "amount", default=0),
        "minPerInvestor": startup.get("minInvestmentPerInvestor") or 0,
        "industries": _industries([startup.get("industry1"), startup.get("industry2")]),
        "successPrediction": _success_prediction(startup),
    }


def counterpart_summary(user: Optional[dict]) -> Optional[dict]:
    """Compact reference to a user, used where a record "populates" its parties."""
    if user is None:
        return None
    return {
        "_id": _id(user["_id"]),
        "firstName": user.get("firstName"),
        "lastName": user.get("lastName"),
        "profilePicture": user.get("profilePicture"),
        "userType": user.get("userType"),
    }
