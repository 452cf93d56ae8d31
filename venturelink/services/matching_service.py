"""
Matching Service

PURPOSE:
Find investors for a startup and startups for an investor.

TWO MODES:
1. Relaxed matching ("matching-investors" / "matching-startups")
   - Built from the caller's own profile
   - Every optional criterion is an alternative: a candidate that satisfies
     ANY of them is returned
   - Funding comparisons get a +/- tolerance (10% by default)
2. Strict search ("search-investors" / "search-startups")
   - Built from explicit query filters
   - Every given filter must hold
   - Unknown enum values or non-numeric amounts are rejected up front

The query builders are pure functions that return Mongo filter documents,
so they can be tested without a database.
"""

import logging
from typing import Dict, List, Optional

from bson import ObjectId
from pymongo.database import Database

from venturelink.core.config import get_settings
from venturelink.core.errors import NotFoundError, ValidationError
from venturelink.models.user import (
    INVESTOR_TYPE_ALIASES,
    Industry,
    InvestorType,
    StartupStage,
    UserType,
)
from venturelink.services.card_service import investor_discovery_card, startup_discovery_card
from venturelink.services.mongo_service import UserStore

logger = logging.getLogger(__name__)

INVESTOR = "profile.investor"
CRITERIA = "profile.investor.investmentCriteria"
STARTUP = "profile.startup"

DEFAULT_TOLERANCE = 0.1


# ============================================================
# FILTER PARSING
# ============================================================

def _present(filters: dict, key: str) -> Optional[str]:
    value = filters.get(key)
    if value is None:
        return None
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


def _number(filters: dict, key: str) -> Optional[float]:
    """Numeric query filter; missing -> None, non-numeric or negative -> ValidationError."""
    value = _present(filters, key)
    if value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {key} value")
    if number != number or number < 0:
        raise ValidationError(f"Invalid {key} value")
    return number


def _enum_value(filters: dict, key: str, enum_cls, aliases: Optional[dict] = None) -> Optional[str]:
    value = _present(filters, key)
    if value is None:
        return None
    if aliases and value in aliases:
        return aliases[value].value
    try:
        return enum_cls(value).value
    except ValueError:
        raise ValidationError(f"Invalid {key} value")


def _match(base: List[dict], optional: List[dict]) -> dict:
    """AND the base conditions; OR the optional ones when there are any."""
    query = {"$and": base}
    if optional:
        query["$or"] = optional
    return query


# ============================================================
# INVESTORS (searched by startups)
# ============================================================

def _investor_base() -> List[dict]:
    return [{"userType": UserType.investor.value}, {INVESTOR: {"$exists": True}}]


def build_relaxed_investor_query(startup_profile: dict, tolerance: float = DEFAULT_TOLERANCE) -> dict:
    """
    Relaxed investor match for a startup.

    Optional clauses (any one suffices):
    - investor industries intersect {industry1, industry2}
    - investor stages contain the startup's stage
    - investor locations share the startup's country or city
    - investor range overlaps the funding goal +/- tolerance, or no range set
    """
    industries = [i for i in (startup_profile.get("industry1"), startup_profile.get("industry2")) if i]
    stage = startup_profile.get("stage")
    location = startup_profile.get("location") or {}
    funding_goal = (startup_profile.get("fundingGoal") or {}).get("amount") or 0

    optional = []
    if industries:
        optional.append({f"{CRITERIA}.industries": {"$in": industries}})
    if stage:
        optional.append({f"{CRITERIA}.stage": {"$in": [stage]}})

    location_clauses = []
    if location.get("country"):
        location_clauses.append({f"{CRITERIA}.locations.country": location["country"]})
    if location.get("city"):
        location_clauses.append({f"{CRITERIA}.locations.city": location["city"]})
    if location_clauses:
        optional.append({"$or": location_clauses})

    if funding_goal > 0:
        optional.append({"$or": [
            {f"{CRITERIA}.investmentRange.min": {"$lte": funding_goal * (1 + tolerance)}},
            {f"{CRITERIA}.investmentRange.max": {"$gte": funding_goal * (1 - tolerance)}},
            {f"{CRITERIA}.investmentRange": {"$exists": False}},
        ]})

    return _match(_investor_base(), optional)


def build_investor_search_query(filters: Dict[str, Optional[str]]) -> dict:
    """
    Strict investor search. Supported filters: industry, investorType,
    country, city, minInvestment, maxInvestment, stage.
    """
    industry = _enum_value(filters, "industry", Industry)
    investor_type = _enum_value(filters, "investorType", InvestorType, INVESTOR_TYPE_ALIASES)
    stage = _enum_value(filters, "stage", StartupStage)
    min_investment = _number(filters, "minInvestment")
    max_investment = _number(filters, "maxInvestment")
    country = _present(filters, "country")
    city = _present(filters, "city")

    query = {"userType": UserType.investor.value, INVESTOR: {"$exists": True}}
    if industry:
        query[f"{CRITERIA}.industries"] = industry
    if investor_type:
        query[f"{INVESTOR}.investorType"] = investor_type
    if country:
        query[f"{CRITERIA}.locations.country"] = country
    if city:
        query[f"{CRITERIA}.locations.city"] = city
    if min_investment is not None:
        query[f"{CRITERIA}.investmentRange.min"] = {"$gte": min_investment}
    if max_investment is not None:
        query[f"{CRITERIA}.investmentRange.max"] = {"$lte": max_investment}
    if stage:
        query[f"{CRITERIA}.stage"] = stage
    return query


# ============================================================
# STARTUPS (searched by investors)
# ============================================================

def build_relaxed_startup_query(investment_criteria: Optional[dict], tolerance: float = DEFAULT_TOLERANCE) -> dict:
    """
    Relaxed startup match for an investor.

    The funding goal must fall inside the investor's range widened by the
    tolerance (only when a range is set). Industries, stages and locations
    are alternatives.
    """
    criteria = investment_criteria or {}
    investment_range = criteria.get("investmentRange") or {}
    low = investment_range.get("min") or 0
    high = investment_range.get("max")

    base = [{"userType": UserType.startup.value}, {STARTUP: {"$exists": True}}]
    if low or high:
        funding = {"$gte": low * (1 - tolerance)}
        if high:
            funding["$lte"] = high * (1 + tolerance)
        base.append({f"{STARTUP}.fundingGoal.amount": funding})

    optional = []
    industries = criteria.get("industries") or []
    if industries:
        optional.append({"$or": [
            {f"{STARTUP}.industry1": {"$in": industries}},
            {f"{STARTUP}.industry2": {"$in": industries}},
        ]})

    stages = criteria.get("stage") or []
    if stages:
        optional.append({f"{STARTUP}.stage": {"$in": stages}})

    location_clauses = []
    for location in criteria.get("locations") or []:
        if location.get("country"):
            location_clauses.append({f"{STARTUP}.location.country": location["country"]})
        if location.get("city"):
            location_clauses.append({f"{STARTUP}.location.city": location["city"]})
    if location_clauses:
        optional.append({"$or": location_clauses})

    return _match(base, optional)


def build_startup_search_query(filters: Dict[str, Optional[str]]) -> dict:
    """
    Strict startup search. Supported filters: industry, stage, country,
    city, minFunding, maxFunding, minSuccessScore (0..100).
    """
    industry = _enum_value(filters, "industry", Industry)
    stage = _enum_value(filters, "stage", StartupStage)
    min_funding = _number(filters, "minFunding")
    max_funding = _number(filters, "maxFunding")
    min_score = _number(filters, "minSuccessScore")
    if min_score is not None and min_score > 100:
        raise ValidationError("Invalid minSuccessScore value")
    country = _present(filters, "country")
    city = _present(filters, "city")

    query = {"userType": UserType.startup.value}
    if industry:
        query["$or"] = [
            {f"{STARTUP}.industry1": industry},
            {f"{STARTUP}.industry2": industry},
        ]
    if stage:
        query[f"{STARTUP}.stage"] = stage
    if country:
        query[f"{STARTUP}.location.country"] = country
    if city:
        query[f"{STARTUP}.location.city"] = city
    if min_funding is not None or max_funding is not None:
        funding = {}
        if min_funding is not None:
            funding["$gte"] = min_funding
        if max_funding is not None:
            funding["$lte"] = max_funding
        query[f"{STARTUP}.fundingGoal.amount"] = funding
    if min_score is not None:
        query[f"{STARTUP}.successPrediction.score"] = {"$gte": min_score}
    return query


# ============================================================
# SERVICE
# ============================================================

class MatchingService:
    """
    Runs the matching queries and projects results into discovery cards.
    """

    def __init__(self, db: Optional[Database] = None):
        self.users = UserStore(db)
        self.tolerance = get_settings().match_tolerance

    def _load(self, user_id: ObjectId, user_type: UserType) -> dict:
        user = self.users.get(user_id, userType=user_type.value)
        if not user:
            raise NotFoundError(f"{user_type.value.capitalize()} not found")
        return user

    def _startup_cards(self, startups: List[dict]) -> List[dict]:
        cards = []
        for startup in startups:
            if (startup.get("profile") or {}).get("startup") is None:
                logger.warning(f"Skipping startup {startup['_id']} without a profile")
                continue
            cards.append(startup_discovery_card(startup))
        return cards

    def find_matching_investors(self, startup_id: ObjectId) -> List[dict]:
        startup = self._load(startup_id, UserType.startup)
        profile = (startup.get("profile") or {}).get("startup")
        if profile is None:
            raise ValidationError("Startup profile not set")

        query = build_relaxed_investor_query(profile, self.tolerance)
        logger.debug(
            "Matching investors query",
            extra={"extra_fields": {"startup_id": str(startup_id), "query": str(query)}},
        )
        investors = self.users.find(query)
        logger.info(f"Found {len(investors)} matching investors for startup {startup_id}")
        return [investor_discovery_card(i) for i in investors]

    def search_investors(self, startup_id: ObjectId, filters: Dict[str, Optional[str]]) -> List[dict]:
        self._load(startup_id, UserType.startup)
        query = build_investor_search_query(filters)
        logger.debug(
            "Search investors query",
            extra={"extra_fields": {"startup_id": str(startup_id), "query": str(query)}},
        )
        return [investor_discovery_card(i) for i in self.users.find(query)]

    def find_matching_startups(self, investor_id: ObjectId) -> List[dict]:
        investor = self._load(investor_id, UserType.investor)
        criteria = ((investor.get("profile") or {}).get("investor") or {}).get("investmentCriteria")

        query = build_relaxed_startup_query(criteria, self.tolerance)
        logger.debug(
            "Matching startups query",
            extra={"extra_fields": {"investor_id": str(investor_id), "query": str(query)}},
        )
        startups = self._startup_cards(self.users.find(query))
        logger.info(f"Found {len(startups)} matching startups for investor {investor_id}")
        return startups

    def search_startups(self, filters: Dict[str, Optional[str]]) -> List[dict]:
        query = build_startup_search_query(filters)
        logger.debug("Search startups query", extra={"extra_fields": {"query": str(query)}})
        return self._startup_cards(self.users.find(query))


def get_matching_service(db: Optional[Database] = None) -> MatchingService:
    """Get matching service instance."""
    return MatchingService(db)
