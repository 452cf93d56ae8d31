"""
User entity and its per-type profiles.

A user document carries one `profile` sub-document keyed by its userType:

    {"userType": "investor", "profile": {"investor": {...}}}

The typed models below validate "register details" writes at the boundary
and produce the stored camelCase shape. Jobseekers carry no market profile.
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ============================================================
# ENUMS
# ============================================================

class UserType(str, Enum):
    jobseeker = "jobseeker"
    investor = "investor"
    startup = "startup"
    admin = "admin"


class InvestorType(str, Enum):
    angel = "Angel Investor"
    venture_capitalist = "Venture Capitalist"
    private_equity = "Private Equity"


# Short names accepted by the search endpoint
INVESTOR_TYPE_ALIASES = {
    "angel": InvestorType.angel,
    "vc": InvestorType.venture_capitalist,
    "privateEquity": InvestorType.private_equity,
}


class StartupStage(str, Enum):
    idea = "idea"
    prototype = "prototype"
    mvp = "mvp"
    scaling = "scaling"


class Industry(str, Enum):
    agriculture = "Agriculture"
    business_services = "Business Services"
    education = "Education & Training"
    energy = "Energy & Natural Resources"
    entertainment = "Entertainment & Leisure"
    fashion = "Fashion & Beauty"
    finance = "Finance"
    food = "Food & Beverage"
    hospitality = "Hospitality, Restaurants & Bars"
    manufacturing = "Manufacturing & Engineering"
    media = "Media"
    medical = "Medical & Sciences"
    personal_services = "Personal Services"
    products = "Products & Inventions"
    property = "Property"
    retail = "Retail"
    sales = "Sales & Marketing"
    software = "Software"
    technology = "Technology"
    transportation = "Transportation"


class FundingCurrency(str, Enum):
    USD = "USD"
    EUR = "EUR"
    GBP = "GBP"


class IdealInvestorRole(str, Enum):
    strategic = "strategic"
    financial = "financial"
    mentor = "mentor"
    networker = "networker"


# ============================================================
# SHARED VALUE OBJECTS
# ============================================================

class Location(BaseModel):
    country: Optional[str] = None
    city: Optional[str] = None


class InvestmentRange(BaseModel):
    min: float = Field(0, ge=0)
    max: float = Field(0, ge=0)


class InvestmentCriteria(BaseModel):
    industries: List[Industry] = Field([], max_length=3)
    locations: List[Location] = []
    investment_range: Optional[InvestmentRange] = Field(None, alias="investmentRange")
    stage: List[StartupStage] = []

    model_config = ConfigDict(populate_by_name=True)


class PortfolioEntry(BaseModel):
    company: Optional[str] = None
    amount: Optional[float] = Field(None, ge=0)


class TeamMember(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    role: str = Field(..., min_length=1, max_length=100)


class FundingGoal(BaseModel):
    amount: float = Field(0, ge=0)
    currency: FundingCurrency = FundingCurrency.USD


class SuccessPrediction(BaseModel):
    # Filled by an external scorer; nothing in this service computes it
    score: Optional[float] = Field(None, ge=0, le=100)
    details: Optional[str] = None


# ============================================================
# PROFILES
# ============================================================

class InvestorProfile(BaseModel):
    bio: Optional[str] = Field(None, max_length=1000)
    investor_type: Optional[InvestorType] = Field(None, alias="investorType")
    areas_of_expertise: List[str] = Field([], alias="areasOfExpertise")
    number_of_previous_investments: Optional[int] = Field(
        None, ge=0, alias="numberOfPreviousInvestments"
    )
    portfolio: List[PortfolioEntry] = []
    investment_criteria: Optional[InvestmentCriteria] = Field(None, alias="investmentCriteria")

    model_config = ConfigDict(populate_by_name=True)


class StartupProfile(BaseModel):
    pitch_title: Optional[str] = Field(None, max_length=100, alias="pitchTitle")
    industry1: Optional[Industry] = None
    industry2: Optional[Industry] = None
    location: Optional[Location] = None
    description: Optional[str] = Field(None, max_length=1000)
    funding_goal: Optional[FundingGoal] = Field(None, alias="fundingGoal")
    amount_raised: float = Field(0, ge=0, alias="amountRaised")
    min_investment_per_investor: Optional[float] = Field(
        None, ge=0, alias="minInvestmentPerInvestor"
    )
    stage: StartupStage
    ideal_investor_role: IdealInvestorRole = Field(..., alias="idealInvestorRole")
    previous_funding: float = Field(0, ge=0, alias="previousFunding")
    team: List[TeamMember] = []
    success_prediction: SuccessPrediction = Field(
        default_factory=SuccessPrediction, alias="successPrediction"
    )

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("industry2")
    @classmethod
    def industries_differ(cls, v, info):
        if v is not None and v == info.data.get("industry1"):
            raise ValueError("industry2 must differ from industry1")
        return v


def profile_to_document(profile: BaseModel) -> dict:
    """Serialize a typed profile (or criteria block) into its stored camelCase shape."""
    return profile.model_dump(mode="json", by_alias=True, exclude_none=True)
