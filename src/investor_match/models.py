"""Pydantic v2 data models — the data contracts flowing through the system."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, StrictStr, field_validator
from pydantic.alias_generators import to_camel


# ---------------------------------------------------------------------------
# Type aliases
# ---------------------------------------------------------------------------

FundingStage = Literal["Seed", "Series A", "Series B", "Series C", "Series D+"]

LastRoundStage = Literal[
    "Bootstrapped",
    "Pre-seed",
    "Seed",
    "Series A",
    "Series B",
    "Series C",
    "Series D+",
]

Industry = Literal[
    "Technology",
    "Financial Services",
    "Healthcare",
    "Education",
    "Real Estate",
    "Agriculture",
    "Energy",
    "Consumer Goods",
    "Retail",
    "Transportation & Logistics",
    "Media & Entertainment",
    "Manufacturing",
    "Telecommunications",
    "Professional Services",
    "Hospitality",
    "Government & Public Sector",
    "Environmental Services",
    "Aerospace & Defense",
]

Vertical = Literal[
    "Fintech",
    "Healthtech",
    "Edtech",
    "Proptech",
    "Insurtech",
    "Agritech",
    "Cleantech",
    "Climate Tech",
    "Biotech",
    "Medtech",
    "Deeptech",
    "AI/ML",
    "SaaS",
    "Enterprise Software",
    "Cybersecurity",
    "E-commerce",
    "D2C",
    "Marketplace",
    "Logistics",
    "Mobility",
    "EV",
    "Gaming",
    "Media & Entertainment",
    "Social",
    "Consumer Internet",
    "Food & Beverage",
    "Travel & Hospitality",
    "HR Tech",
    "Legal Tech",
    "Martech",
    "Adtech",
    "IoT",
    "Robotics",
    "Blockchain & Web3",
    "Space Tech",
    "Developer Tools",
    "Data & Analytics",
    "Creator Economy",
    "Femtech",
    "Sports Tech",
]

DatasetField = Literal["sector", "stage", "country"]


# ---------------------------------------------------------------------------
# Startup profile
# ---------------------------------------------------------------------------

class LastFundingRound(BaseModel):
    model_config = ConfigDict(frozen=True)

    amount: float = Field(default=0.0, ge=0.0)
    stage: LastRoundStage = "Bootstrapped"


class StartupProfile(BaseModel):
    """Structured startup profile; accepts camelCase or snake_case keys."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    company_name: str
    industries: list[Industry] = Field(default_factory=list)
    verticals: list[Vertical] = Field(default_factory=list)
    startup_location: str = ""
    startup_intro: str = ""
    fund_ask: float = Field(ge=0.0)
    funding_stage: FundingStage = "Seed"
    last_funding_round: LastFundingRound = Field(default_factory=LastFundingRound)

    @field_validator("industries", "verticals")
    @classmethod
    def _dedupe(cls, values: list[str]) -> list[str]:
        return list(dict.fromkeys(values))


# ---------------------------------------------------------------------------
# Vocabulary resolution
# ---------------------------------------------------------------------------

class Vocabulary(BaseModel):
    """Distinct field values currently present in the investment dataset."""

    sectors: list[str] = Field(default_factory=list)
    stages: list[str] = Field(default_factory=list)
    countries: list[str] = Field(default_factory=list)


class VocabularyMapping(BaseModel):
    """Strict decoding target for classifier output."""

    model_config = ConfigDict(frozen=True)

    mapped_verticals: list[StrictStr]
    mapped_stage: list[StrictStr]
    mapped_country: StrictStr


class Combination(BaseModel):
    model_config = ConfigDict(frozen=True)

    vertical: str
    stage: str
    country: str

    @property
    def label(self) -> str:
        return f"{self.vertical}-{self.stage}-{self.country}"


# ---------------------------------------------------------------------------
# Dataset rows / output types
# ---------------------------------------------------------------------------

class InvestmentHit(BaseModel):
    investor_id: str
    investments: int = 0


class InvestorProfile(BaseModel):
    id: str
    name: str
    investor_type: str | None = None
    website: str | None = None
    linkedin_url: str | None = None
    headquarters_country: str | None = None
    description: str | None = None


class InvestorMatch(InvestorProfile):
    investment_counts: dict[str, int] = Field(default_factory=dict)
    total_score: int = 0


class RankedInvestors(BaseModel):
    matches: list[InvestorMatch] = Field(default_factory=list)
    total_found: int = 0
    truncated: bool = False


class MatchResponse(BaseModel):
    company_name: str
    mapping: VocabularyMapping
    combinations: int = 0
    matches: list[InvestorMatch] = Field(default_factory=list)
    total_found: int = 0
    truncated: bool = False
