# models/response.py
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class MatchMode(str, Enum):
    AI = "ai"
    TRADITIONAL = "traditional"


class ScoreBand(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    BASIC = "basic"


class FactorScore(BaseModel):
    key: str
    name: str
    score: int
    weight: int  # percent
    details: str = ""


class MatchResult(BaseModel):
    subject_id: str
    candidate_id: str
    score: float
    band: ScoreBand
    reason: str
    ai_powered: bool
    factors: List[FactorScore] = Field(default_factory=list)


class RecommendationList(BaseModel):
    subject_id: str
    user_type: str = "gig_worker"
    ai_powered: bool
    fallback: bool = False
    partial: bool = False
    recommendations: List[MatchResult] = Field(default_factory=list)
    generated_at: datetime = Field(default_factory=utc_now)


class BandedRecommendations(BaseModel):
    job_id: str
    user_type: str = "employer"
    ai_powered: bool
    fallback: bool = False
    partial: bool = False
    excellent: List[MatchResult] = Field(default_factory=list)
    good: List[MatchResult] = Field(default_factory=list)
    basic: List[MatchResult] = Field(default_factory=list)
    generated_at: datetime = Field(default_factory=utc_now)


class EmployerOverview(BaseModel):
    employer_id: str
    jobs: List[BandedRecommendations] = Field(default_factory=list)


class ProfileUpdateResponse(BaseModel):
    success: bool = True
    message: str
    updated_fields: List[str]
    recommendations: RecommendationList


class WarmEmbeddingsReport(BaseModel):
    kind: str
    requested: int
    generated: int
    failed: int


class ProviderStatus(BaseModel):
    configured: bool
    reachable: bool
    model_name: str
    error: Optional[str] = None
