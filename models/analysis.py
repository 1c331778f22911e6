"""Caller-facing request options and tier-dependent result shapes."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, Field

from models.consensus import ConsensusResult
from models.debate import DebateMessage
from models.context import PreviousTarget
from models.opinion import Direction, IndependentAnalysis
from models.persona import PersonaId


class SubscriptionTier(str, Enum):
    FREE = "free"
    LITE = "lite"
    BASIC = "basic"
    PRO = "pro"


class AnalysisType(str, Enum):
    SINGLE = "single"
    COMPARISON = "comparison"
    CROSS_VALIDATION = "cross_validation"
    DEBATE = "debate"


class AnalysisOptions(BaseModel):
    """Optional knobs for one analysis request."""

    user_id: Optional[str] = None
    sector: Optional[str] = None
    debate_rounds: Optional[int] = Field(default=None, ge=1)
    timeout_seconds: Optional[float] = Field(default=None, gt=0)
    session_id: Optional[str] = None


class UsageLimit(BaseModel):
    """Quota state for one (user, feature) pair."""

    allowed: bool
    remaining: int  # -1 = unlimited
    limit: int  # -1 = unlimited
    used: int = 0
    reset_time: datetime
    message: Optional[str] = None


# =============================================================================
# PIPELINE RESULTS
# =============================================================================


class SingleAnalysisResult(BaseModel):
    """Free tier: one persona's opinion."""

    analysis: IndependentAnalysis
    summary: str
    upgrade_message: str

    @property
    def direction(self) -> Direction:
        return self.analysis.direction


class Comparison(BaseModel):
    """Side-by-side comparison of two opinions."""

    direction_match: bool
    price_difference: Optional[float] = None
    price_difference_percent: Optional[float] = None
    common_points: list[str] = Field(default_factory=list)
    differences: list[str] = Field(default_factory=list)


class ComparisonAnalysisResult(BaseModel):
    """Lite tier: two personas compared directly."""

    analyses: list[IndependentAnalysis]
    comparison: Comparison
    summary: str
    upgrade_message: str


class DebateAnalysisResult(BaseModel):
    """A finished multi-round debate."""

    rounds: int
    messages: list[DebateMessage] = Field(default_factory=list)
    targets: dict[PersonaId, PreviousTarget] = Field(default_factory=dict)
    consensus: ConsensusResult


AnalysisPayload = Union[
    SingleAnalysisResult,
    ComparisonAnalysisResult,
    ConsensusResult,
    DebateAnalysisResult,
]


class TierAnalysisResult(BaseModel):
    """Envelope returned by the analysis entry point."""

    tier: SubscriptionTier
    analysis_type: AnalysisType
    result: AnalysisPayload
    used_personas: list[PersonaId]
    estimated_cost: int
    current_price: float
    elapsed_ms: int = 0
    timestamp: str
    usage: Optional[UsageLimit] = None
