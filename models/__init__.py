"""Data models for the equity analysis consensus engine.

Every layer (agents, consensus, debate, analysis) imports from models.
"""

from models.analysis import (
    AnalysisOptions,
    AnalysisType,
    Comparison,
    ComparisonAnalysisResult,
    DebateAnalysisResult,
    SingleAnalysisResult,
    SubscriptionTier,
    TierAnalysisResult,
    UsageLimit,
)
from models.config import BackendConfig, EngineConfig
from models.consensus import (
    ConflictPoint,
    ConsensusGrade,
    ConsensusResult,
    DirectionAgreement,
    PriceAgreement,
    SharedReason,
    UniqueReason,
)
from models.context import AnalysisContext, PreviousTarget, TranscriptEntry
from models.debate import DebateMessage
from models.opinion import (
    Direction,
    IndependentAnalysis,
    StructuredOpinion,
    WithoutTarget,
    WithTarget,
    direction_from_score,
)
from models.persona import PERSONA_ORDER, PersonaId, RiskBias

__all__ = [
    # analysis
    "AnalysisOptions",
    "AnalysisType",
    "Comparison",
    "ComparisonAnalysisResult",
    "DebateAnalysisResult",
    "SingleAnalysisResult",
    "SubscriptionTier",
    "TierAnalysisResult",
    "UsageLimit",
    # config
    "BackendConfig",
    "EngineConfig",
    # consensus
    "ConflictPoint",
    "ConsensusGrade",
    "ConsensusResult",
    "DirectionAgreement",
    "PriceAgreement",
    "SharedReason",
    "UniqueReason",
    # context
    "AnalysisContext",
    "PreviousTarget",
    "TranscriptEntry",
    # debate
    "DebateMessage",
    # opinion
    "Direction",
    "IndependentAnalysis",
    "StructuredOpinion",
    "WithoutTarget",
    "WithTarget",
    "direction_from_score",
    # persona
    "PERSONA_ORDER",
    "PersonaId",
    "RiskBias",
]
