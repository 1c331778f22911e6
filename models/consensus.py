"""Cross-validation output produced by the agreement engine."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field

from models.opinion import Direction, IndependentAnalysis
from models.persona import PersonaId


class ConsensusGrade(str, Enum):
    """Discrete summary of cross-persona agreement."""

    STRONG = "STRONG"
    MODERATE = "MODERATE"
    CONFLICT = "CONFLICT"


class DirectionAgreement(BaseModel):
    """Direction votes across analyses."""

    votes: dict[Direction, int] = Field(
        default_factory=lambda: {d: 0 for d in Direction}
    )
    majority_direction: Direction = Direction.NEUTRAL
    has_majority: bool = False
    all_agree: bool = False


class PriceAgreement(BaseModel):
    """Central tendency and dispersion of the target prices that were given."""

    consensus: float | None = None
    spread: float = 0.0  # (max - min) / consensus * 100
    low: float | None = None
    high: float | None = None
    priced_count: int = 0


class SharedReason(BaseModel):
    """A reason voiced, in some phrasing, by two or more personas."""

    text: str
    personas: list[PersonaId] = Field(default_factory=list)


class UniqueReason(BaseModel):
    """A reason only one persona gave."""

    persona: PersonaId
    reason: str


class ConflictPoint(BaseModel):
    """A topic the personas disagree on, with each view verbatim."""

    topic: str
    views: dict[PersonaId, str] = Field(default_factory=dict)


class ConsensusResult(BaseModel):
    """Snapshot of agreement over one set of independent analyses."""

    grade: ConsensusGrade
    confidence: int = Field(ge=0, le=100)
    direction: DirectionAgreement
    price: PriceAgreement
    shared_reasons: list[SharedReason] = Field(default_factory=list)
    unique_reasons: list[UniqueReason] = Field(default_factory=list)
    conflict_points: list[ConflictPoint] = Field(default_factory=list)
    analyses: list[IndependentAnalysis] = Field(default_factory=list)
    summary: str = ""
    recommendation: str = ""

    @property
    def majority_direction(self) -> Direction:
        return self.direction.majority_direction

    @property
    def votes(self) -> dict[Direction, int]:
        return self.direction.votes
