"""Normalized analyst opinions and the direction derived from them.

A target price is modelled as an explicit sum type so that "no opinion on
price" (``WithoutTarget``) can never be confused with a target of zero.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field

from models.persona import PersonaId

MIN_SCORE = 1
MAX_SCORE = 5
DEFAULT_SCORE = 3


class Direction(str, Enum):
    """Market direction call derived from a 1-5 score."""

    UP = "UP"
    DOWN = "DOWN"
    NEUTRAL = "NEUTRAL"


# Tie-break precedence for majority votes.
DIRECTION_PRECEDENCE: tuple[Direction, ...] = (
    Direction.UP,
    Direction.DOWN,
    Direction.NEUTRAL,
)


def clamp_score(score: int) -> int:
    return max(MIN_SCORE, min(MAX_SCORE, int(score)))


def direction_from_score(score: int) -> Direction:
    """UP for 4-5, DOWN for 1-2, NEUTRAL for 3."""
    score = clamp_score(score)
    if score >= 4:
        return Direction.UP
    if score <= 2:
        return Direction.DOWN
    return Direction.NEUTRAL


# =============================================================================
# TARGET PRICE (sum type)
# =============================================================================


class WithTarget(BaseModel):
    """The analyst committed to a target price."""

    kind: Literal["with_target"] = "with_target"
    price: float = Field(gt=0)
    date: Optional[str] = None  # human-readable horizon, e.g. "2025-Q3" or "6 months"

    model_config = {"frozen": True}


class WithoutTarget(BaseModel):
    """The analyst gave no (usable) target price."""

    kind: Literal["without_target"] = "without_target"

    model_config = {"frozen": True}


PriceTarget = Annotated[Union[WithTarget, WithoutTarget], Field(discriminator="kind")]


# =============================================================================
# STRUCTURED OPINION
# =============================================================================


class StructuredOpinion(BaseModel):
    """One persona's normalized reply."""

    content: str
    score: int = Field(ge=MIN_SCORE, le=MAX_SCORE)
    risks: list[str] = Field(default_factory=list)
    sources: list[str] = Field(default_factory=list)
    target: PriceTarget = Field(default_factory=WithoutTarget)
    price_rationale: Optional[str] = None
    date_rationale: Optional[str] = None
    methodology: Optional[str] = None

    model_config = {"frozen": True}

    @property
    def direction(self) -> Direction:
        return direction_from_score(self.score)

    @property
    def target_price(self) -> float | None:
        return self.target.price if isinstance(self.target, WithTarget) else None

    @property
    def target_date(self) -> str | None:
        return self.target.date if isinstance(self.target, WithTarget) else None

    @property
    def has_dated_target(self) -> bool:
        return isinstance(self.target, WithTarget) and bool(self.target.date)


# =============================================================================
# INDEPENDENT ANALYSIS (unit consumed by the agreement engine)
# =============================================================================


class IndependentAnalysis(BaseModel):
    """A persona bound to one opinion plus its derived direction."""

    persona: PersonaId
    role: str = ""
    opinion: StructuredOpinion
    direction: Direction
    fallback: bool = False  # True when the deterministic fallback produced the opinion

    model_config = {"frozen": True}

    @classmethod
    def from_opinion(
        cls,
        persona: PersonaId,
        opinion: StructuredOpinion,
        role: str = "",
        fallback: bool = False,
    ) -> IndependentAnalysis:
        return cls(
            persona=persona,
            role=role,
            opinion=opinion,
            direction=opinion.direction,
            fallback=fallback,
        )

    @property
    def target_price(self) -> float | None:
        return self.opinion.target_price
