"""Debate transcript models."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from models.context import PreviousTarget, TranscriptEntry
from models.opinion import PriceTarget, StructuredOpinion, WithoutTarget, WithTarget
from models.persona import PersonaId


class DebateMessage(BaseModel):
    """One persona's contribution in one round. Never mutated once produced."""

    persona: PersonaId
    round: int = Field(ge=1)
    content: str
    score: int
    risks: list[str] = Field(default_factory=list)
    sources: list[str] = Field(default_factory=list)
    target: PriceTarget = Field(default_factory=WithoutTarget)
    price_rationale: Optional[str] = None
    fallback: bool = False

    model_config = {"frozen": True}

    @classmethod
    def from_opinion(
        cls,
        persona: PersonaId,
        round_number: int,
        opinion: StructuredOpinion,
        fallback: bool = False,
    ) -> DebateMessage:
        return cls(
            persona=persona,
            round=round_number,
            content=opinion.content,
            score=opinion.score,
            risks=list(opinion.risks),
            sources=list(opinion.sources),
            target=opinion.target,
            price_rationale=opinion.price_rationale,
            fallback=fallback,
        )

    @property
    def target_price(self) -> float | None:
        return self.target.price if isinstance(self.target, WithTarget) else None

    @property
    def target_date(self) -> str | None:
        return self.target.date if isinstance(self.target, WithTarget) else None

    def to_opinion(self) -> StructuredOpinion:
        return StructuredOpinion(
            content=self.content,
            score=self.score,
            risks=list(self.risks),
            sources=list(self.sources),
            target=self.target,
            price_rationale=self.price_rationale,
        )

    def to_transcript_entry(self) -> TranscriptEntry:
        return TranscriptEntry(
            persona=self.persona,
            content=self.content,
            round=self.round,
            target_price=self.target_price,
            target_date=self.target_date,
        )

    def to_previous_target(self) -> PreviousTarget | None:
        """The dated target this message sets, if it carries both price and date."""
        if isinstance(self.target, WithTarget) and self.target.date:
            return PreviousTarget(
                persona=self.persona,
                price=self.target.price,
                date=self.target.date,
            )
        return None
