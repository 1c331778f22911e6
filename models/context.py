"""Input handed to a persona adapter for one call."""

from __future__ import annotations

from pydantic import BaseModel, Field

from models.persona import PersonaId


class TranscriptEntry(BaseModel):
    """A prior debate statement as seen by the next speaker."""

    persona: PersonaId
    content: str
    round: int = 1
    target_price: float | None = None
    target_date: str | None = None

    model_config = {"frozen": True}


class PreviousTarget(BaseModel):
    """A persona's most recent dated target price."""

    persona: PersonaId
    price: float = Field(gt=0)
    date: str

    model_config = {"frozen": True}


class AnalysisContext(BaseModel):
    """Everything an adapter needs to produce one opinion.

    Rebuilt by the caller for every call; never mutated.
    """

    symbol: str
    symbol_name: str
    sector: str | None = None
    round: int = Field(default=1, ge=1)
    total_rounds: int = Field(default=1, ge=1)
    current_price: float = Field(gt=0)
    previous_messages: list[TranscriptEntry] = Field(default_factory=list)
    previous_targets: dict[PersonaId, PreviousTarget] = Field(default_factory=dict)

    model_config = {"frozen": True}

    @property
    def is_final_round(self) -> bool:
        return self.total_rounds > 1 and self.round >= self.total_rounds

    def target_for(self, persona: PersonaId) -> PreviousTarget | None:
        return self.previous_targets.get(persona)

    def messages_from_others(self, persona: PersonaId) -> list[TranscriptEntry]:
        return [m for m in self.previous_messages if m.persona != persona]
