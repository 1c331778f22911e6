"""Persona identifiers shared by every layer of the engine."""

from __future__ import annotations

from enum import Enum


class PersonaId(str, Enum):
    """The three analyst personas that sit on the panel."""

    BALANCED = "balanced"
    GROWTH = "growth"
    MACRO = "macro"


class RiskBias(str, Enum):
    """How aggressively a persona sets its target price."""

    CONSERVATIVE = "conservative"
    BALANCED = "balanced"
    AGGRESSIVE = "aggressive"


# Debate and cross-validation order.
PERSONA_ORDER: tuple[PersonaId, ...] = (
    PersonaId.BALANCED,
    PersonaId.GROWTH,
    PersonaId.MACRO,
)


def parse_persona_id(value: str | PersonaId) -> PersonaId:
    """Coerce *value* to a ``PersonaId``.

    Raises ``ValueError`` for unknown identifiers.
    """
    if isinstance(value, PersonaId):
        return value
    try:
        return PersonaId(str(value).strip().lower())
    except ValueError:
        available = ", ".join(p.value for p in PersonaId)
        raise ValueError(f"Unknown persona id '{value}'. Available: {available}.") from None
