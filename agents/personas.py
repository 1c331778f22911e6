"""Persona table: one row of fixed behaviour per analyst persona.

A single ``PersonaAdapter`` consumes any row. The deterministic fallback
reads the same bands.
"""

from __future__ import annotations

from dataclasses import dataclass

from models.persona import PERSONA_ORDER, PersonaId, RiskBias, parse_persona_id


@dataclass(frozen=True)
class PersonaSpec:
    """Fixed attributes of one analyst persona."""

    persona: PersonaId
    display_name: str
    title: str
    style: str
    focus: tuple[str, ...]
    risk_bias: RiskBias
    # Target price band as multipliers of the current price.
    target_band: tuple[float, float]
    # Time horizon band for the target, in months.
    horizon_months: tuple[int, int]
    # Role label used when the persona analyses independently.
    analysis_role: str
    # Approximate API cost of one call, in currency units.
    cost: int

    @property
    def band_percent(self) -> tuple[int, int]:
        low, high = self.target_band
        return round((low - 1) * 100), round((high - 1) * 100)


PERSONAS: dict[PersonaId, PersonaSpec] = {
    PersonaId.BALANCED: PersonaSpec(
        persona=PersonaId.BALANCED,
        display_name="Claude Lee",
        title="Balanced Analyst",
        style="calm, detail-oriented, even-handed",
        focus=("earnings", "financial health", "industry structure", "valuation"),
        risk_bias=RiskBias.BALANCED,
        target_band=(1.10, 1.20),
        horizon_months=(3, 6),
        analysis_role="Fundamental Analyst",
        cost=15,
    ),
    PersonaId.GROWTH: PersonaSpec(
        persona=PersonaId.GROWTH,
        display_name="Gemi Nine",
        title="Growth & Innovation Strategist",
        style="fast, trend-sensitive, confident",
        focus=("new business lines", "technology", "trend analysis", "global competitiveness"),
        risk_bias=RiskBias.AGGRESSIVE,
        target_band=(1.20, 1.40),
        horizon_months=(3, 6),
        analysis_role="Data & Trend Analyst",
        cost=5,
    ),
    PersonaId.MACRO: PersonaSpec(
        persona=PersonaId.MACRO,
        display_name="G.P. Taylor",
        title="Macro & Risk Lead",
        style="measured, authoritative, synthesising",
        focus=("macro environment", "rates and FX", "geopolitical risk", "overall view"),
        risk_bias=RiskBias.CONSERVATIVE,
        target_band=(1.05, 1.15),
        horizon_months=(6, 12),
        analysis_role="Macro & Scenario Analyst",
        cost=10,
    ),
}


def get_persona(persona: str | PersonaId) -> PersonaSpec:
    """Look up a persona row. Raises ``ValueError`` for unknown ids."""
    return PERSONAS[parse_persona_id(persona)]


def ordered_personas(count: int | None = None) -> list[PersonaSpec]:
    """Personas in dispatch order, optionally only the first *count*."""
    order = PERSONA_ORDER if count is None else PERSONA_ORDER[:count]
    return [PERSONAS[p] for p in order]
