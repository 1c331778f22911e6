"""Tier policy selector: subscription tier -> personas and pipeline.

This is the only place tier knowledge meets the analysis core.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from agents.personas import PERSONAS
from analysis.errors import AnalysisInputError
from models.analysis import AnalysisType, SubscriptionTier
from models.persona import PERSONA_ORDER, PersonaId

FREE_FEATURE = "analysis_free"
CROSS_VALIDATION_FEATURE = "cross_validation"
DEBATE_FEATURE = "debate"

# Cheapest backend first on the reduced tiers; full panels keep the debate order.
_TIER_PERSONAS: dict[SubscriptionTier, tuple[PersonaId, ...]] = {
    SubscriptionTier.FREE: (PersonaId.GROWTH,),
    SubscriptionTier.LITE: (PersonaId.GROWTH, PersonaId.BALANCED),
    SubscriptionTier.BASIC: PERSONA_ORDER,
    SubscriptionTier.PRO: PERSONA_ORDER,
}

_TIER_ANALYSIS_TYPE = {
    SubscriptionTier.FREE: AnalysisType.SINGLE,
    SubscriptionTier.LITE: AnalysisType.COMPARISON,
    SubscriptionTier.BASIC: AnalysisType.CROSS_VALIDATION,
    SubscriptionTier.PRO: AnalysisType.CROSS_VALIDATION,
}

UPGRADE_MESSAGES = {
    SubscriptionTier.FREE: (
        "Upgrade to Lite to compare two analysts, or to Basic for a "
        "three-analyst cross-validated consensus."
    ),
    SubscriptionTier.LITE: (
        "Upgrade to Basic to add a third analyst and a cross-validated "
        "consensus grade."
    ),
}


@dataclass(frozen=True)
class TierPolicy:
    tier: SubscriptionTier
    analysis_type: AnalysisType
    personas: tuple[PersonaId, ...]
    feature_key: str

    @property
    def persona_count(self) -> int:
        return len(self.personas)


def parse_tier(tier: Union[str, SubscriptionTier, None]) -> SubscriptionTier:
    if isinstance(tier, SubscriptionTier):
        return tier
    if tier is None or not str(tier).strip():
        raise AnalysisInputError("Subscription tier is required.")
    try:
        return SubscriptionTier(str(tier).strip().lower())
    except ValueError:
        available = ", ".join(t.value for t in SubscriptionTier)
        raise AnalysisInputError(
            f"Unknown subscription tier '{tier}'. Available: {available}."
        ) from None


def personas_for_tier(tier: Union[str, SubscriptionTier]) -> tuple[PersonaId, ...]:
    return _TIER_PERSONAS[parse_tier(tier)]


def persona_count_for_tier(tier: Union[str, SubscriptionTier]) -> int:
    return len(personas_for_tier(tier))


def analysis_type_for_tier(tier: Union[str, SubscriptionTier]) -> AnalysisType:
    return _TIER_ANALYSIS_TYPE[parse_tier(tier)]


def can_use_cross_validation(tier: Union[str, SubscriptionTier]) -> bool:
    return persona_count_for_tier(tier) == len(PERSONA_ORDER)


def select_policy(
    tier: Union[str, SubscriptionTier],
    debate: bool = False,
) -> TierPolicy:
    """Resolve *tier* to the pipeline it runs.

    Raises ``AnalysisInputError`` for unknown tiers and for debates requested
    on a tier that does not run every persona.
    """
    tier = parse_tier(tier)
    personas = _TIER_PERSONAS[tier]

    if debate:
        if not can_use_cross_validation(tier):
            raise AnalysisInputError(
                f"Debates need all {len(PERSONA_ORDER)} analysts; "
                f"tier '{tier.value}' runs {len(personas)}."
            )
        return TierPolicy(tier, AnalysisType.DEBATE, personas, DEBATE_FEATURE)

    feature = FREE_FEATURE if tier == SubscriptionTier.FREE else CROSS_VALIDATION_FEATURE
    return TierPolicy(tier, _TIER_ANALYSIS_TYPE[tier], personas, feature)


def estimated_cost(policy: TierPolicy, rounds: int = 1) -> int:
    """Approximate API cost: sum of persona costs, times rounds for a debate."""
    per_pass = sum(PERSONAS[p].cost for p in policy.personas)
    if policy.analysis_type == AnalysisType.DEBATE:
        return per_pass * max(1, rounds)
    return per_pass
