"""Agreement engine: cross-validates a set of independent analyses.

Pure and deterministic. It never raises for well-typed input, and an empty
input yields a CONFLICT result with zero confidence. The engine works on however
many analyses it is given and knows nothing about subscription tiers.
"""

from __future__ import annotations

import logging
from typing import Sequence

from consensus.policy import DEFAULT_POLICY, ConsensusPolicy
from consensus.reasons import extract_reasons, match_reasons, split_sentences
from models.consensus import (
    ConflictPoint,
    ConsensusGrade,
    ConsensusResult,
    DirectionAgreement,
    PriceAgreement,
)
from models.opinion import DIRECTION_PRECEDENCE, Direction, IndependentAnalysis
from models.persona import PersonaId

logger = logging.getLogger(__name__)

DIRECTION_TOPIC = "direction"
PRICE_TOPIC = "target_price"


# =============================================================================
# STEPS
# =============================================================================


def tally_directions(analyses: Sequence[IndependentAnalysis]) -> DirectionAgreement:
    votes = {d: 0 for d in Direction}
    for analysis in analyses:
        votes[analysis.direction] += 1

    n = len(analyses)
    if n == 0:
        return DirectionAgreement(votes=votes)

    top = max(votes.values())
    # First direction in precedence order holding the top count.
    majority = next(d for d in DIRECTION_PRECEDENCE if votes[d] == top)
    return DirectionAgreement(
        votes=votes,
        majority_direction=majority,
        has_majority=2 * top > n,
        all_agree=top == n,
    )


def price_agreement(analyses: Sequence[IndependentAnalysis]) -> PriceAgreement:
    """Mean and spread of the target prices that were given.

    Analyses without a target are excluded, never counted as zero.
    """
    prices = [a.target_price for a in analyses if a.target_price is not None]
    if not prices:
        return PriceAgreement()

    consensus = sum(prices) / len(prices)
    low, high = min(prices), max(prices)
    spread = (high - low) / consensus * 100 if len(prices) > 1 else 0.0
    return PriceAgreement(
        consensus=consensus,
        spread=spread,
        low=low,
        high=high,
        priced_count=len(prices),
    )


def grade_consensus(
    direction: DirectionAgreement,
    price: PriceAgreement,
    count: int,
    policy: ConsensusPolicy = DEFAULT_POLICY,
) -> ConsensusGrade:
    if count == 0 or not direction.has_majority:
        return ConsensusGrade.CONFLICT
    if price.spread > policy.conflict_spread_threshold:
        return ConsensusGrade.CONFLICT
    if direction.all_agree and count >= 2 and price.spread < policy.strong_spread_threshold:
        return ConsensusGrade.STRONG
    return ConsensusGrade.MODERATE


def confidence_score(
    direction: DirectionAgreement,
    price: PriceAgreement,
    count: int,
    policy: ConsensusPolicy = DEFAULT_POLICY,
) -> int:
    """Rises with vote concentration and falls with price spread; 0-100."""
    if count == 0:
        return 0
    concentration = direction.votes[direction.majority_direction] / count
    price_term = max(0.0, 1.0 - price.spread / policy.conflict_spread_threshold)
    raw = 100 * (policy.vote_weight * concentration + (1 - policy.vote_weight) * price_term)
    return max(0, min(100, round(raw)))


def _lead_reason(analysis: IndependentAnalysis, policy: ConsensusPolicy) -> str:
    reasons = extract_reasons(analysis.opinion.content, policy)
    if reasons:
        return reasons[0]
    sentences = split_sentences(analysis.opinion.content)
    return sentences[0] if sentences else analysis.opinion.content


def _format_price(price: float) -> str:
    return f"{price:,.0f}" if price >= 1000 else f"{price:,.2f}"


def find_conflicts(
    analyses: Sequence[IndependentAnalysis],
    price: PriceAgreement,
    policy: ConsensusPolicy = DEFAULT_POLICY,
) -> list[ConflictPoint]:
    conflicts: list[ConflictPoint] = []

    if len({a.direction for a in analyses}) >= 2:
        views = {
            a.persona: f"{a.direction.value}: {_lead_reason(a, policy)}"
            for a in analyses
        }
        conflicts.append(ConflictPoint(topic=DIRECTION_TOPIC, views=views))

    if price.priced_count >= 2 and price.spread > policy.price_conflict_threshold:
        views = {}
        for a in analyses:
            if a.target_price is None:
                continue
            views[a.persona] = (
                a.opinion.price_rationale or f"Target {_format_price(a.target_price)}"
            )
        conflicts.append(ConflictPoint(topic=PRICE_TOPIC, views=views))

    return conflicts


# =============================================================================
# SUMMARY TEXT
# =============================================================================


def _summary(
    grade: ConsensusGrade,
    direction: DirectionAgreement,
    price: PriceAgreement,
    count: int,
) -> str:
    if count == 0:
        return "No analyses were available to cross-validate."
    majority = direction.majority_direction.value
    top = direction.votes[direction.majority_direction]
    spread = f"target spread {price.spread:.1f}%" if price.priced_count else "no target prices"
    if grade == ConsensusGrade.STRONG:
        return f"All {count} analysts agree on {majority} ({spread})."
    if grade == ConsensusGrade.MODERATE:
        return f"{top} of {count} analysts lean {majority} ({spread})."
    if not direction.has_majority:
        return f"No direction holds a majority across {count} analysts ({spread})."
    return f"{top} of {count} analysts lean {majority}, but targets diverge ({spread})."


def _recommendation(
    grade: ConsensusGrade,
    direction: DirectionAgreement,
    price: PriceAgreement,
) -> str:
    if grade == ConsensusGrade.CONFLICT:
        return (
            "Views diverge; review each analyst's reasoning and conflict points "
            "before forming a view."
        )
    majority = direction.majority_direction.value
    prefix = "High" if grade == ConsensusGrade.STRONG else "Moderate"
    if price.consensus is None:
        return f"{prefix} agreement on {majority}; no consensus target was given."
    rounded = round(price.consensus / 100) * 100
    return f"{prefix} agreement on {majority} with a consensus target around {rounded:,.0f}."


# =============================================================================
# ENTRY POINT
# =============================================================================


def compute_consensus(
    analyses: Sequence[IndependentAnalysis],
    policy: ConsensusPolicy = DEFAULT_POLICY,
) -> ConsensusResult:
    """Cross-validate *analyses* into a ``ConsensusResult``."""
    analyses = list(analyses)
    count = len(analyses)

    direction = tally_directions(analyses)
    price = price_agreement(analyses)

    candidates: dict[PersonaId, list[str]] = {}
    for analysis in analyses:
        candidates.setdefault(analysis.persona, []).extend(
            extract_reasons(analysis.opinion.content, policy)
        )
    shared, unique = match_reasons(candidates, policy)

    grade = grade_consensus(direction, price, count, policy)
    confidence = confidence_score(direction, price, count, policy)
    logger.debug(
        "Consensus over %d analyses: %s (%d%%), spread %.1f%%",
        count, grade.value, confidence, price.spread,
    )

    return ConsensusResult(
        grade=grade,
        confidence=confidence,
        direction=direction,
        price=price,
        shared_reasons=shared,
        unique_reasons=unique,
        conflict_points=find_conflicts(analyses, price, policy),
        analyses=analyses,
        summary=_summary(grade, direction, price, count),
        recommendation=_recommendation(grade, direction, price),
    )
