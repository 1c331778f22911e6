"""Single, comparison and cross-validation pipelines.

Persona calls within one request share no in-flight state, so they are
dispatched concurrently.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional, Sequence

from agents.personas import PERSONAS
from agents.roster import PersonaRoster
from analysis.policy import UPGRADE_MESSAGES
from consensus.agreement import compute_consensus
from consensus.reasons import common_points
from models.analysis import (
    Comparison,
    ComparisonAnalysisResult,
    SingleAnalysisResult,
    SubscriptionTier,
)
from models.consensus import ConsensusResult
from models.context import AnalysisContext
from models.opinion import IndependentAnalysis
from models.persona import PERSONA_ORDER, PersonaId

logger = logging.getLogger(__name__)


def _format_price(price: float) -> str:
    return f"{price:,.0f}" if price >= 1000 else f"{price:,.2f}"


async def gather_analyses(
    roster: PersonaRoster,
    personas: Sequence[PersonaId],
    context: AnalysisContext,
    timeout: Optional[float] = None,
) -> list[IndependentAnalysis]:
    """Concurrent independent analyses, returned in persona order."""
    return list(await asyncio.gather(*(
        roster.analyze(persona, context, timeout=timeout) for persona in personas
    )))


# =============================================================================
# SINGLE
# =============================================================================


async def run_single(
    roster: PersonaRoster,
    context: AnalysisContext,
    persona: PersonaId = PersonaId.GROWTH,
    timeout: Optional[float] = None,
) -> SingleAnalysisResult:
    analysis = await roster.analyze(persona, context, timeout=timeout)
    spec = PERSONAS[persona]
    summary = (
        f"{spec.display_name} ({spec.analysis_role}) rates {context.symbol_name} "
        f"{analysis.opinion.score}/5, direction {analysis.direction.value}"
    )
    if analysis.target_price is not None:
        summary += f", target {_format_price(analysis.target_price)}"
    return SingleAnalysisResult(
        analysis=analysis,
        summary=summary + ".",
        upgrade_message=UPGRADE_MESSAGES[SubscriptionTier.FREE],
    )


# =============================================================================
# COMPARISON
# =============================================================================


def compare_analyses(first: IndependentAnalysis, second: IndependentAnalysis) -> Comparison:
    """Direction match and target-price gap between two opinions."""
    direction_match = first.direction == second.direction
    name_a = PERSONAS[first.persona].display_name
    name_b = PERSONAS[second.persona].display_name

    differences: list[str] = []
    if not direction_match:
        differences.append(
            f"Direction: {name_a} {first.direction.value} vs {name_b} {second.direction.value}"
        )

    price_difference = None
    price_difference_percent = None
    p1, p2 = first.target_price, second.target_price
    if p1 is not None and p2 is not None:
        price_difference = abs(p1 - p2)
        price_difference_percent = price_difference / min(p1, p2) * 100
        if price_difference > 0:
            differences.append(
                f"Target price: {name_a} {_format_price(p1)} vs {name_b} "
                f"{_format_price(p2)} ({price_difference_percent:.1f}% apart)"
            )

    return Comparison(
        direction_match=direction_match,
        price_difference=price_difference,
        price_difference_percent=price_difference_percent,
        common_points=common_points(first.opinion.content, second.opinion.content),
        differences=differences,
    )


async def run_comparison(
    roster: PersonaRoster,
    context: AnalysisContext,
    personas: Sequence[PersonaId] = (PersonaId.GROWTH, PersonaId.BALANCED),
    timeout: Optional[float] = None,
) -> ComparisonAnalysisResult:
    first, second = await gather_analyses(roster, personas[:2], context, timeout)
    comparison = compare_analyses(first, second)

    if comparison.direction_match:
        summary = f"Both analysts call {first.direction.value} on {context.symbol_name}"
    else:
        summary = (
            f"The analysts disagree on {context.symbol_name}: "
            f"{first.direction.value} vs {second.direction.value}"
        )
    if comparison.price_difference_percent is not None:
        summary += f"; targets {comparison.price_difference_percent:.1f}% apart"

    return ComparisonAnalysisResult(
        analyses=[first, second],
        comparison=comparison,
        summary=summary + ".",
        upgrade_message=UPGRADE_MESSAGES[SubscriptionTier.LITE],
    )


# =============================================================================
# CROSS-VALIDATION
# =============================================================================


async def run_cross_validation(
    roster: PersonaRoster,
    context: AnalysisContext,
    personas: Sequence[PersonaId] = PERSONA_ORDER,
    timeout: Optional[float] = None,
) -> ConsensusResult:
    analyses = await gather_analyses(roster, personas, context, timeout)
    fallbacks = sum(a.fallback for a in analyses)
    if fallbacks:
        logger.info("%d of %d analyses served by the fallback", fallbacks, len(analyses))
    return compute_consensus(analyses)
