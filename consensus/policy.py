"""Tunable parameters of the agreement engine."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ConsensusPolicy:
    """Thresholds for grading agreement and matching reasons.

    All spreads are percentages of the consensus price.
    """

    # Unanimous direction with spread strictly below this -> STRONG.
    strong_spread_threshold: float = 15.0
    # Majority direction with spread above this -> CONFLICT.
    conflict_spread_threshold: float = 50.0
    # Spread above this produces a target-price conflict point.
    price_conflict_threshold: float = 15.0

    # Confidence = vote_weight * concentration + (1 - vote_weight) * price agreement
    vote_weight: float = 0.6

    # Reason candidates
    min_reason_length: int = 15
    max_reason_length: int = 200
    max_reasons_per_persona: int = 5

    # Reason similarity
    min_keyword_length: int = 2
    min_shared_keywords: int = 2
    min_overlap: float = 0.5


DEFAULT_POLICY = ConsensusPolicy()
