"""Tier-dependent analysis entry point and its collaborators."""

from analysis.errors import AnalysisInputError, UsageLimitExceeded
from analysis.policy import (
    TierPolicy,
    analysis_type_for_tier,
    can_use_cross_validation,
    estimated_cost,
    persona_count_for_tier,
    personas_for_tier,
    select_policy,
)
from analysis.runner import AnalysisRunner, run_analysis
from analysis.usage import InMemoryUsageMeter, UsageMeter

__all__ = [
    "AnalysisInputError",
    "AnalysisRunner",
    "InMemoryUsageMeter",
    "TierPolicy",
    "UsageLimitExceeded",
    "UsageMeter",
    "analysis_type_for_tier",
    "can_use_cross_validation",
    "estimated_cost",
    "persona_count_for_tier",
    "personas_for_tier",
    "run_analysis",
    "select_policy",
]
