"""Cross-validation of independent analyses."""

from consensus.agreement import compute_consensus
from consensus.policy import DEFAULT_POLICY, ConsensusPolicy
from consensus.reasons import are_similar, common_points, extract_reasons

__all__ = [
    "ConsensusPolicy",
    "DEFAULT_POLICY",
    "are_similar",
    "common_points",
    "compute_consensus",
    "extract_reasons",
]
