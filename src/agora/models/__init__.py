"""Core data models for Agora."""

from agora.models.counters import EngineCounters
from agora.models.proposal import (
    Evaluator,
    ProposalMetrics,
    ProposalStatus,
    Submission,
)

__all__ = [
    "EngineCounters",
    "Evaluator",
    "ProposalMetrics",
    "ProposalStatus",
    "Submission",
]
