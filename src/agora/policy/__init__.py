"""Engine parameter loading and validation."""

from agora.policy.resolver import (
    PolicyError,
    PolicyResolver,
    ScoringWeights,
    StakePolicy,
    TextLimits,
)

__all__ = [
    "PolicyError",
    "PolicyResolver",
    "ScoringWeights",
    "StakePolicy",
    "TextLimits",
]
