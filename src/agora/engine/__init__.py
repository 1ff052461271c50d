"""Evaluation engine — eligibility, scoring, expiry, and lifecycle."""

from agora.engine.eligibility import EligibilityValidator
from agora.engine.expiry import ExpiryChecker, HeightClock
from agora.engine.scorer import CompositeScorer, composite_score, validate_scores
from agora.engine.state_machine import ProposalStateMachine, TransitionError

__all__ = [
    "CompositeScorer",
    "EligibilityValidator",
    "ExpiryChecker",
    "HeightClock",
    "ProposalStateMachine",
    "TransitionError",
    "composite_score",
    "validate_scores",
]
