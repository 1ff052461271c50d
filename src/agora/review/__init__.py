"""Evaluator authorization and statistics."""

from agora.review.roster import EvaluatorRegistry, UnauthorizedError

__all__ = ["EvaluatorRegistry", "UnauthorizedError"]
