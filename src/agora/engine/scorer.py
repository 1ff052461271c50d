"""Composite scorer — combines three sub-scores into one priority metric.

    composite = (community * w_c + technical * w_t + financial * w_f) // 100

Weights are policy constants summing to 100 (45 / 30 / 25 by default).
Floor division throughout: no rounding, no fixed-point correction.
With inputs in [0, 100] the result is also in [0, 100].

The scorer does not re-validate ranges. Callers run validate_scores
first and only score triples that pass.
"""

from __future__ import annotations

from agora.policy.resolver import PolicyResolver, ScoringWeights


DEFAULT_WEIGHTS = ScoringWeights(community=45, technical=30, financial=25)


def composite_score(
    community: int,
    technical: int,
    financial: int,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> int:
    """Weighted floor-average of the three sub-scores."""
    return (
        community * weights.community
        + technical * weights.technical
        + financial * weights.financial
    ) // 100


def validate_scores(
    community: int,
    technical: int,
    financial: int,
    max_score: int = 100,
) -> list[str]:
    """Check that every score is an int in [0, max_score]. Empty = valid."""
    errors: list[str] = []
    for name, value in (
        ("community", community),
        ("technical", technical),
        ("financial", financial),
    ):
        if isinstance(value, bool) or not isinstance(value, int):
            errors.append(f"{name} score must be an integer, got {value!r}")
        elif not (0 <= value <= max_score):
            errors.append(f"{name} score must be in [0, {max_score}], got {value}")
    return errors


class CompositeScorer:
    """Policy-bound scorer.

    Usage:
        scorer = CompositeScorer(resolver)
        if not scorer.validate(75, 80, 60):
            scorer.score(75, 80, 60)  # 72
    """

    def __init__(self, resolver: PolicyResolver) -> None:
        self._weights = resolver.scoring_weights()
        self._max_score = resolver.max_score()

    @property
    def weights(self) -> ScoringWeights:
        return self._weights

    def validate(self, community: int, technical: int, financial: int) -> list[str]:
        return validate_scores(community, technical, financial, self._max_score)

    def score(self, community: int, technical: int, financial: int) -> int:
        return composite_score(community, technical, financial, self._weights)
