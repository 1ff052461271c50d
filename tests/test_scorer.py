"""Tests for the composite scorer — proves the weighted floor formula holds."""

import pytest

from agora.engine.scorer import (
    DEFAULT_WEIGHTS,
    CompositeScorer,
    composite_score,
    validate_scores,
)
from agora.policy.resolver import PolicyResolver, ScoringWeights


class TestCompositeFormula:
    def test_qualified_example(self) -> None:
        # (75*45 + 80*30 + 60*25) / 100 = 7275 / 100 → 72
        assert composite_score(75, 80, 60) == 72

    def test_filtered_example(self) -> None:
        # (50*45 + 80*30 + 60*25) / 100 = 6150 / 100 → 61
        assert composite_score(50, 80, 60) == 61

    def test_bounds(self) -> None:
        assert composite_score(0, 0, 0) == 0
        assert composite_score(100, 100, 100) == 100

    def test_floor_not_round(self) -> None:
        # 1*45 + 1*30 + 1*25 = 100 → 1; 1*45 = 45 → 0 (no rounding up)
        assert composite_score(1, 1, 1) == 1
        assert composite_score(1, 0, 0) == 0
        # 99*45 + 99*30 + 98*25 = 9875 → 98
        assert composite_score(99, 99, 98) == 98

    def test_sampled_grid_matches_formula_and_range(self) -> None:
        for c in range(0, 101, 7):
            for t in range(0, 101, 11):
                for f in range(0, 101, 13):
                    score = composite_score(c, t, f)
                    assert score == (c * 45 + t * 30 + f * 25) // 100
                    assert 0 <= score <= 100

    def test_custom_weights(self) -> None:
        weights = ScoringWeights(community=100, technical=0, financial=0)
        assert composite_score(37, 90, 90, weights) == 37

    def test_default_weights_sum_to_100(self) -> None:
        assert DEFAULT_WEIGHTS.total == 100


class TestScoreValidation:
    def test_in_range_scores_pass(self) -> None:
        assert validate_scores(0, 50, 100) == []

    def test_above_range_rejected(self) -> None:
        errors = validate_scores(101, 50, 50)
        assert len(errors) == 1
        assert "community" in errors[0]

    def test_negative_rejected(self) -> None:
        errors = validate_scores(50, -1, 50)
        assert len(errors) == 1
        assert "technical" in errors[0]

    def test_every_bad_score_reported(self) -> None:
        assert len(validate_scores(-5, 200, 101)) == 3

    def test_non_integer_rejected(self) -> None:
        errors = validate_scores(50, 50, 50.5)  # type: ignore[arg-type]
        assert len(errors) == 1
        assert "integer" in errors[0]

    def test_bool_rejected(self) -> None:
        errors = validate_scores(True, 50, 50)  # type: ignore[arg-type]
        assert len(errors) == 1


class TestCompositeScorer:
    def test_uses_policy_weights(self) -> None:
        resolver = PolicyResolver.from_dict({
            "scoring": {"weights": {"community": 50, "technical": 25, "financial": 25}},
        })
        scorer = CompositeScorer(resolver)
        assert scorer.weights.community == 50
        assert scorer.score(80, 40, 40) == 60

    def test_default_policy_matches_module_function(self) -> None:
        scorer = CompositeScorer(PolicyResolver.default())
        assert scorer.score(75, 80, 60) == composite_score(75, 80, 60)
        assert scorer.validate(75, 80, 60) == []
        assert scorer.validate(75, 80, 160) != []
