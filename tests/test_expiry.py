"""Tests for the height clock and expiry check."""

import pytest

from agora.engine.expiry import ExpiryChecker, HeightClock
from agora.models.proposal import ProposalMetrics, Submission
from agora.policy.resolver import PolicyResolver
from agora.registry.submissions import SubmissionRegistry


VALIDITY = 100


@pytest.fixture
def clock() -> HeightClock:
    return HeightClock(start=50)


@pytest.fixture
def registry() -> SubmissionRegistry:
    registry = SubmissionRegistry()
    registry.create(
        Submission(
            proposal_id=1, creator="alice", title="T", category="c",
            stake_amount=1, submission_height=50,
        ),
        ProposalMetrics(proposal_id=1),
    )
    return registry


@pytest.fixture
def checker(registry: SubmissionRegistry, clock: HeightClock) -> ExpiryChecker:
    resolver = PolicyResolver.from_dict({"lifecycle": {"validity_period": VALIDITY}})
    return ExpiryChecker(resolver, registry, clock)


class TestHeightClock:
    def test_starts_at_given_height(self) -> None:
        assert HeightClock().current() == 0
        assert HeightClock(7).current() == 7

    def test_advance(self) -> None:
        clock = HeightClock()
        assert clock.advance() == 1
        assert clock.advance(9) == 10

    def test_never_moves_backwards(self) -> None:
        clock = HeightClock(5)
        with pytest.raises(ValueError, match="backwards"):
            clock.advance(-1)
        assert clock.current() == 5

    def test_negative_start_rejected(self) -> None:
        with pytest.raises(ValueError):
            HeightClock(-1)


class TestExpiry:
    def test_fresh_submission_not_expired(self, checker: ExpiryChecker) -> None:
        assert not checker.is_expired(1)

    def test_exactly_at_window_edge_not_expired(
        self, checker: ExpiryChecker, clock: HeightClock,
    ) -> None:
        clock.advance(VALIDITY)  # elapsed == validity period
        assert not checker.is_expired(1)

    def test_one_past_window_expired(
        self, checker: ExpiryChecker, clock: HeightClock,
    ) -> None:
        clock.advance(VALIDITY + 1)
        assert checker.is_expired(1)

    def test_missing_submission_treated_as_expired(self, checker: ExpiryChecker) -> None:
        assert checker.is_expired(999)
        assert checker.expires_at(999) is None

    def test_expires_at(self, checker: ExpiryChecker) -> None:
        assert checker.expires_at(1) == 50 + VALIDITY
        assert checker.validity_period == VALIDITY
