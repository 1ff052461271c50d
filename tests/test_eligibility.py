"""Tests for the eligibility validator — the intake gate."""

import pytest

from agora.engine.eligibility import EligibilityValidator
from agora.models.counters import EngineCounters
from agora.policy.resolver import PolicyResolver


@pytest.fixture
def resolver() -> PolicyResolver:
    return PolicyResolver.from_dict({
        "stake": {"min_stake": 1000, "max_proposals_per_cycle": 3},
    })


@pytest.fixture
def counters() -> EngineCounters:
    return EngineCounters()


@pytest.fixture
def validator(resolver: PolicyResolver, counters: EngineCounters) -> EligibilityValidator:
    return EligibilityValidator(resolver, counters)


class TestStakeGate:
    def test_minimum_stake_is_eligible(self, validator: EligibilityValidator) -> None:
        assert validator.is_eligible(1000)

    def test_above_minimum_is_eligible(self, validator: EligibilityValidator) -> None:
        assert validator.is_eligible(10_000)

    def test_below_minimum_is_not(self, validator: EligibilityValidator) -> None:
        assert not validator.is_eligible(999)
        reasons = validator.ineligibility_reasons(999)
        assert len(reasons) == 1
        assert "below minimum" in reasons[0]


class TestCapacityGate:
    def test_capacity_reached_blocks_any_stake(
        self, validator: EligibilityValidator, counters: EngineCounters,
    ) -> None:
        counters.total_active_proposals = 3
        assert not validator.is_eligible(10**12)
        assert "capacity" in validator.ineligibility_reasons(10**12)[0]

    def test_one_below_capacity_is_eligible(
        self, validator: EligibilityValidator, counters: EngineCounters,
    ) -> None:
        counters.total_active_proposals = 2
        assert validator.is_eligible(1000)


class TestEmergencyGate:
    def test_emergency_mode_blocks(
        self, validator: EligibilityValidator, counters: EngineCounters,
    ) -> None:
        counters.emergency_mode = True
        assert not validator.is_eligible(5000)
        assert "Emergency" in validator.ineligibility_reasons(5000)[0]

    def test_emergency_off_restores(
        self, validator: EligibilityValidator, counters: EngineCounters,
    ) -> None:
        counters.emergency_mode = True
        counters.emergency_mode = False
        assert validator.is_eligible(5000)


class TestPurity:
    def test_check_does_not_mutate_counters(
        self, validator: EligibilityValidator, counters: EngineCounters,
    ) -> None:
        before = (counters.next_proposal_id, counters.total_active_proposals)
        validator.is_eligible(5000)
        validator.is_eligible(1)
        assert (counters.next_proposal_id, counters.total_active_proposals) == before

    def test_all_reasons_reported(
        self, validator: EligibilityValidator, counters: EngineCounters,
    ) -> None:
        counters.total_active_proposals = 3
        counters.emergency_mode = True
        assert len(validator.ineligibility_reasons(1)) == 3
