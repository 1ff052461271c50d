"""Eligibility validator — the gate checked before intake.

A stake is eligible only if all hold:
1. stake >= min_stake
2. total_active_proposals < max_proposals_per_cycle
3. emergency mode is off

Pure predicate over the counters and the proposed stake. Nothing is
mutated; callers branch on the result.
"""

from __future__ import annotations

from agora.models.counters import EngineCounters
from agora.policy.resolver import PolicyResolver


class EligibilityValidator:
    """Evaluates the intake gate against live engine counters."""

    def __init__(self, resolver: PolicyResolver, counters: EngineCounters) -> None:
        self._policy = resolver.stake_policy()
        self._counters = counters

    def is_eligible(self, stake: int) -> bool:
        return not self.ineligibility_reasons(stake)

    def ineligibility_reasons(self, stake: int) -> list[str]:
        """Return every failed gate condition. Empty list means eligible."""
        reasons: list[str] = []
        if stake < self._policy.min_stake:
            reasons.append(
                f"Stake {stake} is below minimum {self._policy.min_stake}"
            )
        if self._counters.total_active_proposals >= self._policy.max_proposals_per_cycle:
            reasons.append(
                f"Active proposal capacity reached "
                f"({self._counters.total_active_proposals}/"
                f"{self._policy.max_proposals_per_cycle})"
            )
        if self._counters.emergency_mode:
            reasons.append("Emergency mode is active; intake is suspended")
        return reasons
