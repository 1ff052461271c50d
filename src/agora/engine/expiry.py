"""Height clock and submission expiry.

Height is a monotonically increasing environment counter that measures
elapsed time. A submission stays evaluable for validity_period height
units after the height at which it was submitted:

    expired  ⇔  current_height - submission_height > validity_period

A submission that does not exist is treated as expired rather than
raising, so callers asking "can this still be evaluated?" get a safe
answer.
"""

from __future__ import annotations

from agora.policy.resolver import PolicyResolver
from agora.registry.submissions import SubmissionRegistry


class HeightClock:
    """Monotonic height source.

    The engine only reads current(). advance() is the environment's
    (or a test's) way to move time forward. Height never decreases.
    """

    def __init__(self, start: int = 0) -> None:
        if start < 0:
            raise ValueError(f"Height cannot be negative, got {start}")
        self._height = start

    def current(self) -> int:
        return self._height

    def advance(self, blocks: int = 1) -> int:
        """Move the clock forward. Returns the new height."""
        if blocks < 0:
            raise ValueError(f"Height cannot move backwards (blocks={blocks})")
        self._height += blocks
        return self._height


class ExpiryChecker:
    """Answers whether a submission's evaluation window has elapsed."""

    def __init__(
        self,
        resolver: PolicyResolver,
        registry: SubmissionRegistry,
        clock: HeightClock,
    ) -> None:
        self._validity_period = resolver.validity_period()
        self._registry = registry
        self._clock = clock

    @property
    def validity_period(self) -> int:
        return self._validity_period

    def is_expired(self, proposal_id: int) -> bool:
        submission = self._registry.get(proposal_id)
        if submission is None:
            return True
        elapsed = self._clock.current() - submission.submission_height
        return elapsed > self._validity_period

    def expires_at(self, proposal_id: int) -> int | None:
        """Last height at which the submission can still be evaluated."""
        submission = self._registry.get(proposal_id)
        if submission is None:
            return None
        return submission.submission_height + self._validity_period
