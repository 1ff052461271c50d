"""Proposal state machine — enforces the submission lifecycle.

    SUBMITTED → QUALIFIED   (community_score >= min_community_score)
    SUBMITTED → FILTERED    (otherwise)

QUALIFIED and FILTERED are terminal. Transitions are fail-closed: any
transition not listed below is rejected, so a finalized submission can
never be re-classified.

Pure computation: validates and applies status changes only. Score
writes, counters and audit events are handled by the service layer.
"""

from __future__ import annotations

from agora.models.proposal import ProposalStatus, Submission
from agora.policy.resolver import PolicyResolver


_TRANSITIONS: dict[ProposalStatus, set[ProposalStatus]] = {
    ProposalStatus.SUBMITTED: {ProposalStatus.QUALIFIED, ProposalStatus.FILTERED},
    # Terminal states: no outgoing transitions
    ProposalStatus.QUALIFIED: set(),
    ProposalStatus.FILTERED: set(),
}


class TransitionError(Exception):
    """Raised when a status transition is not allowed."""


class ProposalStateMachine:
    """Classifies evaluated submissions and guards status transitions."""

    def __init__(self, resolver: PolicyResolver) -> None:
        self._min_community_score = resolver.min_community_score()

    @property
    def min_community_score(self) -> int:
        return self._min_community_score

    def classify(self, community_score: int) -> ProposalStatus:
        """Terminal status for a community score.

        Only the community dimension decides qualification; a high
        composite does not rescue a low community score.
        """
        if community_score >= self._min_community_score:
            return ProposalStatus.QUALIFIED
        return ProposalStatus.FILTERED

    @staticmethod
    def validate_transition(
        submission: Submission,
        target: ProposalStatus,
    ) -> list[str]:
        """Check if a transition is valid. Returns errors (empty = OK)."""
        current = submission.status
        allowed = _TRANSITIONS.get(current, set())
        if target not in allowed:
            allowed_str = ", ".join(s.value for s in sorted(allowed, key=lambda x: x.value))
            return [
                f"Invalid proposal transition for {submission.proposal_id}: "
                f"{current.value} → {target.value}. "
                f"Allowed from {current.value}: [{allowed_str}]"
            ]
        return []

    @classmethod
    def apply_transition(
        cls,
        submission: Submission,
        target: ProposalStatus,
    ) -> None:
        """Validate and apply a transition. Raises TransitionError if invalid."""
        errors = cls.validate_transition(submission, target)
        if errors:
            raise TransitionError(errors[0])
        submission.status = target

    @staticmethod
    def is_terminal(status: ProposalStatus) -> bool:
        return status in (ProposalStatus.QUALIFIED, ProposalStatus.FILTERED)

    @staticmethod
    def valid_transitions(status: ProposalStatus) -> set[ProposalStatus]:
        return set(_TRANSITIONS.get(status, set()))
