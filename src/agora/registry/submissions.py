"""Submission registry — store of submissions and their metric snapshots.

Every submission is created together with its ProposalMetrics record;
one never exists without the other. Ids are supplied by the caller
(the engine counters) and must be strictly greater than every id
already stored.

Thread-safety: this class is not thread-safe. The caller must
synchronise access if used from multiple threads.
"""

from __future__ import annotations

from typing import Optional

from agora.models.proposal import ProposalMetrics, ProposalStatus, Submission


def _is_proposal_id(value: object) -> bool:
    # bool is an int subclass and True would alias proposal 1
    return isinstance(value, int) and not isinstance(value, bool)


class SubmissionRegistry:
    """In-memory submission and metrics store keyed by proposal id."""

    def __init__(self) -> None:
        self._submissions: dict[int, Submission] = {}
        self._metrics: dict[int, ProposalMetrics] = {}

    def create(self, submission: Submission, metrics: ProposalMetrics) -> None:
        """Store a new submission with its metrics.

        Raises ValueError if:
        - the id is already present or not above the highest stored id
        - the metrics belong to a different id
        - the submission does not start in SUBMITTED
        """
        pid = submission.proposal_id
        if pid in self._submissions:
            raise ValueError(f"Proposal ID already exists: {pid}")
        if self._submissions and pid <= max(self._submissions):
            raise ValueError(
                f"Proposal IDs must be strictly increasing: {pid} <= {max(self._submissions)}"
            )
        if metrics.proposal_id != pid:
            raise ValueError(
                f"Metrics proposal_id {metrics.proposal_id} does not match {pid}"
            )
        if submission.status != ProposalStatus.SUBMITTED:
            raise ValueError(
                f"New proposal {pid} must start in {ProposalStatus.SUBMITTED.value}, "
                f"got {submission.status.value}"
            )
        self._submissions[pid] = submission
        self._metrics[pid] = metrics

    def restore(self, submission: Submission, metrics: ProposalMetrics) -> None:
        """Load a persisted submission in any status.

        Raises ValueError if the id is already present or the metrics
        belong to a different id.
        """
        pid = submission.proposal_id
        if pid in self._submissions:
            raise ValueError(f"Proposal ID already exists: {pid}")
        if metrics.proposal_id != pid:
            raise ValueError(
                f"Metrics proposal_id {metrics.proposal_id} does not match {pid}"
            )
        self._submissions[pid] = submission
        self._metrics[pid] = metrics

    def remove(self, proposal_id: int) -> None:
        """Drop a submission and its metrics. Used for rollback only."""
        self._submissions.pop(proposal_id, None)
        self._metrics.pop(proposal_id, None)

    def get(self, proposal_id: int) -> Optional[Submission]:
        if not _is_proposal_id(proposal_id):
            return None
        return self._submissions.get(proposal_id)

    def get_metrics(self, proposal_id: int) -> Optional[ProposalMetrics]:
        if not _is_proposal_id(proposal_id):
            return None
        return self._metrics.get(proposal_id)

    def exists(self, proposal_id: int) -> bool:
        return self.get(proposal_id) is not None

    def all_submissions(self, status: Optional[ProposalStatus] = None) -> list[Submission]:
        """Return submissions in id order, optionally filtered by status."""
        ordered = [self._submissions[k] for k in sorted(self._submissions)]
        if status is None:
            return ordered
        return [s for s in ordered if s.status == status]

    def all_metrics(self) -> list[ProposalMetrics]:
        return [self._metrics[k] for k in sorted(self._metrics)]

    def count_by_status(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for s in self._submissions.values():
            counts[s.status.value] = counts.get(s.status.value, 0) + 1
        return counts

    @property
    def count(self) -> int:
        return len(self._submissions)
