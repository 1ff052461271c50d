"""Evaluator registry — who may score submissions.

The registry is the source of truth for evaluator authorization and
per-evaluator statistics.

Rules:
- Only the configured owner identity can authorize evaluators.
- Authorizing an identity (re)creates its record: authorized=True,
  the supplied expertise, evaluation_count=0, accuracy_rating=100.
  Re-authorizing resets statistics; it does not accumulate.
- There is no revocation operation.
- evaluation_count grows by one per successful evaluation.
"""

from __future__ import annotations

from typing import Optional

from agora.models.proposal import Evaluator
from agora.policy.resolver import PolicyResolver


class UnauthorizedError(Exception):
    """Raised when a caller lacks the role an operation requires."""


class EvaluatorRegistry:
    """Registry of authorized evaluators.

    Thread-safety: this class is not thread-safe. The caller must
    synchronise access if used from multiple threads.
    """

    def __init__(self, resolver: PolicyResolver) -> None:
        self._owner_id = resolver.owner_id().strip()
        self._limits = resolver.text_limits()
        self._evaluators: dict[str, Evaluator] = {}

    @property
    def owner_id(self) -> str:
        return self._owner_id

    def authorize(
        self,
        caller: str,
        evaluator_id: str,
        expertise: list[str] | None = None,
    ) -> Evaluator:
        """Create or overwrite an evaluator record.

        Raises UnauthorizedError if caller is not the owner.
        Raises ValueError if:
        - evaluator_id is blank
        - more expertise tags than allowed, or a tag is blank or too long
        """
        if caller.strip() != self._owner_id:
            raise UnauthorizedError(
                f"Only the owner can authorize evaluators (caller: {caller})"
            )
        canonical = evaluator_id.strip()
        if not canonical:
            raise ValueError("Cannot authorize evaluator with blank ID")

        tags = [t.strip() for t in (expertise or [])]
        if len(tags) > self._limits.max_expertise_areas:
            raise ValueError(
                f"At most {self._limits.max_expertise_areas} expertise areas allowed, "
                f"got {len(tags)}"
            )
        for tag in tags:
            if not tag:
                raise ValueError("Expertise areas cannot be blank")
            if len(tag) > self._limits.max_expertise_length:
                raise ValueError(
                    f"Expertise area exceeds {self._limits.max_expertise_length} "
                    f"characters: {tag[:20]}..."
                )

        entry = Evaluator(
            evaluator_id=canonical,
            authorized=True,
            expertise_areas=tags,
            evaluation_count=0,
            accuracy_rating=100,
        )
        self._evaluators[canonical] = entry
        return entry

    def restore(self, entry: Evaluator) -> None:
        """Put a record back as-is. Used when loading or rolling back."""
        self._evaluators[entry.evaluator_id] = entry

    def discard(self, evaluator_id: str) -> None:
        """Remove a record. Used for rollback only."""
        self._evaluators.pop(evaluator_id.strip(), None)

    def is_authorized(self, evaluator_id: str) -> bool:
        entry = self._evaluators.get(evaluator_id.strip())
        return entry is not None and entry.authorized

    def record_evaluation(self, evaluator_id: str) -> int:
        """Increment an authorized evaluator's count. Returns the new count.

        Raises UnauthorizedError if the identity is not an authorized evaluator.
        """
        entry = self._evaluators.get(evaluator_id.strip())
        if entry is None or not entry.authorized:
            raise UnauthorizedError(f"Not an authorized evaluator: {evaluator_id}")
        entry.evaluation_count += 1
        return entry.evaluation_count

    def get(self, evaluator_id: str) -> Optional[Evaluator]:
        return self._evaluators.get(evaluator_id.strip())

    def all_evaluators(self) -> list[Evaluator]:
        return list(self._evaluators.values())

    @property
    def count(self) -> int:
        return len(self._evaluators)

    @property
    def authorized_count(self) -> int:
        return sum(1 for e in self._evaluators.values() if e.authorized)
