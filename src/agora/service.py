"""Agora service — unified facade for the proposal evaluation engine.

This is the primary interface for programmatic access to Agora.
It orchestrates all subsystems:
- Evaluator authorization (owner-only)
- Proposal intake (eligibility gate, stake custody, registry, counters)
- Proposal evaluation (authorization, expiry, score bounds, scoring,
  classification, evaluator statistics)
- Custody deposits, height advance, cycle advance and emergency mode
- Persistence (state store, then hash-chained audit log; a failed
  write undoes the operation)

Every public operation runs under one lock covering all stores, and
completes every validation step before mutating anything. Domain
failures are returned as ServiceResult with an ErrorKind; they never
leave partial state behind.
"""

from __future__ import annotations

import enum
import logging
import threading
from dataclasses import asdict, dataclass, field
from typing import Any, Callable, Optional

from agora.custody.ledger import CustodyLedger, StakeCustody, TransferError
from agora.engine.eligibility import EligibilityValidator
from agora.engine.expiry import ExpiryChecker, HeightClock
from agora.engine.scorer import CompositeScorer
from agora.engine.state_machine import ProposalStateMachine
from agora.models.counters import EngineCounters
from agora.models.proposal import (
    Evaluator,
    ProposalMetrics,
    ProposalStatus,
    Submission,
)
from agora.persistence.event_log import EventKind, EventLog, EventLogError
from agora.persistence.state_store import StateStore
from agora.policy.resolver import PolicyResolver
from agora.registry.submissions import SubmissionRegistry
from agora.review.roster import EvaluatorRegistry, UnauthorizedError

logger = logging.getLogger(__name__)


class ErrorKind(str, enum.Enum):
    """Why an operation did not take effect."""
    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not_found"
    INVALID_SCORE = "invalid_score"
    EXPIRED = "expired"
    INSUFFICIENT_STAKE = "insufficient_stake"
    TRANSFER_FAILED = "transfer_failed"
    ALREADY_FINALIZED = "already_finalized"
    INVALID_INPUT = "invalid_input"
    PERSISTENCE = "persistence"


@dataclass(frozen=True)
class ServiceResult:
    """Result of a service operation."""
    success: bool
    errors: list[str] = field(default_factory=list)
    data: dict[str, Any] = field(default_factory=dict)
    error_kind: Optional[ErrorKind] = None


def _fail(kind: ErrorKind, *errors: str) -> ServiceResult:
    return ServiceResult(success=False, errors=list(errors), error_kind=kind)


class ProposalService:
    """Proposal evaluation engine facade.

    Usage:
        resolver = PolicyResolver.from_config_dir(config_dir)
        service = ProposalService(resolver)

        service.deposit("alice", 1_000_000)
        service.authorize_evaluator("owner", "eve", ["defi"])
        result = service.submit_proposal("alice", "Upgrade X", "infra", 1_000_000)
        result = service.evaluate_proposal("eve", result.data["proposal_id"], 75, 80, 60)
        result.data["composite_score"]  # 72

    Persistence (optional):
        service = ProposalService(resolver, event_log=log, state_store=store)
        # Each mutation is written to the state store, then to the audit
        # log. If either write fails the mutation is undone and the
        # operation fails with ErrorKind.PERSISTENCE. On construction the
        # stored state is loaded and reconciled against the log.
    """

    def __init__(
        self,
        resolver: PolicyResolver,
        custody: Optional[StakeCustody] = None,
        clock: Optional[HeightClock] = None,
        event_log: Optional[EventLog] = None,
        state_store: Optional[StateStore] = None,
    ) -> None:
        self._resolver = resolver
        self._limits = resolver.text_limits()
        self._custody: StakeCustody = custody if custody is not None else CustodyLedger()
        self._event_log = event_log
        self._state_store = state_store
        self._lock = threading.RLock()

        self._submissions = SubmissionRegistry()
        self._evaluators = EvaluatorRegistry(resolver)
        self._counters = EngineCounters()

        if state_store is not None:
            self._load_state(state_store)
            if clock is None:
                clock = HeightClock(state_store.load_height())
        self._clock = clock if clock is not None else HeightClock()

        if state_store is not None and event_log is not None:
            drift = event_log.reconcile(
                self._submissions.all_submissions(), self._counters, self._clock.current(),
            )
            if drift:
                raise EventLogError(
                    f"State in {state_store.storage_path} disagrees with the audit log: "
                    + "; ".join(drift)
                )

        self._eligibility = EligibilityValidator(resolver, self._counters)
        self._expiry = ExpiryChecker(resolver, self._submissions, self._clock)
        self._scorer = CompositeScorer(resolver)
        self._state_machine = ProposalStateMachine(resolver)

        self._persistence_degraded = False

    # ------------------------------------------------------------------
    # Evaluator management
    # ------------------------------------------------------------------

    def authorize_evaluator(
        self,
        caller: str,
        evaluator_id: str,
        expertise: Optional[list[str]] = None,
    ) -> ServiceResult:
        """Authorize (or re-authorize, resetting statistics) an evaluator."""
        with self._lock:
            previous = self._evaluators.get(evaluator_id)
            try:
                entry = self._evaluators.authorize(caller, evaluator_id, expertise)
            except UnauthorizedError as e:
                return _fail(ErrorKind.UNAUTHORIZED, str(e))
            except ValueError as e:
                return _fail(ErrorKind.INVALID_INPUT, str(e))

            def _rollback() -> None:
                if previous is not None:
                    self._evaluators.restore(previous)
                else:
                    self._evaluators.discard(entry.evaluator_id)

            result = self._commit(
                EventKind.EVALUATOR_AUTHORIZED,
                caller,
                {
                    "evaluator_id": entry.evaluator_id,
                    "expertise_areas": list(entry.expertise_areas),
                    "reauthorized": previous is not None,
                },
                on_rollback=_rollback,
                data={"evaluator_id": entry.evaluator_id},
            )
            if result.success:
                logger.info("Evaluator authorized: %s", entry.evaluator_id)
            return result

    def get_evaluator(self, evaluator_id: str) -> Optional[Evaluator]:
        with self._lock:
            return self._evaluators.get(evaluator_id)

    def is_authorized_evaluator(self, evaluator_id: str) -> bool:
        with self._lock:
            return self._evaluators.is_authorized(evaluator_id)

    # ------------------------------------------------------------------
    # Custody
    # ------------------------------------------------------------------

    def deposit(self, account: str, amount: int) -> ServiceResult:
        """Credit an account in the engine's own custody ledger."""
        with self._lock:
            if not isinstance(self._custody, CustodyLedger):
                return _fail(
                    ErrorKind.INVALID_INPUT,
                    "Deposits are only accepted by the built-in custody ledger",
                )
            before = self._custody.snapshot()
            try:
                balance = self._custody.deposit(account, amount)
            except ValueError as e:
                return _fail(ErrorKind.INVALID_INPUT, str(e))

            ledger = self._custody

            def _rollback() -> None:
                ledger.restore(before)

            return self._commit(
                EventKind.STAKE_DEPOSITED,
                account,
                {"account": account.strip(), "amount": amount, "balance": balance},
                on_rollback=_rollback,
                data={"account": account.strip(), "balance": balance},
            )

    # ------------------------------------------------------------------
    # Intake
    # ------------------------------------------------------------------

    def submit_proposal(
        self,
        caller: str,
        title: str,
        category: str,
        stake_amount: int,
    ) -> ServiceResult:
        """Stake and register a new proposal in SUBMITTED state.

        Order: input bounds → eligibility → custody transfer → records →
        counters → durable commit. Nothing is written unless the
        transfer succeeded, and a failed commit refunds the stake.
        """
        with self._lock:
            creator = caller.strip()
            input_errors = self._validate_intake(creator, title, category, stake_amount)
            if input_errors:
                return _fail(ErrorKind.INVALID_INPUT, *input_errors)

            reasons = self._eligibility.ineligibility_reasons(stake_amount)
            if reasons:
                return _fail(ErrorKind.INSUFFICIENT_STAKE, *reasons)

            try:
                self._custody.transfer(stake_amount, creator)
            except TransferError as e:
                logger.warning("Stake transfer failed for %s: %s", creator, e)
                return _fail(ErrorKind.TRANSFER_FAILED, f"Stake transfer failed: {e}")

            previous_counters = EngineCounters(**asdict(self._counters))
            proposal_id = self._counters.allocate_proposal_id()
            submission = Submission(
                proposal_id=proposal_id,
                creator=creator,
                title=title,
                category=category,
                stake_amount=stake_amount,
                submission_height=self._clock.current(),
            )
            metrics = ProposalMetrics(
                proposal_id=proposal_id, **self._resolver.metric_defaults()
            )
            self._submissions.create(submission, metrics)

            def _rollback() -> None:
                self._submissions.remove(proposal_id)
                self._restore_counters(previous_counters)
                self._custody.refund(stake_amount, creator)

            result = self._commit(
                EventKind.PROPOSAL_SUBMITTED,
                creator,
                {
                    "proposal_id": proposal_id,
                    "title": title,
                    "category": category,
                    "stake_amount": stake_amount,
                    "submission_height": submission.submission_height,
                },
                on_rollback=_rollback,
                data={
                    "proposal_id": proposal_id,
                    "submission_height": submission.submission_height,
                },
            )
            if result.success:
                logger.info(
                    "Proposal %d submitted by %s (stake %d, height %d)",
                    proposal_id, creator, stake_amount, submission.submission_height,
                )
            return result

    def is_eligible(self, stake_amount: int) -> bool:
        with self._lock:
            return self._eligibility.is_eligible(stake_amount)

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def evaluate_proposal(
        self,
        caller: str,
        proposal_id: int,
        community_score: int,
        technical_score: int,
        financial_score: int,
    ) -> ServiceResult:
        """Score a submission and move it to QUALIFIED or FILTERED."""
        with self._lock:
            evaluator_id = caller.strip()
            if not self._evaluators.is_authorized(evaluator_id):
                return _fail(
                    ErrorKind.UNAUTHORIZED,
                    f"Not an authorized evaluator: {caller}",
                )

            submission = self._submissions.get(proposal_id)
            if submission is None:
                return _fail(ErrorKind.NOT_FOUND, f"Proposal not found: {proposal_id!r}")

            if self._expiry.is_expired(proposal_id):
                return _fail(
                    ErrorKind.EXPIRED,
                    f"Proposal {proposal_id} expired at height "
                    f"{self._expiry.expires_at(proposal_id)} "
                    f"(current {self._clock.current()})",
                )

            score_errors = self._scorer.validate(
                community_score, technical_score, financial_score,
            )
            if score_errors:
                return _fail(ErrorKind.INVALID_SCORE, *score_errors)

            target = self._state_machine.classify(community_score)
            transition_errors = self._state_machine.validate_transition(submission, target)
            if transition_errors:
                return _fail(ErrorKind.ALREADY_FINALIZED, *transition_errors)

            composite = self._scorer.score(
                community_score, technical_score, financial_score,
            )

            previous = Submission(**asdict(submission))
            previous_evaluator = Evaluator(**asdict(self._evaluators.get(evaluator_id)))

            submission.community_score = community_score
            submission.technical_score = technical_score
            submission.financial_score = financial_score
            submission.composite_score = composite
            submission.evaluated_by = evaluator_id
            self._state_machine.apply_transition(submission, target)
            self._evaluators.record_evaluation(evaluator_id)

            def _rollback() -> None:
                for name, value in asdict(previous).items():
                    setattr(submission, name, value)
                self._evaluators.restore(previous_evaluator)

            result = self._commit(
                EventKind.PROPOSAL_EVALUATED,
                evaluator_id,
                {
                    "proposal_id": proposal_id,
                    "community_score": community_score,
                    "technical_score": technical_score,
                    "financial_score": financial_score,
                    "composite_score": composite,
                    "status": target.value,
                },
                on_rollback=_rollback,
                data={
                    "proposal_id": proposal_id,
                    "composite_score": composite,
                    "status": target.value,
                },
            )
            if result.success:
                logger.info(
                    "Proposal %d evaluated by %s: composite %d, %s",
                    proposal_id, evaluator_id, composite, target.value,
                )
            return result

    def is_expired(self, proposal_id: int) -> bool:
        with self._lock:
            return self._expiry.is_expired(proposal_id)

    # ------------------------------------------------------------------
    # Height, cycle and owner controls
    # ------------------------------------------------------------------

    def advance_height(self, blocks: int = 1, caller: str = "system") -> ServiceResult:
        """Move the height clock forward by blocks.

        The clock only moves once the new height is durable.
        """
        with self._lock:
            if isinstance(blocks, bool) or not isinstance(blocks, int) or blocks < 0:
                return _fail(
                    ErrorKind.INVALID_INPUT,
                    f"Height cannot move backwards or by a non-integer (blocks={blocks!r})",
                )
            start = self._clock.current()
            target = start + blocks
            result = self._commit(
                EventKind.HEIGHT_ADVANCED,
                caller,
                {"from_height": start, "to_height": target},
                data={"height": target},
                height=target,
            )
            if result.success:
                self._clock.advance(blocks)
            return result

    def advance_cycle(self, caller: str = "system") -> ServiceResult:
        """Increment the governance cycle counter.

        Ranking hook: no submission field is touched here. priority_rank
        stays at its unranked sentinel until a ranking pass exists.
        """
        with self._lock:
            previous = self._counters.governance_cycle_count
            cycle = self._counters.advance_cycle()

            def _rollback() -> None:
                self._counters.governance_cycle_count = previous

            result = self._commit(
                EventKind.CYCLE_ADVANCED,
                caller,
                {"governance_cycle": cycle},
                on_rollback=_rollback,
                data={"governance_cycle": cycle},
            )
            if result.success:
                logger.info("Governance cycle advanced to %d", cycle)
            return result

    def set_emergency_mode(self, caller: str, enabled: bool) -> ServiceResult:
        """Owner-only switch that suspends intake while on."""
        with self._lock:
            if caller.strip() != self._evaluators.owner_id:
                return _fail(
                    ErrorKind.UNAUTHORIZED,
                    f"Only the owner can change emergency mode (caller: {caller})",
                )
            previous = self._counters.emergency_mode
            self._counters.emergency_mode = bool(enabled)

            def _rollback() -> None:
                self._counters.emergency_mode = previous

            result = self._commit(
                EventKind.EMERGENCY_MODE_CHANGED,
                caller,
                {"emergency_mode": bool(enabled), "previous": previous},
                on_rollback=_rollback,
                data={"emergency_mode": bool(enabled)},
            )
            if result.success and enabled:
                logger.warning("Emergency mode enabled by %s; intake suspended", caller)
            elif result.success:
                logger.info("Emergency mode disabled by %s", caller)
            return result

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_proposal(self, proposal_id: int) -> Optional[Submission]:
        with self._lock:
            return self._submissions.get(proposal_id)

    def get_metrics(self, proposal_id: int) -> Optional[ProposalMetrics]:
        with self._lock:
            return self._submissions.get_metrics(proposal_id)

    def list_proposals(
        self, status: Optional[ProposalStatus] = None,
    ) -> list[Submission]:
        with self._lock:
            return self._submissions.all_submissions(status)

    def get_counters(self) -> EngineCounters:
        """Return a copy of the process-wide counters."""
        with self._lock:
            return EngineCounters(**asdict(self._counters))

    @property
    def current_height(self) -> int:
        with self._lock:
            return self._clock.current()

    def status(self) -> dict[str, Any]:
        """Return engine-wide status summary."""
        with self._lock:
            custody_total = (
                self._custody.custody_balance
                if isinstance(self._custody, CustodyLedger) else None
            )
            return {
                "version": self._resolver.version(),
                "height": self._clock.current(),
                "proposals": {
                    "total": self._submissions.count,
                    "by_status": self._submissions.count_by_status(),
                },
                "evaluators": {
                    "total": self._evaluators.count,
                    "authorized": self._evaluators.authorized_count,
                },
                "counters": asdict(self._counters),
                "custody_balance": custody_total,
                "audit_events": self._event_log.count if self._event_log is not None else None,
                "persistence_degraded": self._persistence_degraded,
            }

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _validate_intake(
        self, creator: str, title: str, category: str, stake_amount: int,
    ) -> list[str]:
        errors: list[str] = []
        if not creator:
            errors.append("Submitter identity cannot be blank")
        if not title or not title.strip():
            errors.append("Title cannot be blank")
        elif len(title) > self._limits.max_title_length:
            errors.append(
                f"Title exceeds {self._limits.max_title_length} characters "
                f"({len(title)})"
            )
        if not category or not category.strip():
            errors.append("Category cannot be blank")
        elif len(category) > self._limits.max_category_length:
            errors.append(
                f"Category exceeds {self._limits.max_category_length} characters "
                f"({len(category)})"
            )
        if isinstance(stake_amount, bool) or not isinstance(stake_amount, int):
            errors.append(f"Stake amount must be an integer, got {stake_amount!r}")
        elif stake_amount < 0:
            errors.append(f"Stake amount cannot be negative, got {stake_amount}")
        return errors

    def _restore_counters(self, snapshot: EngineCounters) -> None:
        # Mutate in place: the eligibility validator holds this object.
        for name, value in asdict(snapshot).items():
            setattr(self._counters, name, value)

    def _load_state(self, store: StateStore) -> None:
        for submission, metrics in store.load_submissions():
            self._submissions.restore(submission, metrics)
        for evaluator in store.load_evaluators():
            self._evaluators.restore(evaluator)
        counters = store.load_counters()
        if counters is not None:
            self._restore_counters(counters)
        snapshot = store.load_custody()
        if snapshot is not None and isinstance(self._custody, CustodyLedger):
            self._custody.restore(snapshot)

    def _commit(
        self,
        kind: EventKind,
        actor_id: str,
        payload: dict[str, Any],
        data: dict[str, Any],
        on_rollback: Optional[Callable[[], None]] = None,
        height: Optional[int] = None,
    ) -> ServiceResult:
        """Make an in-memory change durable: state store, then audit log.

        A failed state write undoes the change. A failed audit write
        undoes it too and writes the restored state back, so neither
        store keeps an operation the other lacks.
        """
        errors = self._safe_persist(on_rollback=on_rollback, height=height)
        if errors:
            return _fail(ErrorKind.PERSISTENCE, *errors)

        err = self._record_event(kind, actor_id, payload, height)
        if err:
            errors = [err, *self._run_rollback(on_rollback)]
            try:
                self._persist_state()
            except OSError as e:
                self._persistence_degraded = True
                logger.error("Could not restore state store after audit failure: %s", e)
                errors.append(f"State store still holds the unaudited change: {e}")
            return _fail(ErrorKind.PERSISTENCE, *errors)

        return ServiceResult(success=True, data=data)

    def _safe_persist(
        self,
        on_rollback: Optional[Callable[[], None]] = None,
        height: Optional[int] = None,
    ) -> list[str]:
        """Persist state with fail-closed error handling.

        On failure the rollback callback undoes the in-memory mutation
        and the returned list explains why. Empty = persisted.
        """
        try:
            self._persist_state(height)
            return []
        except OSError as e:
            logger.error("State store write failed: %s", e)
            return [f"Persistence failure: {e}", *self._run_rollback(on_rollback)]

    def _run_rollback(self, on_rollback: Optional[Callable[[], None]]) -> list[str]:
        """Undo an in-memory mutation. Returns errors if it could not."""
        if on_rollback is None:
            return []
        try:
            on_rollback()
        except TransferError as e:
            self._persistence_degraded = True
            logger.exception("Rollback could not return stake from custody")
            return [f"Stake refund failed, amount remains in custody: {e}"]
        return []

    def _record_event(
        self,
        kind: EventKind,
        actor_id: str,
        payload: dict[str, Any],
        height: Optional[int] = None,
    ) -> Optional[str]:
        """Chain an audit event. Returns an error string or None."""
        if self._event_log is None:
            return None
        try:
            self._event_log.record(
                kind,
                actor_id.strip() or "system",
                payload,
                height=self._clock.current() if height is None else height,
            )
        except (ValueError, OSError) as e:
            logger.error("Event log failure for %s: %s", kind.value, e)
            return f"Event log failure: {e}"
        return None

    def _persist_state(self, height: Optional[int] = None) -> None:
        """Write the current state to the state store (if wired).

        Can raise OSError.
        """
        if self._state_store is None:
            return
        custody = (
            self._custody.snapshot() if isinstance(self._custody, CustodyLedger) else None
        )
        self._state_store.save(
            submissions=self._submissions.all_submissions(),
            metrics=self._submissions.all_metrics(),
            evaluators=self._evaluators.all_evaluators(),
            counters=self._counters,
            custody=custody,
            height=self._clock.current() if height is None else height,
        )
