"""Audit log — a hash chain of every committed engine operation.

Each record carries a sequence number (1, 2, 3, ...), the height at
which the operation happened, a payload whose fields are fixed per
event kind, and the hash of the previous record. Reloading a JSONL log
re-walks the chain, so an edited, dropped, or reordered line is
detected.

The log also knows what the engine state must look like after its
events (reconcile), which lets a restarted service refuse a state file
that has drifted from the audit trail.
"""

from __future__ import annotations

import enum
import hashlib
import json
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Optional

from agora.models.counters import EngineCounters
from agora.models.proposal import Submission


class EventKind(str, enum.Enum):
    """Classification of engine events."""
    EVALUATOR_AUTHORIZED = "evaluator_authorized"
    PROPOSAL_SUBMITTED = "proposal_submitted"
    PROPOSAL_EVALUATED = "proposal_evaluated"
    CYCLE_ADVANCED = "cycle_advanced"
    EMERGENCY_MODE_CHANGED = "emergency_mode_changed"
    STAKE_DEPOSITED = "stake_deposited"
    HEIGHT_ADVANCED = "height_advanced"


PAYLOAD_FIELDS: dict[EventKind, frozenset[str]] = {
    EventKind.EVALUATOR_AUTHORIZED: frozenset(
        {"evaluator_id", "expertise_areas", "reauthorized"}
    ),
    EventKind.PROPOSAL_SUBMITTED: frozenset(
        {"proposal_id", "title", "category", "stake_amount", "submission_height"}
    ),
    EventKind.PROPOSAL_EVALUATED: frozenset({
        "proposal_id", "community_score", "technical_score",
        "financial_score", "composite_score", "status",
    }),
    EventKind.CYCLE_ADVANCED: frozenset({"governance_cycle"}),
    EventKind.EMERGENCY_MODE_CHANGED: frozenset({"emergency_mode", "previous"}),
    EventKind.STAKE_DEPOSITED: frozenset({"account", "amount", "balance"}),
    EventKind.HEIGHT_ADVANCED: frozenset({"from_height", "to_height"}),
}

CHAIN_ROOT = "sha256:" + "0" * 64


class EventLogError(ValueError):
    """Raised when a log fails its chain, sequence, or payload checks."""


def check_payload(kind: EventKind, payload: dict[str, Any]) -> list[str]:
    """Return payload schema errors for an event kind. Empty = valid."""
    expected = PAYLOAD_FIELDS[kind]
    errors: list[str] = []
    missing = expected - set(payload)
    extra = set(payload) - expected
    if missing:
        errors.append(f"{kind.value} payload missing {sorted(missing)}")
    if extra:
        errors.append(f"{kind.value} payload has unexpected {sorted(extra)}")
    return errors


@dataclass(frozen=True)
class EventRecord:
    """One link of the audit chain."""
    sequence: int
    event_kind: EventKind
    actor_id: str
    height: int
    payload: dict[str, Any]
    timestamp_utc: str
    previous_hash: str
    event_hash: str

    def body(self) -> dict[str, Any]:
        return {
            "sequence": self.sequence,
            "event_kind": self.event_kind.value,
            "actor_id": self.actor_id,
            "height": self.height,
            "payload": self.payload,
            "timestamp_utc": self.timestamp_utc,
            "previous_hash": self.previous_hash,
        }

    def computed_hash(self) -> str:
        canonical = json.dumps(self.body(), sort_keys=True, ensure_ascii=False)
        return f"sha256:{hashlib.sha256(canonical.encode('utf-8')).hexdigest()}"

    def to_line(self) -> str:
        return json.dumps(
            {**self.body(), "event_hash": self.event_hash},
            sort_keys=True,
            ensure_ascii=False,
        )

    @classmethod
    def from_line(cls, line: str) -> EventRecord:
        data = json.loads(line)
        return cls(
            sequence=data["sequence"],
            event_kind=EventKind(data["event_kind"]),
            actor_id=data["actor_id"],
            height=data["height"],
            payload=data["payload"],
            timestamp_utc=data["timestamp_utc"],
            previous_hash=data["previous_hash"],
            event_hash=data["event_hash"],
        )


@dataclass
class AuditSummary:
    """Engine state implied by replaying the log."""
    submitted_ids: list[int] = field(default_factory=list)
    final_status: dict[int, str] = field(default_factory=dict)
    governance_cycle: int = 0
    emergency_mode: bool = False
    max_height: int = 0


class EventLog:
    """Append-only, hash-chained audit log with optional JSONL storage.

    Usage:
        log = EventLog(storage_path=Path("data/events.jsonl"))
        log.record(EventKind.CYCLE_ADVANCED, "system", {"governance_cycle": 1}, height=10)
        log.reconcile(submissions, counters, height=10)  # [] when state agrees
    """

    def __init__(self, storage_path: Optional[Path] = None) -> None:
        self._events: list[EventRecord] = []
        self._storage_path = storage_path
        if storage_path and storage_path.exists():
            self._load(storage_path)

    def record(
        self,
        kind: EventKind,
        actor_id: str,
        payload: dict[str, Any],
        height: int,
        timestamp_utc: Optional[datetime] = None,
    ) -> EventRecord:
        """Chain a new event onto the log and return it.

        The file line is written before the in-memory chain moves, so
        an OSError leaves the log exactly as it was.
        """
        errors = check_payload(kind, payload)
        if errors:
            raise EventLogError("; ".join(errors))
        ts = (timestamp_utc or datetime.now(timezone.utc)).strftime("%Y-%m-%dT%H:%M:%SZ")
        unsigned = EventRecord(
            sequence=len(self._events) + 1,
            event_kind=kind,
            actor_id=actor_id,
            height=height,
            payload=dict(payload),
            timestamp_utc=ts,
            previous_hash=self.head_hash,
            event_hash="",
        )
        event = replace(unsigned, event_hash=unsigned.computed_hash())
        if self._storage_path:
            with self._storage_path.open("a", encoding="utf-8") as f:
                f.write(event.to_line() + "\n")
        self._events.append(event)
        return event

    def events(self, kind: Optional[EventKind] = None) -> list[EventRecord]:
        if kind is None:
            return list(self._events)
        return [e for e in self._events if e.event_kind == kind]

    def events_for_proposal(self, proposal_id: int) -> list[EventRecord]:
        return [e for e in self._events if e.payload.get("proposal_id") == proposal_id]

    @property
    def count(self) -> int:
        return len(self._events)

    @property
    def last_event(self) -> Optional[EventRecord]:
        return self._events[-1] if self._events else None

    @property
    def head_hash(self) -> str:
        return self._events[-1].event_hash if self._events else CHAIN_ROOT

    # ------------------------------------------------------------------
    # Replay
    # ------------------------------------------------------------------

    def summary(self) -> AuditSummary:
        """Fold the log into the state it implies."""
        result = AuditSummary()
        for event in self._events:
            result.max_height = max(result.max_height, event.height)
            p = event.payload
            if event.event_kind == EventKind.PROPOSAL_SUBMITTED:
                result.submitted_ids.append(p["proposal_id"])
            elif event.event_kind == EventKind.PROPOSAL_EVALUATED:
                result.final_status[p["proposal_id"]] = p["status"]
            elif event.event_kind == EventKind.CYCLE_ADVANCED:
                result.governance_cycle = p["governance_cycle"]
            elif event.event_kind == EventKind.EMERGENCY_MODE_CHANGED:
                result.emergency_mode = p["emergency_mode"]
            elif event.event_kind == EventKind.HEIGHT_ADVANCED:
                result.max_height = max(result.max_height, p["to_height"])
        return result

    def reconcile(
        self,
        submissions: Iterable[Submission],
        counters: EngineCounters,
        height: int,
    ) -> list[str]:
        """Compare stored engine state with the log. Empty = consistent."""
        summary = self.summary()
        errors: list[str] = []

        by_id = {s.proposal_id: s for s in submissions}
        if sorted(by_id) != sorted(summary.submitted_ids):
            errors.append(
                f"proposal ids differ: state {sorted(by_id)}, "
                f"log {sorted(summary.submitted_ids)}"
            )
        for pid, submission in by_id.items():
            logged = summary.final_status.get(pid, "submitted")
            if submission.status.value != logged:
                errors.append(
                    f"proposal {pid} is {submission.status.value} in state "
                    f"but {logged} in log"
                )

        expected_next = max(summary.submitted_ids, default=0) + 1
        if counters.next_proposal_id != expected_next:
            errors.append(
                f"next_proposal_id is {counters.next_proposal_id}, log implies {expected_next}"
            )
        if counters.total_active_proposals != len(summary.submitted_ids):
            errors.append(
                f"total_active_proposals is {counters.total_active_proposals}, "
                f"log implies {len(summary.submitted_ids)}"
            )
        if counters.governance_cycle_count != summary.governance_cycle:
            errors.append(
                f"governance_cycle_count is {counters.governance_cycle_count}, "
                f"log implies {summary.governance_cycle}"
            )
        if counters.emergency_mode != summary.emergency_mode:
            errors.append(
                f"emergency_mode is {counters.emergency_mode}, "
                f"log implies {summary.emergency_mode}"
            )
        if height < summary.max_height:
            errors.append(f"height {height} is behind logged height {summary.max_height}")
        return errors

    def _load(self, path: Path) -> None:
        """Rebuild the chain from disk, failing closed on any break."""
        with path.open("r", encoding="utf-8") as f:
            for line_num, line in enumerate(f, 1):
                line = line.strip()
                if not line:
                    continue
                event = EventRecord.from_line(line)
                if event.sequence != len(self._events) + 1:
                    raise EventLogError(
                        f"Sequence gap (line {line_num}): expected "
                        f"{len(self._events) + 1}, found {event.sequence}"
                    )
                if event.previous_hash != self.head_hash:
                    raise EventLogError(
                        f"Broken chain (line {line_num}): event {event.sequence} "
                        f"does not follow {self.head_hash}"
                    )
                if event.event_hash != event.computed_hash():
                    raise EventLogError(
                        f"Integrity check failed (line {line_num}): event {event.sequence}"
                    )
                errors = check_payload(event.event_kind, event.payload)
                if errors:
                    raise EventLogError(f"Line {line_num}: {'; '.join(errors)}")
                self._events.append(event)
