"""State store — JSON snapshot of every engine store.

Persists, in one document:
- submissions and their metric snapshots
- evaluator records
- engine counters
- custody balances
- current height

Writes go to a temporary file that atomically replaces the target, so
a crash mid-write never leaves a half-written snapshot.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict
from pathlib import Path
from typing import Any, Optional

from agora.custody.ledger import CustodySnapshot
from agora.models.counters import EngineCounters
from agora.models.proposal import (
    Evaluator,
    ProposalMetrics,
    ProposalStatus,
    Submission,
)

logger = logging.getLogger(__name__)

FORMAT_VERSION = 1


class StateStore:
    """File-backed engine snapshot."""

    def __init__(self, storage_path: Path) -> None:
        self._storage_path = Path(storage_path)
        self._data: dict[str, Any] = {}
        if self._storage_path.exists():
            with self._storage_path.open("r", encoding="utf-8") as f:
                self._data = json.load(f)
            version = self._data.get("format_version")
            if version != FORMAT_VERSION:
                raise ValueError(
                    f"Unsupported state format version {version!r} "
                    f"in {self._storage_path} (expected {FORMAT_VERSION})"
                )
            logger.debug("Loaded engine state from %s", self._storage_path)

    @property
    def storage_path(self) -> Path:
        return self._storage_path

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load_submissions(self) -> list[tuple[Submission, ProposalMetrics]]:
        result: list[tuple[Submission, ProposalMetrics]] = []
        metrics_by_id = {
            int(m["proposal_id"]): ProposalMetrics(**m)
            for m in self._data.get("metrics", [])
        }
        for raw in self._data.get("submissions", []):
            fields = dict(raw)
            fields["status"] = ProposalStatus(fields["status"])
            submission = Submission(**fields)
            metrics = metrics_by_id.get(submission.proposal_id)
            if metrics is None:
                raise ValueError(
                    f"State file has no metrics for proposal {submission.proposal_id}"
                )
            result.append((submission, metrics))
        return result

    def load_evaluators(self) -> list[Evaluator]:
        return [Evaluator(**raw) for raw in self._data.get("evaluators", [])]

    def load_counters(self) -> Optional[EngineCounters]:
        raw = self._data.get("counters")
        return EngineCounters(**raw) if raw is not None else None

    def load_custody(self) -> Optional[CustodySnapshot]:
        raw = self._data.get("custody")
        if raw is None:
            return None
        return CustodySnapshot(
            balances={k: int(v) for k, v in raw["balances"].items()},
            custody_balance=int(raw["custody_balance"]),
        )

    def load_height(self) -> int:
        return int(self._data.get("height", 0))

    # ------------------------------------------------------------------
    # Saving
    # ------------------------------------------------------------------

    def save(
        self,
        submissions: list[Submission],
        metrics: list[ProposalMetrics],
        evaluators: list[Evaluator],
        counters: EngineCounters,
        custody: Optional[CustodySnapshot],
        height: int,
    ) -> None:
        """Write a complete snapshot. Raises OSError on write failure."""
        data: dict[str, Any] = {
            "format_version": FORMAT_VERSION,
            "submissions": [
                {**asdict(s), "status": s.status.value} for s in submissions
            ],
            "metrics": [asdict(m) for m in metrics],
            "evaluators": [asdict(e) for e in evaluators],
            "counters": asdict(counters),
            "custody": (
                {"balances": custody.balances, "custody_balance": custody.custody_balance}
                if custody is not None else None
            ),
            "height": height,
        }
        self._storage_path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._storage_path.with_suffix(self._storage_path.suffix + ".tmp")
        with tmp_path.open("w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, sort_keys=True)
        os.replace(tmp_path, self._storage_path)
        self._data = data
