"""Process-wide engine counters.

Owned by a single ProposalService instance and persisted with the rest
of its state. Never module-level globals.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class EngineCounters:
    """Monotonic counters and the emergency switch.

    - next_proposal_id starts at 1 and increases by exactly one per
      successful intake. Ids are never reused.
    - governance_cycle_count increases by one per cycle advance.
    - total_active_proposals increases on intake. No engine operation
      decrements it.
    - emergency_mode blocks intake while True.
    """
    next_proposal_id: int = 1
    governance_cycle_count: int = 0
    total_active_proposals: int = 0
    emergency_mode: bool = False

    def allocate_proposal_id(self) -> int:
        """Return the id for the next submission and advance the counter."""
        proposal_id = self.next_proposal_id
        self.next_proposal_id += 1
        self.total_active_proposals += 1
        return proposal_id

    def advance_cycle(self) -> int:
        self.governance_cycle_count += 1
        return self.governance_cycle_count
