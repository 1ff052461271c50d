"""Proposal, metrics, and evaluator data models.

A submission moves through a one-way lifecycle:
    SUBMITTED → QUALIFIED   (community score at or above the threshold)
    SUBMITTED → FILTERED    (community score below the threshold)

QUALIFIED and FILTERED are terminal. Scores, title, category, stake and
submission height are fixed once written; only the evaluation event
writes the three score fields and the status.

Reserved fields (priority_rank, total_votes, ProposalMetrics,
accuracy_rating) are carried in the schema but never revised by any
engine operation. They are extension points for ranking, voting and
accuracy tracking subsystems.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Optional


class ProposalStatus(str, enum.Enum):
    """Lifecycle state of a submission."""
    SUBMITTED = "submitted"
    QUALIFIED = "qualified"
    FILTERED = "filtered"


@dataclass
class Submission:
    """A staked proposal held by the engine.

    Invariants:
    - proposal_id, creator, title, category, stake_amount and
      submission_height never change after creation.
    - Scores are integers in [0, 100].
    - priority_rank is None until a ranking pass assigns one.
    """
    proposal_id: int
    creator: str
    title: str
    category: str
    stake_amount: int
    submission_height: int
    status: ProposalStatus = ProposalStatus.SUBMITTED
    community_score: int = 0
    technical_score: int = 0
    financial_score: int = 0
    composite_score: Optional[int] = None
    priority_rank: Optional[int] = None
    total_votes: int = 0
    evaluated_by: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in (ProposalStatus.QUALIFIED, ProposalStatus.FILTERED)


@dataclass(frozen=True)
class ProposalMetrics:
    """Auxiliary metric snapshot written once alongside each submission.

    The values are seeded from policy defaults and are not read by the
    composite scorer.
    """
    proposal_id: int
    complexity_score: int = 50
    implementation_cost: int = 0
    risk_assessment: int = 50
    timeline_estimate: int = 0
    resource_requirements: int = 0
    stakeholder_impact: int = 50
    innovation_factor: int = 50
    sustainability_score: int = 50


@dataclass
class Evaluator:
    """An identity allowed to score submissions.

    evaluation_count is incremented once per successful evaluation.
    accuracy_rating starts at 100 and is not revised by the engine.
    """
    evaluator_id: str
    authorized: bool = True
    expertise_areas: list[str] = field(default_factory=list)
    evaluation_count: int = 0
    accuracy_rating: int = 100
