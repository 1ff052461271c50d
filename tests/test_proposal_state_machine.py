"""Tests for the proposal state machine — classification and terminal states."""

import pytest

from agora.engine.state_machine import ProposalStateMachine, TransitionError
from agora.models.proposal import ProposalStatus, Submission
from agora.policy.resolver import PolicyResolver


@pytest.fixture
def sm() -> ProposalStateMachine:
    return ProposalStateMachine(PolicyResolver.default())


def _make(status: ProposalStatus = ProposalStatus.SUBMITTED) -> Submission:
    return Submission(
        proposal_id=1, creator="alice", title="T", category="c",
        stake_amount=1, submission_height=0, status=status,
    )


class TestClassify:
    def test_threshold_qualifies(self, sm: ProposalStateMachine) -> None:
        assert sm.classify(60) == ProposalStatus.QUALIFIED

    def test_one_below_threshold_filtered(self, sm: ProposalStateMachine) -> None:
        assert sm.classify(59) == ProposalStatus.FILTERED

    def test_extremes(self, sm: ProposalStateMachine) -> None:
        assert sm.classify(0) == ProposalStatus.FILTERED
        assert sm.classify(100) == ProposalStatus.QUALIFIED

    def test_threshold_from_policy(self) -> None:
        sm = ProposalStateMachine(PolicyResolver.from_dict({"scoring": {"min_community_score": 80}}))
        assert sm.min_community_score == 80
        assert sm.classify(79) == ProposalStatus.FILTERED


class TestTransitions:
    def test_submitted_to_qualified(self, sm: ProposalStateMachine) -> None:
        submission = _make()
        assert sm.validate_transition(submission, ProposalStatus.QUALIFIED) == []
        sm.apply_transition(submission, ProposalStatus.QUALIFIED)
        assert submission.status == ProposalStatus.QUALIFIED
        assert submission.is_terminal

    def test_submitted_to_filtered(self, sm: ProposalStateMachine) -> None:
        submission = _make()
        sm.apply_transition(submission, ProposalStatus.FILTERED)
        assert submission.status == ProposalStatus.FILTERED

    def test_terminal_states_have_no_exits(self, sm: ProposalStateMachine) -> None:
        for terminal in (ProposalStatus.QUALIFIED, ProposalStatus.FILTERED):
            assert sm.is_terminal(terminal)
            assert sm.valid_transitions(terminal) == set()
            for target in ProposalStatus:
                errors = sm.validate_transition(_make(terminal), target)
                assert len(errors) == 1
                assert "Invalid proposal transition" in errors[0]

    def test_no_regression_to_submitted(self, sm: ProposalStateMachine) -> None:
        submission = _make(ProposalStatus.QUALIFIED)
        with pytest.raises(TransitionError):
            sm.apply_transition(submission, ProposalStatus.SUBMITTED)
        assert submission.status == ProposalStatus.QUALIFIED

    def test_submitted_is_not_terminal(self, sm: ProposalStateMachine) -> None:
        assert not sm.is_terminal(ProposalStatus.SUBMITTED)
        assert sm.valid_transitions(ProposalStatus.SUBMITTED) == {
            ProposalStatus.QUALIFIED, ProposalStatus.FILTERED,
        }
