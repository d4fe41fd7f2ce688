"""Tests for the thesis state machine."""

import uuid

import pytest

from thesisflow.core.approval.errors import (
    InvalidPayloadError,
    PreconditionFailedError,
    UnauthorizedError,
)
from thesisflow.core.approval.machine import FINAL_REJECTION_COMMENT, ThesisStateMachine
from thesisflow.core.approval.states import (
    INITIAL_STATE,
    ThesisStage,
    ThesisStatus,
    WorkflowAction,
    WorkflowState,
)
from thesisflow.core.rbac import Actor, Role

S = ThesisStatus
G = ThesisStage
A = WorkflowAction

GUIDE_ID = uuid.uuid4()
GUIDE = Actor(GUIDE_ID, Role.GUIDE)
OTHER_GUIDE = Actor(uuid.uuid4(), Role.GUIDE)
LIBRARIAN = Actor(uuid.uuid4(), Role.LIBRARIAN)
REGISTRAR = Actor(uuid.uuid4(), Role.REGISTRAR)
VC = Actor(uuid.uuid4(), Role.VC)
SCHOLAR = Actor(uuid.uuid4(), Role.SCHOLAR)


def machine_at(status: ThesisStatus, stage: ThesisStage) -> ThesisStateMachine:
    return ThesisStateMachine(uuid.uuid4(), WorkflowState(status, stage), GUIDE_ID)


class TestStateMachineInit:

    def test_accepts_table_state(self):
        machine = machine_at(S.SUBMITTED, G.GUIDE)
        assert machine.state == INITIAL_STATE
        assert not machine.is_terminal

    def test_rejects_state_outside_table(self):
        with pytest.raises(PreconditionFailedError) as exc_info:
            machine_at(S.SUBMITTED, G.VC)
        assert exc_info.value.state == WorkflowState(S.SUBMITTED, G.VC)

    def test_terminal(self):
        assert machine_at(S.APPROVED, G.COMPLETED).is_terminal
        assert machine_at(S.REJECTED, G.SCHOLAR).is_terminal


class TestAuthorization:

    def test_wrong_role_is_unauthorized(self):
        machine = machine_at(S.SUBMITTED, G.GUIDE)
        with pytest.raises(UnauthorizedError):
            machine.transition(A.GUIDE_DECIDE, LIBRARIAN, decision="approved")

    def test_guide_who_is_not_assigned_is_unauthorized(self):
        machine = machine_at(S.SUBMITTED, G.GUIDE)
        with pytest.raises(UnauthorizedError) as exc_info:
            machine.transition(A.GUIDE_DECIDE, OTHER_GUIDE, decision="approved")
        assert "not the assigned guide" in exc_info.value.message
        assert machine.state == INITIAL_STATE

    def test_authorization_is_checked_before_precondition(self):
        machine = machine_at(S.APPROVED, G.COMPLETED)
        with pytest.raises(UnauthorizedError):
            machine.transition(A.VC_DECIDE, SCHOLAR, decision="approved")

    def test_precondition_is_checked_before_payload(self):
        machine = machine_at(S.SUBMITTED, G.GUIDE)
        with pytest.raises(PreconditionFailedError):
            machine.transition(A.LIBRARIAN_REVIEW, LIBRARIAN, decision="maybe")

    def test_available_actions(self):
        machine = machine_at(S.VC_REJECTED, G.GUIDE)
        assert set(machine.get_available_actions(GUIDE)) == {A.GUIDE_REAPPROVE, A.GUIDE_FINAL_REJECT}
        assert machine.get_available_actions(OTHER_GUIDE) == []
        assert machine.get_available_actions(VC) == []


class TestReviewDecisions:

    def test_guide_approves(self):
        machine = machine_at(S.SUBMITTED, G.GUIDE)
        result = machine.transition(A.GUIDE_DECIDE, GUIDE, decision="approved", comment="Looks good")

        assert result.to_state == WorkflowState(S.GUIDE_APPROVED, G.LIBRARIAN)
        assert result.approval_key.value == "guide"
        assert result.approval_record["status"] == "approved"
        assert result.approval_record["comment"] == "Looks good"
        assert result.approval_record["date"] == result.occurred_at.isoformat()
        assert machine.state == result.to_state

    def test_missing_comment_is_stored_empty(self):
        result = machine_at(S.LIBRARIAN_REVIEWED, G.REGISTRAR).transition(
            A.REGISTRAR_DECIDE, REGISTRAR, decision="rejected"
        )
        assert result.approval_record["comment"] == ""
        assert result.to_state == WorkflowState(S.REGISTRAR_REJECTED, G.GUIDE)

    @pytest.mark.parametrize("decision", [None, "", "maybe", "passed"])
    def test_invalid_decision(self, decision):
        machine = machine_at(S.REGISTRAR_REVIEWED, G.VC)
        with pytest.raises(InvalidPayloadError) as exc_info:
            machine.transition(A.VC_DECIDE, VC, decision=decision)
        assert exc_info.value.state == WorkflowState(S.REGISTRAR_REVIEWED, G.VC)
        assert machine.state == WorkflowState(S.REGISTRAR_REVIEWED, G.VC)

    def test_final_decision(self):
        result = machine_at(S.VC_REVIEWED, G.FINAL).transition(A.FINAL_DECIDE, GUIDE, decision="approved")
        assert result.to_state == WorkflowState(S.APPROVED, G.COMPLETED)
        assert result.approval_key.value == "final"

    @pytest.mark.parametrize("action", list(WorkflowAction))
    def test_terminal_state_rejects_every_action(self, action):
        machine = machine_at(S.APPROVED, G.COMPLETED)
        actor = {
            A.LIBRARIAN_REVIEW: LIBRARIAN,
            A.REGISTRAR_DECIDE: REGISTRAR,
            A.VC_DECIDE: VC,
        }.get(action, GUIDE)
        with pytest.raises(PreconditionFailedError):
            machine.transition(action, actor, decision="approved", target="vc")


class TestPlagiarismCheck:

    def test_pass_records_score_and_report(self):
        result = machine_at(S.GUIDE_APPROVED, G.LIBRARIAN).transition(
            A.LIBRARIAN_REVIEW, LIBRARIAN,
            decision="passed", plagiarism_percentage=12.5, report="Minor overlap",
        )
        assert result.to_state == WorkflowState(S.LIBRARIAN_REVIEWED, G.REGISTRAR)
        assert result.approval_record["status"] == "passed"
        assert result.approval_record["plagiarismPercentage"] == 12.5
        assert result.approval_record["report"] == "Minor overlap"

    def test_fail_returns_to_guide(self):
        result = machine_at(S.GUIDE_APPROVED, G.LIBRARIAN).transition(
            A.LIBRARIAN_REVIEW, LIBRARIAN,
            decision="failed", plagiarism_percentage=40, report="plagiarized",
        )
        assert result.to_state == WorkflowState(S.LIBRARIAN_REJECTED, G.GUIDE)

    def test_zero_percent_is_accepted(self):
        result = machine_at(S.GUIDE_APPROVED, G.LIBRARIAN).transition(
            A.LIBRARIAN_REVIEW, LIBRARIAN,
            decision="passed", plagiarism_percentage=0, report="Clean",
        )
        assert result.approval_record["plagiarismPercentage"] == 0

    @pytest.mark.parametrize(
        "fields",
        [
            {"decision": "passed", "report": "r"},
            {"decision": "passed", "plagiarism_percentage": 5},
            {"plagiarism_percentage": 5, "report": "r"},
        ],
    )
    def test_missing_fields(self, fields):
        machine = machine_at(S.GUIDE_APPROVED, G.LIBRARIAN)
        with pytest.raises(InvalidPayloadError):
            machine.transition(A.LIBRARIAN_REVIEW, LIBRARIAN, **fields)

    @pytest.mark.parametrize("percentage", [-1, 100.5, "40", True])
    def test_bad_percentage(self, percentage):
        machine = machine_at(S.GUIDE_APPROVED, G.LIBRARIAN)
        with pytest.raises(InvalidPayloadError):
            machine.transition(
                A.LIBRARIAN_REVIEW, LIBRARIAN,
                decision="passed", plagiarism_percentage=percentage, report="r",
            )

    @pytest.mark.parametrize("decision", ["approved", "rejected", "ok"])
    def test_result_outside_passed_failed(self, decision):
        machine = machine_at(S.GUIDE_APPROVED, G.LIBRARIAN)
        with pytest.raises(InvalidPayloadError):
            machine.transition(
                A.LIBRARIAN_REVIEW, LIBRARIAN,
                decision=decision, plagiarism_percentage=10, report="r",
            )
        assert machine.state == WorkflowState(S.GUIDE_APPROVED, G.LIBRARIAN)


class TestGuideReapproval:

    def test_reapprove_to_registrar_after_vc_rejection(self):
        result = machine_at(S.VC_REJECTED, G.GUIDE).transition(
            A.GUIDE_REAPPROVE, GUIDE, target="registrar", comment="Fixed"
        )
        assert result.to_state == WorkflowState(S.LIBRARIAN_REVIEWED, G.REGISTRAR)
        assert result.approval_record["target"] == "registrar"
        assert result.approval_record["originalRejector"] == "vc"
        assert result.approval_record["comment"] == "Fixed"

    def test_reapprove_accepts_stage_enum(self):
        result = machine_at(S.LIBRARIAN_REJECTED, G.GUIDE).transition(
            A.GUIDE_REAPPROVE, GUIDE, target=ThesisStage.LIBRARIAN
        )
        assert result.to_state == WorkflowState(S.GUIDE_APPROVED, G.LIBRARIAN)
        assert result.approval_record["originalRejector"] == "librarian"

    @pytest.mark.parametrize("target", [None, "guide", "final", "scholar"])
    def test_invalid_target(self, target):
        machine = machine_at(S.REGISTRAR_REJECTED, G.GUIDE)
        with pytest.raises(InvalidPayloadError):
            machine.transition(A.GUIDE_REAPPROVE, GUIDE, target=target)

    def test_final_rejection_record(self):
        result = machine_at(S.REGISTRAR_REJECTED, G.GUIDE).transition(A.GUIDE_FINAL_REJECT, GUIDE)
        assert result.to_state == WorkflowState(S.REJECTED, G.SCHOLAR)
        record = result.approval_record
        assert record["comment"] == FINAL_REJECTION_COMMENT
        assert record["rejectedBy"] == "guide"
        assert record["originalRejector"] == "registrar"

    def test_reapprove_requires_a_downstream_rejection(self):
        machine = machine_at(S.GUIDE_REJECTED, G.GUIDE)
        with pytest.raises(PreconditionFailedError):
            machine.transition(A.GUIDE_REAPPROVE, GUIDE, target="librarian")
