"""Thesis workflow state machine.

Interprets the transition table for a single thesis: authorizes the actor,
checks the precondition, validates the action payload and produces the
resulting state together with the approval record to store. Nothing here
touches the database; the service persists the result.
"""

from datetime import datetime
from numbers import Real
from typing import Any, Dict, NamedTuple, Optional, Union
from uuid import UUID

from thesisflow.core.rbac import Actor, ROLE_LABELS

from .errors import InvalidPayloadError, PreconditionFailedError, UnauthorizedError
from .states import (
    ACTION_OUTCOMES,
    ACTION_ROLES,
    GUIDE_OWNED_ACTIONS,
    ApprovalKey,
    Decision,
    ThesisStage,
    TransitionRule,
    WorkflowAction,
    WorkflowState,
    can_transition,
    get_transition_rule,
    is_terminal,
    is_valid_state,
)

FINAL_REJECTION_COMMENT = "Thesis finally rejected by guide"


class TransitionResult(NamedTuple):
    """Outcome of a validated transition."""

    rule: TransitionRule
    approval_record: Dict[str, Any]
    occurred_at: datetime

    @property
    def from_state(self) -> WorkflowState:
        return self.rule.from_state

    @property
    def to_state(self) -> WorkflowState:
        return self.rule.to_state

    @property
    def approval_key(self) -> ApprovalKey:
        return self.rule.approval_key


class ThesisStateMachine:
    """
    State machine for one thesis.

    Checks run in a fixed order so the first failing condition decides the
    error: authorization, precondition, then payload.
    """

    def __init__(self, thesis_id: UUID, current_state: WorkflowState, guide_id: UUID):
        """
        Args:
            thesis_id: ID of the thesis
            current_state: Stored (status, stage) pair
            guide_id: The thesis's assigned guide
        """
        if not is_valid_state(current_state):
            raise PreconditionFailedError(
                f"Thesis is in an unknown workflow state {current_state.status.value}/{current_state.stage.value}",
                thesis_id=thesis_id,
                state=current_state,
            )
        self.thesis_id = thesis_id
        self.guide_id = guide_id
        self._state = current_state

    @property
    def state(self) -> WorkflowState:
        return self._state

    @property
    def is_terminal(self) -> bool:
        return is_terminal(self._state)

    def authorize(self, action: WorkflowAction, actor: Actor) -> None:
        """Raise UnauthorizedError unless the actor may perform the action on this thesis."""
        required_role = ACTION_ROLES[action]
        if actor.role != required_role:
            raise UnauthorizedError(
                f"Only {ROLE_LABELS[required_role]} users can perform {action.value}",
                thesis_id=self.thesis_id,
                state=self._state,
            )
        if action in GUIDE_OWNED_ACTIONS and actor.user_id != self.guide_id:
            raise UnauthorizedError(
                "Not authorized to perform this action: not the assigned guide",
                thesis_id=self.thesis_id,
                state=self._state,
            )

    def can_perform(self, action: WorkflowAction, actor: Actor) -> bool:
        """Check if the actor could perform the action right now."""
        try:
            self.authorize(action, actor)
        except UnauthorizedError:
            return False
        return can_transition(self._state, action)

    def get_available_actions(self, actor: Actor) -> list[WorkflowAction]:
        return [action for action in WorkflowAction if self.can_perform(action, actor)]

    def transition(
        self,
        action: WorkflowAction,
        actor: Actor,
        *,
        decision: Optional[Union[Decision, str]] = None,
        comment: Optional[str] = None,
        target: Optional[Union[ThesisStage, str]] = None,
        plagiarism_percentage: Optional[float] = None,
        report: Optional[str] = None,
    ) -> TransitionResult:
        """
        Validate and apply a transition.

        Args:
            action: The action to perform
            actor: Who is acting
            decision: Verdict for review actions (approved/rejected, passed/failed)
            comment: Free-text comment
            target: Stage to re-inject into, for guide-reapprove
            plagiarism_percentage: Librarian similarity score, 0-100
            report: Librarian report text

        Returns:
            The applied rule with the approval record to store

        Raises:
            UnauthorizedError: Role or guide ownership mismatch
            PreconditionFailedError: Action not accepted in the current state
            InvalidPayloadError: Missing or malformed fields
        """
        self.authorize(action, actor)

        if not can_transition(self._state, action):
            raise PreconditionFailedError(
                f"Thesis is not ready for {action.value} "
                f"(status={self._state.status.value}, stage={self._state.stage.value})",
                thesis_id=self.thesis_id,
                state=self._state,
            )

        if action is WorkflowAction.LIBRARIAN_REVIEW:
            self._validate_plagiarism_report(decision, plagiarism_percentage, report)

        outcome = self._resolve_outcome(action, decision, target)
        rule = get_transition_rule(self._state, action, outcome)
        if rule is None:
            raise PreconditionFailedError(
                f"No transition for {action.value} with {outcome!r} from this state",
                thesis_id=self.thesis_id,
                state=self._state,
            )

        occurred_at = datetime.utcnow()
        record = self._build_record(
            rule,
            occurred_at,
            comment=comment,
            plagiarism_percentage=plagiarism_percentage,
            report=report,
        )
        self._state = rule.to_state
        return TransitionResult(rule=rule, approval_record=record, occurred_at=occurred_at)

    def _resolve_outcome(
        self,
        action: WorkflowAction,
        decision: Optional[Union[Decision, str]],
        target: Optional[Union[ThesisStage, str]],
    ) -> Optional[str]:
        allowed = {o for o in ACTION_OUTCOMES[action] if o is not None}
        if not allowed:
            return None

        if action is WorkflowAction.GUIDE_REAPPROVE:
            value = _enum_value(target)
            if value not in allowed:
                raise InvalidPayloadError(
                    f"Invalid target for re-approval: {value!r}. Use one of: {', '.join(sorted(allowed))}",
                    thesis_id=self.thesis_id,
                    state=self._state,
                )
            return value

        value = _enum_value(decision)
        if value not in allowed:
            choices = " or ".join(f'"{o}"' for o in sorted(allowed))
            raise InvalidPayloadError(
                f"Invalid decision {value!r} for {action.value}. Use {choices}.",
                thesis_id=self.thesis_id,
                state=self._state,
            )
        return value

    def _validate_plagiarism_report(
        self,
        decision: Optional[Union[Decision, str]],
        plagiarism_percentage: Optional[float],
        report: Optional[str],
    ) -> None:
        if plagiarism_percentage is None or not report or not decision:
            raise InvalidPayloadError(
                "Plagiarism percentage, report, and status are required",
                thesis_id=self.thesis_id,
                state=self._state,
            )
        if isinstance(plagiarism_percentage, bool) or not isinstance(plagiarism_percentage, Real):
            raise InvalidPayloadError(
                "Plagiarism percentage must be a number",
                thesis_id=self.thesis_id,
                state=self._state,
            )
        if not 0 <= plagiarism_percentage <= 100:
            raise InvalidPayloadError(
                f"Plagiarism percentage must be between 0 and 100 (got {plagiarism_percentage})",
                thesis_id=self.thesis_id,
                state=self._state,
            )

    def _build_record(
        self,
        rule: TransitionRule,
        occurred_at: datetime,
        *,
        comment: Optional[str],
        plagiarism_percentage: Optional[float],
        report: Optional[str],
    ) -> Dict[str, Any]:
        date = occurred_at.isoformat()
        original_rejector = rule.from_state.status.value.replace("_rejected", "")

        if rule.approval_key is ApprovalKey.GUIDE_REAPPROVAL:
            return {
                "date": date,
                "comment": comment or "",
                "target": rule.outcome,
                "originalRejector": original_rejector,
            }
        if rule.approval_key is ApprovalKey.FINAL_REJECTION:
            return {
                "date": date,
                "comment": comment or FINAL_REJECTION_COMMENT,
                "rejectedBy": "guide",
                "originalRejector": original_rejector,
            }

        record: Dict[str, Any] = {
            "status": rule.outcome,
            "comment": comment or "",
            "date": date,
        }
        if rule.approval_key is ApprovalKey.LIBRARIAN:
            record["plagiarismPercentage"] = plagiarism_percentage
            record["report"] = report
        return record


def _enum_value(value) -> Optional[str]:
    if value is None:
        return None
    return value.value if hasattr(value, "value") else str(value)
