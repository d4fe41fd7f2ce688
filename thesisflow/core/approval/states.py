"""Thesis workflow states and the transition table.

A thesis is always in one (status, stage) pair. Status records the outcome
of the most recent review; stage records whose action is awaited.

Flow:

    (submitted, guide)
         │ guide approves
    (guide_approved, librarian)
         │ librarian passes plagiarism check
    (librarian_reviewed, registrar)
         │ registrar approves
    (registrar_reviewed, vc)
         │ vc approves
    (vc_reviewed, final)
         │ guide approves / rejects
    (approved | rejected, completed)

Any downstream rejection (librarian, registrar, vc) returns the thesis to
the guide as (<role>_rejected, guide). From there the guide either
re-injects it at a later stage of their choosing, or rejects it for good:

    librarian target  → (guide_approved, librarian)
    registrar target  → (librarian_reviewed, registrar)
    vc target         → (registrar_reviewed, vc)
    final rejection   → (rejected, scholar)

A guide rejection of a fresh submission parks it at (guide_rejected, guide),
which has no outgoing transition.
"""

from enum import Enum
from typing import Dict, FrozenSet, NamedTuple, Optional, Set

from thesisflow.core.rbac.roles import Role


class ThesisStatus(str, Enum):
    """Outcome of the most recent completed review."""

    SUBMITTED = "submitted"
    GUIDE_APPROVED = "guide_approved"
    GUIDE_REJECTED = "guide_rejected"
    LIBRARIAN_REVIEWED = "librarian_reviewed"
    LIBRARIAN_REJECTED = "librarian_rejected"
    REGISTRAR_REVIEWED = "registrar_reviewed"
    REGISTRAR_REJECTED = "registrar_rejected"
    VC_REVIEWED = "vc_reviewed"
    VC_REJECTED = "vc_rejected"
    APPROVED = "approved"
    REJECTED = "rejected"


class ThesisStage(str, Enum):
    """Whose action is currently awaited."""

    GUIDE = "guide"
    LIBRARIAN = "librarian"
    REGISTRAR = "registrar"
    VC = "vc"
    FINAL = "final"
    COMPLETED = "completed"
    SCHOLAR = "scholar"


class WorkflowAction(str, Enum):
    """Actor-initiated operations on a thesis."""

    GUIDE_DECIDE = "guide-decide"
    LIBRARIAN_REVIEW = "librarian-review"
    REGISTRAR_DECIDE = "registrar-decide"
    VC_DECIDE = "vc-decide"
    FINAL_DECIDE = "final-decide"
    GUIDE_REAPPROVE = "guide-reapprove"
    GUIDE_FINAL_REJECT = "guide-final-reject"


class Decision(str, Enum):
    """Reviewer verdicts."""

    APPROVED = "approved"
    REJECTED = "rejected"
    PASSED = "passed"    # plagiarism check only
    FAILED = "failed"    # plagiarism check only


class ApprovalKey(str, Enum):
    """Keys of the per-thesis approvals record."""

    GUIDE = "guide"
    LIBRARIAN = "librarian"
    REGISTRAR = "registrar"
    VC = "vc"
    FINAL = "final"
    GUIDE_REAPPROVAL = "guideReapproval"
    FINAL_REJECTION = "finalRejection"


class WorkflowState(NamedTuple):
    """A (status, stage) pair."""

    status: ThesisStatus
    stage: ThesisStage

    def as_dict(self) -> Dict[str, str]:
        return {"status": self.status.value, "stage": self.stage.value}


class TransitionRule(NamedTuple):
    """One row of the transition table.

    ``outcome`` is the decision (or re-approval target) that selects this
    row; it is None for actions that carry no choice.
    """

    from_state: WorkflowState
    action: WorkflowAction
    outcome: Optional[str]
    to_state: WorkflowState
    approval_key: ApprovalKey


S = ThesisStatus
G = ThesisStage
A = WorkflowAction

INITIAL_STATE = WorkflowState(S.SUBMITTED, G.GUIDE)

# The role that may perform each action
ACTION_ROLES: Dict[WorkflowAction, Role] = {
    A.GUIDE_DECIDE: Role.GUIDE,
    A.LIBRARIAN_REVIEW: Role.LIBRARIAN,
    A.REGISTRAR_DECIDE: Role.REGISTRAR,
    A.VC_DECIDE: Role.VC,
    A.FINAL_DECIDE: Role.GUIDE,
    A.GUIDE_REAPPROVE: Role.GUIDE,
    A.GUIDE_FINAL_REJECT: Role.GUIDE,
}

# Actions that also require the actor to be the thesis's assigned guide
GUIDE_OWNED_ACTIONS: FrozenSet[WorkflowAction] = frozenset(
    action for action, role in ACTION_ROLES.items() if role is Role.GUIDE
)

# Statuses from which the guide may re-approve or finally reject
REJECTED_STATUSES: FrozenSet[ThesisStatus] = frozenset({
    S.LIBRARIAN_REJECTED,
    S.REGISTRAR_REJECTED,
    S.VC_REJECTED,
})

# Re-approval target stage → the state the thesis is re-injected into
REAPPROVAL_TARGETS: Dict[ThesisStage, WorkflowState] = {
    G.LIBRARIAN: WorkflowState(S.GUIDE_APPROVED, G.LIBRARIAN),
    G.REGISTRAR: WorkflowState(S.LIBRARIAN_REVIEWED, G.REGISTRAR),
    G.VC: WorkflowState(S.REGISTRAR_REVIEWED, G.VC),
}


def _review_rules(
    from_state: WorkflowState,
    action: WorkflowAction,
    key: ApprovalKey,
    accept: Decision,
    on_accept: WorkflowState,
    decline: Decision,
    on_decline: WorkflowState,
) -> list[TransitionRule]:
    return [
        TransitionRule(from_state, action, accept.value, on_accept, key),
        TransitionRule(from_state, action, decline.value, on_decline, key),
    ]


TRANSITION_RULES: list[TransitionRule] = [
    # Guide review of a fresh submission
    *_review_rules(
        INITIAL_STATE, A.GUIDE_DECIDE, ApprovalKey.GUIDE,
        Decision.APPROVED, WorkflowState(S.GUIDE_APPROVED, G.LIBRARIAN),
        Decision.REJECTED, WorkflowState(S.GUIDE_REJECTED, G.GUIDE),
    ),
    # Plagiarism check
    *_review_rules(
        WorkflowState(S.GUIDE_APPROVED, G.LIBRARIAN), A.LIBRARIAN_REVIEW, ApprovalKey.LIBRARIAN,
        Decision.PASSED, WorkflowState(S.LIBRARIAN_REVIEWED, G.REGISTRAR),
        Decision.FAILED, WorkflowState(S.LIBRARIAN_REJECTED, G.GUIDE),
    ),
    # Registrar
    *_review_rules(
        WorkflowState(S.LIBRARIAN_REVIEWED, G.REGISTRAR), A.REGISTRAR_DECIDE, ApprovalKey.REGISTRAR,
        Decision.APPROVED, WorkflowState(S.REGISTRAR_REVIEWED, G.VC),
        Decision.REJECTED, WorkflowState(S.REGISTRAR_REJECTED, G.GUIDE),
    ),
    # Vice-chancellor
    *_review_rules(
        WorkflowState(S.REGISTRAR_REVIEWED, G.VC), A.VC_DECIDE, ApprovalKey.VC,
        Decision.APPROVED, WorkflowState(S.VC_REVIEWED, G.FINAL),
        Decision.REJECTED, WorkflowState(S.VC_REJECTED, G.GUIDE),
    ),
    # Guide final sign-off
    *_review_rules(
        WorkflowState(S.VC_REVIEWED, G.FINAL), A.FINAL_DECIDE, ApprovalKey.FINAL,
        Decision.APPROVED, WorkflowState(S.APPROVED, G.COMPLETED),
        Decision.REJECTED, WorkflowState(S.REJECTED, G.COMPLETED),
    ),
]

# Guide handling of downstream rejections
for _status in sorted(REJECTED_STATUSES, key=lambda s: s.value):
    _from = WorkflowState(_status, G.GUIDE)
    for _target, _to in REAPPROVAL_TARGETS.items():
        TRANSITION_RULES.append(
            TransitionRule(_from, A.GUIDE_REAPPROVE, _target.value, _to, ApprovalKey.GUIDE_REAPPROVAL)
        )
    TRANSITION_RULES.append(
        TransitionRule(
            _from, A.GUIDE_FINAL_REJECT, None,
            WorkflowState(S.REJECTED, G.SCHOLAR), ApprovalKey.FINAL_REJECTION,
        )
    )


# Build lookup tables for efficient access
VALID_ACTIONS: Dict[WorkflowState, Set[WorkflowAction]] = {}
TRANSITION_TARGETS: Dict[tuple[WorkflowState, WorkflowAction, Optional[str]], TransitionRule] = {}
ACTION_OUTCOMES: Dict[WorkflowAction, Set[Optional[str]]] = {}

for rule in TRANSITION_RULES:
    VALID_ACTIONS.setdefault(rule.from_state, set()).add(rule.action)
    TRANSITION_TARGETS[(rule.from_state, rule.action, rule.outcome)] = rule
    ACTION_OUTCOMES.setdefault(rule.action, set()).add(rule.outcome)


# Every (status, stage) pair a thesis can be in
REACHABLE_STATES: FrozenSet[WorkflowState] = frozenset(
    {INITIAL_STATE}
    | {rule.from_state for rule in TRANSITION_RULES}
    | {rule.to_state for rule in TRANSITION_RULES}
)

# No further transitions accepted
TERMINAL_STATES: FrozenSet[WorkflowState] = frozenset({
    WorkflowState(S.APPROVED, G.COMPLETED),
    WorkflowState(S.REJECTED, G.COMPLETED),
    WorkflowState(S.REJECTED, G.SCHOLAR),
})


def to_state(status: str, stage: str) -> WorkflowState:
    """Build a WorkflowState from stored string values."""
    return WorkflowState(ThesisStatus(status), ThesisStage(stage))


def is_valid_state(state: WorkflowState) -> bool:
    """Check that a (status, stage) pair is a row of the table."""
    return state in REACHABLE_STATES


def is_terminal(state: WorkflowState) -> bool:
    return state in TERMINAL_STATES


def can_transition(state: WorkflowState, action: WorkflowAction) -> bool:
    """Check if an action is accepted in the given state."""
    return action in VALID_ACTIONS.get(state, set())


def get_transition_rule(
    state: WorkflowState,
    action: WorkflowAction,
    outcome: Optional[str] = None,
) -> Optional[TransitionRule]:
    """Get the rule for a state/action/outcome combination."""
    return TRANSITION_TARGETS.get((state, action, outcome))


def get_target_state(
    state: WorkflowState,
    action: WorkflowAction,
    outcome: Optional[str] = None,
) -> Optional[WorkflowState]:
    """Get the resulting state for a transition."""
    rule = get_transition_rule(state, action, outcome)
    return rule.to_state if rule else None
