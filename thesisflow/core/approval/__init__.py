"""Thesis approval workflow.

Implements the review state machine, its transition table and the service
that persists transitions.
"""

from .states import (
    ThesisStatus,
    ThesisStage,
    WorkflowAction,
    WorkflowState,
    Decision,
    ApprovalKey,
    TRANSITION_RULES,
)
from .errors import (
    WorkflowError,
    ThesisNotFoundError,
    PreconditionFailedError,
    UnauthorizedError,
    InvalidPayloadError,
    ConcurrentModificationError,
    StorageFailureError,
)
from .machine import ThesisStateMachine, TransitionResult
from .service import ThesisWorkflowService

__all__ = [
    "ThesisStatus",
    "ThesisStage",
    "WorkflowAction",
    "WorkflowState",
    "Decision",
    "ApprovalKey",
    "TRANSITION_RULES",
    "WorkflowError",
    "ThesisNotFoundError",
    "PreconditionFailedError",
    "UnauthorizedError",
    "InvalidPayloadError",
    "ConcurrentModificationError",
    "StorageFailureError",
    "ThesisStateMachine",
    "TransitionResult",
    "ThesisWorkflowService",
]
