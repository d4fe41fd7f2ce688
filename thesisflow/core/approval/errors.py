"""Workflow error taxonomy.

Every error can carry the thesis's current (status, stage) so callers can
decide whether to re-fetch, retry or give up.
"""

from typing import Any, Dict, Optional
from uuid import UUID

from .states import WorkflowState


class WorkflowError(Exception):
    """Base class for workflow failures."""

    code = "workflow_error"

    def __init__(
        self,
        message: str,
        *,
        thesis_id: Optional[UUID] = None,
        state: Optional[WorkflowState] = None,
    ):
        super().__init__(message)
        self.message = message
        self.thesis_id = thesis_id
        self.state = state

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.code, "message": self.message}
        if self.thesis_id is not None:
            body["thesis_id"] = str(self.thesis_id)
        if self.state is not None:
            body.update(self.state.as_dict())
        return body


class ThesisNotFoundError(WorkflowError):
    """No thesis with the given id."""

    code = "not_found"


class PreconditionFailedError(WorkflowError):
    """The thesis is not in a state that accepts the requested action."""

    code = "precondition_failed"


class UnauthorizedError(WorkflowError):
    """The actor's role or identity does not allow the action."""

    code = "unauthorized"


class InvalidPayloadError(WorkflowError):
    """Missing or malformed action-specific fields."""

    code = "invalid_payload"


class ConcurrentModificationError(WorkflowError):
    """Another transition committed first; re-read and decide again."""

    code = "concurrent_modification"


class StorageFailureError(WorkflowError):
    """The document store failed. The cause is logged, not exposed."""

    code = "storage_failure"
