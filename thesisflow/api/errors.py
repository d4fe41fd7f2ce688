"""Translation of workflow errors into HTTP responses."""

from fastapi import HTTPException, status

from thesisflow.core.approval.errors import (
    ConcurrentModificationError,
    InvalidPayloadError,
    PreconditionFailedError,
    StorageFailureError,
    ThesisNotFoundError,
    UnauthorizedError,
    WorkflowError,
)

STATUS_CODES = {
    ThesisNotFoundError: status.HTTP_404_NOT_FOUND,
    PreconditionFailedError: status.HTTP_400_BAD_REQUEST,
    UnauthorizedError: status.HTTP_403_FORBIDDEN,
    InvalidPayloadError: status.HTTP_400_BAD_REQUEST,
    ConcurrentModificationError: status.HTTP_409_CONFLICT,
    StorageFailureError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def http_error(error: WorkflowError) -> HTTPException:
    """Map a workflow error to an HTTPException carrying the thesis state."""
    status_code = STATUS_CODES.get(type(error), status.HTTP_500_INTERNAL_SERVER_ERROR)
    return HTTPException(status_code=status_code, detail=error.to_dict())
