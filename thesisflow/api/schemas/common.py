"""Common schemas for the ThesisFlow API."""

from typing import Optional

from pydantic import BaseModel


class ErrorDetail(BaseModel):
    """Body of ``detail`` on workflow errors."""
    error: str
    message: str
    thesis_id: Optional[str] = None
    status: Optional[str] = None
    stage: Optional[str] = None


class ErrorResponse(BaseModel):
    """Standard error response."""
    detail: ErrorDetail


# Attach to routes as ``responses=`` so the OpenAPI document lists error bodies
WORKFLOW_ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Precondition failed or invalid payload"},
    403: {"model": ErrorResponse, "description": "Actor may not perform this operation"},
    404: {"model": ErrorResponse, "description": "Thesis not found"},
    409: {"model": ErrorResponse, "description": "Concurrent modification"},
}
