"""Thesis schemas."""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class UserSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    email: str
    department: Optional[str] = None
    scholar_number: Optional[str] = None


class GuideResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    email: str
    department: Optional[str] = None


class ThesisFileResponse(BaseModel):
    filename: str
    original_name: str
    path: str
    mime_type: Optional[str] = None
    size: Optional[int] = None


class ThesisResponse(BaseModel):
    """A thesis as returned to clients.

    ``approvals`` is passed through as stored: one record per review key
    (guide, librarian, registrar, vc, final, guideReapproval, finalRejection).
    """
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    abstract: str
    keywords: List[str] = []
    file: Optional[ThesisFileResponse] = None
    scholar: UserSummary
    guide: UserSummary
    status: str
    current_stage: str
    approvals: Dict[str, Any] = {}
    version: int
    created_at: datetime
    updated_at: datetime
    available_actions: List[str] = []


class StatusOverviewResponse(BaseModel):
    total: int
    status_count: Dict[str, int]
    theses: List[ThesisResponse]


class CheckFinalResponse(BaseModel):
    id: UUID
    title: str
    status: str
    current_stage: str
    approvals: Dict[str, Any]
    can_final_approve: bool


class ThesisTransitionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    action: str
    decision: Optional[str]
    from_status: str
    from_stage: str
    to_status: str
    to_stage: str
    approval_key: Optional[str] = None
    approval_record: Optional[Dict[str, Any]] = None
    actor_id: Optional[UUID]
    actor_role: str
    comment: Optional[str]
    created_at: datetime


class TransitionResponse(BaseModel):
    message: str
    thesis: ThesisResponse


# Action payloads. Values are checked by the workflow engine so that an
# unknown decision is reported as invalid_payload with the thesis state.

class DecisionRequest(BaseModel):
    decision: Optional[str] = Field(None, description="approved or rejected")
    comment: Optional[str] = None


class PlagiarismReviewRequest(BaseModel):
    status: Optional[str] = Field(None, description="passed or failed")
    plagiarism_percentage: Optional[float] = Field(None, description="Similarity score, 0-100")
    report: Optional[str] = None
    comment: Optional[str] = None


class ReapprovalRequest(BaseModel):
    target: Optional[str] = Field(None, description="librarian, registrar or vc")
    comment: Optional[str] = None


class FinalRejectionRequest(BaseModel):
    comment: Optional[str] = None
