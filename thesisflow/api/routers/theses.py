"""Thesis submission and workflow API endpoints."""

from typing import Callable, List
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from thesisflow.api.deps import get_blob_store, get_current_user, get_db
from thesisflow.api.errors import http_error
from thesisflow.api.schemas.common import WORKFLOW_ERROR_RESPONSES
from thesisflow.api.schemas.thesis import (
    CheckFinalResponse,
    DecisionRequest,
    FinalRejectionRequest,
    PlagiarismReviewRequest,
    ReapprovalRequest,
    StatusOverviewResponse,
    ThesisResponse,
    ThesisTransitionResponse,
    TransitionResponse,
)
from thesisflow.common.logger import get_logger
from thesisflow.core.approval import StorageFailureError, ThesisWorkflowService, WorkflowError
from thesisflow.core.rbac import Actor, Capability, require_capability
from thesisflow.db.models import Thesis, User
from thesisflow.services.storage import LocalBlobStore, UploadRejectedError

logger = get_logger(__name__)

router = APIRouter(prefix="/theses", tags=["theses"])


def thesis_response(service: ThesisWorkflowService, thesis: Thesis, actor: Actor) -> ThesisResponse:
    """Serialize a thesis together with the actions the actor may take on it."""
    response = ThesisResponse.model_validate(thesis)
    response.available_actions = [a.value for a in service.available_actions(thesis, actor)]
    return response


def _commit_transition(db: Session, operation: Callable[[], Thesis]) -> Thesis:
    """Run a service write and commit it, translating failures to HTTP errors."""
    try:
        thesis = operation()
        db.commit()
    except WorkflowError as e:
        db.rollback()
        raise http_error(e)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Commit of thesis transition failed")
        raise http_error(StorageFailureError("Internal storage error"))
    return thesis


@router.post(
    "/upload",
    response_model=ThesisResponse,
    status_code=status.HTTP_201_CREATED,
    responses=WORKFLOW_ERROR_RESPONSES,
)
@require_capability(Capability.THESIS_SUBMIT)
async def upload_thesis(
    title: str = Form(...),
    guide_id: UUID = Form(...),
    abstract: str = Form(""),
    keywords: str = Form(""),
    thesis_file: UploadFile = File(...),
    db: Session = Depends(get_db),
    blob_store: LocalBlobStore = Depends(get_blob_store),
    current_user: User = Depends(get_current_user),
):
    """Submit a new thesis for guide review."""
    try:
        stored = blob_store.store(thesis_file.file, thesis_file.filename or "", thesis_file.content_type)
    except UploadRejectedError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "invalid_upload", "message": str(e)},
        )

    actor = Actor.from_user(current_user)
    service = ThesisWorkflowService(db)
    try:
        thesis = _commit_transition(
            db,
            lambda: service.submit(
                actor,
                title=title,
                abstract=abstract,
                keywords=keywords,
                guide_id=guide_id,
                stored_file=stored,
            ),
        )
    except Exception:
        blob_store.delete(stored.path)
        raise

    return thesis_response(service, thesis, actor)


@router.get("/my-theses", response_model=List[ThesisResponse])
async def my_theses(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """List the theses on the current user's worklist, newest first."""
    actor = Actor.from_user(current_user)
    service = ThesisWorkflowService(db)
    try:
        theses = service.get_worklist(actor)
    except WorkflowError as e:
        raise http_error(e)
    return [thesis_response(service, t, actor) for t in theses]


@router.get("/overview", response_model=StatusOverviewResponse)
@require_capability(Capability.THESIS_READ_ANY)
async def status_overview(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """All theses with per-status counts, for the review offices."""
    actor = Actor.from_user(current_user)
    service = ThesisWorkflowService(db)
    try:
        overview = service.status_overview(actor)
    except WorkflowError as e:
        raise http_error(e)
    return StatusOverviewResponse(
        total=overview["total"],
        status_count=overview["status_count"],
        theses=[thesis_response(service, t, actor) for t in overview["theses"]],
    )


@router.get("/{thesis_id}", response_model=ThesisResponse, responses=WORKFLOW_ERROR_RESPONSES)
async def get_thesis(
    thesis_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Get a thesis the current user may see."""
    actor = Actor.from_user(current_user)
    service = ThesisWorkflowService(db)
    try:
        thesis = service.get_thesis(thesis_id, actor)
        return thesis_response(service, thesis, actor)
    except WorkflowError as e:
        raise http_error(e)


@router.get("/{thesis_id}/history", response_model=List[ThesisTransitionResponse])
async def get_thesis_history(
    thesis_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Get the transition history of a thesis, oldest first."""
    service = ThesisWorkflowService(db)
    try:
        history = service.history(thesis_id, Actor.from_user(current_user))
    except WorkflowError as e:
        raise http_error(e)
    return [ThesisTransitionResponse.model_validate(t) for t in history]


@router.get("/{thesis_id}/check-final", response_model=CheckFinalResponse, responses=WORKFLOW_ERROR_RESPONSES)
async def check_final(
    thesis_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Check whether a thesis is waiting for the guide's final decision."""
    service = ThesisWorkflowService(db)
    try:
        return CheckFinalResponse(**service.check_final(thesis_id, Actor.from_user(current_user)))
    except WorkflowError as e:
        raise http_error(e)


@router.put("/{thesis_id}/guide-decide", response_model=TransitionResponse, responses=WORKFLOW_ERROR_RESPONSES)
async def guide_decide(
    thesis_id: UUID,
    body: DecisionRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Guide approves or rejects a fresh submission."""
    actor = Actor.from_user(current_user)
    service = ThesisWorkflowService(db)
    thesis = _commit_transition(
        db, lambda: service.guide_decide(thesis_id, actor, body.decision, body.comment)
    )
    return TransitionResponse(
        message=f"Thesis {body.decision} by guide",
        thesis=thesis_response(service, thesis, actor),
    )


@router.put("/{thesis_id}/librarian-review", response_model=TransitionResponse, responses=WORKFLOW_ERROR_RESPONSES)
async def librarian_review(
    thesis_id: UUID,
    body: PlagiarismReviewRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Librarian records the plagiarism check result."""
    actor = Actor.from_user(current_user)
    service = ThesisWorkflowService(db)
    thesis = _commit_transition(
        db,
        lambda: service.librarian_review(
            thesis_id,
            actor,
            result=body.status,
            plagiarism_percentage=body.plagiarism_percentage,
            report=body.report,
            comment=body.comment,
        ),
    )
    return TransitionResponse(
        message=f"Plagiarism check {body.status}",
        thesis=thesis_response(service, thesis, actor),
    )


@router.put("/{thesis_id}/registrar-decide", response_model=TransitionResponse, responses=WORKFLOW_ERROR_RESPONSES)
async def registrar_decide(
    thesis_id: UUID,
    body: DecisionRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Registrar approves or rejects a thesis that passed the plagiarism check."""
    actor = Actor.from_user(current_user)
    service = ThesisWorkflowService(db)
    thesis = _commit_transition(
        db, lambda: service.registrar_decide(thesis_id, actor, body.decision, body.comment)
    )
    return TransitionResponse(
        message=f"Thesis {body.decision} by registrar",
        thesis=thesis_response(service, thesis, actor),
    )


@router.put("/{thesis_id}/vc-decide", response_model=TransitionResponse, responses=WORKFLOW_ERROR_RESPONSES)
async def vc_decide(
    thesis_id: UUID,
    body: DecisionRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Vice-Chancellor approves or rejects a registrar-reviewed thesis."""
    actor = Actor.from_user(current_user)
    service = ThesisWorkflowService(db)
    thesis = _commit_transition(
        db, lambda: service.vc_decide(thesis_id, actor, body.decision, body.comment)
    )
    return TransitionResponse(
        message=f"Thesis {body.decision} by Vice-Chancellor",
        thesis=thesis_response(service, thesis, actor),
    )


@router.put("/{thesis_id}/final-decide", response_model=TransitionResponse, responses=WORKFLOW_ERROR_RESPONSES)
async def final_decide(
    thesis_id: UUID,
    body: DecisionRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Guide gives the final sign-off after Vice-Chancellor approval."""
    actor = Actor.from_user(current_user)
    service = ThesisWorkflowService(db)
    thesis = _commit_transition(
        db, lambda: service.final_decide(thesis_id, actor, body.decision, body.comment)
    )
    return TransitionResponse(
        message=f"Thesis finally {body.decision}",
        thesis=thesis_response(service, thesis, actor),
    )


@router.put("/{thesis_id}/guide-reapprove", response_model=TransitionResponse, responses=WORKFLOW_ERROR_RESPONSES)
async def guide_reapprove(
    thesis_id: UUID,
    body: ReapprovalRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Guide sends a rejected thesis back into review at a chosen stage."""
    actor = Actor.from_user(current_user)
    service = ThesisWorkflowService(db)
    thesis = _commit_transition(
        db, lambda: service.guide_reapprove(thesis_id, actor, body.target, body.comment)
    )
    return TransitionResponse(
        message=f"Thesis re-approved and sent to {body.target}",
        thesis=thesis_response(service, thesis, actor),
    )


@router.put("/{thesis_id}/guide-final-reject", response_model=TransitionResponse, responses=WORKFLOW_ERROR_RESPONSES)
async def guide_final_reject(
    thesis_id: UUID,
    body: FinalRejectionRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Guide rejects a thesis for good after a downstream rejection."""
    actor = Actor.from_user(current_user)
    service = ThesisWorkflowService(db)
    thesis = _commit_transition(
        db, lambda: service.guide_final_reject(thesis_id, actor, body.comment)
    )
    return TransitionResponse(
        message="Thesis finally rejected and returned to scholar",
        thesis=thesis_response(service, thesis, actor),
    )
