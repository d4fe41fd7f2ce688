"""Thesis workflow service.

Provides the high-level API around the state machine: submission, reads,
worklists and transitions, with persistence and logging.
"""

from typing import Any, Dict, List, Optional, Union
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from thesisflow.common.logger import get_logger
from thesisflow.core.rbac import Actor, Capability, PermissionChecker, Role, can_view_thesis
from thesisflow.db.models import Thesis, ThesisTransition, User
from thesisflow.db.repository import ThesisFilter, ThesisRepository

from .errors import (
    ConcurrentModificationError,
    InvalidPayloadError,
    StorageFailureError,
    ThesisNotFoundError,
    UnauthorizedError,
    WorkflowError,
)
from .machine import ThesisStateMachine
from .states import (
    INITIAL_STATE,
    Decision,
    ThesisStage,
    ThesisStatus,
    WorkflowAction,
    WorkflowState,
    to_state,
)

logger = get_logger(__name__)

FINAL_APPROVAL_STATE = WorkflowState(ThesisStatus.VC_REVIEWED, ThesisStage.FINAL)


def worklist_filter(actor: Actor) -> ThesisFilter:
    """Criteria selecting the theses waiting on (or owned by) the actor."""
    if actor.role is Role.SCHOLAR:
        return ThesisFilter(scholar_id=actor.user_id)
    if actor.role is Role.GUIDE:
        return ThesisFilter(guide_id=actor.user_id)
    if actor.role is Role.LIBRARIAN:
        return ThesisFilter(statuses=[ThesisStatus.GUIDE_APPROVED.value])
    if actor.role is Role.REGISTRAR:
        return ThesisFilter(
            statuses=[ThesisStatus.LIBRARIAN_REVIEWED.value],
            guide_decision=Decision.APPROVED.value,
        )
    if actor.role is Role.VC:
        return ThesisFilter(statuses=[ThesisStatus.REGISTRAR_REVIEWED.value])
    raise UnauthorizedError(f"No worklist for role {actor.role}")


class ThesisWorkflowService:
    """
    High-level service for the thesis approval workflow.

    Handles:
    - Submitting theses
    - Reading single theses with visibility checks
    - Per-role worklists and the administrative overview
    - Performing transitions with optimistic concurrency

    Writes are flushed but not committed; the caller commits on success and
    rolls back on error.
    """

    def __init__(self, db: Session):
        """
        Args:
            db: Database session
        """
        self.db = db
        self.repository = ThesisRepository(db)

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def submit(
        self,
        actor: Actor,
        *,
        title: str,
        abstract: str,
        keywords: Union[str, List[str]],
        guide_id: UUID,
        stored_file,
    ) -> Thesis:
        """
        Create a thesis at (submitted, guide).

        Args:
            actor: The submitting scholar
            title: Thesis title
            abstract: Thesis abstract
            keywords: Comma-separated string or list of keywords
            guide_id: The guide who will review the thesis
            stored_file: Reference returned by the blob store

        Raises:
            UnauthorizedError: Actor is not a scholar
            InvalidPayloadError: Blank title or unknown guide
            StorageFailureError: Database error
        """
        if actor.role is not Role.SCHOLAR:
            raise UnauthorizedError("Only scholars can submit a thesis")
        if not title or not title.strip():
            raise InvalidPayloadError("Title is required")

        try:
            guide = self.db.get(User, guide_id)
        except SQLAlchemyError as e:
            raise self._storage_failure("loading guide", e)
        if guide is None or guide.role != Role.GUIDE.value or not guide.is_active:
            raise InvalidPayloadError(f"Unknown guide {guide_id}")

        thesis = Thesis(
            title=title.strip(),
            abstract=abstract or "",
            keywords=_split_keywords(keywords),
            file_filename=stored_file.filename,
            file_original_name=stored_file.original_name,
            file_path=stored_file.path,
            file_mimetype=stored_file.mime_type,
            file_size=stored_file.size,
            scholar_id=actor.user_id,
            guide_id=guide.id,
            status=INITIAL_STATE.status.value,
            current_stage=INITIAL_STATE.stage.value,
            approvals={},
        )

        try:
            self.repository.create(thesis)
        except SQLAlchemyError as e:
            raise self._storage_failure("creating thesis", e)

        logger.info(f"Thesis {thesis.id} submitted by {actor.user_id} for guide {guide.id}")
        return thesis

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_thesis(self, thesis_id: UUID, actor: Optional[Actor] = None) -> Thesis:
        """Get a thesis; with an actor, enforce read visibility."""
        thesis = self._load(thesis_id)
        if actor is not None and not can_view_thesis(actor, thesis):
            raise UnauthorizedError(
                "Access denied",
                thesis_id=thesis.id,
            )
        return thesis

    def get_worklist(self, actor: Actor) -> List[Thesis]:
        """Theses the actor should see on their dashboard, newest first."""
        criteria = worklist_filter(actor)
        try:
            return self.repository.find(criteria)
        except SQLAlchemyError as e:
            raise self._storage_failure("listing theses", e)

    def status_overview(self, actor: Actor) -> Dict[str, Any]:
        """Every thesis with per-status counts. Requires ``thesis:read_any``."""
        if not PermissionChecker(actor.role).has_capability(Capability.THESIS_READ_ANY):
            raise UnauthorizedError("Only review offices can view all theses")
        try:
            theses = self.repository.find()
            counts = self.repository.count_by_status()
        except SQLAlchemyError as e:
            raise self._storage_failure("building overview", e)
        return {"total": len(theses), "status_count": counts, "theses": theses}

    def check_final(self, thesis_id: UUID, actor: Actor) -> Dict[str, Any]:
        """Report whether the thesis is waiting for the guide's final decision."""
        thesis = self.get_thesis(thesis_id, actor)
        return {
            "id": thesis.id,
            "title": thesis.title,
            "status": thesis.status,
            "current_stage": thesis.current_stage,
            "approvals": thesis.approvals or {},
            "can_final_approve": self.state_of(thesis) == FINAL_APPROVAL_STATE,
        }

    def available_actions(self, thesis: Thesis, actor: Actor) -> List[WorkflowAction]:
        machine = ThesisStateMachine(thesis.id, self.state_of(thesis), thesis.guide_id)
        return machine.get_available_actions(actor)

    def history(self, thesis_id: UUID, actor: Actor) -> List[ThesisTransition]:
        thesis = self.get_thesis(thesis_id, actor)
        try:
            return self.repository.history(thesis.id)
        except SQLAlchemyError as e:
            raise self._storage_failure("loading history", e)

    @staticmethod
    def state_of(thesis: Thesis) -> WorkflowState:
        return to_state(thesis.status, thesis.current_stage)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def perform(
        self,
        thesis_id: UUID,
        action: WorkflowAction,
        actor: Actor,
        **payload: Any,
    ) -> Thesis:
        """
        Apply a workflow action to a thesis.

        Args:
            thesis_id: ID of the thesis
            action: Action to perform
            actor: Who is acting
            **payload: Action fields passed to ThesisStateMachine.transition

        Returns:
            The updated thesis (flushed, not committed)

        Raises:
            ThesisNotFoundError: Unknown thesis
            UnauthorizedError: Role or guide ownership mismatch
            PreconditionFailedError: Wrong (status, stage) for the action
            InvalidPayloadError: Missing or malformed fields
            ConcurrentModificationError: Another transition committed first
            StorageFailureError: Database error
        """
        thesis = self._load(thesis_id)
        machine = ThesisStateMachine(thesis.id, self.state_of(thesis), thesis.guide_id)

        try:
            result = machine.transition(action, actor, **payload)
        except WorkflowError as e:
            logger.warning(f"Rejected {action.value} on thesis {thesis.id} by {actor.user_id}: {e.message}")
            raise

        old_state, new_state = result.from_state, result.to_state
        thesis.status = new_state.status.value
        thesis.current_stage = new_state.stage.value
        thesis.approvals = {**(thesis.approvals or {}), result.approval_key.value: result.approval_record}
        thesis.updated_at = result.occurred_at

        transition = ThesisTransition(
            thesis_id=thesis.id,
            action=action.value,
            decision=result.rule.outcome,
            from_status=old_state.status.value,
            from_stage=old_state.stage.value,
            to_status=new_state.status.value,
            to_stage=new_state.stage.value,
            approval_key=result.approval_key.value,
            approval_record=result.approval_record,
            actor_id=actor.user_id,
            actor_role=actor.role.value,
            comment=payload.get("comment"),
            created_at=result.occurred_at,
        )

        try:
            self.repository.save(thesis, transition)
        except StaleDataError:
            self.db.rollback()
            current = self._reload_state(thesis_id)
            logger.warning(f"Concurrent modification of thesis {thesis_id} during {action.value}")
            raise ConcurrentModificationError(
                "Thesis was modified by another request; reload and try again",
                thesis_id=thesis_id,
                state=current,
            )
        except SQLAlchemyError as e:
            raise self._storage_failure(f"saving {action.value}", e)

        logger.info(
            f"Thesis {thesis.id}: {action.value} by {actor.role.value} {actor.user_id} "
            f"{old_state.status.value}/{old_state.stage.value} -> "
            f"{new_state.status.value}/{new_state.stage.value}"
        )
        return thesis

    def guide_decide(self, thesis_id: UUID, actor: Actor, decision, comment: Optional[str] = None) -> Thesis:
        return self.perform(thesis_id, WorkflowAction.GUIDE_DECIDE, actor, decision=decision, comment=comment)

    def librarian_review(
        self,
        thesis_id: UUID,
        actor: Actor,
        *,
        result,
        plagiarism_percentage: Optional[float],
        report: Optional[str],
        comment: Optional[str] = None,
    ) -> Thesis:
        return self.perform(
            thesis_id,
            WorkflowAction.LIBRARIAN_REVIEW,
            actor,
            decision=result,
            plagiarism_percentage=plagiarism_percentage,
            report=report,
            comment=comment,
        )

    def registrar_decide(self, thesis_id: UUID, actor: Actor, decision, comment: Optional[str] = None) -> Thesis:
        return self.perform(thesis_id, WorkflowAction.REGISTRAR_DECIDE, actor, decision=decision, comment=comment)

    def vc_decide(self, thesis_id: UUID, actor: Actor, decision, comment: Optional[str] = None) -> Thesis:
        return self.perform(thesis_id, WorkflowAction.VC_DECIDE, actor, decision=decision, comment=comment)

    def final_decide(self, thesis_id: UUID, actor: Actor, decision, comment: Optional[str] = None) -> Thesis:
        return self.perform(thesis_id, WorkflowAction.FINAL_DECIDE, actor, decision=decision, comment=comment)

    def guide_reapprove(self, thesis_id: UUID, actor: Actor, target, comment: Optional[str] = None) -> Thesis:
        return self.perform(thesis_id, WorkflowAction.GUIDE_REAPPROVE, actor, target=target, comment=comment)

    def guide_final_reject(self, thesis_id: UUID, actor: Actor, comment: Optional[str] = None) -> Thesis:
        return self.perform(thesis_id, WorkflowAction.GUIDE_FINAL_REJECT, actor, comment=comment)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _load(self, thesis_id: UUID) -> Thesis:
        try:
            thesis = self.repository.find_by_id(thesis_id)
        except SQLAlchemyError as e:
            raise self._storage_failure("loading thesis", e)
        if thesis is None:
            raise ThesisNotFoundError("Thesis not found", thesis_id=thesis_id)
        return thesis

    def _reload_state(self, thesis_id: UUID) -> Optional[WorkflowState]:
        try:
            thesis = self.repository.find_by_id(thesis_id)
        except SQLAlchemyError:
            logger.exception(f"Failed to re-read thesis {thesis_id} after a conflict")
            return None
        return self.state_of(thesis) if thesis is not None else None

    def _storage_failure(self, operation: str, error: Exception) -> StorageFailureError:
        self.db.rollback()
        logger.exception(f"Storage failure while {operation}: {error}")
        return StorageFailureError("Internal storage error")


def _split_keywords(keywords: Union[str, List[str], None]) -> List[str]:
    if not keywords:
        return []
    if isinstance(keywords, str):
        keywords = keywords.split(",")
    return [k.strip() for k in keywords if k and k.strip()]
