"""Thesis file download endpoint."""

from urllib.parse import quote
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session

from thesisflow.api.deps import get_blob_store, get_current_user, get_db
from thesisflow.api.errors import http_error
from thesisflow.common.logger import get_logger
from thesisflow.core.approval import ThesisWorkflowService, WorkflowError
from thesisflow.core.rbac import Actor
from thesisflow.db.models import User
from thesisflow.services.storage import LocalBlobStore

logger = get_logger(__name__)

router = APIRouter(prefix="/files", tags=["files"])


@router.get("/download/{thesis_id}")
async def download_thesis_file(
    thesis_id: UUID,
    db: Session = Depends(get_db),
    blob_store: LocalBlobStore = Depends(get_blob_store),
    current_user: User = Depends(get_current_user),
):
    """
    Stream the thesis file inline.

    Visibility follows the thesis: the scholar, the assigned guide, and the
    review offices.
    """
    service = ThesisWorkflowService(db)
    try:
        thesis = service.get_thesis(thesis_id, Actor.from_user(current_user))
    except WorkflowError as e:
        raise http_error(e)

    if not thesis.file_path:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"error": "not_found", "message": "No file attached to this thesis"},
        )

    path = blob_store.resolve(thesis.file_path)
    if path is None:
        logger.error(f"File for thesis {thesis.id} missing from storage: {thesis.file_path}")
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"error": "not_found", "message": "File not found on server"},
        )

    filename = thesis.file_original_name or thesis.file_filename
    return FileResponse(
        path,
        media_type=thesis.file_mimetype or "application/pdf",
        headers={"Content-Disposition": f"inline; filename*=UTF-8''{quote(filename)}"},
    )
