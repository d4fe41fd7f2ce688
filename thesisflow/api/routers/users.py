"""User directory endpoints."""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.orm import Session

from thesisflow.api.deps import get_current_user, get_db
from thesisflow.api.schemas.thesis import GuideResponse
from thesisflow.core.rbac import Capability, Role, require_capability
from thesisflow.db.models import User

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/guides", response_model=List[GuideResponse])
@require_capability(Capability.USERS_LIST)
async def list_guides(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """List active guides a scholar can submit to."""
    guides = db.scalars(
        select(User)
        .where(User.role == Role.GUIDE.value, User.is_active.is_(True))
        .order_by(User.name)
    ).all()
    return [GuideResponse.model_validate(g) for g in guides]
