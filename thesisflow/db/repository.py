"""Thesis repository for database operations."""

from dataclasses import dataclass
from typing import Dict, Optional, Sequence
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from thesisflow.db.models import Thesis, ThesisTransition


@dataclass
class ThesisFilter:
    """Criteria for listing theses. Unset fields do not filter."""

    scholar_id: Optional[UUID] = None
    guide_id: Optional[UUID] = None
    statuses: Optional[Sequence[str]] = None
    guide_decision: Optional[str] = None  # value of approvals.guide.status


class ThesisRepository:
    """Document store for theses.

    Writes are flushed, not committed: the caller owns the transaction.
    SQLAlchemy errors propagate unchanged; StaleDataError from ``save``
    means another writer bumped the row version first.
    """

    def __init__(self, db: Session):
        """Initialize repository with database session.

        Args:
            db: SQLAlchemy database session
        """
        self.db = db

    def create(self, thesis: Thesis) -> Thesis:
        self.db.add(thesis)
        self.db.flush()
        return thesis

    def find_by_id(self, thesis_id: UUID) -> Optional[Thesis]:
        return self.db.get(Thesis, thesis_id)

    def save(self, thesis: Thesis, transition: Optional[ThesisTransition] = None) -> Thesis:
        """Persist a mutated thesis, plus its transition log row if given.

        The UPDATE is conditioned on the version that was read; see
        ``Thesis.__mapper_args__``.
        """
        self.db.add(thesis)
        if transition is not None:
            self.db.add(transition)
        self.db.flush()
        return thesis

    def find(self, criteria: Optional[ThesisFilter] = None) -> list[Thesis]:
        """List theses matching the criteria, newest first."""
        query = select(Thesis)
        if criteria is not None:
            if criteria.scholar_id is not None:
                query = query.where(Thesis.scholar_id == criteria.scholar_id)
            if criteria.guide_id is not None:
                query = query.where(Thesis.guide_id == criteria.guide_id)
            if criteria.statuses:
                query = query.where(Thesis.status.in_(list(criteria.statuses)))
            if criteria.guide_decision is not None:
                query = query.where(
                    Thesis.approvals[("guide", "status")].as_string() == criteria.guide_decision
                )
        query = query.order_by(Thesis.created_at.desc())
        return list(self.db.scalars(query).all())

    def count_by_status(self) -> Dict[str, int]:
        rows = self.db.execute(
            select(Thesis.status, func.count(Thesis.id)).group_by(Thesis.status)
        ).all()
        return {status: count for status, count in rows}

    def history(self, thesis_id: UUID) -> list[ThesisTransition]:
        query = (
            select(ThesisTransition)
            .where(ThesisTransition.thesis_id == thesis_id)
            .order_by(ThesisTransition.created_at.asc())
        )
        return list(self.db.scalars(query).all())
