"""Thesis workflow database models.

Stores theses with their workflow state and an append-only log of the
transitions applied to them.
"""

import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, JSON, ForeignKey, Text, Integer, BigInteger, Uuid
from sqlalchemy.orm import relationship

from thesisflow.db.base import Base


class Thesis(Base):
    """
    A submitted thesis and its position in the review workflow.

    ``status`` and ``current_stage`` only ever change together, through the
    workflow service. ``version`` guards every write: a flush that finds
    the row at a different version raises StaleDataError.
    """
    __tablename__ = "theses"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    # Descriptive metadata
    title = Column(String(500), nullable=False)
    abstract = Column(Text, nullable=False, default="")
    keywords = Column(JSON, nullable=False, default=list)

    # Stored file reference
    file_filename = Column(String(500), nullable=True)
    file_original_name = Column(String(500), nullable=True)
    file_path = Column(String(1000), nullable=True)
    file_mimetype = Column(String(255), nullable=True)
    file_size = Column(BigInteger, nullable=True)

    # Participants
    scholar_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    guide_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)

    # Workflow state
    status = Column(String(50), nullable=False, default="submitted", index=True)
    current_stage = Column(String(50), nullable=False, default="guide", index=True)
    approvals = Column(JSON, nullable=False, default=dict)

    # Optimistic concurrency
    version = Column(Integer, nullable=False)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    scholar = relationship("User", foreign_keys=[scholar_id])
    guide = relationship("User", foreign_keys=[guide_id])
    transitions = relationship(
        "ThesisTransition",
        back_populates="thesis",
        order_by="ThesisTransition.created_at",
    )

    __mapper_args__ = {"version_id_col": version}

    @property
    def file(self) -> dict | None:
        if not self.file_path:
            return None
        return {
            "filename": self.file_filename,
            "original_name": self.file_original_name,
            "path": self.file_path,
            "mime_type": self.file_mimetype,
            "size": self.file_size,
        }

    def __repr__(self) -> str:
        return f"<Thesis {self.title!r} [{self.status}/{self.current_stage}]>"


class ThesisTransition(Base):
    """
    Records every committed workflow transition.

    Provides a complete audit trail of who moved a thesis and how.
    """
    __tablename__ = "thesis_transitions"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    thesis_id = Column(Uuid(as_uuid=True), ForeignKey("theses.id", ondelete="CASCADE"), nullable=False, index=True)

    # Transition details
    action = Column(String(50), nullable=False)
    decision = Column(String(50), nullable=True)
    from_status = Column(String(50), nullable=False)
    from_stage = Column(String(50), nullable=False)
    to_status = Column(String(50), nullable=False)
    to_stage = Column(String(50), nullable=False)

    # Approval record written by this transition; theses.approvals keeps only the latest per key
    approval_key = Column(String(50), nullable=True)
    approval_record = Column(JSON, nullable=True)

    # Actor
    actor_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    actor_role = Column(String(20), nullable=False)

    comment = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    # Relationships
    thesis = relationship("Thesis", back_populates="transitions")
    actor = relationship("User")

    def __repr__(self) -> str:
        return f"<ThesisTransition {self.from_status}/{self.from_stage} -> {self.to_status}/{self.to_stage}>"
