import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Boolean, Uuid

from thesisflow.db.base import Base


class User(Base):
    """A workflow participant. Accounts are provisioned outside this service."""
    __tablename__ = "users"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, index=True)  # scholar, guide, librarian, registrar, vc
    department = Column(String(255), nullable=True)
    scholar_number = Column(String(50), nullable=True)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self) -> str:
        return f"<User {self.email} [{self.role}]>"
