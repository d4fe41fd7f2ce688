"""Database models for thesisflow."""

from thesisflow.db.models.user import User
from thesisflow.db.models.thesis import Thesis, ThesisTransition

__all__ = [
    "User",
    "Thesis",
    "ThesisTransition",
]
