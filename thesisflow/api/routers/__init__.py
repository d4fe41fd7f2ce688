"""API routers for ThesisFlow."""

from . import files
from . import health
from . import theses
from . import users

__all__ = [
    "files",
    "health",
    "theses",
    "users",
]
