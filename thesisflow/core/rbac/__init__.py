"""Role and capability model for the thesis approval workflow.

Roles are fixed; each role maps to a set of capabilities. Workflow actions
authorize by role (plus guide ownership), while reads authorize through
capabilities.
"""

from .roles import Role, ROLE_CAPABILITIES, ROLE_LABELS
from .permissions import Capability
from .checker import Actor, PermissionChecker, can_view_thesis, require_capability

__all__ = [
    "Role",
    "ROLE_CAPABILITIES",
    "ROLE_LABELS",
    "Capability",
    "Actor",
    "PermissionChecker",
    "can_view_thesis",
    "require_capability",
]
