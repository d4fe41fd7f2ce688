"""Workflow roles and their capability sets.

Five fixed roles take part in a thesis review:
1. Scholar - submits theses and follows their progress
2. Guide - first and last reviewer, handles downstream rejections
3. Librarian - plagiarism check
4. Registrar - administrative review
5. VC - vice-chancellor review
"""

from enum import Enum
from typing import Dict, FrozenSet

from .permissions import Capability


class Role(str, Enum):
    """Roles a user can hold."""

    SCHOLAR = "scholar"
    GUIDE = "guide"
    LIBRARIAN = "librarian"
    REGISTRAR = "registrar"
    VC = "vc"


# Roles with the administrative read override
REVIEW_OFFICE_CAPABILITIES = frozenset({
    Capability.THESIS_READ_ANY,
    Capability.USERS_LIST,
})

ROLE_CAPABILITIES: Dict[Role, FrozenSet[Capability]] = {
    Role.SCHOLAR: frozenset({
        Capability.THESIS_SUBMIT,
        Capability.THESIS_READ_OWN,
        Capability.USERS_LIST,
    }),
    Role.GUIDE: frozenset({
        Capability.THESIS_READ_ASSIGNED,
        Capability.USERS_LIST,
    }),
    Role.LIBRARIAN: REVIEW_OFFICE_CAPABILITIES,
    Role.REGISTRAR: REVIEW_OFFICE_CAPABILITIES,
    Role.VC: REVIEW_OFFICE_CAPABILITIES,
}

ROLE_LABELS: Dict[Role, str] = {
    Role.SCHOLAR: "Scholar",
    Role.GUIDE: "Guide",
    Role.LIBRARIAN: "Librarian",
    Role.REGISTRAR: "Registrar",
    Role.VC: "Vice-Chancellor",
}


def get_role_capabilities(role: Role) -> FrozenSet[Capability]:
    """Get the capability set for a role."""
    return ROLE_CAPABILITIES.get(role, frozenset())
