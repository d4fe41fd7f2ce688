"""Capabilities granted to workflow roles.

Capability string format: "resource:action"
Examples:
  - thesis:submit
  - thesis:read_any
  - users:list
"""

from enum import Enum


class Capability(str, Enum):
    """Capabilities that can be checked against a role."""

    # Submission
    THESIS_SUBMIT = "thesis:submit"            # Upload a new thesis

    # Read access
    THESIS_READ_OWN = "thesis:read_own"        # Theses the user submitted
    THESIS_READ_ASSIGNED = "thesis:read_assigned"  # Theses the user guides
    THESIS_READ_ANY = "thesis:read_any"        # Every thesis, any stage (administrative override)

    # Directory
    USERS_LIST = "users:list"                  # Browse the guide directory

    def __str__(self) -> str:
        return self.value
