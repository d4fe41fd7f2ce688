"""Capability checking utilities.

Provides the acting-user value object, a checker for role capabilities,
and a decorator for FastAPI endpoints.
"""

from dataclasses import dataclass
from functools import wraps
from typing import Callable, Union, List
from uuid import UUID

from fastapi import HTTPException, status

from .permissions import Capability
from .roles import Role, get_role_capabilities


@dataclass(frozen=True)
class Actor:
    """The caller of a workflow operation, as supplied by the identity layer."""

    user_id: UUID
    role: Role

    def __post_init__(self):
        object.__setattr__(self, "role", Role(self.role))

    @classmethod
    def from_user(cls, user) -> "Actor":
        return cls(user_id=user.id, role=Role(user.role))


class PermissionChecker:
    """Checks if a role holds specific capabilities."""

    def __init__(self, role: Union[Role, str]):
        self.role = Role(role)
        self.capabilities = get_role_capabilities(self.role)

    def has_capability(self, capability: Union[str, Capability]) -> bool:
        """Check if the role holds a capability."""
        try:
            return Capability(capability) in self.capabilities
        except ValueError:
            return False

    def has_any_capability(self, capabilities: List[Union[str, Capability]]) -> bool:
        return any(self.has_capability(c) for c in capabilities)

    def has_all_capabilities(self, capabilities: List[Union[str, Capability]]) -> bool:
        return all(self.has_capability(c) for c in capabilities)


def can_view_thesis(actor: Actor, thesis) -> bool:
    """
    Check read access to a single thesis.

    Scholars see their own submissions, guides the theses assigned to them,
    and holders of ``thesis:read_any`` see everything regardless of stage.
    """
    checker = PermissionChecker(actor.role)
    if checker.has_capability(Capability.THESIS_READ_ANY):
        return True
    if checker.has_capability(Capability.THESIS_READ_OWN) and thesis.scholar_id == actor.user_id:
        return True
    if checker.has_capability(Capability.THESIS_READ_ASSIGNED) and thesis.guide_id == actor.user_id:
        return True
    return False


def require_capability(*capabilities: Union[str, Capability], require_all: bool = False):
    """
    Decorator factory for FastAPI endpoints requiring role capabilities.

    Args:
        capabilities: One or more capability strings or Capability members
        require_all: If True, the role must hold ALL capabilities. Default: any one.

    Usage:
        @router.get("/theses/overview")
        @require_capability(Capability.THESIS_READ_ANY)
        async def overview(current_user: User = Depends(get_current_user)):
            ...
    """
    def decorator(func: Callable):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            current_user = kwargs.get("current_user")
            if not current_user:
                raise HTTPException(
                    status_code=status.HTTP_401_UNAUTHORIZED,
                    detail={"error": "unauthenticated", "message": "Authentication required"},
                )

            checker = PermissionChecker(current_user.role)
            cap_strs = [str(c) for c in capabilities]

            if require_all:
                has_access = checker.has_all_capabilities(cap_strs)
            else:
                has_access = checker.has_any_capability(cap_strs)

            if not has_access:
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail={
                        "error": "unauthorized",
                        "message": f"Insufficient permissions. Required: {', '.join(cap_strs)}",
                    },
                )

            return await func(*args, **kwargs)

        return wrapper
    return decorator
