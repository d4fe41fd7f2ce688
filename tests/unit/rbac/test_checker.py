"""Tests for role capabilities and the capability checker."""

import asyncio
from types import SimpleNamespace
from uuid import uuid4

import pytest
from fastapi import HTTPException

from thesisflow.core.rbac import (
    ROLE_CAPABILITIES,
    Actor,
    Capability,
    PermissionChecker,
    Role,
    can_view_thesis,
    require_capability,
)


class TestRoles:

    def test_capability_string_format(self):
        assert str(Capability.THESIS_READ_ANY) == "thesis:read_any"

    def test_every_role_has_capabilities(self):
        for role in Role:
            assert ROLE_CAPABILITIES[role]

    def test_review_offices_read_any(self):
        for role in (Role.LIBRARIAN, Role.REGISTRAR, Role.VC):
            assert PermissionChecker(role).has_capability(Capability.THESIS_READ_ANY)
        for role in (Role.SCHOLAR, Role.GUIDE):
            assert not PermissionChecker(role).has_capability(Capability.THESIS_READ_ANY)

    def test_only_scholars_submit(self):
        holders = [r for r in Role if PermissionChecker(r).has_capability("thesis:submit")]
        assert holders == [Role.SCHOLAR]


class TestPermissionChecker:

    def test_accepts_role_string(self):
        assert PermissionChecker("guide").role is Role.GUIDE

    def test_unknown_role(self):
        with pytest.raises(ValueError):
            PermissionChecker("dean")

    def test_unknown_capability_is_denied(self):
        assert not PermissionChecker(Role.VC).has_capability("thesis:delete")

    def test_any_and_all(self):
        checker = PermissionChecker(Role.SCHOLAR)
        assert checker.has_any_capability(["thesis:read_any", "thesis:submit"])
        assert not checker.has_all_capabilities(["thesis:read_any", "thesis:submit"])
        assert checker.has_all_capabilities(["thesis:read_own", "thesis:submit"])


class TestActor:

    def test_role_coerced_from_string(self):
        actor = Actor(uuid4(), "registrar")
        assert actor.role is Role.REGISTRAR

    def test_from_user(self):
        user = SimpleNamespace(id=uuid4(), role="vc")
        actor = Actor.from_user(user)
        assert actor.user_id == user.id
        assert actor.role is Role.VC


class TestThesisVisibility:

    @pytest.fixture
    def thesis(self):
        return SimpleNamespace(scholar_id=uuid4(), guide_id=uuid4())

    def test_owner_and_guide(self, thesis):
        assert can_view_thesis(Actor(thesis.scholar_id, Role.SCHOLAR), thesis)
        assert can_view_thesis(Actor(thesis.guide_id, Role.GUIDE), thesis)

    def test_strangers(self, thesis):
        assert not can_view_thesis(Actor(uuid4(), Role.SCHOLAR), thesis)
        assert not can_view_thesis(Actor(uuid4(), Role.GUIDE), thesis)

    def test_guide_id_does_not_grant_scholar_access(self, thesis):
        assert not can_view_thesis(Actor(thesis.guide_id, Role.SCHOLAR), thesis)

    def test_review_offices(self, thesis):
        for role in (Role.LIBRARIAN, Role.REGISTRAR, Role.VC):
            assert can_view_thesis(Actor(uuid4(), role), thesis)


class TestRequireCapability:

    @staticmethod
    def endpoint():
        @require_capability(Capability.THESIS_SUBMIT)
        async def upload(current_user=None):
            return "ok"

        return upload

    def test_allowed(self):
        user = SimpleNamespace(id=uuid4(), role="scholar")
        assert asyncio.run(self.endpoint()(current_user=user)) == "ok"

    def test_missing_capability(self):
        user = SimpleNamespace(id=uuid4(), role="guide")
        with pytest.raises(HTTPException) as exc_info:
            asyncio.run(self.endpoint()(current_user=user))
        assert exc_info.value.status_code == 403
        assert exc_info.value.detail["error"] == "unauthorized"

    def test_no_user(self):
        with pytest.raises(HTTPException) as exc_info:
            asyncio.run(self.endpoint()())
        assert exc_info.value.status_code == 401
