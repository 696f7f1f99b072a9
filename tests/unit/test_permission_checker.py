"""Unit tests for PermissionChecker."""

import uuid

import pytest

from grc_backend.kernel.cache import TTLCache
from grc_backend.kernel.permissions.checker import PermissionChecker
from grc_backend.kernel.roles.cached_repository import CachedRoleRepository

from role_fakes import FakeRoleRepository

TENANT = uuid.uuid4()


@pytest.fixture
def inner() -> FakeRoleRepository:
    return FakeRoleRepository()


@pytest.fixture
def checker(inner) -> PermissionChecker:
    return PermissionChecker(inner)


class TestHasPermission:
    
    async def test_granted_by_single_role(self, inner, checker):
        role = inner.add_role(TENANT, "Viewer", {"asset.view"})
        
        assert await checker.has_permission([role.id], "asset.view") is True
        assert await checker.has_permission([role.id], "asset.edit") is False
    
    async def test_union_of_roles(self, inner, checker):
        viewer = inner.add_role(TENANT, "Viewer", {"asset.view"})
        editor = inner.add_role(TENANT, "Editor", {"asset.edit"})
        
        assert await checker.has_permission([viewer.id, editor.id], "asset.edit") is True
    
    async def test_no_roles_denies(self, checker):
        assert await checker.has_permission([], "asset.view") is False
    
    async def test_unknown_role_grants_nothing(self, checker):
        assert await checker.has_permission([uuid.uuid4()], "asset.view") is False
    
    async def test_stops_at_first_granting_role(self, inner, checker):
        granting = inner.add_role(TENANT, "Viewer", {"asset.view"})
        other = inner.add_role(TENANT, "Other", {"risk.view"})
        
        assert await checker.has_permission([granting.id, other.id], "asset.view") is True
        assert inner.calls["get_role_permissions"] == 1
    
    async def test_duplicate_role_ids_fetched_once(self, inner, checker):
        role = inner.add_role(TENANT, "Viewer", {"asset.view"})
        
        assert await checker.has_permission([role.id, role.id], "risk.view") is False
        assert inner.calls["get_role_permissions"] == 1
    
    async def test_lookup_failure_propagates(self, inner, checker):
        role = inner.add_role(TENANT, "Viewer", {"asset.view"})
        inner.fail_reads = RuntimeError("database unavailable")
        
        with pytest.raises(RuntimeError):
            await checker.has_permission([role.id], "asset.view")


class TestEffectivePermissions:
    
    async def test_union(self, inner, checker):
        a = inner.add_role(TENANT, "A", {"asset.view"})
        b = inner.add_role(TENANT, "B", {"asset.view", "risk.view"})
        
        assert await checker.effective_permissions([a.id, b.id]) == frozenset({"asset.view", "risk.view"})
    
    async def test_empty(self, checker):
        assert await checker.effective_permissions([]) == frozenset()


async def test_revocation_visible_through_cache(inner, clock):
    """With the cached repository, a revoke is seen by the very next check."""
    repo = CachedRoleRepository(inner, TTLCache(clock=clock), ttl=300)
    checker = PermissionChecker(repo)
    role = inner.add_role(TENANT, "Editor", {"asset.edit"})
    
    assert await checker.has_permission([role.id], "asset.edit") is True
    await repo.revoke_permission(role.id, "asset.edit")
    assert await checker.has_permission([role.id], "asset.edit") is False
