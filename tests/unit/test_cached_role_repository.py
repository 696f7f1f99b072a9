"""Unit tests for the caching role repository decorator."""

import asyncio
import uuid

import pytest

from grc_backend.kernel.cache import TTLCache
from grc_backend.kernel.roles.cached_repository import CachedRoleRepository

from role_fakes import FakeRoleRepository

TENANT = uuid.UUID("11111111-1111-1111-1111-111111111111")


@pytest.fixture
def inner() -> FakeRoleRepository:
    return FakeRoleRepository()


@pytest.fixture
def cache(clock) -> TTLCache:
    return TTLCache(clock=clock)


@pytest.fixture
def repo(inner, cache) -> CachedRoleRepository:
    return CachedRoleRepository(inner, cache, ttl=300)


class TestCachedReads:
    
    async def test_repeated_reads_fetch_once(self, inner, repo):
        role = inner.add_role(TENANT, "Auditor", {"asset.view"})
        
        first = await repo.get_role_permissions(role.id)
        second = await repo.get_role_permissions(role.id)
        
        assert first == second == frozenset({"asset.view"})
        assert inner.calls["get_role_permissions"] == 1
    
    async def test_results_match_inner_repository(self, inner, repo):
        role = inner.add_role(TENANT, "Auditor", {"asset.view", "risk.view"})
        
        assert await repo.get_by_id(role.id) == await inner.get_by_id(role.id)
        assert await repo.list_roles(TENANT) == await inner.list_roles(TENANT)
        assert await repo.list_permissions() == await inner.list_permissions()
        assert (
            await repo.get_role_with_permissions(role.id)
            == await inner.get_role_with_permissions(role.id)
        )
    
    async def test_role_without_permissions_is_cached(self, inner, repo):
        role = inner.add_role(TENANT, "Empty")
        
        assert await repo.get_role_permissions(role.id) == frozenset()
        assert await repo.get_role_permissions(role.id) == frozenset()
        assert inner.calls["get_role_permissions"] == 1
    
    async def test_entry_refetched_after_ttl(self, inner, repo, clock):
        role = inner.add_role(TENANT, "Auditor", {"asset.view"})
        await repo.get_role_permissions(role.id)
        
        # Change behind the decorator's back
        inner.grants[role.id].add("asset.edit")
        assert await repo.get_role_permissions(role.id) == frozenset({"asset.view"})
        
        clock.advance(300)
        
        assert await repo.get_role_permissions(role.id) == frozenset({"asset.view", "asset.edit"})
        assert inner.calls["get_role_permissions"] == 2
    
    async def test_failed_fetch_is_not_cached(self, inner, repo):
        role = inner.add_role(TENANT, "Auditor", {"asset.view"})
        inner.fail_reads = RuntimeError("database unavailable")
        
        with pytest.raises(RuntimeError):
            await repo.get_role_permissions(role.id)
        
        inner.fail_reads = None
        assert await repo.get_role_permissions(role.id) == frozenset({"asset.view"})
        assert inner.calls["get_role_permissions"] == 2
    
    async def test_missing_role_is_not_cached(self, inner, repo):
        role_id = uuid.uuid4()
        
        assert await repo.get_by_id(role_id) is None
        assert await repo.get_by_id(role_id) is None
        assert inner.calls["get_by_id"] == 2
    
    async def test_uncached_reads_pass_through(self, inner, repo):
        inner.add_role(TENANT, "Auditor")
        
        await repo.get_by_name(TENANT, "Auditor")
        await repo.get_by_name(TENANT, "Auditor")
        
        assert inner.calls["get_by_name"] == 2


class TestInvalidation:
    """Reads after a completed mutation reflect the mutation."""
    
    async def test_set_role_permissions(self, inner, repo):
        role = inner.add_role(TENANT, "Auditor", {"asset.view"})
        await repo.get_role_permissions(role.id)
        await repo.get_role_with_permissions(role.id)
        
        await repo.set_role_permissions(role.id, [inner.permission_id("risk.view")])
        
        assert await repo.get_role_permissions(role.id) == frozenset({"risk.view"})
        detail = await repo.get_role_with_permissions(role.id)
        assert detail.permissions == ("risk.view",)
    
    async def test_revoke_takes_effect_immediately(self, inner, repo):
        role = inner.add_role(TENANT, "Auditor", {"asset.view", "asset.edit"})
        assert "asset.edit" in await repo.get_role_permissions(role.id)
        
        assert await repo.revoke_permission(role.id, "asset.edit") is True
        
        assert "asset.edit" not in await repo.get_role_permissions(role.id)
    
    async def test_grant_takes_effect_immediately(self, inner, repo):
        role = inner.add_role(TENANT, "Auditor")
        assert await repo.get_role_permissions(role.id) == frozenset()
        
        await repo.grant_permission(role.id, "risk.view")
        
        assert await repo.get_role_permissions(role.id) == frozenset({"risk.view"})
    
    async def test_create_refreshes_tenant_list(self, inner, repo):
        assert await repo.list_roles(TENANT) == []
        
        role = await repo.create(TENANT, "Auditor")
        
        assert [r.id for r in await repo.list_roles(TENANT)] == [role.id]
    
    async def test_update_refreshes_role_and_list(self, inner, repo):
        role = inner.add_role(TENANT, "Auditor")
        await repo.get_by_id(role.id)
        await repo.list_roles(TENANT)
        
        await repo.update(role.id, "Lead Auditor", "reviews evidence")
        
        assert (await repo.get_by_id(role.id)).name == "Lead Auditor"
        assert [r.name for r in await repo.list_roles(TENANT)] == ["Lead Auditor"]
    
    async def test_delete_removes_every_view(self, inner, repo):
        role = inner.add_role(TENANT, "Auditor", {"asset.view"})
        await repo.get_by_id(role.id)
        await repo.get_role_permissions(role.id)
        await repo.list_roles(TENANT)
        
        assert await repo.delete(role.id) is True
        
        assert await repo.get_by_id(role.id) is None
        assert await repo.get_role_permissions(role.id) == frozenset()
        assert await repo.list_roles(TENANT) == []
    
    async def test_failed_mutation_keeps_cache(self, inner, repo):
        role = inner.add_role(TENANT, "Auditor", {"asset.view"})
        await repo.get_role_permissions(role.id)
        inner.fail_writes = RuntimeError("write failed")
        
        with pytest.raises(RuntimeError):
            await repo.grant_permission(role.id, "asset.edit")
        
        await repo.get_role_permissions(role.id)
        assert inner.calls["get_role_permissions"] == 1
    
    async def test_invalidate_role_for_external_writers(self, inner, repo):
        role = inner.add_role(TENANT, "Auditor", {"asset.view"})
        await repo.get_role_permissions(role.id)
        inner.grants[role.id] = {"risk.view"}
        
        repo.invalidate_role(role.id, TENANT)
        
        assert await repo.get_role_permissions(role.id) == frozenset({"risk.view"})
    
    async def test_other_roles_stay_cached(self, inner, repo):
        a = inner.add_role(TENANT, "A", {"asset.view"})
        b = inner.add_role(TENANT, "B", {"risk.view"})
        await repo.get_role_permissions(a.id)
        await repo.get_role_permissions(b.id)
        
        await repo.grant_permission(a.id, "asset.edit")
        await repo.get_role_permissions(b.id)
        
        assert inner.calls["get_role_permissions"] == 2
    
    async def test_invalidation_during_fetch_wins(self, inner, repo, cache):
        """A fetch that started before a change must not re-cache the old set."""
        role = inner.add_role(TENANT, "Auditor", {"asset.view", "asset.edit"})
        gate = asyncio.Event()
        inner.gate = gate
        
        slow_read = asyncio.create_task(repo.get_role_permissions(role.id))
        await inner.fetch_started.wait()
        
        inner.gate = None
        await repo.revoke_permission(role.id, "asset.edit")
        
        # The paused reader finishes with its pre-change snapshot
        gate.set()
        stale = await slow_read
        
        assert stale == frozenset({"asset.view", "asset.edit"})
        assert await repo.get_role_permissions(role.id) == frozenset({"asset.view"})
        assert inner.calls["get_role_permissions"] == 2
        assert cache._pending == {} and cache._generations == {}


class TestFillBookkeeping:
    """Fills release their version tokens whatever the outcome."""
    
    async def test_released_after_hit_miss_and_failure(self, inner, repo, cache):
        role = inner.add_role(TENANT, "Auditor", {"asset.view"})
        
        await repo.get_role_permissions(role.id)
        await repo.get_by_id(uuid.uuid4())
        inner.fail_reads = RuntimeError("database unavailable")
        with pytest.raises(RuntimeError):
            await repo.get_by_id(role.id)
        
        assert cache._pending == {}
        assert cache._generations == {}
    
    async def test_invalidation_churn_leaves_no_bookkeeping(self, inner, repo, cache):
        roles = [inner.add_role(TENANT, f"Role {i}", {"asset.view"}) for i in range(50)]
        
        for role in roles:
            await repo.get_role_permissions(role.id)
            await repo.revoke_permission(role.id, "asset.view")
            await repo.delete(role.id)
        
        assert cache._pending == {}
        assert cache._generations == {}
