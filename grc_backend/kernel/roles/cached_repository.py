"""
Caching decorator for role repositories.
"""

import uuid
from datetime import timedelta
from typing import Any, Awaitable, Callable, FrozenSet, Hashable, List, Optional, Sequence, Union

from grc_backend.kernel.cache import TTLCache, cache_key
from grc_backend.kernel.roles.interfaces import RoleRepository
from grc_backend.kernel.roles.types import (
    PermissionRecord,
    RoleMember,
    RoleRecord,
    RoleWithPermissions,
)
from grc_backend.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_TTL = timedelta(minutes=5)


class CachedRoleRepository:
    """
    Cache-aside wrapper around any ``RoleRepository``.

    Keys:
      role_permissions:{role_id}       permission codes of a role
      role:{role_id}                   role record
      role_with_permissions:{role_id}  role record plus codes
      roles:{tenant_id}                tenant role list
      permissions:all                  permission catalog

    Reads are served from the cache while fresh; misses go to the wrapped
    repository and populate the cache unless the key was invalidated while
    the fetch was in flight. Failed fetches are never cached.

    Mutations go to the wrapped repository first and, once it returns,
    synchronously drop every key the change can affect. Writers that bypass
    this class must call ``invalidate_role``; otherwise readers may see old
    data for at most ``ttl``.
    """

    def __init__(
        self,
        inner: RoleRepository,
        cache: TTLCache,
        ttl: Union[int, float, timedelta] = DEFAULT_TTL,
    ):
        self.inner = inner
        self.cache = cache
        self.ttl = ttl

    # Reads

    async def get_role_permissions(self, role_id: uuid.UUID) -> FrozenSet[str]:
        key = cache_key("role_permissions", role_id)
        return await self._cached(key, lambda: self.inner.get_role_permissions(role_id))

    async def get_by_id(self, role_id: uuid.UUID) -> Optional[RoleRecord]:
        key = cache_key("role", role_id)
        return await self._cached(key, lambda: self.inner.get_by_id(role_id))

    async def list_roles(self, tenant_id: uuid.UUID) -> List[RoleRecord]:
        key = cache_key("roles", tenant_id)
        roles = await self._cached(key, lambda: self._load_tuple(self.inner.list_roles(tenant_id)))
        return list(roles)

    async def get_role_with_permissions(self, role_id: uuid.UUID) -> Optional[RoleWithPermissions]:
        key = cache_key("role_with_permissions", role_id)
        return await self._cached(key, lambda: self.inner.get_role_with_permissions(role_id))

    async def list_permissions(self) -> List[PermissionRecord]:
        key = cache_key("permissions", "all")
        permissions = await self._cached(key, lambda: self._load_tuple(self.inner.list_permissions()))
        return list(permissions)

    async def get_by_name(self, tenant_id: uuid.UUID, name: str) -> Optional[RoleRecord]:
        return await self.inner.get_by_name(tenant_id, name)

    async def get_users_by_role(self, role_id: uuid.UUID) -> List[RoleMember]:
        return await self.inner.get_users_by_role(role_id)

    # Mutations

    async def create(
        self,
        tenant_id: uuid.UUID,
        name: str,
        description: Optional[str] = None,
        role_id: Optional[uuid.UUID] = None,
    ) -> RoleRecord:
        role = await self.inner.create(tenant_id, name, description, role_id)
        self._invalidate_tenant(tenant_id)
        return role

    async def update(
        self,
        role_id: uuid.UUID,
        name: str,
        description: Optional[str],
    ) -> Optional[RoleRecord]:
        role = await self.inner.update(role_id, name, description)
        self.invalidate_role(role_id, role.tenant_id if role else None)
        return role

    async def delete(self, role_id: uuid.UUID) -> bool:
        role = await self.inner.get_by_id(role_id)
        deleted = await self.inner.delete(role_id)
        self.invalidate_role(role_id, role.tenant_id if role else None)
        return deleted

    async def set_role_permissions(
        self,
        role_id: uuid.UUID,
        permission_ids: Sequence[uuid.UUID],
    ) -> None:
        await self.inner.set_role_permissions(role_id, permission_ids)
        self.invalidate_role(role_id)

    async def grant_permission(self, role_id: uuid.UUID, code: str) -> bool:
        granted = await self.inner.grant_permission(role_id, code)
        self.invalidate_role(role_id)
        return granted

    async def revoke_permission(self, role_id: uuid.UUID, code: str) -> bool:
        revoked = await self.inner.revoke_permission(role_id, code)
        self.invalidate_role(role_id)
        return revoked

    # Invalidation

    def invalidate_role(self, role_id: uuid.UUID, tenant_id: Optional[uuid.UUID] = None) -> None:
        """Drop every cached view of a role, and its tenant's role list when known."""
        for prefix in ("role_permissions", "role", "role_with_permissions"):
            self.cache.delete(cache_key(prefix, role_id))
        if tenant_id is not None:
            self._invalidate_tenant(tenant_id)
        logger.debug(
            "Invalidated role cache",
            extra={"role_id": str(role_id), "tenant": str(tenant_id) if tenant_id else None},
        )

    def _invalidate_tenant(self, tenant_id: uuid.UUID) -> None:
        self.cache.delete(cache_key("roles", tenant_id))

    # Helpers

    async def _cached(self, key: Hashable, loader: Callable[[], Awaitable[Any]]) -> Any:
        value, found = self.cache.get(key)
        if found:
            logger.debug("Role cache hit", extra={"cache_key": key})
            return value

        # Taken before the fetch so an invalidation during it wins
        with self.cache.reserve(key) as version:
            value = await loader()
            if value is not None:
                stored = self.cache.set_if_version(key, value, self.ttl, version)
                if not stored:
                    logger.debug("Dropped cache fill after invalidation", extra={"cache_key": key})
        return value

    @staticmethod
    async def _load_tuple(awaitable: Awaitable[List[Any]]) -> tuple:
        return tuple(await awaitable)
