"""
Role capability interfaces.

Both the SQL repository and the caching decorator implement
``RoleRepository``, so services and the permission checker never know
whether caching is present.
"""

import uuid
from typing import FrozenSet, List, Optional, Protocol, Sequence

from grc_backend.kernel.roles.types import (
    PermissionRecord,
    RoleMember,
    RoleRecord,
    RoleWithPermissions,
)


class RoleLookup(Protocol):
    """Read-only source of role -> permission code mappings."""

    async def get_role_permissions(self, role_id: uuid.UUID) -> FrozenSet[str]:
        """
        Permission codes granted to a role.

        An unknown role, or one without grants, yields an empty set.
        Storage failures are raised unchanged.
        """
        ...


class RoleRepository(RoleLookup, Protocol):
    """Full role management capability set."""

    async def get_by_id(self, role_id: uuid.UUID) -> Optional[RoleRecord]: ...

    async def get_by_name(self, tenant_id: uuid.UUID, name: str) -> Optional[RoleRecord]: ...

    async def list_roles(self, tenant_id: uuid.UUID) -> List[RoleRecord]: ...

    async def create(
        self,
        tenant_id: uuid.UUID,
        name: str,
        description: Optional[str] = None,
        role_id: Optional[uuid.UUID] = None,
    ) -> RoleRecord: ...

    async def update(
        self,
        role_id: uuid.UUID,
        name: str,
        description: Optional[str],
    ) -> Optional[RoleRecord]: ...

    async def delete(self, role_id: uuid.UUID) -> bool: ...

    async def list_permissions(self) -> List[PermissionRecord]: ...

    async def get_role_with_permissions(self, role_id: uuid.UUID) -> Optional[RoleWithPermissions]: ...

    async def set_role_permissions(
        self,
        role_id: uuid.UUID,
        permission_ids: Sequence[uuid.UUID],
    ) -> None: ...

    async def grant_permission(self, role_id: uuid.UUID, code: str) -> bool: ...

    async def revoke_permission(self, role_id: uuid.UUID, code: str) -> bool: ...

    async def get_users_by_role(self, role_id: uuid.UUID) -> List[RoleMember]: ...
