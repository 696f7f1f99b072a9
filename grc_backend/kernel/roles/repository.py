"""
SQL role repository - the source of truth for role -> permission mappings.
"""

import uuid
from typing import FrozenSet, List, Optional, Sequence

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from grc_backend.kernel.errors import PermissionNotFoundError
from grc_backend.kernel.models.base import generate_uuid
from grc_backend.kernel.models.role import Permission, Role, RolePermission, UserRoleAssignment
from grc_backend.kernel.models.user import User
from grc_backend.kernel.roles.types import (
    PermissionRecord,
    RoleMember,
    RoleRecord,
    RoleWithPermissions,
)
from grc_backend.logging_config import get_logger

logger = get_logger(__name__)


class RoleRepository:
    """
    Role storage backed by an ``AsyncSession``.

    Mutating methods commit before returning. Anything already pending in the
    session (audit entries added by the caller) is committed together with the
    role change, and cache invalidation done by a wrapping decorator always
    follows a durable write.

    Storage errors are raised unchanged.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_role_permissions(self, role_id: uuid.UUID) -> FrozenSet[str]:
        query = (
            select(Permission.code)
            .join(RolePermission, RolePermission.permission_id == Permission.id)
            .where(RolePermission.role_id == role_id)
        )
        result = await self.session.execute(query)
        codes = frozenset(result.scalars().all())
        logger.debug(
            "Loaded role permissions from storage",
            extra={"role_id": str(role_id), "count": len(codes)},
        )
        return codes

    async def get_by_id(self, role_id: uuid.UUID) -> Optional[RoleRecord]:
        role = await self.session.get(Role, role_id)
        return RoleRecord.from_model(role) if role else None

    async def get_by_name(self, tenant_id: uuid.UUID, name: str) -> Optional[RoleRecord]:
        query = select(Role).where(Role.tenant_id == tenant_id, Role.name == name)
        result = await self.session.execute(query)
        role = result.scalar_one_or_none()
        return RoleRecord.from_model(role) if role else None

    async def list_roles(self, tenant_id: uuid.UUID) -> List[RoleRecord]:
        query = (
            select(Role)
            .where(Role.tenant_id == tenant_id)
            .order_by(Role.created_at.desc(), Role.name)
        )
        result = await self.session.execute(query)
        return [RoleRecord.from_model(role) for role in result.scalars().all()]

    async def create(
        self,
        tenant_id: uuid.UUID,
        name: str,
        description: Optional[str] = None,
        role_id: Optional[uuid.UUID] = None,
    ) -> RoleRecord:
        role = Role(
            id=role_id or generate_uuid(),
            tenant_id=tenant_id,
            name=name,
            description=description,
        )
        self.session.add(role)
        await self.session.commit()
        # Pick up server-side timestamps
        await self.session.refresh(role)
        return RoleRecord.from_model(role)

    async def update(
        self,
        role_id: uuid.UUID,
        name: str,
        description: Optional[str],
    ) -> Optional[RoleRecord]:
        role = await self.session.get(Role, role_id)
        if role is None:
            return None
        role.name = name
        role.description = description
        await self.session.commit()
        await self.session.refresh(role)
        return RoleRecord.from_model(role)

    async def delete(self, role_id: uuid.UUID) -> bool:
        role = await self.session.get(Role, role_id)
        if role is None:
            return False
        # Explicit cleanup; SQLite only cascades with foreign_keys=ON
        await self.session.execute(
            delete(UserRoleAssignment).where(UserRoleAssignment.role_id == role_id)
        )
        await self.session.execute(
            delete(RolePermission).where(RolePermission.role_id == role_id)
        )
        await self.session.delete(role)
        await self.session.commit()
        return True

    async def list_permissions(self) -> List[PermissionRecord]:
        query = select(Permission).order_by(Permission.module, Permission.code)
        result = await self.session.execute(query)
        return [PermissionRecord.from_model(p) for p in result.scalars().all()]

    async def get_role_with_permissions(self, role_id: uuid.UUID) -> Optional[RoleWithPermissions]:
        role = await self.get_by_id(role_id)
        if role is None:
            return None
        codes = await self.get_role_permissions(role_id)
        return RoleWithPermissions(role=role, permissions=tuple(sorted(codes)))

    async def set_role_permissions(
        self,
        role_id: uuid.UUID,
        permission_ids: Sequence[uuid.UUID],
    ) -> None:
        """Replace the role's grants with exactly ``permission_ids``."""
        await self.session.execute(
            delete(RolePermission).where(RolePermission.role_id == role_id)
        )
        for permission_id in dict.fromkeys(permission_ids):
            self.session.add(RolePermission(role_id=role_id, permission_id=permission_id))
        await self.session.commit()

    async def grant_permission(self, role_id: uuid.UUID, code: str) -> bool:
        """
        Grant a single permission by code.

        Returns:
            False if the role already had it

        Raises:
            PermissionNotFoundError: If the code is not in the catalog
        """
        permission = await self._get_permission_by_code(code)
        if permission is None:
            raise PermissionNotFoundError(code)

        existing = await self.session.get(
            RolePermission, {"role_id": role_id, "permission_id": permission.id}
        )
        if existing is not None:
            return False

        self.session.add(RolePermission(role_id=role_id, permission_id=permission.id))
        await self.session.commit()
        return True

    async def revoke_permission(self, role_id: uuid.UUID, code: str) -> bool:
        """
        Revoke a single permission by code.

        Returns:
            True if a grant was removed
        """
        permission = await self._get_permission_by_code(code)
        if permission is None:
            return False

        result = await self.session.execute(
            delete(RolePermission).where(
                RolePermission.role_id == role_id,
                RolePermission.permission_id == permission.id,
            )
        )
        await self.session.commit()
        return result.rowcount > 0

    async def get_users_by_role(self, role_id: uuid.UUID) -> List[RoleMember]:
        query = (
            select(User)
            .join(UserRoleAssignment, UserRoleAssignment.user_id == User.id)
            .where(UserRoleAssignment.role_id == role_id)
            .order_by(User.email)
        )
        result = await self.session.execute(query)
        return [
            RoleMember(
                user_id=user.id,
                email=user.email,
                first_name=user.first_name,
                last_name=user.last_name,
                is_active=user.is_active,
            )
            for user in result.scalars().all()
        ]

    async def _get_permission_by_code(self, code: str) -> Optional[Permission]:
        result = await self.session.execute(select(Permission).where(Permission.code == code))
        return result.scalar_one_or_none()
