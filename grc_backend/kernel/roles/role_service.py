"""
Role management service.

Applies tenant scoping and validation on top of a ``RoleRepository`` and
records every change in the audit log. Pass a ``CachedRoleRepository`` so
that changes made here invalidate cached permission sets immediately.
"""

import uuid
from typing import List, Optional, Sequence

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from grc_backend.kernel.errors import (
    PermissionNotFoundError,
    RoleAlreadyExistsError,
    RoleInUseError,
    RoleNotFoundError,
    UserAlreadyHasRoleError,
    UserDoesNotHaveRoleError,
    UserNotFoundError,
    ValidationError,
)
from grc_backend.kernel.events.event_store import EventStore
from grc_backend.kernel.models.audit_log import AuditAction
from grc_backend.kernel.models.base import generate_uuid
from grc_backend.kernel.models.role import UserRoleAssignment
from grc_backend.kernel.models.user import User
from grc_backend.kernel.roles.interfaces import RoleRepository
from grc_backend.kernel.roles.types import (
    PermissionRecord,
    RoleMember,
    RoleRecord,
    RoleWithPermissions,
)
from grc_backend.logging_config import get_logger

logger = get_logger(__name__)

MAX_ROLE_NAME_LENGTH = 100
MAX_DESCRIPTION_LENGTH = 500


def validate_role_name(name: str) -> str:
    """Return the stripped name or raise ValidationError."""
    trimmed = (name or "").strip()
    if not trimmed:
        raise ValidationError("name", "role name cannot be empty")
    if len(trimmed) > MAX_ROLE_NAME_LENGTH:
        raise ValidationError("name", f"role name cannot exceed {MAX_ROLE_NAME_LENGTH} characters")
    return trimmed


def validate_description(description: Optional[str]) -> Optional[str]:
    if description is None:
        return None
    if len(description) > MAX_DESCRIPTION_LENGTH:
        raise ValidationError(
            "description",
            f"role description cannot exceed {MAX_DESCRIPTION_LENGTH} characters",
        )
    return description


class RoleService:
    """
    Service for tenant-scoped role management.

    Every mutation adds an audit entry to the session before calling the
    repository, whose commit persists both together.
    """

    def __init__(self, session: AsyncSession, roles: RoleRepository):
        self.session = session
        self.roles = roles
        self.event_store = EventStore(session)

    # Queries

    async def list_roles(self, tenant_id: uuid.UUID) -> List[RoleRecord]:
        return await self.roles.list_roles(tenant_id)

    async def get_role(self, tenant_id: uuid.UUID, role_id: uuid.UUID) -> RoleWithPermissions:
        """
        Get a role of the tenant with its permission codes.

        Raises:
            RoleNotFoundError: If the role does not exist in this tenant
        """
        role = await self.roles.get_role_with_permissions(role_id)
        if role is None or role.role.tenant_id != tenant_id:
            raise RoleNotFoundError(role_id)
        return role

    async def list_permissions(self) -> List[PermissionRecord]:
        return await self.roles.list_permissions()

    async def get_role_users(self, tenant_id: uuid.UUID, role_id: uuid.UUID) -> List[RoleMember]:
        await self._require_role(tenant_id, role_id)
        return await self.roles.get_users_by_role(role_id)

    # Role lifecycle

    async def create_role(
        self,
        tenant_id: uuid.UUID,
        name: str,
        description: Optional[str] = None,
        permission_ids: Optional[Sequence[uuid.UUID]] = None,
        actor_id: Optional[uuid.UUID] = None,
        ip_address: Optional[str] = None,
    ) -> RoleWithPermissions:
        """
        Create a role, optionally with an initial set of permissions.

        Raises:
            ValidationError: If name or description is invalid
            PermissionNotFoundError: If a permission ID is not in the catalog
            RoleAlreadyExistsError: If the tenant already has a role with this name
        """
        name = validate_role_name(name)
        description = validate_description(description)
        permission_ids = list(permission_ids or [])
        await self._validate_permission_ids(permission_ids)

        if await self.roles.get_by_name(tenant_id, name):
            raise RoleAlreadyExistsError(name)

        role_id = generate_uuid()
        await self.event_store.log(
            tenant_id=tenant_id,
            action=AuditAction.ROLE_CREATED,
            entity_type="role",
            entity_id=role_id,
            actor_id=actor_id,
            payload={
                "name": name,
                "description": description,
                "permission_count": len(permission_ids),
            },
            ip_address=ip_address,
        )
        role = await self.roles.create(tenant_id, name, description, role_id)

        if permission_ids:
            try:
                await self.roles.set_role_permissions(role.id, permission_ids)
            except Exception:
                logger.exception(
                    "Failed to set permissions on new role, removing it",
                    extra={"role_id": str(role.id)},
                )
                await self.session.rollback()
                await self.event_store.log(
                    tenant_id=tenant_id,
                    action=AuditAction.ROLE_DELETED,
                    entity_type="role",
                    entity_id=role.id,
                    actor_id=actor_id,
                    payload={"name": name, "reason": "permission assignment failed"},
                    ip_address=ip_address,
                )
                await self.roles.delete(role.id)
                raise

        logger.info("Role created", extra={"role_id": str(role.id), "role_name": name})
        return await self.get_role(tenant_id, role.id)

    async def update_role(
        self,
        tenant_id: uuid.UUID,
        role_id: uuid.UUID,
        name: Optional[str] = None,
        description: Optional[str] = None,
        permission_ids: Optional[Sequence[uuid.UUID]] = None,
        actor_id: Optional[uuid.UUID] = None,
        ip_address: Optional[str] = None,
    ) -> RoleWithPermissions:
        """
        Rename or re-describe a role and optionally replace its permissions.

        Fields left as None are unchanged; ``permission_ids=[]`` removes all
        permissions.
        """
        role = await self._require_role(tenant_id, role_id)

        new_name = role.name
        if name is not None:
            new_name = validate_role_name(name)
            existing = await self.roles.get_by_name(tenant_id, new_name)
            if existing is not None and existing.id != role_id:
                raise RoleAlreadyExistsError(new_name)

        new_description = role.description
        if description is not None:
            new_description = validate_description(description)

        if permission_ids is not None:
            permission_ids = list(permission_ids)
            await self._validate_permission_ids(permission_ids)

        payload = {"name": new_name, "description": new_description}
        if permission_ids is not None:
            payload["permission_count"] = len(permission_ids)
        await self.event_store.log(
            tenant_id=tenant_id,
            action=AuditAction.ROLE_UPDATED,
            entity_type="role",
            entity_id=role_id,
            actor_id=actor_id,
            payload=payload,
            ip_address=ip_address,
        )
        await self.roles.update(role_id, new_name, new_description)

        if permission_ids is not None:
            await self.roles.set_role_permissions(role_id, permission_ids)

        logger.info("Role updated", extra={"role_id": str(role_id)})
        return await self.get_role(tenant_id, role_id)

    async def delete_role(
        self,
        tenant_id: uuid.UUID,
        role_id: uuid.UUID,
        actor_id: Optional[uuid.UUID] = None,
        ip_address: Optional[str] = None,
    ) -> None:
        """
        Delete a role that no user holds.

        Raises:
            RoleNotFoundError: If the role does not exist in this tenant
            RoleInUseError: If users still hold the role
        """
        role = await self._require_role(tenant_id, role_id)

        members = await self.roles.get_users_by_role(role_id)
        if members:
            raise RoleInUseError(role_id, len(members))

        await self.event_store.log(
            tenant_id=tenant_id,
            action=AuditAction.ROLE_DELETED,
            entity_type="role",
            entity_id=role_id,
            actor_id=actor_id,
            payload={"name": role.name, "description": role.description},
            ip_address=ip_address,
        )
        await self.roles.delete(role_id)
        logger.info("Role deleted", extra={"role_id": str(role_id)})

    # Permission grants

    async def set_role_permissions(
        self,
        tenant_id: uuid.UUID,
        role_id: uuid.UUID,
        permission_ids: Sequence[uuid.UUID],
        actor_id: Optional[uuid.UUID] = None,
        ip_address: Optional[str] = None,
    ) -> RoleWithPermissions:
        """Replace a role's permissions with exactly ``permission_ids``."""
        await self._require_role(tenant_id, role_id)
        permission_ids = list(permission_ids)
        await self._validate_permission_ids(permission_ids)

        await self.event_store.log(
            tenant_id=tenant_id,
            action=AuditAction.ROLE_PERMISSIONS_CHANGED,
            entity_type="role",
            entity_id=role_id,
            actor_id=actor_id,
            payload={"permission_ids": permission_ids},
            ip_address=ip_address,
        )
        await self.roles.set_role_permissions(role_id, permission_ids)
        return await self.get_role(tenant_id, role_id)

    async def grant_permission(
        self,
        tenant_id: uuid.UUID,
        role_id: uuid.UUID,
        code: str,
        actor_id: Optional[uuid.UUID] = None,
        ip_address: Optional[str] = None,
    ) -> bool:
        """
        Grant one permission by code.

        Returns:
            False if the role already had the permission
        """
        await self._require_role(tenant_id, role_id)
        await self._require_catalog_code(code)
        if code in await self.roles.get_role_permissions(role_id):
            return False

        await self.event_store.log(
            tenant_id=tenant_id,
            action=AuditAction.ROLE_PERMISSIONS_CHANGED,
            entity_type="role",
            entity_id=role_id,
            actor_id=actor_id,
            payload={"granted": code},
            ip_address=ip_address,
        )
        return await self.roles.grant_permission(role_id, code)

    async def revoke_permission(
        self,
        tenant_id: uuid.UUID,
        role_id: uuid.UUID,
        code: str,
        actor_id: Optional[uuid.UUID] = None,
        ip_address: Optional[str] = None,
    ) -> bool:
        """
        Revoke one permission by code.

        Returns:
            False if the role did not have the permission

        Raises:
            PermissionNotFoundError: If the code is not in the catalog
        """
        await self._require_role(tenant_id, role_id)
        await self._require_catalog_code(code)
        if code not in await self.roles.get_role_permissions(role_id):
            return False

        await self.event_store.log(
            tenant_id=tenant_id,
            action=AuditAction.ROLE_PERMISSIONS_CHANGED,
            entity_type="role",
            entity_id=role_id,
            actor_id=actor_id,
            payload={"revoked": code},
            ip_address=ip_address,
        )
        return await self.roles.revoke_permission(role_id, code)

    # Membership

    async def assign_role(
        self,
        tenant_id: uuid.UUID,
        user_id: uuid.UUID,
        role_id: uuid.UUID,
        actor_id: Optional[uuid.UUID] = None,
        ip_address: Optional[str] = None,
    ) -> None:
        """
        Give a user of the tenant a role of the same tenant.

        Raises:
            UserNotFoundError: If the user is not in this tenant
            RoleNotFoundError: If the role is not in this tenant
            UserAlreadyHasRoleError: If the user already holds the role
        """
        await self._require_user(tenant_id, user_id)
        role = await self._require_role(tenant_id, role_id)

        existing = await self.session.get(
            UserRoleAssignment, {"user_id": user_id, "role_id": role_id}
        )
        if existing is not None:
            raise UserAlreadyHasRoleError(user_id, role_id)

        await self.event_store.log(
            tenant_id=tenant_id,
            action=AuditAction.ROLE_ASSIGNED,
            entity_type="user",
            entity_id=user_id,
            actor_id=actor_id,
            payload={"role_id": role_id, "role_name": role.name},
            ip_address=ip_address,
        )
        self.session.add(UserRoleAssignment(user_id=user_id, role_id=role_id))
        await self.session.commit()

    async def remove_role(
        self,
        tenant_id: uuid.UUID,
        user_id: uuid.UUID,
        role_id: uuid.UUID,
        actor_id: Optional[uuid.UUID] = None,
        ip_address: Optional[str] = None,
    ) -> None:
        """
        Take a role away from a user.

        Raises:
            UserNotFoundError: If the user is not in this tenant
            UserDoesNotHaveRoleError: If the user does not hold the role
        """
        await self._require_user(tenant_id, user_id)

        existing = await self.session.get(
            UserRoleAssignment, {"user_id": user_id, "role_id": role_id}
        )
        if existing is None:
            raise UserDoesNotHaveRoleError(user_id, role_id)

        await self.event_store.log(
            tenant_id=tenant_id,
            action=AuditAction.ROLE_UNASSIGNED,
            entity_type="user",
            entity_id=user_id,
            actor_id=actor_id,
            payload={"role_id": role_id},
            ip_address=ip_address,
        )
        await self.session.execute(
            delete(UserRoleAssignment).where(
                UserRoleAssignment.user_id == user_id,
                UserRoleAssignment.role_id == role_id,
            )
        )
        await self.session.commit()

    # Helpers

    async def _require_role(self, tenant_id: uuid.UUID, role_id: uuid.UUID) -> RoleRecord:
        role = await self.roles.get_by_id(role_id)
        if role is None or role.tenant_id != tenant_id:
            raise RoleNotFoundError(role_id)
        return role

    async def _require_user(self, tenant_id: uuid.UUID, user_id: uuid.UUID) -> User:
        result = await self.session.execute(
            select(User).where(User.id == user_id, User.tenant_id == tenant_id)
        )
        user = result.scalar_one_or_none()
        if user is None:
            raise UserNotFoundError(user_id)
        return user

    async def _validate_permission_ids(self, permission_ids: Sequence[uuid.UUID]) -> None:
        if not permission_ids:
            return
        known = {p.id for p in await self.roles.list_permissions()}
        for permission_id in permission_ids:
            if permission_id not in known:
                raise PermissionNotFoundError(permission_id)

    async def _require_catalog_code(self, code: str) -> None:
        if code not in {p.code for p in await self.roles.list_permissions()}:
            raise PermissionNotFoundError(code)
