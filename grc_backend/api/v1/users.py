"""
User role assignment endpoints.
"""

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, Request, status

from grc_backend.api.deps import (
    AuthContext,
    DbSession,
    RequirePermission,
    RoleRepo,
    domain_error_to_http,
    get_client_ip,
)
from grc_backend.constants.permissions import USERS_MANAGE
from grc_backend.kernel.errors import DomainError
from grc_backend.kernel.roles.role_service import RoleService

router = APIRouter()

CanManageUsers = Annotated[AuthContext, Depends(RequirePermission(USERS_MANAGE))]


@router.post("/{user_id}/roles/{role_id}", status_code=status.HTTP_204_NO_CONTENT)
async def assign_role(
    request: Request,
    user_id: uuid.UUID,
    role_id: uuid.UUID,
    auth: CanManageUsers,
    db: DbSession,
    roles: RoleRepo,
):
    """Give a user a role."""
    try:
        await RoleService(db, roles).assign_role(
            tenant_id=auth.tenant_id,
            user_id=user_id,
            role_id=role_id,
            actor_id=auth.user.id,
            ip_address=get_client_ip(request),
        )
    except DomainError as e:
        raise domain_error_to_http(e)


@router.delete("/{user_id}/roles/{role_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_role(
    request: Request,
    user_id: uuid.UUID,
    role_id: uuid.UUID,
    auth: CanManageUsers,
    db: DbSession,
    roles: RoleRepo,
):
    """Take a role away from a user."""
    try:
        await RoleService(db, roles).remove_role(
            tenant_id=auth.tenant_id,
            user_id=user_id,
            role_id=role_id,
            actor_id=auth.user.id,
            ip_address=get_client_ip(request),
        )
    except DomainError as e:
        raise domain_error_to_http(e)
