"""
Role management endpoints.

Every handler goes through the cached role repository, so changes made here
are visible to permission checks on the next request.
"""

import uuid
from typing import Annotated, List

from fastapi import APIRouter, Depends, Request, status

from grc_backend.api.deps import (
    Auth,
    AuthContext,
    Checker,
    DbSession,
    RequirePermission,
    RoleRepo,
    domain_error_to_http,
    get_client_ip,
    resolve_permissions,
)
from grc_backend.constants.permissions import ROLES_MANAGE, ROLES_VIEW
from grc_backend.kernel.errors import DomainError
from grc_backend.kernel.roles.role_service import RoleService
from grc_backend.schemas.role import (
    PermissionChangeResponse,
    RoleCreate,
    RoleDetailResponse,
    RoleMemberResponse,
    RolePermissionsUpdate,
    RoleResponse,
    RoleUpdate,
)

router = APIRouter()

CanView = Annotated[AuthContext, Depends(RequirePermission(ROLES_VIEW))]
CanManage = Annotated[AuthContext, Depends(RequirePermission(ROLES_MANAGE))]


@router.get("", response_model=List[RoleResponse])
async def list_roles(auth: CanView, db: DbSession, roles: RoleRepo):
    """List the roles of the caller's tenant."""
    records = await RoleService(db, roles).list_roles(auth.tenant_id)
    return [RoleResponse.model_validate(r) for r in records]


@router.get("/me/permissions", response_model=List[str])
async def my_permissions(auth: Auth, checker: Checker):
    """Permission codes granted to the caller by their roles."""
    return sorted(await resolve_permissions(auth, checker))


@router.post("", response_model=RoleDetailResponse, status_code=status.HTTP_201_CREATED)
async def create_role(
    request: Request,
    data: RoleCreate,
    auth: CanManage,
    db: DbSession,
    roles: RoleRepo,
):
    """Create a role, optionally with initial permissions."""
    try:
        role = await RoleService(db, roles).create_role(
            tenant_id=auth.tenant_id,
            name=data.name,
            description=data.description,
            permission_ids=data.permission_ids,
            actor_id=auth.user.id,
            ip_address=get_client_ip(request),
        )
    except DomainError as e:
        raise domain_error_to_http(e)
    
    return RoleDetailResponse.from_record(role)


@router.get("/{role_id}", response_model=RoleDetailResponse)
async def get_role(role_id: uuid.UUID, auth: CanView, db: DbSession, roles: RoleRepo):
    """Get a role with its permission codes."""
    try:
        role = await RoleService(db, roles).get_role(auth.tenant_id, role_id)
    except DomainError as e:
        raise domain_error_to_http(e)
    
    return RoleDetailResponse.from_record(role)


@router.patch("/{role_id}", response_model=RoleDetailResponse)
async def update_role(
    request: Request,
    role_id: uuid.UUID,
    data: RoleUpdate,
    auth: CanManage,
    db: DbSession,
    roles: RoleRepo,
):
    """Update a role's name, description or permissions."""
    try:
        role = await RoleService(db, roles).update_role(
            tenant_id=auth.tenant_id,
            role_id=role_id,
            name=data.name,
            description=data.description,
            permission_ids=data.permission_ids,
            actor_id=auth.user.id,
            ip_address=get_client_ip(request),
        )
    except DomainError as e:
        raise domain_error_to_http(e)
    
    return RoleDetailResponse.from_record(role)


@router.delete("/{role_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_role(
    request: Request,
    role_id: uuid.UUID,
    auth: CanManage,
    db: DbSession,
    roles: RoleRepo,
):
    """Delete a role no user holds."""
    try:
        await RoleService(db, roles).delete_role(
            tenant_id=auth.tenant_id,
            role_id=role_id,
            actor_id=auth.user.id,
            ip_address=get_client_ip(request),
        )
    except DomainError as e:
        raise domain_error_to_http(e)


@router.put("/{role_id}/permissions", response_model=RoleDetailResponse)
async def set_role_permissions(
    request: Request,
    role_id: uuid.UUID,
    data: RolePermissionsUpdate,
    auth: CanManage,
    db: DbSession,
    roles: RoleRepo,
):
    """Replace a role's permissions."""
    try:
        role = await RoleService(db, roles).set_role_permissions(
            tenant_id=auth.tenant_id,
            role_id=role_id,
            permission_ids=data.permission_ids,
            actor_id=auth.user.id,
            ip_address=get_client_ip(request),
        )
    except DomainError as e:
        raise domain_error_to_http(e)
    
    return RoleDetailResponse.from_record(role)


@router.post("/{role_id}/permissions/{code}", response_model=PermissionChangeResponse)
async def grant_permission(
    request: Request,
    role_id: uuid.UUID,
    code: str,
    auth: CanManage,
    db: DbSession,
    roles: RoleRepo,
):
    """Grant one permission to a role."""
    try:
        changed = await RoleService(db, roles).grant_permission(
            tenant_id=auth.tenant_id,
            role_id=role_id,
            code=code,
            actor_id=auth.user.id,
            ip_address=get_client_ip(request),
        )
    except DomainError as e:
        raise domain_error_to_http(e)
    
    return PermissionChangeResponse(role_id=role_id, code=code, changed=changed)


@router.delete("/{role_id}/permissions/{code}", response_model=PermissionChangeResponse)
async def revoke_permission(
    request: Request,
    role_id: uuid.UUID,
    code: str,
    auth: CanManage,
    db: DbSession,
    roles: RoleRepo,
):
    """Revoke one permission from a role."""
    try:
        changed = await RoleService(db, roles).revoke_permission(
            tenant_id=auth.tenant_id,
            role_id=role_id,
            code=code,
            actor_id=auth.user.id,
            ip_address=get_client_ip(request),
        )
    except DomainError as e:
        raise domain_error_to_http(e)
    
    return PermissionChangeResponse(role_id=role_id, code=code, changed=changed)


@router.get("/{role_id}/users", response_model=List[RoleMemberResponse])
async def get_role_users(role_id: uuid.UUID, auth: CanView, db: DbSession, roles: RoleRepo):
    """List the users holding a role."""
    try:
        members = await RoleService(db, roles).get_role_users(auth.tenant_id, role_id)
    except DomainError as e:
        raise domain_error_to_http(e)
    
    return [RoleMemberResponse.model_validate(m) for m in members]
