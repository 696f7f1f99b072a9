"""
Role and permission schemas.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from grc_backend.kernel.roles.types import RoleWithPermissions


class PermissionResponse(BaseModel):
    """Catalog permission."""
    
    id: uuid.UUID
    code: str
    module: str
    description: Optional[str] = None
    
    class Config:
        from_attributes = True


class RoleResponse(BaseModel):
    """Role without its permissions."""
    
    id: uuid.UUID
    tenant_id: uuid.UUID
    name: str
    description: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    
    class Config:
        from_attributes = True


class RoleDetailResponse(RoleResponse):
    """Role with its permission codes."""
    
    permissions: List[str] = Field(default_factory=list)
    
    @classmethod
    def from_record(cls, record: RoleWithPermissions) -> "RoleDetailResponse":
        role = record.role
        return cls(
            id=role.id,
            tenant_id=role.tenant_id,
            name=role.name,
            description=role.description,
            created_at=role.created_at,
            updated_at=role.updated_at,
            permissions=list(record.permissions),
        )


class RoleCreate(BaseModel):
    """Create role request. Length limits are enforced by the role service."""
    
    name: str
    description: Optional[str] = None
    permission_ids: List[uuid.UUID] = Field(default_factory=list)


class RoleUpdate(BaseModel):
    """Partial role update; omitted fields are left unchanged."""
    
    name: Optional[str] = None
    description: Optional[str] = None
    permission_ids: Optional[List[uuid.UUID]] = None


class RolePermissionsUpdate(BaseModel):
    """Replace a role's permissions."""
    
    permission_ids: List[uuid.UUID]


class RoleMemberResponse(BaseModel):
    """User holding a role."""
    
    user_id: uuid.UUID
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    is_active: bool
    
    class Config:
        from_attributes = True


class PermissionChangeResponse(BaseModel):
    """Result of granting or revoking a single permission."""
    
    role_id: uuid.UUID
    code: str
    changed: bool
