"""
Immutable role records handed out by role repositories.

Repositories return these instead of ORM instances so results can be cached
and shared across requests without being bound to a session.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import FrozenSet, Optional, Tuple


@dataclass(frozen=True)
class RoleRecord:
    id: uuid.UUID
    tenant_id: uuid.UUID
    name: str
    description: Optional[str]
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, role) -> "RoleRecord":
        return cls(
            id=role.id,
            tenant_id=role.tenant_id,
            name=role.name,
            description=role.description,
            created_at=role.created_at,
            updated_at=role.updated_at,
        )


@dataclass(frozen=True)
class RoleWithPermissions:
    role: RoleRecord
    permissions: Tuple[str, ...]  # sorted codes

    @property
    def permission_set(self) -> FrozenSet[str]:
        return frozenset(self.permissions)


@dataclass(frozen=True)
class PermissionRecord:
    id: uuid.UUID
    code: str
    module: str
    description: Optional[str]

    @classmethod
    def from_model(cls, permission) -> "PermissionRecord":
        return cls(
            id=permission.id,
            code=permission.code,
            module=permission.module,
            description=permission.description,
        )


@dataclass(frozen=True)
class RoleMember:
    """User holding a role."""

    user_id: uuid.UUID
    email: str
    first_name: Optional[str]
    last_name: Optional[str]
    is_active: bool
