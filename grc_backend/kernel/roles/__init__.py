"""
Role Core - role storage, caching and management.
"""

from grc_backend.kernel.roles.cached_repository import CachedRoleRepository
from grc_backend.kernel.roles.catalog import seed_permission_catalog
from grc_backend.kernel.roles.interfaces import RoleLookup, RoleRepository as RoleRepositoryProtocol
from grc_backend.kernel.roles.repository import RoleRepository
from grc_backend.kernel.roles.role_service import RoleService
from grc_backend.kernel.roles.types import (
    PermissionRecord,
    RoleMember,
    RoleRecord,
    RoleWithPermissions,
)

__all__ = [
    "CachedRoleRepository",
    "RoleLookup",
    "RoleRepositoryProtocol",
    "RoleRepository",
    "RoleService",
    "PermissionRecord",
    "RoleMember",
    "RoleRecord",
    "RoleWithPermissions",
    "seed_permission_catalog",
]
