"""
Kernel Data Models

Core SQLAlchemy models: tenants, users, roles, the permission catalog and the
audit trail.
"""

from grc_backend.kernel.models.base import Base, TimestampMixin, generate_uuid
from grc_backend.kernel.models.tenant import Tenant
from grc_backend.kernel.models.user import User, RefreshToken
from grc_backend.kernel.models.role import (
    Role,
    Permission,
    RolePermission,
    UserRoleAssignment,
)
from grc_backend.kernel.models.audit_log import AuditLog, AuditAction

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    "generate_uuid",
    # Tenancy & identity
    "Tenant",
    "User",
    "RefreshToken",
    # RBAC
    "Role",
    "Permission",
    "RolePermission",
    "UserRoleAssignment",
    # Audit
    "AuditLog",
    "AuditAction",
]
