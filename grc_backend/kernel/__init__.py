"""
Kernel Layer

Foundational components every request goes through:
- Identity Core (tenants, user accounts, tokens)
- Role Core (role storage, permission catalog, cached lookups)
- Permission Core (access decisions)
- Audit trail (append-only, written before commit)
"""

from grc_backend.kernel.models import (
    AuditAction,
    AuditLog,
    Permission,
    Role,
    Tenant,
    User,
)

__all__ = [
    "AuditAction",
    "AuditLog",
    "Permission",
    "Role",
    "Tenant",
    "User",
]
