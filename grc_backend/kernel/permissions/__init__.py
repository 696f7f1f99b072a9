"""
Permission Core - RBAC access control.
"""

from grc_backend.kernel.permissions.checker import PermissionChecker

__all__ = [
    "PermissionChecker",
]
