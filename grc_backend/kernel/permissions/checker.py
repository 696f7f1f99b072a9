"""
Permission checker for RBAC access control.
"""

import uuid
from typing import FrozenSet, Iterable

from grc_backend.kernel.roles.interfaces import RoleLookup


class PermissionChecker:
    """
    Decides whether a set of roles grants a permission code.

    A user is authorized when the code appears in the union of the permission
    sets of all their roles. Role sets come from a ``RoleLookup``, normally a
    ``CachedRoleRepository``; with caching in place a decision may lag a
    revoking change by at most the cache TTL.

    Lookup failures are raised to the caller, which must deny.
    """

    def __init__(self, lookup: RoleLookup):
        self.lookup = lookup

    async def has_permission(self, role_ids: Iterable[uuid.UUID], code: str) -> bool:
        """
        Check whether any of ``role_ids`` grants ``code``.

        Stops fetching as soon as one role grants the permission.

        Args:
            role_ids: Roles held by the caller
            code: Required permission code, e.g. ``asset.view``

        Returns:
            True if at least one role grants the permission
        """
        for role_id in dict.fromkeys(role_ids):
            permissions = await self.lookup.get_role_permissions(role_id)
            if code in permissions:
                return True
        return False

    async def effective_permissions(self, role_ids: Iterable[uuid.UUID]) -> FrozenSet[str]:
        """Union of the permission codes granted by ``role_ids``."""
        codes: set[str] = set()
        for role_id in dict.fromkeys(role_ids):
            codes.update(await self.lookup.get_role_permissions(role_id))
        return frozenset(codes)
