"""
Seeding of the permission catalog.
"""

from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from grc_backend.constants.permissions import PERMISSION_CATALOG, PermissionDefinition
from grc_backend.kernel.models.role import Permission
from grc_backend.logging_config import get_logger

logger = get_logger(__name__)


async def seed_permission_catalog(
    session: AsyncSession,
    catalog: Optional[Iterable[PermissionDefinition]] = None,
) -> int:
    """
    Insert catalog codes missing from the ``permissions`` table.

    Existing rows are left untouched, so running this on every startup is
    safe. Commits when anything was added.

    Returns:
        Number of permissions inserted
    """
    definitions = list(PERMISSION_CATALOG if catalog is None else catalog)
    result = await session.execute(select(Permission.code))
    existing = set(result.scalars().all())

    added = 0
    for definition in definitions:
        if definition.code in existing:
            continue
        session.add(
            Permission(
                code=definition.code,
                module=definition.module,
                description=definition.description,
            )
        )
        existing.add(definition.code)
        added += 1

    if added:
        await session.commit()
        logger.info("Seeded permission catalog", extra={"added": added})
    return added
