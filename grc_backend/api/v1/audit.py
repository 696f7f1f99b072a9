"""
Audit log endpoint.
"""

import uuid
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query

from grc_backend.api.deps import AuthContext, DbSession, RequirePermission
from grc_backend.constants.permissions import AUDIT_VIEW
from grc_backend.kernel.events.event_store import EventStore
from grc_backend.schemas.audit import AuditLogResponse
from grc_backend.schemas.common import PaginatedResponse

router = APIRouter()


@router.get("", response_model=PaginatedResponse[AuditLogResponse])
async def list_audit_log(
    auth: Annotated[AuthContext, Depends(RequirePermission(AUDIT_VIEW))],
    db: DbSession,
    actor_id: Optional[uuid.UUID] = None,
    action: Optional[str] = None,
    entity_type: Optional[str] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
):
    """List the tenant's audit entries, newest first."""
    event_store = EventStore(db)
    filters = {"actor_id": actor_id, "action": action, "entity_type": entity_type}
    
    entries = await event_store.list_for_tenant(
        auth.tenant_id,
        limit=page_size,
        offset=(page - 1) * page_size,
        **filters,
    )
    total = await event_store.count_for_tenant(auth.tenant_id, **filters)
    
    return PaginatedResponse[AuditLogResponse].create(
        items=[AuditLogResponse.model_validate(e) for e in entries],
        total=total,
        page=page,
        page_size=page_size,
    )
