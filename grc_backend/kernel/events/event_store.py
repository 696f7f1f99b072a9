"""
Event Store service for the append-only audit trail.

Mutations MUST be logged here BEFORE commit so the audit entry and the change
it records are persisted in one transaction.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from sqlalchemy import desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from grc_backend.kernel.models.audit_log import AuditAction, AuditLog


class EventStore:
    """
    Service for writing and reading the audit log.

    Usage:
        event_store = EventStore(session)
        await event_store.log(
            tenant_id=role.tenant_id,
            action=AuditAction.ROLE_CREATED,
            entity_type="role",
            entity_id=role.id,
            actor_id=current_user.id,
            payload={"name": role.name},
        )
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def log(
        self,
        tenant_id: uuid.UUID,
        action: AuditAction,
        entity_type: str,
        entity_id: Optional[uuid.UUID] = None,
        actor_id: Optional[uuid.UUID] = None,
        payload: Optional[Dict[str, Any]] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> AuditLog:
        """
        Add an entry to the audit log.

        The entry is only added to the session; whoever commits the change
        being audited commits the entry with it.

        Args:
            tenant_id: Tenant the action happened in
            action: What happened
            entity_type: The type of entity (role, user, ...)
            entity_id: The ID of the entity
            actor_id: The user who acted (None for system actions)
            payload: Additional event data
            ip_address: Client IP address
            user_agent: Client user agent

        Returns:
            The created AuditLog record
        """
        entry = AuditLog(
            tenant_id=tenant_id,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            actor_id=actor_id,
            payload=self._serialize_payload(payload or {}),
            ip_address=ip_address,
            user_agent=user_agent,
        )

        self.session.add(entry)
        return entry

    async def list_for_tenant(
        self,
        tenant_id: uuid.UUID,
        actor_id: Optional[uuid.UUID] = None,
        action: Optional[str] = None,
        entity_type: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[AuditLog]:
        """
        List a tenant's audit entries, newest first.

        Args:
            tenant_id: Tenant to list
            actor_id: Only entries by this user
            action: Only entries with this action
            entity_type: Only entries about this kind of entity
            limit: Maximum number of entries to return
            offset: Number of entries to skip
        """
        query = select(AuditLog).where(AuditLog.tenant_id == tenant_id)

        if actor_id:
            query = query.where(AuditLog.actor_id == actor_id)
        if action:
            query = query.where(AuditLog.action == action)
        if entity_type:
            query = query.where(AuditLog.entity_type == entity_type)

        query = query.order_by(desc(AuditLog.created_at)).offset(offset).limit(limit)

        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def count_for_tenant(
        self,
        tenant_id: uuid.UUID,
        actor_id: Optional[uuid.UUID] = None,
        action: Optional[str] = None,
        entity_type: Optional[str] = None,
    ) -> int:
        """Count a tenant's audit entries matching the same filters as list_for_tenant."""
        query = select(func.count(AuditLog.id)).where(AuditLog.tenant_id == tenant_id)

        if actor_id:
            query = query.where(AuditLog.actor_id == actor_id)
        if action:
            query = query.where(AuditLog.action == action)
        if entity_type:
            query = query.where(AuditLog.entity_type == entity_type)

        result = await self.session.execute(query)
        return result.scalar() or 0

    @classmethod
    def _serialize_payload(cls, payload: Any) -> Any:
        """Convert UUIDs, datetimes and enums so the payload fits a JSON column."""
        if isinstance(payload, dict):
            return {key: cls._serialize_payload(value) for key, value in payload.items()}
        if isinstance(payload, (list, tuple, set, frozenset)):
            return [cls._serialize_payload(value) for value in payload]
        if isinstance(payload, uuid.UUID):
            return str(payload)
        if isinstance(payload, datetime):
            return payload.isoformat()
        if isinstance(payload, Enum):
            return payload.value
        return payload
