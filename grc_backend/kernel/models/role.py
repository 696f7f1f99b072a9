"""
Role and permission models for RBAC.

A role is a tenant-scoped bundle of permission codes. Permissions form a
global catalog keyed by a stable code such as ``asset.view``.
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Index, String, Text, UniqueConstraint, func, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from grc_backend.kernel.models.base import Base, TimestampMixin, generate_uuid


class Role(Base, TimestampMixin):
    """Named bundle of permissions within a tenant."""
    
    __tablename__ = "roles"
    
    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )
    tenant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )
    description: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )
    
    __table_args__ = (
        UniqueConstraint("tenant_id", "name", name="uq_roles_tenant_name"),
    )
    
    def __repr__(self) -> str:
        return f"<Role {self.name} tenant={self.tenant_id}>"


class Permission(Base):
    """
    Catalog entry for a grantable capability.
    
    Only ``code`` takes part in authorization decisions; module and
    description are display metadata.
    """
    
    __tablename__ = "permissions"
    
    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )
    code: Mapped[str] = mapped_column(
        String(100),
        unique=True,
        nullable=False,
    )
    module: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        index=True,
    )
    description: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    
    def __repr__(self) -> str:
        return f"<Permission {self.code}>"


class RolePermission(Base):
    """Grant of a catalog permission to a role."""
    
    __tablename__ = "role_permissions"
    
    role_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        ForeignKey("roles.id", ondelete="CASCADE"),
        primary_key=True,
    )
    permission_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        ForeignKey("permissions.id", ondelete="CASCADE"),
        primary_key=True,
    )
    
    __table_args__ = (
        Index("ix_role_permissions_permission", "permission_id"),
    )


class UserRoleAssignment(Base):
    """Membership of a user in a role."""
    
    __tablename__ = "user_roles"
    
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    )
    role_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        ForeignKey("roles.id", ondelete="CASCADE"),
        primary_key=True,
    )
    assigned_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    
    __table_args__ = (
        Index("ix_user_roles_role", "role_id"),
    )
