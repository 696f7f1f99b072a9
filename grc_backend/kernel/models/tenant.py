"""
Tenant model. Every user and role belongs to exactly one tenant.
"""

import uuid
from typing import Optional

from sqlalchemy import Boolean, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from grc_backend.kernel.models.base import Base, TimestampMixin, generate_uuid


class Tenant(Base, TimestampMixin):
    """Organization using the platform."""
    
    __tablename__ = "tenants"
    
    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )
    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    domain: Mapped[Optional[str]] = mapped_column(
        String(255),
        unique=True,
        nullable=True,
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )
    
    def __repr__(self) -> str:
        return f"<Tenant {self.name}>"
