"""
Tenant schemas.
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class TenantResponse(BaseModel):
    """Tenant details."""
    
    id: uuid.UUID
    name: str
    domain: Optional[str] = None
    is_active: bool
    created_at: datetime
    
    class Config:
        from_attributes = True
