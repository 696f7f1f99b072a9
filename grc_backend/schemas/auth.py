"""
Authentication schemas.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr


class UserLogin(BaseModel):
    """User login request."""
    
    email: EmailStr
    password: str


class UserResponse(BaseModel):
    """User profile response."""
    
    id: uuid.UUID
    tenant_id: uuid.UUID
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    is_active: bool
    last_login_at: Optional[datetime] = None
    created_at: datetime
    
    class Config:
        from_attributes = True


class CurrentUserResponse(BaseModel):
    """Authenticated user with resolved roles and permissions."""
    
    user: UserResponse
    roles: List[str]
    permissions: List[str]
    is_superuser: bool = False


class TokenResponse(BaseModel):
    """Authentication token response."""
    
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserResponse


class RefreshTokenRequest(BaseModel):
    """Token refresh request."""
    
    refresh_token: str


class LogoutRequest(BaseModel):
    """Logout request. Without a token only ``revoke_all`` has an effect."""
    
    refresh_token: Optional[str] = None
    revoke_all: bool = False
