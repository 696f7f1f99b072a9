"""
FastAPI dependencies for authentication, authorization, and database sessions.
"""

import uuid
from dataclasses import dataclass
from typing import Annotated, FrozenSet, Optional, Tuple

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from grc_backend.config import get_settings
from grc_backend.constants.permissions import ALL_PERMISSION_CODES
from grc_backend.database import get_db
from grc_backend.kernel.cache import TTLCache
from grc_backend.kernel.errors import ConflictError, DomainError, NotFoundError, ValidationError
from grc_backend.kernel.identity.identity_service import IdentityService
from grc_backend.kernel.identity.jwt import verify_access_token
from grc_backend.kernel.models.user import User
from grc_backend.kernel.permissions.checker import PermissionChecker
from grc_backend.kernel.roles.cached_repository import CachedRoleRepository
from grc_backend.kernel.roles.repository import RoleRepository
from grc_backend.logging_config import get_logger, tenant_id_var

logger = get_logger(__name__)

# Security scheme
security = HTTPBearer(auto_error=False)


DbSession = Annotated[AsyncSession, Depends(get_db)]


async def get_current_user(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
    db: DbSession,
) -> User:
    """Get current authenticated user or raise 401."""
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    
    payload = verify_access_token(credentials.credentials)
    if not payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    
    identity_service = IdentityService(db)
    user = await identity_service.get_user_by_id(uuid.UUID(payload.sub))
    
    # A token minted for another tenant is treated as unknown
    if not user or str(user.tenant_id) != payload.tenant_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
            headers={"WWW-Authenticate": "Bearer"},
        )
    
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is disabled",
        )
    
    return user


CurrentUser = Annotated[User, Depends(get_current_user)]


@dataclass(frozen=True)
class AuthContext:
    """The caller, their tenant and the roles they hold there."""

    user: User
    tenant_id: uuid.UUID
    role_ids: Tuple[uuid.UUID, ...]
    role_names: FrozenSet[str]

    def has_role(self, name: str) -> bool:
        return name in self.role_names


async def get_auth_context(user: CurrentUser, db: DbSession) -> AuthContext:
    """Resolve the caller's roles for this request."""
    roles = await IdentityService(db).get_user_roles(user)
    tenant_id_var.set(str(user.tenant_id))
    return AuthContext(
        user=user,
        tenant_id=user.tenant_id,
        role_ids=tuple(role.id for role in roles),
        role_names=frozenset(role.name for role in roles),
    )


Auth = Annotated[AuthContext, Depends(get_auth_context)]


def get_role_cache(request: Request) -> TTLCache:
    """Process-wide role cache created in the application lifespan."""
    return request.app.state.role_cache


def get_role_repository(
    db: DbSession,
    cache: Annotated[TTLCache, Depends(get_role_cache)],
) -> CachedRoleRepository:
    """Request-scoped role repository backed by the shared cache."""
    return CachedRoleRepository(
        RoleRepository(db),
        cache,
        ttl=get_settings().role_cache_ttl_seconds,
    )


RoleRepo = Annotated[CachedRoleRepository, Depends(get_role_repository)]


def get_permission_checker(roles: RoleRepo) -> PermissionChecker:
    return PermissionChecker(roles)


Checker = Annotated[PermissionChecker, Depends(get_permission_checker)]


def is_superuser(auth: AuthContext) -> bool:
    """Holders of the superuser role bypass permission checks."""
    return auth.has_role(get_settings().superuser_role_name)


class RequirePermission:
    """
    Dependency class requiring a permission code.
    
    Returns the caller's ``AuthContext`` so handlers can use it directly.
    
    Usage:
        @router.get("/roles")
        async def list_roles(
            auth: Annotated[AuthContext, Depends(RequirePermission("roles.view"))],
        ):
            ...
    
    Any failure while deciding is answered with 403; a request is never let
    through because the check itself broke.
    """
    
    def __init__(self, code: str):
        self.code = code
    
    async def __call__(self, auth: Auth, checker: Checker) -> AuthContext:
        if is_superuser(auth):
            return auth
        
        try:
            allowed = await checker.has_permission(auth.role_ids, self.code)
        except Exception:
            logger.exception(
                "Permission check failed",
                extra={"user_id": str(auth.user.id), "permission": self.code},
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Permission check failed",
            )
        
        if not allowed:
            logger.info(
                "Permission denied",
                extra={"user_id": str(auth.user.id), "permission": self.code},
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        
        return auth


def get_client_ip(request: Request) -> Optional[str]:
    """Extract client IP from request."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


def get_user_agent(request: Request) -> Optional[str]:
    """Extract user agent from request."""
    return request.headers.get("User-Agent")


def domain_error_to_http(exc: DomainError) -> HTTPException:
    """Map a domain error to the HTTP error a handler should raise."""
    if isinstance(exc, ValidationError):
        status_code = status.HTTP_400_BAD_REQUEST
    elif isinstance(exc, NotFoundError):
        status_code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, ConflictError):
        status_code = status.HTTP_409_CONFLICT
    else:
        status_code = status.HTTP_400_BAD_REQUEST
    return HTTPException(status_code=status_code, detail=exc.message)


async def resolve_permissions(auth: AuthContext, checker: PermissionChecker) -> FrozenSet[str]:
    """Effective permission codes of the caller; superusers get the whole catalog."""
    if is_superuser(auth):
        return ALL_PERMISSION_CODES
    return await checker.effective_permissions(auth.role_ids)
