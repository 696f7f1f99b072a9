"""
Authentication endpoints.
"""

from fastapi import APIRouter, HTTPException, Request, status

from grc_backend.api.deps import (
    Auth,
    Checker,
    CurrentUser,
    DbSession,
    get_client_ip,
    get_user_agent,
    is_superuser,
    resolve_permissions,
)
from grc_backend.kernel.identity.identity_service import IdentityService
from grc_backend.schemas.auth import (
    CurrentUserResponse,
    LogoutRequest,
    RefreshTokenRequest,
    TokenResponse,
    UserLogin,
    UserResponse,
)
from grc_backend.schemas.common import SuccessResponse

router = APIRouter()


@router.post("/login", response_model=TokenResponse)
async def login(
    request: Request,
    data: UserLogin,
    db: DbSession,
):
    """
    Authenticate user and return tokens.
    """
    identity_service = IdentityService(db)
    
    result = await identity_service.authenticate(
        email=data.email,
        password=data.password,
        ip_address=get_client_ip(request),
        user_agent=get_user_agent(request),
    )
    
    if not result:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )
    
    user, token_pair = result
    
    return TokenResponse(
        access_token=token_pair.access_token,
        refresh_token=token_pair.refresh_token,
        token_type=token_pair.token_type,
        expires_in=token_pair.expires_in,
        user=UserResponse.model_validate(user),
    )


@router.post("/refresh", response_model=TokenResponse)
async def refresh_token(
    data: RefreshTokenRequest,
    db: DbSession,
):
    """
    Refresh access token using refresh token.
    
    Implements refresh token rotation - old refresh token is invalidated.
    """
    result = await IdentityService(db).refresh_tokens(data.refresh_token)
    
    if not result:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired refresh token",
        )
    
    user, token_pair = result
    
    return TokenResponse(
        access_token=token_pair.access_token,
        refresh_token=token_pair.refresh_token,
        token_type=token_pair.token_type,
        expires_in=token_pair.expires_in,
        user=UserResponse.model_validate(user),
    )


@router.post("/logout", response_model=SuccessResponse)
async def logout(
    request: Request,
    data: LogoutRequest,
    user: CurrentUser,
    db: DbSession,
):
    """Log out by revoking the given refresh token, or all of them."""
    await IdentityService(db).logout(
        user=user,
        refresh_token=data.refresh_token,
        revoke_all=data.revoke_all,
        ip_address=get_client_ip(request),
    )
    
    return SuccessResponse(message="Logged out successfully")


@router.get("/me", response_model=CurrentUserResponse)
async def get_current_user_profile(auth: Auth, checker: Checker):
    """Current user's profile with role names and effective permissions."""
    permissions = await resolve_permissions(auth, checker)
    
    return CurrentUserResponse(
        user=UserResponse.model_validate(auth.user),
        roles=sorted(auth.role_names),
        permissions=sorted(permissions),
        is_superuser=is_superuser(auth),
    )
