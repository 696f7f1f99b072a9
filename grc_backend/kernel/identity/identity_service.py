"""
Identity service for user and session operations.
"""

import uuid
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from grc_backend.kernel.events.event_store import EventStore
from grc_backend.kernel.identity.jwt import JWTManager, TokenPair
from grc_backend.kernel.identity.password import hash_password, verify_password
from grc_backend.kernel.models.audit_log import AuditAction
from grc_backend.kernel.models.role import Role, UserRoleAssignment
from grc_backend.kernel.models.user import RefreshToken, User


class IdentityService:
    """
    Service for user identity operations.

    Handles user creation, authentication, token rotation and role lookup.
    Changes are flushed, not committed; the request's session dependency
    commits them.
    """

    def __init__(self, session: AsyncSession, jwt_manager: Optional[JWTManager] = None):
        self.session = session
        self.jwt_manager = jwt_manager or JWTManager()
        self.event_store = EventStore(session)

    async def create_user(
        self,
        tenant_id: uuid.UUID,
        email: str,
        password: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        actor_id: Optional[uuid.UUID] = None,
    ) -> User:
        """
        Create a user in a tenant.

        Raises:
            ValueError: If email already exists
        """
        if await self.get_user_by_email(email):
            raise ValueError("Email already registered")

        user = User(
            tenant_id=tenant_id,
            email=email.lower().strip(),
            password_hash=hash_password(password),
            first_name=first_name,
            last_name=last_name,
        )
        self.session.add(user)
        await self.session.flush()  # Get the ID

        await self.event_store.log(
            tenant_id=tenant_id,
            action=AuditAction.USER_CREATED,
            entity_type="user",
            entity_id=user.id,
            actor_id=actor_id,
            payload={"email": user.email},
        )
        return user

    async def authenticate(
        self,
        email: str,
        password: str,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> Optional[tuple[User, TokenPair]]:
        """
        Authenticate a user and return tokens.

        Returns:
            Tuple of (User, TokenPair) if successful, None otherwise
        """
        user = await self.get_user_by_email(email)
        if not user or not user.is_active:
            return None

        if not verify_password(password, user.password_hash):
            return None

        token_pair = await self._issue_tokens(user)
        user.last_login_at = datetime.now(timezone.utc)

        await self.event_store.log(
            tenant_id=user.tenant_id,
            action=AuditAction.USER_LOGGED_IN,
            entity_type="user",
            entity_id=user.id,
            actor_id=user.id,
            payload={"method": "password"},
            ip_address=ip_address,
            user_agent=user_agent,
        )
        return user, token_pair

    async def refresh_tokens(self, refresh_token: str) -> Optional[tuple[User, TokenPair]]:
        """
        Exchange a refresh token for a new token pair.

        The presented refresh token is revoked (rotation).

        Returns:
            Tuple of (User, new TokenPair) if successful, None otherwise
        """
        payload = self.jwt_manager.verify_refresh_token(refresh_token)
        if not payload:
            return None

        query = select(RefreshToken).where(
            and_(
                RefreshToken.token_hash == JWTManager.hash_token(refresh_token),
                RefreshToken.revoked.is_(False),
                RefreshToken.expires_at > datetime.now(timezone.utc),
            )
        )
        result = await self.session.execute(query)
        token_record = result.scalar_one_or_none()
        if not token_record:
            return None

        user = await self.get_user_by_id(uuid.UUID(payload.sub))
        if not user or not user.is_active:
            return None

        token_record.revoked = True
        return user, await self._issue_tokens(user)

    async def logout(
        self,
        user: User,
        refresh_token: Optional[str] = None,
        revoke_all: bool = False,
        ip_address: Optional[str] = None,
    ) -> None:
        """Revoke one refresh token, or all of the user's tokens."""
        query = select(RefreshToken).where(
            RefreshToken.user_id == user.id,
            RefreshToken.revoked.is_(False),
        )
        if not revoke_all:
            if not refresh_token:
                return
            query = query.where(RefreshToken.token_hash == JWTManager.hash_token(refresh_token))

        result = await self.session.execute(query)
        for token in result.scalars().all():
            token.revoked = True

        await self.event_store.log(
            tenant_id=user.tenant_id,
            action=AuditAction.USER_LOGGED_OUT,
            entity_type="user",
            entity_id=user.id,
            actor_id=user.id,
            payload={"revoke_all": revoke_all},
            ip_address=ip_address,
        )

    async def get_user_by_id(self, user_id: uuid.UUID) -> Optional[User]:
        """Get a user by ID."""
        return await self.session.get(User, user_id)

    async def get_user_by_email(self, email: str) -> Optional[User]:
        """Get a user by email."""
        query = select(User).where(User.email == email.lower().strip())
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_user_roles(self, user: User) -> List[Role]:
        """Roles held by the user, restricted to the user's own tenant."""
        query = (
            select(Role)
            .join(UserRoleAssignment, UserRoleAssignment.role_id == Role.id)
            .where(
                UserRoleAssignment.user_id == user.id,
                Role.tenant_id == user.tenant_id,
            )
            .order_by(Role.name)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def _issue_tokens(self, user: User) -> TokenPair:
        token_pair, refresh_expires_at = self.jwt_manager.create_token_pair(
            user_id=user.id,
            tenant_id=user.tenant_id,
            email=user.email,
        )
        self.session.add(
            RefreshToken(
                user_id=user.id,
                token_hash=JWTManager.hash_token(token_pair.refresh_token),
                expires_at=refresh_expires_at,
            )
        )
        return token_pair
