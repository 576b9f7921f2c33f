"""Session service: login, refresh, logout and access-token authorization.

Refresh-token lifecycle per token value::

    Active --refresh--> Consumed (row deleted, a new token issued)
    Active --logout---> Consumed (row deleted)
    Active --expiry---> Expired  (row deleted when next looked at)

Nothing moves back to Active. The codec proves a token is authentic;
the store decides whether it is still alive. Access tokens are never
looked up in the store, so a logout leaves an already-issued access
token usable until it expires.
"""

from datetime import timedelta
from typing import Annotated
from uuid import UUID

import structlog
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.api.dependencies import DBSession
from taskboard.config import settings
from taskboard.core.auth.backend import hash_password, verify_password
from taskboard.core.auth.schemas import AuthorizationResult, TokenPair
from taskboard.core.auth.tokens import TokenCodec, TokenError, get_token_codec
from taskboard.core.constants import ACCESS_TOKEN_CLASS, REFRESH_TOKEN_CLASS
from taskboard.core.errors import (
    AuthFailedError,
    ConflictError,
    InvalidRefreshError,
    InvalidTokenError,
    MissingTokenError,
)
from taskboard.modules.users.models import User
from taskboard.modules.users.repos import RefreshTokenRepository, UserRepository
from taskboard.modules.users.schemas import normalize_email


logger = structlog.get_logger()


def authorize(
    access_token: str | None,
    codec: TokenCodec | None = None,
) -> AuthorizationResult:
    """Check a bearer access token without touching the database.

    Args:
        access_token: The raw bearer token, or None if absent
        codec: Codec to verify with (defaults to the configured one)

    Returns:
        The authorization outcome; never raises for bad tokens
    """
    if not access_token:
        return AuthorizationResult(
            token_supplied=False,
            error_code=MissingTokenError.error_code,
        )

    codec = codec or get_token_codec()
    try:
        claims = codec.verify(access_token, ACCESS_TOKEN_CLASS)
        subject_id = UUID(claims.subject_id)
    except (TokenError, ValueError) as e:
        logger.debug("access_token_rejected", reason=type(e).__name__)
        return AuthorizationResult(
            token_supplied=True,
            error_code=InvalidTokenError.error_code,
        )

    return AuthorizationResult(subject_id=subject_id, token_supplied=True)


def require_subject(result: AuthorizationResult) -> UUID:
    """Strict variant of ``authorize``.

    Raises:
        MissingTokenError: No token was supplied
        InvalidTokenError: A token was supplied but did not verify
    """
    if result.subject_id is not None:
        return result.subject_id
    if not result.token_supplied:
        raise MissingTokenError()
    raise InvalidTokenError()


class SessionService:
    """Orchestrates token issuance, rotation and invalidation.

    Each instance is bound to one request-scoped database session and
    holds no other state.
    """

    def __init__(self, db: AsyncSession, codec: TokenCodec | None = None) -> None:
        self.db = db
        self.codec = codec or get_token_codec()
        self.user_repo = UserRepository(db)
        self.token_repo = RefreshTokenRepository(db)

    @property
    def access_ttl(self) -> timedelta:
        return timedelta(minutes=settings.access_token_expire_minutes)

    @property
    def refresh_ttl(self) -> timedelta:
        return timedelta(days=settings.refresh_token_expire_days)

    async def register(
        self,
        email: str,
        password: str,
        name: str,
    ) -> tuple[User, TokenPair]:
        """Create a user and open a session for them.

        Args:
            email: User's email address
            password: Plain text password
            name: Display name

        Returns:
            Tuple of (user, token_pair)

        Raises:
            ConflictError: If the email is already registered
        """
        email = normalize_email(email)
        if await self.user_repo.get_by_email(email):
            raise ConflictError(
                "Registration failed. If this email is already registered, please log in.",
                error_code="registration_failed",
            )

        user = await self.user_repo.create(
            User(email=email, name=name, password_hash=hash_password(password))
        )
        logger.info("user_registered", user_id=str(user.id))

        return user, await self._open_session(user.id)

    async def login(self, email: str, password: str) -> tuple[User, TokenPair]:
        """Authenticate with email and password.

        Args:
            email: User's email address
            password: Plain text password

        Returns:
            Tuple of (user, token_pair)

        Raises:
            AuthFailedError: Unknown email or wrong password (indistinguishable)
        """
        user = await self.user_repo.get_by_email(normalize_email(email))
        if user is None or not verify_password(password, user.password_hash):
            logger.info("login_failed")
            raise AuthFailedError()

        tokens = await self._open_session(user.id)
        logger.info("login_succeeded", user_id=str(user.id))
        return user, tokens

    async def refresh(self, refresh_token: str) -> TokenPair:
        """Exchange a refresh token for a new pair, consuming it.

        Args:
            refresh_token: The refresh token to consume

        Returns:
            A new token pair

        Raises:
            InvalidRefreshError: The token is not authentic, not a refresh
                token, expired, unknown, or already consumed
        """
        try:
            claims = self.codec.verify(refresh_token, REFRESH_TOKEN_CLASS)
            user_id = UUID(claims.subject_id)
        except (TokenError, ValueError) as e:
            logger.info("refresh_rejected", reason=type(e).__name__)
            raise InvalidRefreshError() from e

        if not await self.token_repo.is_valid(refresh_token):
            logger.info("refresh_rejected", reason="not_stored", user_id=str(user_id))
            raise InvalidRefreshError()

        # A concurrent refresh of the same value may have consumed it already.
        if not await self.token_repo.remove(refresh_token):
            logger.info("refresh_rejected", reason="consumed", user_id=str(user_id))
            raise InvalidRefreshError()

        if await self.user_repo.get_by_id(user_id) is None:
            logger.info("refresh_rejected", reason="user_missing", user_id=str(user_id))
            raise InvalidRefreshError()

        tokens = await self._open_session(user_id)
        logger.info("refresh_token_rotated", user_id=str(user_id))
        return tokens

    async def logout(self, refresh_token: str | None) -> None:
        """Forget a refresh token. Always succeeds.

        Args:
            refresh_token: The refresh token to remove; may be absent,
                malformed or already gone
        """
        if not refresh_token:
            logger.info("logout", removed=False)
            return

        removed = await self.token_repo.remove(refresh_token)
        logger.info("logout", removed=removed)

    def authorize(self, access_token: str | None) -> AuthorizationResult:
        """Check a bearer access token with this service's codec."""
        return authorize(access_token, self.codec)

    async def _open_session(self, user_id: UUID) -> TokenPair:
        """Issue and store a new pair, then sweep the subject's expired rows."""
        access_token = self.codec.issue(str(user_id), ACCESS_TOKEN_CLASS, self.access_ttl)
        refresh_token = self.codec.issue(
            str(user_id), REFRESH_TOKEN_CLASS, self.refresh_ttl
        )
        await self.token_repo.insert(user_id, refresh_token, self.refresh_ttl)
        await self.token_repo.remove_all_expired_for(user_id)

        return TokenPair(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=int(self.access_ttl.total_seconds()),
        )


def get_session_service(db: DBSession) -> SessionService:
    """FastAPI dependency building a SessionService for the request."""
    return SessionService(db)


# Type alias for dependency injection
SessionSvc = Annotated[SessionService, Depends(get_session_service)]
