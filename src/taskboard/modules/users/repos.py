"""Repositories for users and their refresh tokens."""

from datetime import UTC, datetime, timedelta
from uuid import UUID

import structlog
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.core.auth.backend import hash_token
from taskboard.core.errors import DuplicateTokenError
from taskboard.modules.users.models import RefreshToken, User


logger = structlog.get_logger()


class UserRepository:
    """Repository for User database operations."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create(self, user: User) -> User:
        """Create a new user.

        Args:
            user: User instance to create

        Returns:
            The created user with ID and timestamps populated
        """
        self.session.add(user)
        await self.session.flush()
        await self.session.refresh(user)
        return user

    async def get_by_id(self, user_id: UUID) -> User | None:
        """Get a user by ID.

        Args:
            user_id: The user's UUID

        Returns:
            User if found, None otherwise
        """
        result = await self.session.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> User | None:
        """Get a user by (normalised) email address.

        Args:
            email: The user's email

        Returns:
            User if found, None otherwise
        """
        result = await self.session.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()


class RefreshTokenRepository:
    """Persistent record of issued refresh tokens.

    Rows are looked up by the SHA-256 digest of the token value. There is
    no background sweep: expired rows are removed when ``is_valid`` finds
    them, or by ``remove_all_expired_for`` after a login or refresh.

    All expiry comparisons happen in SQL against the current UTC time.
    Bulk deletes skip session synchronisation because the repository
    never keeps RefreshToken instances around after they are written.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def insert(self, user_id: UUID, token: str, ttl: timedelta) -> RefreshToken:
        """Store a newly issued refresh token.

        Args:
            user_id: The owning subject
            token: The token value
            ttl: Lifetime from now

        Returns:
            The stored row

        Raises:
            DuplicateTokenError: If the value is already stored
        """
        token_hash = hash_token(token)
        row = RefreshToken(
            user_id=user_id,
            token_hash=token_hash,
            expires_at=datetime.now(UTC) + ttl,
        )

        try:
            async with self.session.begin_nested():
                self.session.add(row)
        except IntegrityError as e:
            logger.error("refresh_token_duplicate", user_id=str(user_id))
            raise DuplicateTokenError() from e

        await self.session.refresh(row)
        return row

    async def exists(self, token: str) -> bool:
        """Check whether a row exists for the token, expired or not."""
        result = await self.session.execute(
            select(RefreshToken.id).where(RefreshToken.token_hash == hash_token(token))
        )
        return result.first() is not None

    async def is_valid(self, token: str) -> bool:
        """Check that the token is stored and unexpired.

        An expired row is deleted as a side effect.

        Args:
            token: The token value

        Returns:
            True if a live row exists
        """
        token_hash = hash_token(token)
        result = await self.session.execute(
            select(RefreshToken.user_id).where(RefreshToken.token_hash == token_hash)
        )
        user_id = result.scalar_one_or_none()
        if user_id is None:
            return False

        expired = await self.session.execute(
            delete(RefreshToken)
            .where(
                RefreshToken.token_hash == token_hash,
                RefreshToken.expires_at <= datetime.now(UTC),
            )
            .execution_options(synchronize_session=False)
        )
        if expired.rowcount:
            logger.info("refresh_token_expired", user_id=str(user_id))
            return False

        return True

    async def remove(self, token: str) -> bool:
        """Delete the token's row if present.

        Deleting an absent token is not an error.

        Args:
            token: The token value

        Returns:
            True if this call deleted a row
        """
        result = await self.session.execute(
            delete(RefreshToken)
            .where(RefreshToken.token_hash == hash_token(token))
            .execution_options(synchronize_session=False)
        )
        return bool(result.rowcount)

    async def remove_all_expired_for(self, user_id: UUID) -> int:
        """Delete a subject's expired rows.

        Housekeeping only: a database error is logged and swallowed, and
        the SAVEPOINT keeps it from spoiling the caller's transaction.

        Args:
            user_id: The subject whose rows to sweep

        Returns:
            Number of rows deleted (0 on failure)
        """
        try:
            async with self.session.begin_nested():
                result = await self.session.execute(
                    delete(RefreshToken)
                    .where(
                        RefreshToken.user_id == user_id,
                        RefreshToken.expires_at <= datetime.now(UTC),
                    )
                    .execution_options(synchronize_session=False)
                )
        except SQLAlchemyError:
            logger.warning(
                "refresh_token_cleanup_failed",
                user_id=str(user_id),
                exc_info=True,
            )
            return 0

        if result.rowcount:
            logger.info(
                "refresh_tokens_cleaned_up",
                user_id=str(user_id),
                deleted=result.rowcount,
            )
        return result.rowcount
