"""User database models."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from taskboard.core.constants import (
    MAX_EMAIL_LENGTH,
    MAX_NAME_LENGTH,
    SHA256_HEX_LENGTH,
)
from taskboard.core.database.base import Base, TimestampMixin, UUIDMixin


class User(Base, UUIDMixin, TimestampMixin):
    """User model representing an authenticated subject.

    Attributes:
        email: Unique, lower-cased email address
        name: Display name
        password_hash: Bcrypt-hashed password
    """

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(
        String(MAX_EMAIL_LENGTH),
        nullable=False,
        unique=True,
        index=True,
    )
    name: Mapped[str] = mapped_column(
        String(MAX_NAME_LENGTH),
        nullable=False,
    )
    password_hash: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )

    refresh_tokens: Mapped[list["RefreshToken"]] = relationship(
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="raise",
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email})>"


class RefreshToken(Base, UUIDMixin, TimestampMixin):
    """An issued, not yet consumed refresh token.

    One row exists per token value. The value itself is not stored;
    ``token_hash`` is its SHA-256 digest and carries the uniqueness
    constraint. ``created_at`` is the issuance time.

    Attributes:
        user_id: The subject this token belongs to
        token_hash: SHA-256 hex digest of the token value
        expires_at: When the token stops being accepted
    """

    __tablename__ = "refresh_tokens"
    __table_args__ = (
        Index("ix_refresh_tokens_user_expires", "user_id", "expires_at"),
    )

    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    token_hash: Mapped[str] = mapped_column(
        String(SHA256_HEX_LENGTH),
        nullable=False,
        unique=True,
        index=True,
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    user: Mapped["User"] = relationship(
        back_populates="refresh_tokens",
        lazy="raise",
    )

    @property
    def issued_at(self) -> datetime:
        return self.created_at

    def __repr__(self) -> str:
        return f"<RefreshToken(id={self.id}, user_id={self.user_id})>"
