"""Authentication schemas for token handling."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel


class TokenClaims(BaseModel):
    """Claims recovered from a verified token.

    Attributes:
        subject_id: Opaque identifier of the authenticated principal
        token_class: "access" or "refresh"
        expires_at: Instant from which the token is no longer accepted
        issued_at: Issuance instant
        jti: Random token identifier
    """

    subject_id: str
    token_class: str
    expires_at: datetime
    issued_at: datetime | None = None
    jti: str | None = None


class TokenPair(BaseModel):
    """A pair of access and refresh tokens.

    Attributes:
        access_token: Short-lived JWT for API access
        refresh_token: Long-lived JWT for getting a new pair
        token_type: Always "bearer"
        expires_in: Access token lifetime in seconds
    """

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int


class AuthorizationResult(BaseModel):
    """Outcome of checking a bearer access token.

    ``subject_id`` is set only when the token verified. ``token_supplied``
    separates "anonymous" from "presented a bad token", which lets lenient
    endpoints carry on anonymously while strict ones reject both.

    Attributes:
        subject_id: The verified subject, or None
        token_supplied: Whether any token was presented
        error_code: Why verification failed, for logging
    """

    subject_id: UUID | None = None
    token_supplied: bool = False
    error_code: str | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.subject_id is not None
