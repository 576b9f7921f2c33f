"""Signed token codec for access and refresh tokens.

Tokens are HMAC-signed JWTs carrying the subject id (``sub``), a class
tag (``type``), an expiry (``exp``), an issuance time (``iat``) and a
random ``jti``. Each class is signed with its own secret, and the class
tag is checked again after the signature, so an access token is never
accepted where a refresh token is expected or the other way round.

Expiry is evaluated against the codec's own clock in whole seconds with
no leeway: a token whose ``exp`` is T is rejected from T onwards.
"""

import secrets
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from functools import lru_cache
from typing import Any

from jose import JWTError, jwt

from taskboard.config import settings
from taskboard.core.auth.schemas import TokenClaims
from taskboard.core.constants import (
    ACCESS_TOKEN_CLASS,
    REFRESH_TOKEN_CLASS,
    TOKEN_JTI_LENGTH,
)


Clock = Callable[[], int]


def utc_timestamp() -> int:
    """Current UTC time as whole seconds since the epoch."""
    return int(datetime.now(UTC).timestamp())


class TokenError(Exception):
    """Base class for token verification failures."""


class MalformedTokenError(TokenError):
    """The value is not a structurally valid token."""


class BadSignatureError(TokenError):
    """The signature does not match the key for the expected class."""


class TokenExpiredError(TokenError):
    """The token's expiry has passed."""


class WrongTokenClassError(TokenError):
    """The embedded class tag is not the expected one."""


class TokenCodec:
    """Issues and verifies access and refresh tokens.

    Stateless apart from its configuration; safe to share.
    """

    def __init__(
        self,
        access_secret: str,
        refresh_secret: str,
        algorithm: str = "HS256",
        clock: Clock = utc_timestamp,
    ) -> None:
        self._keys = {
            ACCESS_TOKEN_CLASS: access_secret,
            REFRESH_TOKEN_CLASS: refresh_secret,
        }
        self.algorithm = algorithm
        self.clock = clock

    def _key_for(self, token_class: str) -> str:
        try:
            return self._keys[token_class]
        except KeyError:
            raise ValueError(f"Unknown token class: {token_class!r}") from None

    def issue(self, subject_id: str, token_class: str, ttl: timedelta) -> str:
        """Create a signed token.

        Args:
            subject_id: Identifier of the principal
            token_class: "access" or "refresh"
            ttl: Lifetime from now

        Returns:
            Encoded JWT
        """
        key = self._key_for(token_class)
        now = self.clock()
        claims: dict[str, Any] = {
            "sub": str(subject_id),
            "type": token_class,
            "iat": now,
            "exp": now + int(ttl.total_seconds()),
            "jti": secrets.token_urlsafe(TOKEN_JTI_LENGTH),
        }
        return jwt.encode(claims, key, algorithm=self.algorithm)

    def verify(self, token: str, token_class: str) -> TokenClaims:
        """Verify a token against the expected class.

        Args:
            token: Encoded JWT
            token_class: The class the caller expects

        Returns:
            The verified claims

        Raises:
            MalformedTokenError: Not a JWT, or required claims missing
            BadSignatureError: Signature does not match this class's key
            WrongTokenClassError: Class tag differs from ``token_class``
            TokenExpiredError: ``exp`` has been reached
        """
        key = self._key_for(token_class)

        try:
            jwt.get_unverified_header(token)
            jwt.get_unverified_claims(token)
        except (JWTError, AttributeError) as e:
            raise MalformedTokenError("Token is not a well-formed JWT") from e

        try:
            # exp is checked below against our own clock
            claims = jwt.decode(
                token,
                key,
                algorithms=[self.algorithm],
                options={"verify_exp": False},
            )
        except JWTError as e:
            raise BadSignatureError("Token signature verification failed") from e

        subject_id = claims.get("sub")
        claimed_class = claims.get("type")
        exp = claims.get("exp")
        iat = claims.get("iat")
        if (
            not isinstance(subject_id, str)
            or not subject_id
            or not isinstance(claimed_class, str)
            or not isinstance(exp, int)
            or isinstance(exp, bool)
        ):
            raise MalformedTokenError("Token is missing required claims")

        if claimed_class != token_class:
            raise WrongTokenClassError(
                f"Expected a {token_class} token, got {claimed_class}"
            )

        if self.clock() >= exp:
            raise TokenExpiredError("Token has expired")

        return TokenClaims(
            subject_id=subject_id,
            token_class=claimed_class,
            expires_at=datetime.fromtimestamp(exp, tz=UTC),
            issued_at=datetime.fromtimestamp(iat, tz=UTC) if isinstance(iat, int) else None,
            jti=claims.get("jti"),
        )


@lru_cache
def get_token_codec() -> TokenCodec:
    """Codec configured from application settings."""
    return TokenCodec(
        access_secret=settings.jwt_access_secret,
        refresh_secret=settings.jwt_refresh_secret,
        algorithm=settings.jwt_algorithm,
    )
