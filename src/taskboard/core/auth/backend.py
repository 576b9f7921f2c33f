"""Credential hashing for user secrets and stored tokens.

- Password hashing and verification with bcrypt (via passlib)
- SHA-256 digests used to key refresh tokens in storage
"""

import hashlib

import structlog
from passlib.context import CryptContext

from taskboard.config import settings


logger = structlog.get_logger()

# Rounds are a deployment tuning knob; tests lower them through settings.
pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.bcrypt_rounds,
)


def hash_password(password: str) -> str:
    """Hash a password using bcrypt.

    A fresh salt is drawn on every call, so hashing the same password
    twice yields two different digests. Compare with ``verify_password``,
    never with ``==``.

    Args:
        password: Plain text password

    Returns:
        Bcrypt hash of the password
    """
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash.

    Args:
        plain_password: Plain text password to verify
        hashed_password: Bcrypt hash to verify against

    Returns:
        True if password matches, False otherwise (including when the
        stored digest is not a recognisable hash)
    """
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        logger.warning("password_hash_unrecognized")
        return False


def hash_token(token: str) -> str:
    """Hash a token for storage.

    Deterministic, so the digest can be used as a unique lookup key.

    Args:
        token: The token to hash

    Returns:
        SHA-256 hex digest of the token
    """
    return hashlib.sha256(token.encode()).hexdigest()
