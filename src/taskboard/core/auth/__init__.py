"""Authentication core: credential hashing, token codec and schemas.

The session service, dependencies and routes live in their own modules
(``service``, ``dependencies``, ``routes``) and are imported from there.
"""

from taskboard.core.auth.backend import hash_password, hash_token, verify_password
from taskboard.core.auth.schemas import AuthorizationResult, TokenClaims, TokenPair
from taskboard.core.auth.tokens import (
    BadSignatureError,
    MalformedTokenError,
    TokenCodec,
    TokenError,
    TokenExpiredError,
    WrongTokenClassError,
    get_token_codec,
)


__all__ = [
    "AuthorizationResult",
    "BadSignatureError",
    "MalformedTokenError",
    "TokenClaims",
    "TokenCodec",
    "TokenError",
    "TokenExpiredError",
    "TokenPair",
    "WrongTokenClassError",
    "get_token_codec",
    "hash_password",
    "hash_token",
    "verify_password",
]
