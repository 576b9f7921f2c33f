"""Users module: subjects and their refresh tokens."""

from taskboard.modules.users.models import RefreshToken, User
from taskboard.modules.users.repos import RefreshTokenRepository, UserRepository


__all__ = [
    "RefreshToken",
    "RefreshTokenRepository",
    "User",
    "UserRepository",
]
