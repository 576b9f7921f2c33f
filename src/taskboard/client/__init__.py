"""Client-side session handling for Taskboard API consumers."""

from taskboard.client.agent import ClientTokenPair, SessionAgent, SessionExpiredError
from taskboard.client.storage import MemoryTokenStorage, TokenStorage


__all__ = [
    "ClientTokenPair",
    "MemoryTokenStorage",
    "SessionAgent",
    "SessionExpiredError",
    "TokenStorage",
]
