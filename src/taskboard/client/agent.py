"""Client session agent.

Wraps an ``httpx.AsyncClient`` so that API calls carry the current access
token and survive its expiry. When a call comes back 401 the agent
refreshes the pair once and replays the call once with the new token.

Refreshes are single-flight: however many calls hit a 401 together, one
``POST /auth/refresh`` goes out and every one of them waits for it and
replays with the token it produced. The in-flight refresh is an
``asyncio.Task`` owned by the agent instance, cleared when it finishes
whichever way it ends. A 401 that answers a token already replaced by
a finished refresh is replayed with the stored token, without refreshing
again.

If the refresh fails the stored pair is wiped and ``SessionExpiredError``
is raised: the user has to log in again.
"""

import asyncio
import inspect
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime, timedelta
from typing import Any

import httpx
import structlog
from jose import JWTError, jwt
from pydantic import BaseModel

from taskboard.client.storage import MemoryTokenStorage, TokenStorage
from taskboard.core.constants import (
    ACCESS_TOKEN_STORAGE_KEY,
    ACCESS_TOKEN_TTL_MINUTES,
    CLIENT_REQUEST_TIMEOUT_SECONDS,
    REFRESH_TOKEN_STORAGE_KEY,
    REFRESH_TOKEN_TTL_DAYS,
)


logger = structlog.get_logger()

SessionExpiredHook = Callable[[], Awaitable[None] | None]


class SessionExpiredError(Exception):
    """The session cannot be renewed; the user must authenticate again."""


class ClientTokenPair(BaseModel):
    """Tokens held by the client.

    ``access_token`` may be None when it has lapsed while the refresh
    token is still alive.
    """

    access_token: str | None = None
    refresh_token: str


def token_expiry(token: str, fallback: timedelta) -> datetime:
    """Expiry embedded in a JWT, read without verifying it.

    Args:
        token: Encoded token
        fallback: Lifetime to assume if the token has no usable ``exp``

    Returns:
        Absolute expiry instant
    """
    try:
        exp = jwt.get_unverified_claims(token).get("exp")
    except JWTError:
        exp = None
    if isinstance(exp, int | float) and not isinstance(exp, bool):
        return datetime.fromtimestamp(exp, tz=UTC)
    return datetime.now(UTC) + fallback


class SessionAgent:
    """HTTP client that manages a token pair on the caller's behalf.

    Args:
        base_url: API root, e.g. "http://localhost:8000"
        storage: Where to keep tokens (in memory by default)
        transport: Optional httpx transport, e.g. ``httpx.MockTransport``
        timeout: Request timeout in seconds
        on_session_expired: Called after a failed refresh wipes the session;
            the place to send the user back to a login screen
        auth_prefix: Path under which the auth routes are mounted
    """

    def __init__(
        self,
        base_url: str,
        storage: TokenStorage | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = CLIENT_REQUEST_TIMEOUT_SECONDS,
        on_session_expired: SessionExpiredHook | None = None,
        auth_prefix: str = "/api/v1/auth",
    ) -> None:
        self.storage = storage if storage is not None else MemoryTokenStorage()
        self.on_session_expired = on_session_expired
        self.auth_prefix = auth_prefix.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=base_url,
            transport=transport,
            timeout=timeout,
        )
        self._refresh_task: asyncio.Task[str] | None = None

    async def __aenter__(self) -> "SessionAgent":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    # ============================================================
    # Token pair
    # ============================================================

    def get_pair(self) -> ClientTokenPair | None:
        """Current pair, or None when there is no refresh token.

        Without a refresh token the access token is treated as absent
        too, and is dropped from storage.
        """
        refresh_token = self.storage.get(REFRESH_TOKEN_STORAGE_KEY)
        if refresh_token is None:
            self.storage.remove(ACCESS_TOKEN_STORAGE_KEY)
            return None
        return ClientTokenPair(
            access_token=self.storage.get(ACCESS_TOKEN_STORAGE_KEY),
            refresh_token=refresh_token,
        )

    def set_pair(self, pair: ClientTokenPair) -> None:
        """Store a pair, each token expiring when its own ``exp`` says."""
        if pair.access_token is None:
            self.storage.remove(ACCESS_TOKEN_STORAGE_KEY)
        else:
            self.storage.set(
                ACCESS_TOKEN_STORAGE_KEY,
                pair.access_token,
                token_expiry(pair.access_token, timedelta(minutes=ACCESS_TOKEN_TTL_MINUTES)),
            )
        self.storage.set(
            REFRESH_TOKEN_STORAGE_KEY,
            pair.refresh_token,
            token_expiry(pair.refresh_token, timedelta(days=REFRESH_TOKEN_TTL_DAYS)),
        )

    def clear_pair(self) -> None:
        self.storage.remove(ACCESS_TOKEN_STORAGE_KEY)
        self.storage.remove(REFRESH_TOKEN_STORAGE_KEY)

    @property
    def is_authenticated(self) -> bool:
        return self.get_pair() is not None

    # ============================================================
    # Refresh
    # ============================================================

    async def refresh_if_needed(self) -> str:
        """Refresh the pair, joining a refresh already in flight.

        Returns:
            The access token produced by the refresh this call waited on

        Raises:
            SessionExpiredError: The refresh failed and the session was wiped
        """
        task = self._refresh_task
        if task is None:
            task = asyncio.create_task(self._perform_refresh())
            task.add_done_callback(self._clear_refresh_task)
            self._refresh_task = task
        # Shielded so a cancelled waiter does not cancel the refresh for the rest.
        return await asyncio.shield(task)

    def _clear_refresh_task(self, task: "asyncio.Task[str]") -> None:
        if self._refresh_task is task:
            self._refresh_task = None

    async def _perform_refresh(self) -> str:
        try:
            pair = self.get_pair()
            if pair is None:
                raise SessionExpiredError("No refresh token available")

            response = await self._client.post(
                f"{self.auth_prefix}/refresh",
                json={"refresh_token": pair.refresh_token},
            )
            response.raise_for_status()
            tokens = ClientTokenPair.model_validate(response.json())
        except (SessionExpiredError, httpx.HTTPError, ValueError) as e:
            logger.warning("session_refresh_failed", error_type=type(e).__name__)
            await self._expire_session()
            if isinstance(e, SessionExpiredError):
                raise
            raise SessionExpiredError("Session expired, please log in again") from e

        if tokens.access_token is None:
            await self._expire_session()
            raise SessionExpiredError("Refresh response carried no access token")

        self.set_pair(tokens)
        logger.info("session_refreshed")
        return tokens.access_token

    async def _expire_session(self) -> None:
        self.clear_pair()
        if self.on_session_expired is not None:
            result = self.on_session_expired()
            if inspect.isawaitable(result):
                await result

    # ============================================================
    # Requests
    # ============================================================

    async def _send(
        self,
        method: str,
        url: str,
        access_token: str | None,
        **kwargs: Any,
    ) -> httpx.Response:
        headers = dict(kwargs.pop("headers", None) or {})
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"
        return await self._client.request(method, url, headers=headers, **kwargs)

    async def request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Send an authenticated request, recovering once from a 401.

        Responses other than a first 401 are returned as they are; a 401
        on the replayed call is returned too, never refreshed again.

        Raises:
            SessionExpiredError: A refresh was needed and failed
        """
        pair = self.get_pair()
        sent_token = pair.access_token if pair else None
        response = await self._send(method, url, sent_token, **kwargs)
        if response.status_code != httpx.codes.UNAUTHORIZED:
            return response

        logger.debug("access_token_rejected", method=method, url=url)
        # A refresh finished while this call was in flight; its token is fresh.
        current = self.get_pair()
        if current and current.access_token and current.access_token != sent_token:
            return await self._send(method, url, current.access_token, **kwargs)

        access_token = await self.refresh_if_needed()
        return await self._send(method, url, access_token, **kwargs)

    async def get(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("GET", url, **kwargs)

    async def post(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("POST", url, **kwargs)

    async def put(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("PUT", url, **kwargs)

    async def patch(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("PATCH", url, **kwargs)

    async def delete(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("DELETE", url, **kwargs)

    # ============================================================
    # Auth endpoints
    # ============================================================

    async def _open_session(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        response = await self._client.post(f"{self.auth_prefix}{path}", json=payload)
        response.raise_for_status()
        data: dict[str, Any] = response.json()
        self.set_pair(ClientTokenPair.model_validate(data))
        return data

    async def register(self, email: str, password: str, name: str) -> dict[str, Any]:
        """Create an account and store the returned pair.

        Raises:
            httpx.HTTPStatusError: The server refused the registration
        """
        return await self._open_session(
            "/register", {"email": email, "password": password, "name": name}
        )

    async def login(self, email: str, password: str) -> dict[str, Any]:
        """Log in and store the returned pair.

        Raises:
            httpx.HTTPStatusError: Bad credentials (401) or bad input (422)
        """
        return await self._open_session("/login", {"email": email, "password": password})

    async def logout(self) -> None:
        """Tell the server to forget the refresh token, then wipe local state.

        Local state is wiped even if the server call fails.
        """
        pair = self.get_pair()
        try:
            if pair is not None:
                await self._client.post(
                    f"{self.auth_prefix}/logout",
                    json={"refresh_token": pair.refresh_token},
                )
        except httpx.HTTPError as e:
            logger.warning("logout_request_failed", error_type=type(e).__name__)
        finally:
            self.clear_pair()
