"""Unit tests for SessionService with mocked repositories."""

from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest

from taskboard.core.auth.service import SessionService, authorize, require_subject
from taskboard.core.auth.tokens import TokenCodec
from taskboard.core.errors import (
    AuthFailedError,
    ConflictError,
    InvalidRefreshError,
    InvalidTokenError,
    MissingTokenError,
)
from taskboard.modules.users.models import User


ACCESS_SECRET = "access-secret-for-tests-0123456789abcdef"
REFRESH_SECRET = "refresh-secret-for-tests-0123456789abcdef"


def make_mock_user(user_id=None, email="test@example.com", password_hash="hashedpwd"):
    """Create a mock User for testing."""
    user = MagicMock(spec=User)
    user.id = user_id or uuid4()
    user.email = email
    user.password_hash = password_hash
    return user


@pytest.fixture
def codec(clock) -> TokenCodec:
    return TokenCodec(ACCESS_SECRET, REFRESH_SECRET, clock=clock)


@pytest.fixture
def service(codec) -> SessionService:
    service = SessionService(AsyncMock(), codec=codec)
    service.user_repo = AsyncMock()
    service.token_repo = AsyncMock()
    service.token_repo.is_valid.return_value = True
    service.token_repo.remove.return_value = True
    service.token_repo.remove_all_expired_for.return_value = 0
    return service


class TestLogin:
    @pytest.mark.asyncio
    async def test_login_success(self, service, codec):
        """Valid credentials yield a pair whose refresh token gets stored."""
        mock_user = make_mock_user()
        service.user_repo.get_by_email.return_value = mock_user

        with patch("taskboard.core.auth.service.verify_password", return_value=True):
            user, tokens = await service.login("test@example.com", "password123")

        assert user is mock_user
        assert codec.verify(tokens.access_token, "access").subject_id == str(mock_user.id)
        assert codec.verify(tokens.refresh_token, "refresh").subject_id == str(mock_user.id)
        assert tokens.expires_in == 15 * 60
        service.token_repo.insert.assert_awaited_once()
        stored_user_id, stored_token, _ttl = service.token_repo.insert.await_args.args
        assert stored_user_id == mock_user.id
        assert stored_token == tokens.refresh_token
        service.token_repo.remove_all_expired_for.assert_awaited_once_with(mock_user.id)

    @pytest.mark.asyncio
    async def test_login_normalizes_email(self, service):
        service.user_repo.get_by_email.return_value = None

        with pytest.raises(AuthFailedError):
            await service.login("  Test@Example.COM ", "password123")

        service.user_repo.get_by_email.assert_awaited_once_with("test@example.com")

    @pytest.mark.asyncio
    async def test_unknown_email_and_wrong_password_look_the_same(self, service):
        """Both failure causes raise the same error with the same message."""
        service.user_repo.get_by_email.return_value = None
        with pytest.raises(AuthFailedError) as unknown:
            await service.login("nobody@example.com", "password123")

        service.user_repo.get_by_email.return_value = make_mock_user()
        with patch("taskboard.core.auth.service.verify_password", return_value=False):
            with pytest.raises(AuthFailedError) as wrong:
                await service.login("test@example.com", "wrong")

        assert unknown.value.message == wrong.value.message
        assert unknown.value.error_code == wrong.value.error_code == "invalid_credentials"
        service.token_repo.insert.assert_not_awaited()


class TestRegister:
    @pytest.mark.asyncio
    async def test_register_success(self, service):
        created = make_mock_user(email="new@example.com")
        service.user_repo.get_by_email.return_value = None
        service.user_repo.create.return_value = created

        with patch("taskboard.core.auth.service.hash_password", return_value="hashed"):
            user, tokens = await service.register("New@Example.com", "Password1!", "New")

        assert user is created
        new_user = service.user_repo.create.await_args.args[0]
        assert new_user.email == "new@example.com"
        assert new_user.password_hash == "hashed"
        assert tokens.refresh_token
        service.token_repo.insert.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_register_duplicate_email_raises_conflict(self, service):
        service.user_repo.get_by_email.return_value = make_mock_user()

        with pytest.raises(ConflictError) as exc_info:
            await service.register("test@example.com", "Password1!", "Dup")

        assert exc_info.value.error_code == "registration_failed"
        service.user_repo.create.assert_not_awaited()


class TestRefresh:
    @pytest.mark.asyncio
    async def test_refresh_rotates(self, service, codec):
        """The presented token is removed and a new pair is stored."""
        user_id = uuid4()
        old_refresh = codec.issue(str(user_id), "refresh", service.refresh_ttl)
        service.user_repo.get_by_id.return_value = make_mock_user(user_id=user_id)

        tokens = await service.refresh(old_refresh)

        assert tokens.refresh_token != old_refresh
        service.token_repo.is_valid.assert_awaited_once_with(old_refresh)
        service.token_repo.remove.assert_awaited_once_with(old_refresh)
        service.token_repo.insert.assert_awaited_once()
        assert service.token_repo.insert.await_args.args[1] == tokens.refresh_token
        assert codec.verify(tokens.access_token, "access").subject_id == str(user_id)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("token", ["", "garbage", "a.b.c"])
    async def test_refresh_malformed(self, service, token):
        with pytest.raises(InvalidRefreshError):
            await service.refresh(token)

        service.token_repo.is_valid.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_refresh_with_access_token_rejected(self, service, codec):
        access = codec.issue(str(uuid4()), "access", service.access_ttl)

        with pytest.raises(InvalidRefreshError):
            await service.refresh(access)

    @pytest.mark.asyncio
    async def test_refresh_expired_token(self, service, codec, clock):
        token = codec.issue(str(uuid4()), "refresh", service.refresh_ttl)
        clock.advance(int(service.refresh_ttl.total_seconds()))

        with pytest.raises(InvalidRefreshError):
            await service.refresh(token)

    @pytest.mark.asyncio
    async def test_refresh_not_in_store(self, service, codec):
        """An authentic token that the store no longer knows is refused."""
        token = codec.issue(str(uuid4()), "refresh", service.refresh_ttl)
        service.token_repo.is_valid.return_value = False

        with pytest.raises(InvalidRefreshError):
            await service.refresh(token)

        service.token_repo.remove.assert_not_awaited()
        service.token_repo.insert.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_refresh_lost_race(self, service, codec):
        """If a concurrent refresh consumed the token first, this one fails."""
        token = codec.issue(str(uuid4()), "refresh", service.refresh_ttl)
        service.token_repo.remove.return_value = False

        with pytest.raises(InvalidRefreshError):
            await service.refresh(token)

        service.token_repo.insert.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_refresh_for_deleted_user(self, service, codec):
        token = codec.issue(str(uuid4()), "refresh", service.refresh_ttl)
        service.user_repo.get_by_id.return_value = None

        with pytest.raises(InvalidRefreshError):
            await service.refresh(token)

        service.token_repo.insert.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_refresh_non_uuid_subject(self, service, codec):
        token = codec.issue("not-a-uuid", "refresh", service.refresh_ttl)

        with pytest.raises(InvalidRefreshError):
            await service.refresh(token)


class TestLogout:
    @pytest.mark.asyncio
    async def test_logout_removes_token(self, service):
        await service.logout("some-token")

        service.token_repo.remove.assert_awaited_once_with("some-token")

    @pytest.mark.asyncio
    async def test_logout_unknown_token_succeeds(self, service):
        service.token_repo.remove.return_value = False

        assert await service.logout("already-gone") is None

    @pytest.mark.asyncio
    async def test_logout_without_token_succeeds(self, service):
        assert await service.logout(None) is None

        service.token_repo.remove.assert_not_awaited()


class TestAuthorize:
    def test_authorize_valid(self, codec):
        user_id = uuid4()
        token = codec.issue(str(user_id), "access", timedelta(minutes=15))

        result = authorize(token, codec)

        assert result.subject_id == user_id
        assert result.token_supplied is True
        assert result.is_authenticated
        assert require_subject(result) == user_id

    def test_authorize_missing(self, codec):
        result = authorize(None, codec)

        assert result.subject_id is None
        assert result.token_supplied is False
        assert result.error_code == "missing_token"
        with pytest.raises(MissingTokenError):
            require_subject(result)

    def test_authorize_invalid(self, codec):
        result = authorize("garbage", codec)

        assert result.subject_id is None
        assert result.token_supplied is True
        assert result.error_code == "invalid_token"
        with pytest.raises(InvalidTokenError):
            require_subject(result)

    def test_authorize_refresh_token_is_not_access(self, codec):
        token = codec.issue(str(uuid4()), "refresh", timedelta(days=7))

        with pytest.raises(InvalidTokenError):
            require_subject(authorize(token, codec))

    def test_access_token_expires_after_fifteen_minutes(self, service, codec, clock):
        user_id = uuid4()
        token = codec.issue(str(user_id), "access", service.access_ttl)

        clock.advance(15 * 60 - 1)
        assert service.authorize(token).subject_id == user_id

        clock.advance(1)
        assert service.authorize(token).subject_id is None
