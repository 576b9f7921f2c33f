"""Unit tests for the token codec."""

from datetime import timedelta
from uuid import uuid4

import pytest
from jose import jwt

from taskboard.core.auth.tokens import (
    BadSignatureError,
    MalformedTokenError,
    TokenCodec,
    TokenExpiredError,
    WrongTokenClassError,
)


ACCESS_SECRET = "access-secret-for-tests-0123456789abcdef"
REFRESH_SECRET = "refresh-secret-for-tests-0123456789abcdef"
FIFTEEN_MINUTES = timedelta(minutes=15)


@pytest.fixture
def codec(clock) -> TokenCodec:
    return TokenCodec(ACCESS_SECRET, REFRESH_SECRET, clock=clock)


class TestIssue:
    def test_issue_returns_jwt(self, codec):
        token = codec.issue("user-1", "access", FIFTEEN_MINUTES)

        assert token.count(".") == 2

    def test_issue_embeds_claims(self, codec, clock):
        token = codec.issue("user-1", "refresh", timedelta(days=7))
        claims = jwt.get_unverified_claims(token)

        assert claims["sub"] == "user-1"
        assert claims["type"] == "refresh"
        assert claims["iat"] == clock.now
        assert claims["exp"] == clock.now + 7 * 24 * 60 * 60

    def test_same_subject_same_second_gives_distinct_tokens(self, codec):
        first = codec.issue("user-1", "refresh", FIFTEEN_MINUTES)
        second = codec.issue("user-1", "refresh", FIFTEEN_MINUTES)

        assert first != second

    def test_unknown_class_rejected(self, codec):
        with pytest.raises(ValueError):
            codec.issue("user-1", "session", FIFTEEN_MINUTES)


class TestVerify:
    def test_verify_round_trip(self, codec):
        subject_id = str(uuid4())
        token = codec.issue(subject_id, "access", FIFTEEN_MINUTES)

        claims = codec.verify(token, "access")

        assert claims.subject_id == subject_id
        assert claims.token_class == "access"
        assert claims.jti

    @pytest.mark.parametrize(
        ("issued_as", "verified_as"),
        [("access", "refresh"), ("refresh", "access")],
    )
    def test_classes_never_interchange(self, codec, issued_as, verified_as):
        """Separate keys mean a token of one class fails as the other."""
        token = codec.issue(str(uuid4()), issued_as, FIFTEEN_MINUTES)

        with pytest.raises(BadSignatureError):
            codec.verify(token, verified_as)

    def test_wrong_class_detected_even_with_shared_key(self, clock):
        """The class tag is checked even if both classes share a key."""
        misconfigured = TokenCodec(ACCESS_SECRET, ACCESS_SECRET, clock=clock)
        token = misconfigured.issue("user-1", "access", FIFTEEN_MINUTES)

        with pytest.raises(WrongTokenClassError):
            misconfigured.verify(token, "refresh")

    def test_foreign_signature_rejected(self, codec):
        forged = TokenCodec("someone-elses-key-0123456789abcdef", REFRESH_SECRET)
        token = forged.issue("user-1", "access", FIFTEEN_MINUTES)

        with pytest.raises(BadSignatureError):
            codec.verify(token, "access")

    @pytest.mark.parametrize("token", ["", "not-a-token", "a.b", "a.b.c", "....."])
    def test_malformed_rejected(self, codec, token):
        with pytest.raises(MalformedTokenError):
            codec.verify(token, "access")

    def test_missing_claims_rejected(self, codec):
        token = jwt.encode({"sub": "user-1"}, ACCESS_SECRET, algorithm="HS256")

        with pytest.raises(MalformedTokenError):
            codec.verify(token, "access")


class TestExpiry:
    def test_valid_until_one_second_before_expiry(self, codec, clock):
        token = codec.issue("user-1", "access", FIFTEEN_MINUTES)

        clock.advance(15 * 60 - 1)

        assert codec.verify(token, "access").subject_id == "user-1"

    def test_invalid_at_expiry(self, codec, clock):
        token = codec.issue("user-1", "access", FIFTEEN_MINUTES)

        clock.advance(15 * 60)

        with pytest.raises(TokenExpiredError):
            codec.verify(token, "access")

    def test_invalid_after_expiry(self, codec, clock):
        token = codec.issue("user-1", "access", FIFTEEN_MINUTES)

        clock.advance(15 * 60 + 1)

        with pytest.raises(TokenExpiredError):
            codec.verify(token, "access")
