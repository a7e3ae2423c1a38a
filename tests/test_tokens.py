"""Unit tests for auth/tokens.py -- access token issue and verify.

Covers:
- round trip returns the user id
- lifetime: default, cap at 3600 s, non-positive ttl
- exact expiry against the injected clock (no leeway)
- forgery resistance: other secret, tampered payload, alg=none, wrong issuer
- malformed subject
"""

import base64
import json
from datetime import timedelta
from uuid import uuid4

import pytest
from jose import jwt

from auth.errors import InvalidToken, Unauthorized
from auth.tokens import AccessTokenCodec

TEST_SECRET = "codec-test-secret-0123456789abcdef"


@pytest.fixture
def codec(clock) -> AccessTokenCodec:
    return AccessTokenCodec(TEST_SECRET, clock=clock)


def _lifetime(token: str) -> int:
    claims = jwt.get_unverified_claims(token)
    return claims["exp"] - claims["iat"]


class TestRoundTrip:
    def test_verify_returns_subject(self, codec: AccessTokenCodec) -> None:
        user_id = uuid4()
        assert codec.verify(codec.issue(user_id, 600)) == user_id

    def test_claims(self, codec: AccessTokenCodec, clock) -> None:
        user_id = uuid4()
        claims = jwt.get_unverified_claims(codec.issue(user_id, 600))
        assert claims["sub"] == str(user_id)
        assert claims["iss"] == "chirpy"
        assert claims["iat"] == int(clock().timestamp())

    def test_each_token_is_distinct(self, codec: AccessTokenCodec) -> None:
        user_id = uuid4()
        assert codec.issue(user_id, 3600) != codec.issue(user_id, 3600)


class TestLifetime:
    @pytest.mark.parametrize("ttl", [None, 0])
    def test_default_is_one_hour(self, codec: AccessTokenCodec, ttl) -> None:
        assert _lifetime(codec.issue(uuid4(), ttl)) == 3600

    def test_requested_lifetime_honoured_below_cap(self, codec: AccessTokenCodec) -> None:
        assert _lifetime(codec.issue(uuid4(), 60)) == 60

    def test_large_request_capped(self, codec: AccessTokenCodec) -> None:
        assert _lifetime(codec.issue(uuid4(), 100000)) == 3600

    def test_timedelta_accepted(self, codec: AccessTokenCodec) -> None:
        assert _lifetime(codec.issue(uuid4(), timedelta(minutes=5))) == 300

    def test_negative_ttl_is_already_expired(self, codec: AccessTokenCodec) -> None:
        with pytest.raises(InvalidToken):
            codec.verify(codec.issue(uuid4(), -1))


class TestExpiry:
    def test_valid_until_last_second(self, codec: AccessTokenCodec, clock) -> None:
        user_id = uuid4()
        token = codec.issue(user_id, 3600)
        clock.advance(seconds=3599)
        assert codec.verify(token) == user_id

    def test_rejected_at_expiry(self, codec: AccessTokenCodec, clock) -> None:
        token = codec.issue(uuid4(), 3600)
        clock.advance(seconds=3600)
        with pytest.raises(InvalidToken) as excinfo:
            codec.verify(token)
        assert excinfo.value.reason == "token expired"


class TestRejection:
    def test_other_secret_never_verifies(self, codec: AccessTokenCodec, clock) -> None:
        token = codec.issue(uuid4(), 600)
        other = AccessTokenCodec("another-secret-of-sufficient-length!", clock=clock)
        with pytest.raises(InvalidToken):
            other.verify(token)

    def test_tampered_payload(self, codec: AccessTokenCodec) -> None:
        header, _payload, signature = codec.issue(uuid4(), 600).split(".")
        forged_payload = codec.issue(uuid4(), 600).split(".")[1]
        with pytest.raises(InvalidToken):
            codec.verify(f"{header}.{forged_payload}.{signature}")

    def test_unsigned_token(self, codec: AccessTokenCodec) -> None:
        """alg=none must never be accepted, even with otherwise valid claims."""
        claims = jwt.get_unverified_claims(codec.issue(uuid4(), 600))

        def b64(obj: dict) -> str:
            return base64.urlsafe_b64encode(json.dumps(obj).encode()).rstrip(b"=").decode()

        unsigned = f"{b64({'alg': 'none', 'typ': 'JWT'})}.{b64(claims)}."
        with pytest.raises(InvalidToken):
            codec.verify(unsigned)

    def test_wrong_issuer(self, codec: AccessTokenCodec, clock) -> None:
        token = AccessTokenCodec(TEST_SECRET, issuer="someone-else", clock=clock).issue(uuid4(), 600)
        with pytest.raises(InvalidToken):
            codec.verify(token)

    @pytest.mark.parametrize("subject", ["not-a-uuid", "", "12345"])
    def test_malformed_subject(self, codec: AccessTokenCodec, clock, subject: str) -> None:
        now = int(clock().timestamp())
        token = jwt.encode(
            {"iss": "chirpy", "sub": subject, "iat": now, "exp": now + 600},
            TEST_SECRET,
            algorithm="HS256",
        )
        with pytest.raises(InvalidToken) as excinfo:
            codec.verify(token)
        assert "subject" in excinfo.value.reason

    @pytest.mark.parametrize("token", ["", "garbage", "a.b.c", "0123456789abcdef" * 4])
    def test_garbage(self, codec: AccessTokenCodec, token: str) -> None:
        with pytest.raises(InvalidToken):
            codec.verify(token)

    def test_invalid_token_is_unauthorized_with_shared_message(self, codec: AccessTokenCodec) -> None:
        with pytest.raises(Unauthorized) as bad_sig:
            codec.verify("garbage")
        with pytest.raises(Unauthorized) as expired:
            codec.verify(codec.issue(uuid4(), -5))
        assert bad_sig.value.reason != expired.value.reason
        assert bad_sig.value.message == expired.value.message

    def test_empty_secret_rejected(self) -> None:
        with pytest.raises(ValueError):
            AccessTokenCodec("")
