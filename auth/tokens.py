"""
auth/tokens.py -- Access token issue and verification (JWT, HS256).

Security design decisions:
  JWT: python-jose with HS256. Tokens carry sub (user UUID), iss, iat and exp.
       They are stateless -- verification never touches storage -- and die
       only by expiry. There is no access-token revocation; the short lifetime
       bounds the blast radius of a leak.

  Lifetime: the codec enforces its own ceiling (max_seconds, 3600 by default)
       regardless of what the caller asks for. A ttl of None or 0 means "use
       the ceiling". A negative ttl yields a token that is already expired.

  jti: a random id per token, so every issue() yields a distinct string.

  Expiry: checked here against the injected clock, not by jose, so the
       comparison is exact (now >= exp fails, no leeway) and tests can move
       time without sleeping.

  Secret: passed in at construction from SessionConfig. No module-level
       settings read, so two codecs with different secrets can coexist.

verify() raises InvalidToken on every failure. The reason attribute names the
specific check for the log; callers see only the single outward message.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from uuid import UUID, uuid4

from jose import JWTError, jwt
from jose.exceptions import JWTClaimsError

from auth.errors import InvalidToken
from core.clock import Clock, utc_now

logger = logging.getLogger("chirpy.auth")

_ALGORITHM = "HS256"
DEFAULT_ISSUER = "chirpy"
MAX_ACCESS_TOKEN_SECONDS = 3600


class AccessTokenCodec:
    """Issues and verifies signed, time-bounded access tokens.

    Usage:
        codec = AccessTokenCodec(secret)
        token = codec.issue(user.id, ttl=900)
        user_id = codec.verify(token)
    """

    def __init__(
        self,
        secret: str,
        issuer: str = DEFAULT_ISSUER,
        max_seconds: int = MAX_ACCESS_TOKEN_SECONDS,
        clock: Clock = utc_now,
    ) -> None:
        if not secret:
            raise ValueError("AccessTokenCodec requires a non-empty signing secret")
        self._secret = secret
        self.issuer = issuer
        self.max_seconds = max_seconds
        self._clock = clock

    def lifetime(self, ttl: int | timedelta | None) -> int:
        """Resolve a requested ttl to the number of seconds actually granted."""
        if isinstance(ttl, timedelta):
            ttl = int(ttl.total_seconds())
        if not ttl:
            return self.max_seconds
        return min(int(ttl), self.max_seconds)

    def issue(self, user_id: UUID, ttl: int | timedelta | None = None) -> str:
        """Encode a signed JWT for user_id expiring after the resolved ttl."""
        issued_at = int(self._clock().timestamp())
        payload = {
            "iss": self.issuer,
            "sub": str(user_id),
            "iat": issued_at,
            "exp": issued_at + self.lifetime(ttl),
            # Two tokens for the same user in the same second must still differ.
            "jti": uuid4().hex,
        }
        return jwt.encode(payload, self._secret, algorithm=_ALGORITHM)

    def verify(self, token: str) -> UUID:
        """Return the user id bound to a valid token. Raises InvalidToken otherwise."""
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[_ALGORITHM],
                issuer=self.issuer,
                options={"verify_exp": False, "verify_aud": False},
            )
        except JWTClaimsError as exc:
            raise self._reject(f"claims rejected: {exc}") from exc
        except JWTError as exc:
            raise self._reject(f"signature or format rejected: {exc}") from exc

        exp = payload.get("exp")
        if not isinstance(exp, int):
            raise self._reject("exp claim missing or not an integer")
        if int(self._clock().timestamp()) >= exp:
            raise self._reject("token expired")

        try:
            return UUID(payload["sub"])
        except (KeyError, TypeError, ValueError) as exc:
            raise self._reject("subject is not a user id") from exc

    @staticmethod
    def _reject(reason: str) -> InvalidToken:
        logger.info("Access token rejected: %s", reason)
        return InvalidToken(reason)
