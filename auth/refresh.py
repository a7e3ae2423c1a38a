"""
auth/refresh.py -- Refresh token generation and lifecycle.

A refresh token is an opaque 64-char hex string (secrets.token_hex(32), 256
bits of entropy). It is the only credential here that lives in storage, which
is what makes it revocable.

Lifecycle:
  issue()   -> row with expires_at = now + lifetime, revoked_at = NULL
  lookup()  -> the row, whatever its state, or NotFound
  revoke()  -> revoked_at = now, once; unknown or already revoked is NotFound
  expiry    -> passive; purge_expired() garbage-collects old rows

lookup() deliberately does not apply the validity predicate. "Does it exist"
and "is it usable" are separate questions; SessionService asks both and
reports every failure identically.
"""

from __future__ import annotations

import logging
import secrets
from datetime import timedelta
from uuid import UUID

from auth.errors import NotFound
from auth.models import RefreshToken
from auth.store import SessionStore
from core.clock import Clock, utc_now

logger = logging.getLogger("chirpy.auth")

REFRESH_TOKEN_LIFETIME = timedelta(days=60)


def generate_refresh_token() -> str:
    """Return 32 random bytes as 64 hex characters."""
    return secrets.token_hex(32)


class RefreshTokenManager:
    def __init__(
        self,
        store: SessionStore,
        lifetime: timedelta = REFRESH_TOKEN_LIFETIME,
        clock: Clock = utc_now,
    ) -> None:
        self._store = store
        self.lifetime = lifetime
        self._clock = clock

    def issue(self, user_id: UUID) -> RefreshToken:
        """Generate and persist a fresh refresh token for user_id."""
        row = RefreshToken(
            token=generate_refresh_token(),
            user_id=user_id,
            expires_at=self._clock() + self.lifetime,
        )
        return self._store.insert_refresh_token(row)

    def lookup(self, token: str) -> RefreshToken:
        row = self._store.get_refresh_token(token)
        if row is None:
            raise NotFound("refresh token not found")
        return row

    def revoke(self, token: str) -> None:
        if not self._store.mark_refresh_token_revoked(token, self._clock()):
            raise NotFound("refresh token not found or already revoked")

    def purge_expired(self) -> int:
        removed = self._store.purge_expired_refresh_tokens(self._clock())
        if removed:
            logger.info("Purged %d expired refresh tokens", removed)
        return removed
