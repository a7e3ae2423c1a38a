"""
auth/service.py -- SessionService: the four session protocols plus account upkeep.

This is the only auth/ entry point the HTTP layer calls. It composes:
  PasswordHasher      (auth/passwords.py)
  get_bearer_token    (auth/bearer.py)
  AccessTokenCodec    (auth/tokens.py)
  RefreshTokenManager (auth/refresh.py)

Protocols:
  login(email, password, expires_in_seconds)  -> LoginResult
  refresh(authorization)                      -> new access token
  revoke(authorization)                       -> None
  authenticate(authorization)                 -> user id (pure, no storage)

Outward errors:
  Every credential failure of login raises the same Unauthorized with
  BAD_CREDENTIALS_MESSAGE -- unknown email and wrong password are
  indistinguishable, and the unknown-email path still pays for one bcrypt
  verify. Every token failure of refresh/revoke/authenticate raises
  Unauthorized with BAD_TOKEN_MESSAGE. NotFound never leaves this module.
  HashingError and StorageError pass through untouched.

Refresh tokens are not rotated on refresh: the same token keeps minting access
tokens until it expires or is revoked.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from uuid import UUID

from auth.bearer import get_bearer_token
from auth.errors import BAD_CREDENTIALS_MESSAGE, NotFound, Unauthorized
from auth.models import LoginResult, User
from auth.passwords import PasswordHasher
from auth.refresh import RefreshTokenManager
from auth.store import SessionStore
from auth.tokens import AccessTokenCodec
from core.clock import Clock, utc_now
from core.config import Settings

logger = logging.getLogger("chirpy.auth")

# Access tokens minted from a refresh token always get exactly this lifetime.
REFRESHED_ACCESS_TOKEN_TTL = timedelta(hours=1)


@dataclass(frozen=True)
class SessionConfig:
    """Immutable per-process auth configuration.

    Owned by SessionService and handed to the components it builds. Tests
    construct it directly with their own secret.
    """

    signing_secret: str
    issuer: str = "chirpy"
    access_token_max_seconds: int = 3600
    refresh_token_days: int = 60
    bcrypt_rounds: int = 10

    @classmethod
    def from_settings(cls, settings: Settings) -> "SessionConfig":
        return cls(
            signing_secret=settings.jwt_secret,
            issuer=settings.token_issuer,
            access_token_max_seconds=settings.access_token_max_seconds,
            refresh_token_days=settings.refresh_token_days,
            bcrypt_rounds=settings.bcrypt_rounds,
        )


class SessionService:
    def __init__(self, store: SessionStore, config: SessionConfig, clock: Clock = utc_now) -> None:
        self.store = store
        self.config = config
        self._clock = clock
        self.hasher = PasswordHasher(rounds=config.bcrypt_rounds)
        self.codec = AccessTokenCodec(
            config.signing_secret,
            issuer=config.issuer,
            max_seconds=config.access_token_max_seconds,
            clock=clock,
        )
        self.refresh_tokens = RefreshTokenManager(
            store,
            lifetime=timedelta(days=config.refresh_token_days),
            clock=clock,
        )

    # ------------------------------------------------------------------
    # Session protocols
    # ------------------------------------------------------------------

    def login(self, email: str, password: str, expires_in_seconds: int | None = None) -> LoginResult:
        """Exchange email + password for an access token and a refresh token.

        expires_in_seconds of None or 0 means the default lifetime; anything
        larger than the ceiling is silently capped by the codec.
        """
        user = self.store.get_by_email(email)
        if user is None:
            self.hasher.verify_dummy(password)
            raise self._bad_credentials("unknown email")
        if not self.hasher.verify(user.hashed_password, password):
            raise self._bad_credentials("password mismatch")

        token = self.codec.issue(user.id, expires_in_seconds)
        refresh_token = self.refresh_tokens.issue(user.id)
        logger.info("Login succeeded for user %s", user.id)
        return LoginResult(user=user, token=token, refresh_token=refresh_token.token)

    def refresh(self, authorization: str | None) -> str:
        """Mint a new access token from a live refresh token. The refresh token is kept."""
        token = self._extract(authorization)
        try:
            row = self.refresh_tokens.lookup(token)
        except NotFound as exc:
            raise self._bad_token("refresh token unknown") from exc
        if row.revoked_at is not None:
            raise self._bad_token("refresh token revoked")
        if not row.is_usable(self._clock()):
            raise self._bad_token("refresh token expired")
        return self.codec.issue(row.user_id, REFRESHED_ACCESS_TOKEN_TTL)

    def revoke(self, authorization: str | None) -> None:
        """Revoke the refresh token in the header. Unknown or already revoked is Unauthorized."""
        token = self._extract(authorization)
        try:
            self.refresh_tokens.revoke(token)
        except NotFound as exc:
            raise self._bad_token(exc.reason) from exc
        logger.info("Refresh token revoked")

    def authenticate(self, authorization: str | None) -> UUID:
        """Resolve the user id behind an access token. Never touches refresh-token storage."""
        token = self._extract(authorization)
        return self.codec.verify(token)

    # ------------------------------------------------------------------
    # Account upkeep
    # ------------------------------------------------------------------

    def register(self, email: str, password: str) -> User:
        """Create an account. Raises EmailTaken if the email is already in use."""
        user = self.store.create_user(User(email=email, hashed_password=self.hasher.hash(password)))
        logger.info("Registered user %s", user.id)
        return user

    def update_credentials(self, user_id: UUID, email: str, password: str) -> User:
        """Replace a user's email and password hash.

        user_id must come from authenticate(); the HTTP layer gets it through
        auth.dependencies.get_current_user_id.
        """
        user = self.store.update_credentials(user_id, email, self.hasher.hash(password))
        if user is None:
            # Signed for an account that has since been deleted.
            raise self._bad_token("token subject no longer exists")
        return user

    def upgrade_user(self, user_id: UUID) -> bool:
        """Grant Chirpy Red. Returns False when no such user exists."""
        upgraded = self.store.upgrade_user(user_id)
        if upgraded:
            logger.info("User %s upgraded to Chirpy Red", user_id)
        return upgraded

    def purge_expired_refresh_tokens(self) -> int:
        return self.refresh_tokens.purge_expired()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _extract(authorization: str | None) -> str:
        try:
            return get_bearer_token(authorization)
        except Unauthorized as exc:
            logger.info("Bearer extraction failed: %s", exc.reason)
            raise

    @staticmethod
    def _bad_credentials(reason: str) -> Unauthorized:
        logger.info("Login rejected: %s", reason)
        return Unauthorized(reason, message=BAD_CREDENTIALS_MESSAGE)

    @staticmethod
    def _bad_token(reason: str) -> Unauthorized:
        logger.info("Token request rejected: %s", reason)
        return Unauthorized(reason)
