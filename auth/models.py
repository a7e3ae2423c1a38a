"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class. Stores and services do the work; the only behaviour here
is the refresh-token validity predicate and the public-profile projection,
both of which are pure functions of the record.

Layer rule: no imports from api/.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID


@dataclass
class User:
    """A registered Chirpy account.

    hashed_password is the bcrypt digest. It is replaced wholesale on password
    change and must never appear in any response -- use public_profile().
    """

    email: str
    hashed_password: str
    id: UUID | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    is_chirpy_red: bool = False

    def public_profile(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "is_chirpy_red": self.is_chirpy_red,
        }


@dataclass
class RefreshToken:
    """A persisted, revocable session credential.

    token is 64 hex chars (256 bits) and unique across all rows. revoked_at,
    once set, is never cleared. The row is usable only while it is not revoked
    and now < expires_at.
    """

    token: str
    user_id: UUID
    expires_at: datetime
    created_at: datetime | None = None
    updated_at: datetime | None = None
    revoked_at: datetime | None = None

    def is_usable(self, now: datetime) -> bool:
        return self.revoked_at is None and now < self.expires_at


@dataclass
class LoginResult:
    """What a successful login hands back: profile, access token, refresh token."""

    user: User
    token: str
    refresh_token: str
