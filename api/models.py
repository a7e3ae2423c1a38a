"""
API request and response models for the Chirpy session endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.

Separation of concerns: auth/ models = domain truth; api/ models = API contract.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from auth.models import LoginResult, User

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class UserCreate(BaseModel):
    """Request body for POST /api/users and PUT /api/users.

    No max_length on password: any length is accepted and hashed in full
    (see auth/passwords.py).
    """

    model_config = ConfigDict(str_strip_whitespace=False)

    email: str = Field(min_length=3, max_length=320)
    password: str = Field(min_length=1)


class LoginRequest(BaseModel):
    """Request body for POST /api/login.

    expires_in_seconds is a request, not a grant. Omitted or 0 means the
    default lifetime; larger values are capped server-side.
    """

    email: str = Field(min_length=1, max_length=320)
    password: str
    expires_in_seconds: Optional[int] = Field(default=None, ge=0)


class PolkaWebhookData(BaseModel):
    user_id: UUID


class PolkaWebhook(BaseModel):
    """Request body for POST /api/polka/webhooks, sent by the payment provider.

    Only event "user.upgraded" has an effect; any other event is acknowledged
    and ignored.
    """

    event: str
    data: PolkaWebhookData


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class UserResponse(BaseModel):
    """Public profile of a user. Never carries the password hash."""

    model_config = ConfigDict(frozen=True)

    id: UUID
    email: str
    created_at: datetime
    updated_at: datetime
    is_chirpy_red: bool = False

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(**user.public_profile())


class LoginResponse(UserResponse):
    """Response for POST /api/login: profile plus both tokens."""

    token: str
    refresh_token: str

    @classmethod
    def from_result(cls, result: LoginResult) -> "LoginResponse":
        return cls(
            **result.user.public_profile(),
            token=result.token,
            refresh_token=result.refresh_token,
        )


class TokenResponse(BaseModel):
    """Response for POST /api/refresh."""

    model_config = ConfigDict(frozen=True)

    token: str


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail
