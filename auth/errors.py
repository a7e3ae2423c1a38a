"""
auth/errors.py -- Error kinds raised by the session subsystem.

Every error carries two layers of information:
  kind / message -- the public part. kind is restricted to ErrorKind and is
      the only thing the HTTP layer branches on. message is fixed per kind
      (and per protocol for Unauthorized) so two failures of the same protocol
      are byte-identical on the wire.
  reason         -- the private part. Free text for logs only. The HTTP layer
      must never serialize it.

Unauthorized deliberately covers bad credentials, missing/malformed bearer
headers, unknown/expired/revoked refresh tokens and invalid access tokens.
HashingError and StorageError are infrastructure failures and stay distinct
so operators can alert on them separately from routine auth noise.

Layer rule: no imports from api/.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    unauthorized = "unauthorized"
    hashing_error = "hashing_error"
    not_found = "not_found"
    storage_error = "storage_error"
    email_taken = "email_taken"


# Outward messages. One per protocol family, never per failure cause.
BAD_CREDENTIALS_MESSAGE = "Incorrect email or password"
BAD_TOKEN_MESSAGE = "Invalid or expired token"


class AuthError(Exception):
    """Base class for all session subsystem errors."""

    kind: ErrorKind = ErrorKind.unauthorized
    default_message: str = BAD_TOKEN_MESSAGE

    def __init__(self, reason: str = "", message: str | None = None) -> None:
        self.reason = reason
        self.message = message or self.default_message
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind.value!r}, reason={self.reason!r})"


class Unauthorized(AuthError):
    kind = ErrorKind.unauthorized


class MissingHeader(Unauthorized):
    """No Authorization header, or an empty one."""


class MalformedHeader(Unauthorized):
    """Authorization header present but not 'Bearer <token>'."""


class InvalidToken(Unauthorized):
    """Access token failed signature, expiry, issuer or subject checks."""


class HashingError(AuthError):
    kind = ErrorKind.hashing_error
    default_message = "Internal error"


class StorageError(AuthError):
    kind = ErrorKind.storage_error
    default_message = "Internal error"


class NotFound(AuthError):
    """Internal only -- SessionService maps this to Unauthorized before it leaves."""

    kind = ErrorKind.not_found
    default_message = "Not found"


class EmailTaken(AuthError):
    kind = ErrorKind.email_taken
    default_message = "Email already registered"
