"""
auth/bearer.py -- Pull the raw token out of an Authorization header.

The contract is strict on purpose: the header must be exactly the literal,
case-sensitive "Bearer " followed by the token. The token is returned as-is
(no trimming, no decoding). Only one scheme and one token are understood.

Whether the returned string is an access token or a refresh token is decided
by the caller, never here.
"""

from __future__ import annotations

from auth.errors import MalformedHeader, MissingHeader

_SCHEME = "Bearer "


def get_bearer_token(header_value: str | None) -> str:
    """Return the token from an Authorization header value.

    Raises MissingHeader for None or "", MalformedHeader for any other value
    that is not "Bearer <token>".
    """
    if not header_value:
        raise MissingHeader("authorization header missing")
    if not header_value.startswith(_SCHEME):
        raise MalformedHeader("authorization scheme is not Bearer")
    token = header_value[len(_SCHEME) :]
    if not token:
        raise MalformedHeader("bearer token is empty")
    return token
