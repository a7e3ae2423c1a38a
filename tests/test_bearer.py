"""Unit tests for auth/bearer.py -- Authorization header parsing."""

import pytest

from auth.bearer import get_bearer_token
from auth.errors import MalformedHeader, MissingHeader, Unauthorized


def test_bearer_returns_token() -> None:
    assert get_bearer_token("Bearer xyz") == "xyz"


def test_token_is_not_trimmed() -> None:
    assert get_bearer_token("Bearer  xyz ") == " xyz "


@pytest.mark.parametrize("value", [None, ""])
def test_missing_header(value) -> None:
    with pytest.raises(MissingHeader):
        get_bearer_token(value)


@pytest.mark.parametrize("value", ["Token abc", "bearer abc", "BEARER abc", "Bearer", "Bearer ", "Basic dXNlcjpwYXNz"])
def test_malformed_header(value: str) -> None:
    with pytest.raises(MalformedHeader):
        get_bearer_token(value)


def test_header_errors_are_unauthorized() -> None:
    """Both header failures fold into the single outward Unauthorized kind."""
    with pytest.raises(Unauthorized):
        get_bearer_token("Token abc")
    with pytest.raises(Unauthorized):
        get_bearer_token(None)
