"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

Only one method is accepted: Authorization: Bearer <access token>. The header
value is handed to SessionService.authenticate() unmodified, so parsing rules
live in exactly one place (auth/bearer.py).

Failures raise auth.errors.Unauthorized. api/main.py registers the exception
handler that turns every AuthError into the shared 401 envelope, so these
helpers never build HTTP responses themselves.

Layer rule: may import from fastapi because this module is part of the FastAPI
dependency injection system. No imports from api/.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import Request

from auth.service import SessionService


def get_session_service(request: Request) -> SessionService:
    """Return the SessionService wired into app.state by the lifespan."""
    return request.app.state.session_service


def get_current_user_id(request: Request) -> UUID:
    """Require a valid access token and return its subject.

    Use as a FastAPI dependency:
        @router.post("/chirps")
        def route(user_id: UUID = Depends(get_current_user_id)): ...
    """
    service = get_session_service(request)
    return service.authenticate(request.headers.get("Authorization"))
