"""
api/routes/auth.py -- Account and session REST endpoints.

Routes (mounted under /api):
  POST /api/users    -- register; 201 with public profile
  PUT  /api/users    -- replace email + password (access token required)
  POST /api/login    -- email + password -> access token + refresh token
  POST /api/refresh  -- Bearer <refresh token> -> new access token
  POST /api/revoke   -- Bearer <refresh token> -> 204, token unusable afterwards

Security:
  Every credential/token failure is raised by SessionService as Unauthorized
  and rendered by the AuthError handler in api/main.py, so all 401s from one
  protocol are byte-identical. Handlers here never build 401 bodies.
  Cache-Control: no-store on every response that carries a token.

Handlers are plain def: SessionService is synchronous (bcrypt + SQLAlchemy),
so FastAPI runs them in its threadpool instead of blocking the event loop.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Request, Response

from api.models import LoginRequest, LoginResponse, TokenResponse, UserCreate, UserResponse
from auth.dependencies import get_current_user_id, get_session_service
from auth.service import SessionService

router = APIRouter()


@router.post("/users", response_model=UserResponse, status_code=201)
def create_user(body: UserCreate, service: SessionService = Depends(get_session_service)) -> UserResponse:
    """Register a new account."""
    user = service.register(body.email, body.password)
    return UserResponse.from_user(user)


@router.put("/users", response_model=UserResponse)
def update_user(
    body: UserCreate,
    user_id: UUID = Depends(get_current_user_id),
    service: SessionService = Depends(get_session_service),
) -> UserResponse:
    """Replace the caller's email and password. The password hash is rewritten wholesale."""
    user = service.update_credentials(user_id, body.email, body.password)
    return UserResponse.from_user(user)


@router.post("/login", response_model=LoginResponse)
def login(
    body: LoginRequest,
    response: Response,
    service: SessionService = Depends(get_session_service),
) -> LoginResponse:
    """Authenticate with email and password.

    Unknown email and wrong password return the same 401 body.
    """
    result = service.login(body.email, body.password, body.expires_in_seconds)
    response.headers["Cache-Control"] = "no-store"
    return LoginResponse.from_result(result)


@router.post("/refresh", response_model=TokenResponse)
def refresh(
    request: Request,
    response: Response,
    service: SessionService = Depends(get_session_service),
) -> TokenResponse:
    """Mint a one-hour access token from the refresh token in the Authorization header."""
    token = service.refresh(request.headers.get("Authorization"))
    response.headers["Cache-Control"] = "no-store"
    return TokenResponse(token=token)


@router.post("/revoke", status_code=204)
def revoke(request: Request, service: SessionService = Depends(get_session_service)) -> Response:
    """Revoke the refresh token in the Authorization header."""
    service.revoke(request.headers.get("Authorization"))
    return Response(status_code=204)

