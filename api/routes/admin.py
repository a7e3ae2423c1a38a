"""
api/routes/admin.py -- Development-only maintenance endpoints.

POST /admin/reset deletes every user and refresh token. It is refused with
403 unless PLATFORM=dev, so a production deployment cannot be wiped through
the API even by an authenticated caller.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import PlainTextResponse

from auth.dependencies import get_session_service
from auth.service import SessionService

logger = logging.getLogger("chirpy.api")

router = APIRouter()


@router.post("/reset", response_class=PlainTextResponse)
def reset(request: Request, service: SessionService = Depends(get_session_service)) -> PlainTextResponse:
    if request.app.state.settings.platform != "dev":
        raise HTTPException(
            status_code=403,
            detail={"code": "forbidden", "message": "Reset is only available on the dev platform."},
        )
    removed = service.store.delete_all_users()
    logger.warning("Dev reset removed %d users", removed)
    return PlainTextResponse("ALL RESET")
