"""
api/routes/polka.py -- Payment-provider webhook.

POST /api/polka/webhooks grants Chirpy Red when the provider reports a
"user.upgraded" event. Every other event is acknowledged with 204 and
ignored, so the provider does not retry it. An upgrade for an unknown user
is 404.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Response

from api.models import PolkaWebhook
from auth.dependencies import get_session_service
from auth.service import SessionService

logger = logging.getLogger("chirpy.api")

router = APIRouter()

UPGRADE_EVENT = "user.upgraded"


@router.post("/webhooks", status_code=204)
def polka_webhook(body: PolkaWebhook, service: SessionService = Depends(get_session_service)) -> Response:
    if body.event != UPGRADE_EVENT:
        logger.info("Ignoring webhook event %s", body.event)
        return Response(status_code=204)
    if not service.upgrade_user(body.data.user_id):
        raise HTTPException(
            status_code=404,
            detail={"code": "not_found", "message": "User not found."},
        )
    return Response(status_code=204)
