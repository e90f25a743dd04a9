"""Alertmanager webhook endpoints.

Alertmanager posts the watchdog alert group here on every repeat
interval. Each firing batch refreshes the heartbeats it carries.
"""

import json
import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import ValidationError

from deadman.ingest import WebhookNotFiring, ingest
from deadman.models import WebhookMessage

logger = logging.getLogger(__name__)

router = APIRouter()


def _error(reason: str) -> JSONResponse:
    return JSONResponse(
        status_code=400, content={"status": "error", "reason": reason})


@router.get("/ping", response_class=PlainTextResponse)
async def ping():
    """Liveness probe."""
    return "pong"


@router.post("/webhook")
@router.post("/watchdog")
async def receive_webhook(request: Request):
    """Register or refresh the heartbeats of a firing Alertmanager batch."""
    # Only accept well formatted json using alertmanager own format
    try:
        payload = json.loads(await request.body())
        message = WebhookMessage.model_validate(payload)
    except (ValueError, ValidationError):
        logger.info("Webhook payload format invalid. Skipping event")
        return _error("payload-format-error")

    state = request.app.state
    try:
        ingest(state.registry, message, state.settings.expire_duration)
    except WebhookNotFiring:
        logger.info("Received webhook status is not firing. Skipping event")
        return _error("webhook-not-firing")

    return {"status": "ok"}
