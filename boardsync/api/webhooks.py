"""
Webhook API endpoints for Trello board notifications.
"""

import base64
import hashlib
import hmac
import json
import logging
from typing import Optional

from fastapi import APIRouter, Request, Response
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from boardsync.config import get_settings
from boardsync.core.concurrency import BoundedWorkerPool
from boardsync.core.exceptions import BoardSyncError, WorkerPoolClosedError
from boardsync.schemas.webhook import TrelloWebhookPayload, WebhookResponse
from boardsync.services.reconciler import Reconciler

logger = logging.getLogger(__name__)

router = APIRouter()

SIGNATURE_HEADER = "X-Trello-Webhook"


def compute_signature(secret: str, body: bytes, callback_url: str) -> str:
    """Trello's signature: base64 HMAC-SHA1 of the raw body followed by the callback URL."""
    digest = hmac.new(
        secret.encode("utf-8"),
        body + callback_url.encode("utf-8"),
        hashlib.sha1,
    ).digest()
    return base64.b64encode(digest).decode("ascii")


def verify_webhook_signature(body: bytes, signature: Optional[str]) -> bool:
    """Check the signature when an API secret is configured."""
    settings = get_settings()
    if not settings.trello_api_secret:
        return True
    if not signature:
        return False
    expected = compute_signature(
        settings.trello_api_secret, body, settings.trello_callback_url
    )
    return hmac.compare_digest(expected, signature)


@router.head("/trello-webhook")
async def validate_webhook() -> Response:
    """Trello sends a HEAD request to validate the callback URL upon creation."""
    return Response(status_code=200)


@router.post("/trello-webhook", response_model=WebhookResponse)
async def trello_webhook(request: Request):
    """
    Handle a Trello board notification.

    Answers 500 when the notification could not be applied so that Trello
    delivers it again.
    """
    body = await request.body()

    if not verify_webhook_signature(body, request.headers.get(SIGNATURE_HEADER)):
        logger.warning("Rejected webhook with invalid signature")
        return JSONResponse(
            status_code=401,
            content=WebhookResponse(
                received=False, processed=False, error="Invalid webhook signature"
            ).model_dump(),
        )

    try:
        payload = TrelloWebhookPayload.model_validate(json.loads(body))
    except (ValueError, ValidationError) as e:
        # Likely an empty validation POST; Trello expects 200
        logger.info("Could not decode webhook payload: %s", e)
        return WebhookResponse(processed=False, error="Unrecognized payload")

    notification = payload.to_notification()
    logger.info(
        "Received Trello webhook: action type=%s, card ID=%s",
        notification.action_type,
        notification.card_id,
    )

    reconciler: Reconciler = request.app.state.reconciler
    pool: BoundedWorkerPool = request.app.state.worker_pool

    try:
        outcome = await pool.run(reconciler.process, notification)
    except WorkerPoolClosedError as e:
        return JSONResponse(
            status_code=503,
            content=WebhookResponse(
                processed=False, item_id=notification.card_id, error=str(e)
            ).model_dump(),
        )
    except BoardSyncError as e:
        logger.error("Error processing card update for %s: %s", notification.card_id, e)
        return JSONResponse(
            status_code=500,
            content=WebhookResponse(
                processed=False,
                item_id=notification.card_id,
                error="Failed to process webhook",
            ).model_dump(),
        )

    logger.info("Successfully processed card %s (%s)", notification.card_id, outcome.value)
    return WebhookResponse(
        processed=True,
        item_id=notification.card_id,
        outcome=outcome.value,
    )
