"""
Pydantic schemas for request/response validation.
"""

from boardsync.schemas.webhook import (
    CardNotification,
    TrelloWebhookPayload,
    WebhookResponse,
)

__all__ = [
    "CardNotification",
    "TrelloWebhookPayload",
    "WebhookResponse",
]
