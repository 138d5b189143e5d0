"""
Trello REST client for webhook registration.

Each method performs exactly one request; retries are the caller's concern.
"""

import logging
from typing import Optional

import httpx

from boardsync.core.exceptions import UnrecoverableAPIError
from boardsync.core.http import decode_json, send_request

TRELLO_API_BASE = "https://api.trello.com/1"
WEBHOOK_DESCRIPTION = "Webhook for Trello-GCal Sync"
SERVICE_NAME = "trello"


class TrelloClient:
    """Client for the Trello webhooks API."""

    def __init__(
        self,
        api_key: str,
        api_token: str,
        callback_url: str,
        base_url: str = TRELLO_API_BASE,
        timeout: float = 30.0,
        http_client: Optional[httpx.AsyncClient] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.api_key = api_key
        self.api_token = api_token
        self.callback_url = callback_url
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.logger = logger or logging.getLogger(__name__)
        self._owns_client = http_client is None
        self._client: Optional[httpx.AsyncClient] = http_client

    async def __aenter__(self) -> "TrelloClient":
        await self.connect()
        return self

    async def __aexit__(self, *args) -> None:
        await self.disconnect()

    async def connect(self) -> None:
        """Create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
            self._owns_client = True

    async def disconnect(self) -> None:
        """Close HTTP client."""
        if self._client and self._owns_client:
            await self._client.aclose()
        self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError("Client not connected. Call connect() first.")
        return self._client

    @property
    def _auth(self) -> dict:
        return {"key": self.api_key, "token": self.api_token}

    async def create_webhook(self, board_id: str) -> str:
        """Register a webhook on ``board_id`` and return its id."""
        form = {
            **self._auth,
            "callbackURL": self.callback_url,
            "idModel": board_id,
            "description": WEBHOOK_DESCRIPTION,
        }
        response = await send_request(
            self.client,
            "POST",
            f"{self.base_url}/webhooks/",
            service=SERVICE_NAME,
            data=form,
        )
        payload = decode_json(response, service=SERVICE_NAME)

        webhook_id = payload.get("id")
        if not isinstance(webhook_id, str) or not webhook_id:
            raise UnrecoverableAPIError(
                "Trello webhook response is missing an id",
                status_code=response.status_code,
                service=SERVICE_NAME,
            )

        self.logger.info(
            "Registered webhook %s for board %s", webhook_id, board_id
        )
        return webhook_id

    async def delete_webhook(self, webhook_id: str) -> None:
        """Delete a webhook by id."""
        await send_request(
            self.client,
            "DELETE",
            f"{self.base_url}/webhooks/{webhook_id}",
            service=SERVICE_NAME,
            params=self._auth,
        )
        self.logger.info("Deleted webhook %s", webhook_id)
