"""
Google Calendar client for card due-date events.

Events are all-day entries spanning the due date (end date exclusive). Every
network call goes through the retry executor.
"""

import asyncio
import logging
from datetime import date, datetime, timedelta, timezone
from typing import Any, Optional
from urllib.parse import quote

import httpx

from boardsync.core.exceptions import (
    DueDateError,
    ResourceNotFoundError,
    UnrecoverableAPIError,
)
from boardsync.core.http import decode_json, send_request
from boardsync.core.retry import RetryExecutor
from boardsync.models import TaskRecord

GOOGLE_OAUTH_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_CALENDAR_API_BASE = "https://www.googleapis.com/calendar/v3"
SERVICE_NAME = "google-calendar"
TOKEN_REFRESH_MARGIN_SECONDS = 60
DEFAULT_TOKEN_TTL_SECONDS = 3600


def event_dates(due_at: datetime) -> tuple[date, date]:
    """All-day span for a due timestamp: (due date, due date + 1 day)."""
    if due_at.tzinfo is None:
        due_at = due_at.replace(tzinfo=timezone.utc)
    start = due_at.date()
    return start, start + timedelta(days=1)


def build_event_body(record: TaskRecord) -> dict[str, Any]:
    """Summary, description and date span for a record with a due date."""
    start, end = event_dates(record.due_at)
    return {
        "summary": record.name,
        "description": f"Trello Card: {record.source_url}",
        "start": {"date": start.isoformat()},
        "end": {"date": end.isoformat()},
    }


class GoogleOAuthToken:
    """Refresh-token exchange with access-token caching."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        refresh_token: str,
        token_url: str = GOOGLE_OAUTH_TOKEN_URL,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.refresh_token = refresh_token
        self.token_url = token_url
        self._access_token: Optional[str] = None
        self._expires_at: Optional[datetime] = None
        self._lock = asyncio.Lock()

    def _is_fresh(self) -> bool:
        if self._access_token is None or self._expires_at is None:
            return False
        return datetime.now(timezone.utc) < self._expires_at

    def invalidate(self) -> None:
        self._access_token = None
        self._expires_at = None

    async def get(self, client: httpx.AsyncClient) -> str:
        if self._is_fresh():
            return self._access_token

        async with self._lock:
            if not self._is_fresh():
                await self._refresh(client)
            return self._access_token

    async def _refresh(self, client: httpx.AsyncClient) -> None:
        response = await send_request(
            client,
            "POST",
            self.token_url,
            service="google-oauth",
            data={
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "refresh_token": self.refresh_token,
                "grant_type": "refresh_token",
            },
            headers={"Accept": "application/json"},
        )
        payload = decode_json(response, service="google-oauth")

        access_token = payload.get("access_token")
        if not isinstance(access_token, str) or not access_token.strip():
            raise UnrecoverableAPIError(
                "Google OAuth token response is missing an access_token",
                status_code=response.status_code,
                service="google-oauth",
            )

        try:
            expires_in = int(payload.get("expires_in", DEFAULT_TOKEN_TTL_SECONDS))
        except (TypeError, ValueError):
            expires_in = DEFAULT_TOKEN_TTL_SECONDS
        # Refresh early to avoid edge-of-expiration failures.
        ttl = max(expires_in - TOKEN_REFRESH_MARGIN_SECONDS, 30)

        self._access_token = access_token.strip()
        self._expires_at = datetime.now(timezone.utc) + timedelta(seconds=ttl)


class CalendarClient:
    """Create, read, update and delete events on one Google calendar."""

    def __init__(
        self,
        calendar_id: str,
        token: GoogleOAuthToken,
        executor: RetryExecutor,
        base_url: str = GOOGLE_CALENDAR_API_BASE,
        timeout: float = 30.0,
        http_client: Optional[httpx.AsyncClient] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.calendar_id = calendar_id
        self.token = token
        self.executor = executor
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.logger = logger or logging.getLogger(__name__)
        self._owns_client = http_client is None
        self._client: Optional[httpx.AsyncClient] = http_client

    @classmethod
    def from_settings(
        cls,
        settings,
        executor: RetryExecutor,
        logger: Optional[logging.Logger] = None,
    ) -> "CalendarClient":
        token = GoogleOAuthToken(
            client_id=settings.google_client_id,
            client_secret=settings.google_client_secret,
            refresh_token=settings.google_refresh_token,
        )
        return cls(
            calendar_id=settings.google_calendar_id,
            token=token,
            executor=executor,
            timeout=settings.http_timeout_seconds,
            logger=logger,
        )

    async def __aenter__(self) -> "CalendarClient":
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
    def is_ready(self) -> bool:
        return self._client is not None and bool(self.calendar_id)

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError("Client not connected. Call connect() first.")
        return self._client

    def _events_url(self, event_id: Optional[str] = None) -> str:
        if not self.calendar_id:
            raise UnrecoverableAPIError(
                "google calendar ID is not configured", service=SERVICE_NAME
            )
        url = f"{self.base_url}/calendars/{quote(self.calendar_id, safe='')}/events"
        if event_id is not None:
            url = f"{url}/{quote(event_id, safe='')}"
        return url

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        """One authenticated attempt."""
        access_token = await self.token.get(self.client)
        headers = {"Authorization": f"Bearer {access_token}"}
        try:
            return await send_request(
                self.client, method, url, service=SERVICE_NAME, headers=headers, **kwargs
            )
        except UnrecoverableAPIError as exc:
            if exc.status_code == 401:
                self.token.invalidate()
            raise

    async def _request_json(self, method: str, url: str, description: str, **kwargs) -> dict:
        async def operation() -> dict:
            response = await self._request(method, url, **kwargs)
            return decode_json(response, service=SERVICE_NAME)

        return await self.executor.execute(operation, description=description)

    # ============== Event Operations ==============

    async def create_event(self, record: TaskRecord) -> str:
        """Create an all-day event for ``record`` and return its id."""
        if record.due_at is None:
            raise DueDateError(
                f"card {record.id} does not have a due date, cannot create event"
            )

        event = await self._request_json(
            "POST",
            self._events_url(),
            description=f"create event for card {record.id}",
            json=build_event_body(record),
        )
        return self._event_id(event)

    async def get_event(self, event_id: str) -> dict:
        """Fetch an event resource."""
        return await self._request_json(
            "GET",
            self._events_url(event_id),
            description=f"get event {event_id}",
        )

    async def update_event(self, record: TaskRecord, event_id: str) -> str:
        """Overwrite summary, description and dates of an existing event."""
        if record.due_at is None:
            raise DueDateError(
                f"card {record.id} does not have a due date, cannot update event"
            )

        event = await self.get_event(event_id)
        event.update(build_event_body(record))

        updated = await self._request_json(
            "PUT",
            self._events_url(event.get("id") or event_id),
            description=f"update event {event_id}",
            json=event,
        )
        return self._event_id(updated)

    async def delete_event(self, event_id: str) -> None:
        """Delete an event; an event that is already gone counts as deleted."""

        async def operation() -> None:
            await self._request("DELETE", self._events_url(event_id))

        try:
            await self.executor.execute(operation, description=f"delete event {event_id}")
        except ResourceNotFoundError:
            self.logger.info(
                "Event %s not found in Google Calendar. Already deleted.", event_id
            )

    @staticmethod
    def _event_id(event: dict) -> str:
        event_id = event.get("id")
        if not isinstance(event_id, str) or not event_id:
            raise UnrecoverableAPIError(
                "Google Calendar response is missing an event id",
                service=SERVICE_NAME,
            )
        return event_id
