"""
Reconciliation engine: keeps one calendar event per card due date.

For each notification the engine loads the card's last-synced record,
decides which calendar call (if any) brings the calendar in line with the
card, and writes the record back. A pass either commits the whole new record
or nothing; the only tolerated divergence is a calendar event whose delete
failed while the local record was cleared anyway.

Notifications for the same card must be delivered one at a time. The
load/compute/upsert sequence is not protected against concurrent passes on
the same card id.
"""

import logging
import re
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Protocol

from boardsync.core.exceptions import BoardSyncError, DueDateError
from boardsync.models import TaskRecord
from boardsync.schemas.webhook import CardNotification
from boardsync.services.task_store import TaskStore

UPDATE_CARD_ACTION = "updateCard"

RFC3339_PATTERN = re.compile(
    r"^(\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2})(?:\.(\d+))?(Z|[+-]\d{2}:\d{2})$"
)


class ReconcileOutcome(str, Enum):
    IGNORED = "ignored"
    ARCHIVED = "archived"
    CREATED = "created"
    UPDATED = "updated"
    REPAIRED = "repaired"
    UNCHANGED = "unchanged"
    CLEARED = "cleared"


class EventScheduler(Protocol):
    """Calendar operations the engine relies on."""

    async def create_event(self, record: TaskRecord) -> str:
        ...

    async def update_event(self, record: TaskRecord, event_id: str) -> str:
        ...

    async def delete_event(self, event_id: str) -> None:
        ...


def parse_due(value: str) -> datetime:
    """Parse an RFC 3339 timestamp such as ``2025-03-10T00:00:00.000Z``."""
    match = RFC3339_PATTERN.match(value.strip())
    if match is None:
        raise DueDateError(f"invalid due date format: {value!r}")
    base, fraction, offset = match.groups()
    if fraction:
        base += "." + fraction[:6].ljust(6, "0")
    try:
        return datetime.fromisoformat(base + ("+00:00" if offset == "Z" else offset))
    except ValueError as e:
        raise DueDateError(f"invalid due date format: {value!r}") from e


def format_due(value: datetime) -> str:
    """Inverse of ``parse_due``; naive values are taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def board_prefix(board_name: str) -> str:
    return board_name[:1]


def display_name(card_name: str, board_name: str) -> str:
    return f"[{board_prefix(board_name)}] {card_name}"


class Reconciler:
    """Applies card notifications to the task store and the calendar."""

    def __init__(
        self,
        store: TaskStore,
        calendar: EventScheduler,
        logger: Optional[logging.Logger] = None,
    ):
        self.store = store
        self.calendar = calendar
        self.logger = logger or logging.getLogger(__name__)

    async def process(self, notification: CardNotification) -> ReconcileOutcome:
        """
        Reconcile one notification.

        Returns what happened. Raises ``BoardSyncError`` subclasses when the
        pass failed; in that case nothing was written.
        """
        if notification.action_type != UPDATE_CARD_ACTION:
            self.logger.info(
                "Action type is %r, not %r; no action taken",
                notification.action_type,
                UPDATE_CARD_ACTION,
            )
            return ReconcileOutcome.IGNORED

        if not notification.card_id:
            self.logger.warning("Notification has no card id; no action taken")
            return ReconcileOutcome.IGNORED

        record = await self.store.get(notification.card_id)
        if record is None:
            self.logger.info("First sighting of card %s", notification.card_id)
            record = TaskRecord.blank(notification.card_id)

        if notification.closed:
            outcome = await self._archive(record)
        else:
            if record.archived:
                self.logger.info("Card %s reopened", record.id)
                record.archived = False
            outcome = await self._sync_due_date(record, notification)

        await self.store.upsert(record)
        return outcome

    # ============== Transitions ==============

    async def _archive(self, record: TaskRecord) -> ReconcileOutcome:
        record.archived = True
        if record.has_event:
            self.logger.info(
                "Card %s archived; deleting associated event %s",
                record.id,
                record.event_id,
            )
            await self._delete_best_effort(record.event_id)
            record.event_id = ""
        return ReconcileOutcome.ARCHIVED

    async def _sync_due_date(
        self,
        record: TaskRecord,
        notification: CardNotification,
    ) -> ReconcileOutcome:
        if notification.due:
            return await self._upsert_event(record, notification, notification.due)

        # The notification omits the due date on unrelated field updates, so
        # the persisted record decides.
        if record.due_at is not None and not record.has_event:
            self.logger.info(
                "Card %s has a due date but no event; recreating it", record.id
            )
            await self._upsert_event(record, notification, format_due(record.due_at))
            return ReconcileOutcome.REPAIRED

        if record.due_at is not None:
            return ReconcileOutcome.UNCHANGED

        await self._clear_event(record)
        return ReconcileOutcome.CLEARED

    async def _upsert_event(
        self,
        record: TaskRecord,
        notification: CardNotification,
        due: str,
    ) -> ReconcileOutcome:
        due_at = parse_due(due)

        record.id = notification.card_id
        record.name = display_name(notification.card_name, notification.board_name)
        record.due_at = due_at
        record.source_url = notification.source_url
        record.board_id = notification.board_id

        if record.has_event:
            self.logger.info(
                "Due date updated for card %s; updating associated event %s",
                record.id,
                record.event_id,
            )
            record.event_id = await self.calendar.update_event(record, record.event_id)
            self.logger.info("Updated event %s for card %s", record.event_id, record.id)
            return ReconcileOutcome.UPDATED

        self.logger.info("Due date set for card %s; creating new event", record.id)
        record.event_id = await self.calendar.create_event(record)
        self.logger.info("Created event %s for card %s", record.event_id, record.id)
        return ReconcileOutcome.CREATED

    async def _clear_event(self, record: TaskRecord) -> None:
        if record.has_event:
            self.logger.info(
                "Due date removed for card %s; deleting associated event %s",
                record.id,
                record.event_id,
            )
            await self._delete_best_effort(record.event_id)
        record.event_id = ""
        record.due_at = None

    async def _delete_best_effort(self, event_id: str) -> None:
        try:
            await self.calendar.delete_event(event_id)
        except BoardSyncError as e:
            self.logger.warning(
                "Failed to delete event %s from Google Calendar: %s", event_id, e
            )
