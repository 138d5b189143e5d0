"""Shared fakes and fixtures for the sync service tests."""

from __future__ import annotations

from typing import Optional

import pytest

from boardsync.core.exceptions import TaskStoreError
from boardsync.core.google_calendar import build_event_body
from boardsync.core.retry import RetryExecutor
from boardsync.models import TaskRecord
from boardsync.schemas.webhook import CardNotification


def copy_record(record: TaskRecord) -> TaskRecord:
    return TaskRecord(
        id=record.id,
        name=record.name,
        due_at=record.due_at,
        source_url=record.source_url,
        board_id=record.board_id,
        archived=record.archived,
        event_id=record.event_id,
    )


class InMemoryTaskStore:
    """TaskStore that hands out copies, like a detached ORM session."""

    def __init__(self, *records: TaskRecord):
        self.records: dict[str, TaskRecord] = {r.id: copy_record(r) for r in records}
        self.upsert_count = 0
        self.fail_upsert = False

    async def get(self, task_id: str) -> Optional[TaskRecord]:
        record = self.records.get(task_id)
        return copy_record(record) if record is not None else None

    async def upsert(self, record: TaskRecord) -> None:
        if self.fail_upsert:
            raise TaskStoreError("database is locked")
        self.records[record.id] = copy_record(record)
        self.upsert_count += 1


class FakeCalendar:
    """Records calls and keeps event bodies keyed by id."""

    def __init__(self):
        self.events: dict[str, dict] = {}
        self.calls: list[tuple[str, str]] = []
        self.create_error: Optional[Exception] = None
        self.update_error: Optional[Exception] = None
        self.delete_error: Optional[Exception] = None
        self._next_id = 1

    async def create_event(self, record: TaskRecord) -> str:
        self.calls.append(("create", record.id))
        if self.create_error:
            raise self.create_error
        event_id = f"evt-{self._next_id}"
        self._next_id += 1
        self.events[event_id] = build_event_body(record)
        return event_id

    async def update_event(self, record: TaskRecord, event_id: str) -> str:
        self.calls.append(("update", event_id))
        if self.update_error:
            raise self.update_error
        self.events[event_id] = build_event_body(record)
        return event_id

    async def delete_event(self, event_id: str) -> None:
        self.calls.append(("delete", event_id))
        if self.delete_error:
            raise self.delete_error
        self.events.pop(event_id, None)


def make_notification(**overrides) -> CardNotification:
    fields = {
        "action_type": "updateCard",
        "card_id": "card-1",
        "card_name": "Ship release",
        "due": "",
        "short_link": "abc123",
        "closed": False,
        "board_id": "board-1",
        "board_name": "Eng",
    }
    fields.update(overrides)
    return CardNotification(**fields)


@pytest.fixture
def sleeps() -> list[float]:
    return []


@pytest.fixture
def executor(sleeps) -> RetryExecutor:
    async def fake_sleep(seconds: float) -> None:
        sleeps.append(seconds)

    return RetryExecutor(max_attempts=3, base_delay=1.0, max_delay=10.0, sleep=fake_sleep)


@pytest.fixture
def store() -> InMemoryTaskStore:
    return InMemoryTaskStore()


@pytest.fixture
def calendar() -> FakeCalendar:
    return FakeCalendar()
