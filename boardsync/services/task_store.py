"""
Task record store: fetch-by-id and upsert of the last-synced card state.
"""

import logging
from typing import Optional, Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from boardsync.core.exceptions import TaskStoreError
from boardsync.models import TaskRecord


class TaskStore(Protocol):
    """What the reconciliation engine needs from persistence."""

    async def get(self, task_id: str) -> Optional[TaskRecord]:
        """Return the record, or None on first sighting."""
        ...

    async def upsert(self, record: TaskRecord) -> None:
        ...


class SQLTaskStore:
    """
    SQLAlchemy-backed task store.

    Each call uses its own session. Records come back detached, so mutating
    one has no effect on the database until it is passed to ``upsert``.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker,
        logger: Optional[logging.Logger] = None,
    ):
        self.session_factory = session_factory
        self.logger = logger or logging.getLogger(__name__)

    async def get(self, task_id: str) -> Optional[TaskRecord]:
        try:
            async with self.session_factory() as session:
                return await session.get(TaskRecord, task_id)
        except SQLAlchemyError as e:
            raise TaskStoreError(f"database query failed: {e}") from e

    async def upsert(self, record: TaskRecord) -> None:
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    await session.merge(record)
        except SQLAlchemyError as e:
            raise TaskStoreError(f"failed to save card {record.id}: {e}") from e

        self.logger.debug("Saved %r", record)
