"""
Task record model: last-synced state of a Trello card.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import String, Text, Boolean, DateTime, func
from sqlalchemy.orm import Mapped, mapped_column

from boardsync.database import Base


class TaskRecord(Base):
    """One row per tracked card, never deleted.

    ``event_id`` is the empty string when no calendar event is linked. An
    archived record never keeps an ``event_id``.
    """

    __tablename__ = "task_records"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(Text, default="")
    due_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    source_url: Mapped[str] = mapped_column(Text, default="")
    board_id: Mapped[str] = mapped_column(String(64), default="", index=True)
    archived: Mapped[bool] = mapped_column(Boolean, default=False)
    event_id: Mapped[str] = mapped_column(String(1024), default="")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )

    @classmethod
    def blank(cls, task_id: str) -> "TaskRecord":
        """Zero-value record for a card seen for the first time."""
        return cls(
            id=task_id,
            name="",
            due_at=None,
            source_url="",
            board_id="",
            archived=False,
            event_id="",
        )

    @property
    def has_event(self) -> bool:
        return bool(self.event_id)

    def __repr__(self) -> str:
        return (
            f"TaskRecord(id={self.id!r}, due_at={self.due_at!r}, "
            f"archived={self.archived!r}, event_id={self.event_id!r})"
        )
