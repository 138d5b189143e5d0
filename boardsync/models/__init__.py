"""
SQLAlchemy models for the sync service.
"""

from boardsync.models.task_record import TaskRecord

__all__ = [
    "TaskRecord",
]
