"""
Business logic services.
"""

from boardsync.services.reconciler import ReconcileOutcome, Reconciler
from boardsync.services.subscription_service import SubscriptionManager
from boardsync.services.task_store import SQLTaskStore, TaskStore

__all__ = [
    "ReconcileOutcome",
    "Reconciler",
    "SubscriptionManager",
    "SQLTaskStore",
    "TaskStore",
]
