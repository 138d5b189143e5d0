"""
Core utilities and clients.
"""

from boardsync.core.concurrency import BoundedWorkerPool
from boardsync.core.google_calendar import CalendarClient, GoogleOAuthToken
from boardsync.core.retry import RetryExecutor
from boardsync.core.trello import TrelloClient

__all__ = [
    "BoundedWorkerPool",
    "CalendarClient",
    "GoogleOAuthToken",
    "RetryExecutor",
    "TrelloClient",
]
