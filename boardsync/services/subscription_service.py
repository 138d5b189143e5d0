"""
Subscription manager for Trello board webhooks.
"""

import logging
from typing import Iterable, Optional

from boardsync.core.exceptions import BoardSyncError, SubscriptionError
from boardsync.core.retry import RetryExecutor
from boardsync.core.trello import TrelloClient


class SubscriptionManager:
    """
    Registers one webhook per board at startup and removes them at shutdown.

    Tracks the ``{board_id: webhook_id}`` mapping of live subscriptions.
    """

    def __init__(
        self,
        trello: TrelloClient,
        executor: RetryExecutor,
        logger: Optional[logging.Logger] = None,
    ):
        self.trello = trello
        self.executor = executor
        self.logger = logger or logging.getLogger(__name__)
        self._subscriptions: dict[str, str] = {}

    @property
    def subscriptions(self) -> dict[str, str]:
        return dict(self._subscriptions)

    async def register(self, board_id: str) -> str:
        """Register a webhook for one board and return its id."""
        webhook_id = await self.executor.execute(
            lambda: self.trello.create_webhook(board_id),
            description=f"register webhook for board {board_id}",
        )
        self._subscriptions[board_id] = webhook_id
        return webhook_id

    async def deregister(self, webhook_id: str) -> None:
        """Delete one webhook."""
        await self.executor.execute(
            lambda: self.trello.delete_webhook(webhook_id),
            description=f"delete webhook {webhook_id}",
        )
        for board_id, tracked_id in list(self._subscriptions.items()):
            if tracked_id == webhook_id:
                del self._subscriptions[board_id]

    async def register_all(self, board_ids: Iterable[str]) -> dict[str, str]:
        """
        Register every board, or none.

        If any registration fails, the webhooks created so far are removed
        and ``SubscriptionError`` is raised.
        """
        board_ids = list(board_ids)
        if not board_ids:
            raise SubscriptionError("no Trello board ids configured")

        for board_id in board_ids:
            try:
                webhook_id = await self.register(board_id)
            except BoardSyncError as e:
                self.logger.error(
                    "Failed to register webhook for board %s: %s", board_id, e
                )
                await self.deregister_all()
                raise SubscriptionError(
                    f"failed to register webhook for board {board_id}: {e}",
                    board_id=board_id,
                ) from e
            self.logger.info(
                "Successfully registered webhook with ID: %s for board ID: %s",
                webhook_id,
                board_id,
            )

        return self.subscriptions

    async def deregister_all(self) -> dict[str, BoardSyncError]:
        """
        Delete every tracked webhook, continuing past failures.

        Returns the failures keyed by board id.
        """
        failures: dict[str, BoardSyncError] = {}
        for board_id, webhook_id in list(self._subscriptions.items()):
            try:
                await self.deregister(webhook_id)
            except BoardSyncError as e:
                self.logger.error(
                    "Error deleting webhook %s for board %s: %s", webhook_id, board_id, e
                )
                failures[board_id] = e
                continue
            self.logger.info(
                "Successfully deleted webhook with ID: %s for board ID: %s",
                webhook_id,
                board_id,
            )
        return failures
