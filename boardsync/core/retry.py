"""
Retry executor for outbound calls.

Wraps a remote operation with bounded retries and exponential backoff. The
operation classifies its own failures: raising ``TransientAPIError`` asks for
another attempt, anything else aborts immediately.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from boardsync.core.exceptions import RetriesExhaustedError, TransientAPIError

T = TypeVar("T")

DEFAULT_MAX_ATTEMPTS = 3


class RetryExecutor:
    """Runs an async operation with bounded retry and exponential backoff."""

    def __init__(
        self,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        base_delay: float = 1.0,
        max_delay: float = 10.0,
        logger: Optional[logging.Logger] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.logger = logger or logging.getLogger(__name__)
        self._sleep = sleep

    @classmethod
    def from_settings(cls, settings, logger: Optional[logging.Logger] = None) -> "RetryExecutor":
        return cls(
            max_attempts=settings.retry_max_attempts,
            base_delay=settings.retry_base_delay_seconds,
            max_delay=settings.retry_max_delay_seconds,
            logger=logger,
        )

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        description: str = "external call",
    ) -> T:
        """
        Run ``operation`` until it succeeds, fails terminally, or the
        attempt ceiling is reached.

        Raises:
            RetriesExhaustedError: every attempt raised ``TransientAPIError``.
            Any non-transient exception raised by ``operation``, unchanged.
        """
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.base_delay, max=self.max_delay),
            retry=retry_if_exception_type(TransientAPIError),
            before_sleep=self._log_retry(description),
            sleep=self._sleep,
        )

        # tenacity only awaits coroutine functions, so lambdas returning a
        # coroutine are wrapped
        async def attempt() -> T:
            return await operation()

        try:
            return await retrying(attempt)
        except RetryError as exc:
            last_error = exc.last_attempt.exception()
            raise RetriesExhaustedError(
                description, self.max_attempts, last_error
            ) from last_error

    def _log_retry(self, description: str) -> Callable[[RetryCallState], None]:
        def before_sleep(retry_state: RetryCallState) -> None:
            cause = retry_state.outcome.exception() if retry_state.outcome else None
            delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
            self.logger.warning(
                "%s failed on attempt %d/%d, retrying in %.1fs: %s",
                description,
                retry_state.attempt_number,
                self.max_attempts,
                delay,
                cause,
            )

        return before_sleep
