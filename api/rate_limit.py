"""Rate limiter for chat API requests."""

import asyncio
import time

from aiolimiter import AsyncLimiter
from loguru import logger


class RequestRateLimiter:
    """
    Per-client rate limiter.

    Proactive limits - throttles requests to stay within the backend's quota.
    Reactive limits - pauses all requests after a 429 until the block expires.
    """

    def __init__(self, rate_limit: int = 40, rate_window: float = 60.0):
        self.limiter = AsyncLimiter(rate_limit, rate_window)
        self._blocked_until: float = 0

        logger.info(
            f"RequestRateLimiter initialized ({rate_limit} req / {rate_window}s)"
        )

    async def wait_if_blocked(self) -> bool:
        """
        Wait if currently blocked, then acquire a slot.

        Returns:
            True if was reactively blocked and waited, False otherwise.
        """
        waited_reactively = False
        now = time.monotonic()
        if now < self._blocked_until:
            wait_time = self._blocked_until - now
            logger.warning(f"Chat API rate limit active, waiting {wait_time:.1f}s...")
            await asyncio.sleep(wait_time)
            waited_reactively = True

        async with self.limiter:
            return waited_reactively

    def set_blocked(self, seconds: float = 60) -> None:
        self._blocked_until = time.monotonic() + seconds
        logger.warning(f"Chat API rate limit set for {seconds:.1f}s (reactive)")

    def is_blocked(self) -> bool:
        return time.monotonic() < self._blocked_until

    def remaining_wait(self) -> float:
        return max(0.0, self._blocked_until - time.monotonic())
