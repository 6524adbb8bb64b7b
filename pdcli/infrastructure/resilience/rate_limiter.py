"""Implementation of the rate governor.

Controls the frequency of outgoing requests to stay under the upstream
API rate limit. Uses a sliding window of booked dispatch slots plus a
cool-down deadline that the server can raise through Retry-After hints.
"""

import time
import math
import asyncio
import logging
from collections import deque
from typing import Callable, Deque, Optional

logger = logging.getLogger(__name__)

# PagerDuty's REST API allows 960 requests per minute per user token.
DEFAULT_MAX_REQUESTS = 900
DEFAULT_TIME_WINDOW_SECONDS = 60.0


class RateGovernor:
    """Sliding window rate governor shared by all workers of one batch run."""

    def __init__(
        self,
        max_requests: int = DEFAULT_MAX_REQUESTS,
        time_window: float = DEFAULT_TIME_WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initializes the rate governor.

        Args:
            max_requests: Maximum number of dispatches allowed in the time window.
            time_window: The time window in seconds.
            clock: Monotonic clock returning seconds (injectable for tests).
        """
        if max_requests <= 0 or time_window <= 0:
            raise ValueError("Max requests and time window must be positive.")

        self.max_requests = max_requests
        self.time_window = time_window
        self._clock = clock
        # Booked slot times, non-decreasing
        self.timestamps: Deque[float] = deque()
        self._cooldown_until = 0.0
        self._lock = asyncio.Lock()
        logger.info(f"RateGovernor initialized: {max_requests} requests / {time_window} seconds")

    def _cleanup_timestamps(self, reference: float) -> None:
        """Removes booked slots that no longer fall inside the window ending at reference."""
        while self.timestamps and reference - self.timestamps[0] >= self.time_window:
            self.timestamps.popleft()

    async def reserve(self) -> float:
        """Books the next dispatch slot and returns how long to wait before using it.

        Returns:
            Seconds the caller must sleep before dispatching (0.0 if immediate).
        """
        async with self._lock:
            now = self._clock()
            slot = max(now, self._cooldown_until)
            if self.timestamps:
                slot = max(slot, self.timestamps[-1])
            self._cleanup_timestamps(slot)
            if len(self.timestamps) >= self.max_requests:
                # The slot that has to slide out before this one fits
                slot = max(slot, self.timestamps[-self.max_requests] + self.time_window)
                self._cleanup_timestamps(slot)
            self.timestamps.append(slot)
            wait_time = max(0.0, slot - now)

        if wait_time > 0:
            logger.debug(f"Rate limit reached. Next slot in {wait_time:.2f} seconds.")
        return wait_time

    async def penalize(self, retry_after: Optional[float]) -> None:
        """Raises the cool-down to at least ``retry_after`` seconds from now.

        The server's hint is authoritative: it overrides the governor's own
        estimate, but a shorter hint never lowers an existing cool-down.
        """
        if retry_after is None or not math.isfinite(retry_after) or retry_after <= 0:
            return
        async with self._lock:
            deadline = self._clock() + retry_after
            if deadline > self._cooldown_until:
                self._cooldown_until = deadline
                logger.warning(f"Server requested cool-down of {retry_after:.2f}s; holding all dispatches.")
