"""Retry policy for batched API requests.

Pure decision function mapping (classification, attempt count) to
retry-or-give-up. Implements exponential backoff with jitter for transient
errors like rate limits (429), server errors (5xx) and network failures,
and never retries client errors.
"""

import logging
import math
import random
from dataclasses import dataclass, field
from typing import Optional

from pdcli.domain.models.outcome import Classification

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 5
DEFAULT_BASE_DELAY_S = 1.0
DEFAULT_BACKOFF_FACTOR = 2.0
DEFAULT_MAX_DELAY_S = 30.0
DEFAULT_JITTER = 0.5  # Up to +50% of the computed delay
DEFAULT_MAX_RETRY_AFTER_S = 300.0  # Longest server hint honoured


@dataclass(frozen=True)
class RetryDecision:
    """Either retry after ``delay_seconds`` or give up."""
    retry: bool
    delay_seconds: float = 0.0

    @classmethod
    def retry_after(cls, delay_seconds: float) -> "RetryDecision":
        return cls(retry=True, delay_seconds=delay_seconds)

    @classmethod
    def give_up(cls) -> "RetryDecision":
        return cls(retry=False)


@dataclass(frozen=True)
class RetryPolicy:
    """Exponential backoff with jitter, capped, up to ``max_attempts`` tries."""
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    base_delay: float = DEFAULT_BASE_DELAY_S
    backoff_factor: float = DEFAULT_BACKOFF_FACTOR
    max_delay: float = DEFAULT_MAX_DELAY_S
    jitter: float = DEFAULT_JITTER
    max_retry_after: float = DEFAULT_MAX_RETRY_AFTER_S
    rng: random.Random = field(default_factory=random.Random, compare=False, repr=False)

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1.")
        if self.base_delay < 0 or self.max_delay < 0 or self.jitter < 0 or self.max_retry_after < 0:
            raise ValueError("Backoff delays, jitter and max_retry_after must be non-negative.")
        if self.backoff_factor < 1:
            raise ValueError("backoff_factor must be >= 1.")

    def bound_hint(self, retry_after: Optional[float]) -> Optional[float]:
        """Clamps a server hint to [0, max_retry_after]; non-finite hints count as absent."""
        if retry_after is None or not math.isfinite(retry_after):
            return None
        if retry_after > self.max_retry_after:
            logger.warning(f"Server hint of {retry_after:.0f}s capped to {self.max_retry_after:.0f}s.")
            return self.max_retry_after
        return max(0.0, retry_after)

    def backoff(self, attempt_count: int) -> float:
        """Delay before the next try, after ``attempt_count`` tries so far."""
        exponent = max(0, attempt_count - 1)
        delay = min(self.max_delay, self.base_delay * (self.backoff_factor ** exponent))
        return delay + self.rng.uniform(0, self.jitter * delay)

    def decide(
        self,
        classification: Classification,
        attempt_count: int,
        retry_after: Optional[float] = None,
    ) -> RetryDecision:
        """Decides whether to retry a request.

        Args:
            classification: Transport classification of the latest try.
            attempt_count: Number of tries made so far (>= 1).
            retry_after: Server-provided hint in seconds (rate limits only), bounded by max_retry_after.

        Returns:
            A RetryDecision.

        Raises:
            ValueError: If asked about a successful call (success is terminal).
        """
        if classification is Classification.SUCCESS:
            raise ValueError("A successful request is terminal; there is nothing to retry.")
        if not classification.is_retryable:
            return RetryDecision.give_up()
        if attempt_count >= self.max_attempts:
            logger.debug(f"Retry budget exhausted after {attempt_count} attempt(s) ({classification.value}).")
            return RetryDecision.give_up()

        delay = self.backoff(attempt_count)
        hint = self.bound_hint(retry_after)
        if classification is Classification.RATE_LIMITED and hint is not None:
            delay = max(delay, hint)
        return RetryDecision.retry_after(delay)
