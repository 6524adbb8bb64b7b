"""Domain Events related to batch execution and resilience.

Examples include events for when requests are deferred by the rate
governor, retried, fail, or succeed.
"""

from dataclasses import dataclass, field
import time
from typing import Optional


@dataclass
class DomainEvent:
    """Base class for domain events."""
    pass


# --- Per-request Events ---

@dataclass
class RequestDispatched(DomainEvent):
    """Event triggered when a request is about to be sent."""
    index: int
    method: str
    endpoint: str
    attempt_number: int
    timestamp: float = field(default_factory=time.time)


@dataclass
class RequestDeferred(DomainEvent):
    """Event triggered when a request is held back by the rate governor."""
    index: int
    endpoint: str
    wait_time_seconds: float
    timestamp: float = field(default_factory=time.time)


@dataclass
class RetryScheduled(DomainEvent):
    """Event triggered when a retry is scheduled for a failed request."""
    index: int
    endpoint: str
    attempt_number: int
    delay_seconds: float
    classification: str
    retry_after_hint: Optional[float] = None
    timestamp: float = field(default_factory=time.time)


@dataclass
class RequestSucceeded(DomainEvent):
    """Event triggered when a request reaches a Success outcome."""
    index: int
    endpoint: str
    status_code: int
    attempts: int
    latency_ms: float
    timestamp: float = field(default_factory=time.time)


@dataclass
class RequestFailed(DomainEvent):
    """Event triggered when a request fails definitively (after retries)."""
    index: int
    endpoint: str
    error_kind: str
    error_message: str
    attempts: int
    status_code: Optional[int] = None
    timestamp: float = field(default_factory=time.time)


# --- Batch Events ---

@dataclass
class BatchCompleted(DomainEvent):
    """Event triggered when every descriptor in a batch reached a terminal outcome."""
    total: int
    succeeded: int
    failed: int
    duration_seconds: float
    timestamp: float = field(default_factory=time.time)
