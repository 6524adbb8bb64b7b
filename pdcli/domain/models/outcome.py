"""Domain models for the result of executing a Request Descriptor.

The transport produces a RawOutcome (one network call, classified). The
batch executor turns the last RawOutcome of a descriptor into exactly one
terminal Outcome: a Success or a Failure.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Union


class Classification(str, Enum):
    """Transport verdict on a single network call. Sole input to the retry policy."""
    SUCCESS = "success"
    RATE_LIMITED = "rate_limited"      # 429
    SERVER_ERROR = "server_error"      # 5xx
    CLIENT_ERROR = "client_error"      # other 4xx, never retried
    NETWORK_ERROR = "network_error"    # connection failure or timeout

    @property
    def is_retryable(self) -> bool:
        return self in (Classification.RATE_LIMITED, Classification.SERVER_ERROR, Classification.NETWORK_ERROR)


class ErrorKind(str, Enum):
    """Why a Failure is terminal."""
    CLIENT_ERROR = "client_error"
    RETRY_EXHAUSTED = "retry_exhausted"


@dataclass(frozen=True)
class RawOutcome:
    """Classified result of exactly one network call."""
    classification: Classification
    status_code: Optional[int] = None
    payload: Any = None
    message: str = ""
    retry_after: Optional[float] = None  # Server hint in seconds (429 only)

    @property
    def is_success(self) -> bool:
        return self.classification is Classification.SUCCESS


@dataclass(frozen=True)
class Success:
    """Terminal outcome: the request succeeded."""
    status_code: int
    body: Any
    attempts: int = 1

    @property
    def is_success(self) -> bool:
        return True


@dataclass(frozen=True)
class Failure:
    """Terminal outcome: the request failed and will not be retried."""
    status_code: Optional[int]
    error_kind: ErrorKind
    message: str
    attempts: int
    last_classification: Classification

    @property
    def is_success(self) -> bool:
        return False

    def describe(self) -> str:
        """Human-readable one-liner combining status, kind and message."""
        parts = []
        if self.status_code is not None:
            parts.append(f"HTTP {self.status_code}")
        if self.error_kind is ErrorKind.RETRY_EXHAUSTED:
            kind = (
                f"{self.error_kind.value} after {self.attempts} attempt(s), "
                f"last: {self.last_classification.value}"
            )
        else:
            kind = self.error_kind.value
        parts.append(f"({kind})")
        head = " ".join(parts)
        return f"{head}: {self.message}" if self.message else head


Outcome = Union[Success, Failure]
