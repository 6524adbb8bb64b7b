"""Exceptions raised by pdcli.

Individual request failures inside a batch are never raised; they are
recorded as Failure outcomes. The exceptions below cover misuse of the
batch API, single lookup calls and configuration problems.
"""

from typing import Optional


class PdcliError(Exception):
    """Base class for all pdcli errors."""


class BatchUsageError(PdcliError, ValueError):
    """Raised for structural misuse of the batch executor (e.g. an empty batch)."""


class ConfigurationError(PdcliError):
    """Raised when required configuration (such as the API token) is missing."""


class ApiRequestError(PdcliError):
    """Raised when a single (non-batched) API call fails definitively."""

    def __init__(self, endpoint: str, message: str, status_code: Optional[int] = None):
        self.endpoint = endpoint
        self.status_code = status_code
        self.message = message
        status = f" (HTTP {status_code})" if status_code is not None else ""
        super().__init__(f"Request to {endpoint} failed{status}: {message}")
