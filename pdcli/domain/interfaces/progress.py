"""Interface for coarse-grained batch progress reporting.

Purely observational: implementations must not influence control flow,
and the batch executor works the same with or without a sink.
"""

import abc
from typing import Optional


class ProgressSink(abc.ABC):
    """Receives "N of M complete" notifications from the batch executor."""

    @abc.abstractmethod
    def update(self, completed: int, total: int, description: Optional[str] = None) -> None:
        """Called each time a descriptor reaches a terminal outcome.

        Args:
            completed: Number of descriptors finished so far.
            total: Number of descriptors in the batch.
            description: Optional human-readable description of the batch.
        """
        pass

    def finish(self) -> None:
        """Called once after the whole batch completed."""
        pass
