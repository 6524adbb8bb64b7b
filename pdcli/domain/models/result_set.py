"""Result Set: the aggregated, order-preserving output of a batch run."""

from typing import Any, Iterator, List, Sequence, Tuple

from pdcli.domain.models.outcome import Failure, Outcome, Success


class ResultSet:
    """Read-only collection of Outcomes aligned to the input descriptor indices."""

    def __init__(self, outcomes: Sequence[Outcome]):
        self._outcomes: Tuple[Outcome, ...] = tuple(outcomes)

    def __len__(self) -> int:
        return len(self._outcomes)

    def __iter__(self) -> Iterator[Outcome]:
        return iter(self._outcomes)

    def __getitem__(self, index: int) -> Outcome:
        return self._outcomes[index]

    def __repr__(self) -> str:
        return f"ResultSet(total={len(self)}, failed={self.failure_count})"

    @property
    def outcomes(self) -> Tuple[Outcome, ...]:
        return self._outcomes

    @property
    def success_count(self) -> int:
        return sum(1 for outcome in self._outcomes if isinstance(outcome, Success))

    @property
    def failure_count(self) -> int:
        return len(self._outcomes) - self.success_count

    @property
    def all_succeeded(self) -> bool:
        return self.failure_count == 0

    def failed_indices(self) -> List[int]:
        """Indices whose terminal Outcome is a Failure, ascending."""
        return [i for i, outcome in enumerate(self._outcomes) if isinstance(outcome, Failure)]

    def successful_payloads(self) -> List[Any]:
        """Decoded bodies of successful requests, in input order."""
        return [outcome.body for outcome in self._outcomes if isinstance(outcome, Success)]

    def formatted_error(self, index: int) -> str:
        """Human-readable error for a failed index.

        Raises:
            IndexError: If ``index`` is out of range or did not fail.
        """
        if index < 0 or index >= len(self._outcomes):
            raise IndexError(f"Result index {index} out of range (0..{len(self._outcomes) - 1}).")
        outcome = self._outcomes[index]
        if not isinstance(outcome, Failure):
            raise IndexError(f"Request at index {index} did not fail.")
        return outcome.describe()
