"""Rich progress bar implementing the ProgressSink port."""

import logging
from typing import Optional

from rich.console import Console
from rich.progress import BarColumn, MofNCompleteColumn, Progress, SpinnerColumn, TaskID, TextColumn, TimeElapsedColumn

from pdcli.domain.interfaces.progress import ProgressSink

logger = logging.getLogger(__name__)


class RichProgressSink(ProgressSink):
    """Shows "N of M complete" for a running batch. Starts lazily on the first update."""

    def __init__(self, console: Optional[Console] = None):
        self._progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold blue]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            TimeElapsedColumn(),
            console=console or Console(stderr=True),
            transient=True,
        )
        self._task: Optional[TaskID] = None

    def update(self, completed: int, total: int, description: Optional[str] = None) -> None:
        if self._task is None:
            self._progress.start()
            self._task = self._progress.add_task(description or "Running requests", total=total)
        self._progress.update(self._task, completed=completed, total=total)

    def finish(self) -> None:
        if self._task is not None:
            self._progress.stop()
            self._task = None
