from io import StringIO

from rich.console import Console

from pdcli.infrastructure.cli.progress import RichProgressSink


def make_sink() -> RichProgressSink:
    return RichProgressSink(console=Console(file=StringIO(), force_terminal=False))


def test_progress_starts_lazily_and_tracks_counts():
    sink = make_sink()
    assert sink._task is None

    sink.update(1, 3, "Setting time_zone")
    task = sink._progress.tasks[0]
    assert task.description == "Setting time_zone"
    assert (task.completed, task.total) == (1, 3)

    sink.update(3, 3)
    assert sink._progress.tasks[0].completed == 3
    sink.finish()
    assert sink._task is None


def test_finish_without_updates_is_harmless():
    sink = make_sink()
    sink.finish()
    assert sink._task is None
