"""Progress accounting for transfers."""

import threading
import time
from contextlib import contextmanager
from typing import Callable, Iterator, Optional

from rich.console import Console
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    TextColumn,
    TimeElapsedColumn,
    TransferSpeedColumn,
)

from bucket_sync.exceptions import TransferCancelledError

# (bytes_transferred, total_bytes, elapsed_seconds)
OnProgress = Callable[[int, int, float], None]


class ProgressTracker:
    """Adapts boto3's incremental byte callback to a cumulative OnProgress.

    Reports at most once per ``min_interval`` seconds, plus once when the
    transfer completes. Raises TransferCancelledError from inside the
    transfer when ``cancel_event`` is set.
    """

    def __init__(
        self,
        total: int,
        on_progress: Optional[OnProgress] = None,
        cancel_event: Optional[threading.Event] = None,
        min_interval: float = 0.1,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.total = total
        self.on_progress = on_progress
        self.cancel_event = cancel_event
        self.min_interval = min_interval
        self._clock = clock
        self._started = clock()
        self._last_report: Optional[float] = None
        self._lock = threading.Lock()
        self.transferred = 0

    def __call__(self, bytes_amount: int) -> None:
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise TransferCancelledError("Transfer cancelled")

        with self._lock:
            # Negative amounts are rewinds from retried parts
            self.transferred = max(0, self.transferred + bytes_amount)
            now = self._clock()
            done = self.transferred >= self.total
            due = self._last_report is None or now - self._last_report >= self.min_interval
            if done or due:
                self._report(now)

    def finish(self) -> None:
        """Emit a final report if the last one was throttled."""
        with self._lock:
            self._report(self._clock())

    @property
    def elapsed(self) -> float:
        return self._clock() - self._started

    def _report(self, now: float) -> None:
        self._last_report = now
        if self.on_progress is not None:
            self.on_progress(self.transferred, self.total, now - self._started)


class RichTransferDisplay:
    """Renders OnProgress reports as a rich progress bar."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    @contextmanager
    def track(self, description: str, total: int) -> Iterator[OnProgress]:
        """Context manager yielding an OnProgress bound to one progress bar."""
        progress = Progress(
            TextColumn("[bold blue]{task.description}"),
            BarColumn(),
            DownloadColumn(),
            TransferSpeedColumn(),
            TimeElapsedColumn(),
            console=self.console,
            transient=True,
        )
        task_id = progress.add_task(description, total=total)

        def on_progress(transferred: int, total_bytes: int, elapsed: float) -> None:
            progress.update(task_id, completed=transferred, total=total_bytes)

        with progress:
            yield on_progress
