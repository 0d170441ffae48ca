from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from typing import Callable, Iterable, Iterator, TypeVar

from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn, TimeElapsedColumn

T = TypeVar("T")
R = TypeVar("R")

logger = logging.getLogger(__name__)


class WorkerPool:
    """Fixed-width worker pool shared by every fan-out/fan-in phase of a run."""

    def __init__(self, threads: int = 1, *, show_progress: bool = False, console: Console | None = None) -> None:
        if threads < 1:
            raise ValueError("`threads` must be >= 1.")
        self.threads = threads
        self.show_progress = show_progress
        self.console = console or Console(stderr=True)

    def _progress(self) -> Progress:
        return Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TimeElapsedColumn(),
            console=self.console,
            disable=not self.show_progress,
        )

    def map_unordered(
        self,
        fn: Callable[[T], R],
        items: Iterable[T],
        *,
        description: str = "Working",
    ) -> Iterator[R]:
        """Run ``fn`` once per item and yield results in completion order.

        The first failing task cancels every task that has not started yet and
        its exception is re-raised to the caller.
        """

        jobs = list(items)
        with self._progress() as progress:
            task = progress.add_task(description, total=len(jobs))
            with ThreadPoolExecutor(max_workers=self.threads) as pool:
                futures: list[Future[R]] = [pool.submit(fn, job) for job in jobs]
                try:
                    for future in as_completed(futures):
                        result = future.result()
                        progress.advance(task)
                        yield result
                except BaseException:
                    cancelled = sum(1 for future in futures if future.cancel())
                    logger.debug("%s aborted; cancelled %d pending tasks", description, cancelled)
                    raise
