"""
Sheet Geocoder — Batch Scheduler
=================================
Runs one task per record in contiguous, fixed-size windows.

Within a window every task runs concurrently on a thread pool.  The
scheduler waits until the whole window has settled before it starts the
next one, so at most ``window_size`` lookups are ever in flight.  After
each window the cumulative number of processed records is published
through ``on_window_complete(processed, total)``.

Failures are contained per task: whatever a task raises is stored on its
:class:`TaskResult` and never cancels the other tasks of the window.

Usage::

    scheduler = BatchScheduler(window_size=5)
    results = scheduler.run(
        records,
        lambda index, record: geocode(record),
        on_window_complete=lambda done, total: print(f"{done}/{total}"),
    )
"""

from __future__ import annotations

import logging
from concurrent.futures import ALL_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Callable, Generic, Sequence, TypeVar

from sheet_geocoder.exceptions import InputValidationError

logger = logging.getLogger("sheet_geocoder.scheduler")

T = TypeVar("T")
R = TypeVar("R")

DEFAULT_WINDOW_SIZE = 5


@dataclass(frozen=True)
class TaskResult(Generic[R]):
    """Outcome of one task.

    Attributes:
        index: Position of the record in the input sequence.
        value: Return value of the task, ``None`` when it raised.
        error: Exception raised by the task, ``None`` on success.
    """

    index: int
    value: R | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class BatchScheduler:
    """Drive a task over a sequence in sequential, concurrent windows.

    Args:
        window_size: Maximum number of tasks in flight at once.

    Raises:
        InputValidationError: If *window_size* is less than 1.
    """

    def __init__(self, window_size: int = DEFAULT_WINDOW_SIZE) -> None:
        if window_size < 1:
            raise InputValidationError(f"window_size must be >= 1, got {window_size}")
        self.window_size = window_size

    def windows(self, total: int) -> list[range]:
        """Partition ``range(total)`` into contiguous windows."""
        return [
            range(start, min(start + self.window_size, total))
            for start in range(0, total, self.window_size)
        ]

    def run(
        self,
        records: Sequence[T],
        lookup_fn: Callable[[int, T], R],
        on_window_complete: Callable[[int, int], None] | None = None,
        should_stop: Callable[[], bool] | None = None,
    ) -> list[TaskResult[R]]:
        """Run *lookup_fn* once per record, window by window.

        Args:
            records: Items to process, in order.
            lookup_fn: Called as ``lookup_fn(index, record)``.
            on_window_complete: Called as ``(processed, total)`` after each
                                window has settled, in the calling thread.
            should_stop: Checked before each window; returning ``True``
                         ends the run early.  A started window always
                         finishes.

        Returns:
            One :class:`TaskResult` per processed record, in input order.
        """
        total = len(records)
        results: list[TaskResult[R]] = []
        if total == 0:
            return results

        windows = self.windows(total)
        logger.debug("Scheduling %d record(s) in %d window(s)", total, len(windows))

        with ThreadPoolExecutor(
            max_workers=self.window_size, thread_name_prefix="geocode"
        ) as executor:
            for number, window in enumerate(windows, start=1):
                if should_stop is not None and should_stop():
                    logger.info("Stopping before window %d/%d", number, len(windows))
                    break

                futures: dict[int, Future[R]] = {
                    index: executor.submit(lookup_fn, index, records[index])
                    for index in window
                }
                wait(futures.values(), return_when=ALL_COMPLETED)
                results.extend(self._collect(futures))

                processed = window.stop
                logger.debug("Window %d/%d settled (%d/%d)", number, len(windows), processed, total)
                if on_window_complete is not None:
                    on_window_complete(processed, total)

        return results

    @staticmethod
    def _collect(futures: dict[int, Future[R]]) -> list[TaskResult[R]]:
        collected: list[TaskResult[R]] = []
        for index in sorted(futures):
            try:
                collected.append(TaskResult(index=index, value=futures[index].result()))
            except Exception as exc:  # noqa: BLE001
                logger.error("Task for record %d failed: %s", index, exc)
                collected.append(TaskResult(index=index, error=exc))
        return collected
