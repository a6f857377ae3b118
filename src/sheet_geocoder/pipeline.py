"""
Sheet Geocoder — Enrichment Pipeline
=====================================
Orchestrates one geocoding run over a :class:`RecordStore`.

Design:
    * :class:`RunState` — ``current_index`` / ``is_running`` snapshot.
    * :class:`RunSummary` — per-outcome counts for a finished run.
    * :class:`EnrichmentPipeline` — validates preconditions, drives the
      :class:`~sheet_geocoder.scheduler.BatchScheduler`, wraps each lookup
      in :func:`~sheet_geocoder.retry.with_retry` and patches successful
      results back into the store by index.

State machine: ``Idle -> Running -> Idle``.  A run with some or all
records failing still ends in ``Idle``; there is no failed-run state.

Typical workflow::

    pipeline = EnrichmentPipeline(
        HereBackend(),
        on_progress=lambda done, total: print(f"{done}/{total}"),
    )
    summary = pipeline.start(store, Credentials(app_id="...", app_code="..."))
"""

from __future__ import annotations

import enum
import logging
import threading
from dataclasses import dataclass
from typing import Callable

from sheet_geocoder.backends import Credentials, GeocoderBackend
from sheet_geocoder.exceptions import (
    NoMatchFound,
    PreconditionError,
    RunInProgressError,
    TransportError,
)
from sheet_geocoder.records import AddressRecord, RecordStore
from sheet_geocoder.retry import DEFAULT_MAX_ATTEMPTS, with_retry
from sheet_geocoder.scheduler import DEFAULT_WINDOW_SIZE, BatchScheduler, TaskResult

logger = logging.getLogger("sheet_geocoder.pipeline")

ProgressCallback = Callable[[int, int], None]


class Outcome(enum.Enum):
    """Terminal per-record outcome of a run."""

    GEOCODED = "geocoded"
    NO_MATCH = "no_match"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class RunState:
    """Point-in-time view of the pipeline's progress."""

    current_index: int = 0
    is_running: bool = False


@dataclass(frozen=True)
class RunSummary:
    """Counts of each outcome for one finished run."""

    total: int
    geocoded: int = 0
    no_match: int = 0
    failed: int = 0
    skipped: int = 0
    cancelled: bool = False

    @property
    def processed(self) -> int:
        return self.geocoded + self.no_match + self.failed + self.skipped

    @classmethod
    def from_results(
        cls, total: int, results: list[TaskResult[Outcome]], *, cancelled: bool = False
    ) -> RunSummary:
        counts = {outcome: 0 for outcome in Outcome}
        for result in results:
            # A task that escaped containment is reported as failed.
            counts[result.value if result.ok and result.value else Outcome.FAILED] += 1
        return cls(
            total=total,
            geocoded=counts[Outcome.GEOCODED],
            no_match=counts[Outcome.NO_MATCH],
            failed=counts[Outcome.FAILED],
            skipped=counts[Outcome.SKIPPED],
            cancelled=cancelled,
        )


class EnrichmentPipeline:
    """Geocode every record of a store, window by window.

    Args:
        backend: The :class:`GeocoderBackend` used for every lookup.
        window_size: Records geocoded concurrently per window.
        max_attempts: Attempts per record before giving up.
        backoff_seconds: Base delay between retries (``0`` = none).
        on_progress: Called as ``on_progress(current, total)`` after each
                     window settles.
    """

    def __init__(
        self,
        backend: GeocoderBackend,
        *,
        window_size: int = DEFAULT_WINDOW_SIZE,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        backoff_seconds: float = 0.0,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")
        self.backend = backend
        self.scheduler = BatchScheduler(window_size)
        self.max_attempts = max_attempts
        self.backoff_seconds = backoff_seconds
        self.on_progress = on_progress

        self._store: RecordStore | None = None
        self._current_index = 0
        self._is_running = False
        self._cancel = threading.Event()
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # State accessors
    # ------------------------------------------------------------------

    @property
    def store(self) -> RecordStore | None:
        return self._store

    @property
    def state(self) -> RunState:
        return RunState(current_index=self._current_index, is_running=self._is_running)

    @property
    def current_index(self) -> int:
        return self._current_index

    @property
    def is_running(self) -> bool:
        return self._is_running

    @property
    def progress(self) -> float:
        """Fraction of records processed in the current or last run."""
        if not self._store:
            return 0.0
        return self._current_index / len(self._store)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def load(self, store: RecordStore) -> None:
        """Replace the store wholesale.

        Raises:
            RunInProgressError: If a run is active.
        """
        with self._lock:
            if self._is_running:
                raise RunInProgressError()
            self._store = store
            self._current_index = 0

    def cancel(self) -> None:
        """Stop the active run once its current window has settled."""
        if self._is_running:
            logger.info("Cancellation requested")
            self._cancel.set()

    def start(self, store: RecordStore | None, credentials: Credentials) -> RunSummary:
        """Geocode every record in *store*, blocking until the run ends.

        Args:
            store: The records to enrich; patched in place.
            credentials: Key material for :attr:`backend`.

        Returns:
            A :class:`RunSummary` of the per-record outcomes.

        Raises:
            PreconditionError: If no store is given or *credentials* lack a
                field the backend requires.  Nothing is sent to the
                provider in that case.
            RunInProgressError: If a run is already active.
        """
        if store is None:
            raise PreconditionError("No source file loaded. Select a workbook first.")
        missing = credentials.missing(self.backend.required_credentials)
        if missing:
            raise PreconditionError(
                f"Missing {self.backend.name} credentials: {', '.join(missing)}."
            )

        with self._lock:
            if self._is_running:
                raise RunInProgressError()
            self._store = store
            self._current_index = 0
            self._cancel.clear()
            self._is_running = True

        total = len(store)
        logger.info(
            "Geocoding %d record(s) via %s (window=%d, attempts=%d)",
            total,
            self.backend.name,
            self.scheduler.window_size,
            self.max_attempts,
        )
        try:
            results = self.scheduler.run(
                store.snapshot(),
                lambda index, record: self._enrich_one(store, index, record, credentials),
                on_window_complete=self._publish_progress,
                should_stop=self._cancel.is_set,
            )
        finally:
            self._is_running = False

        summary = RunSummary.from_results(total, results, cancelled=len(results) < total)
        logger.info(
            "Geocoding complete: %d geocoded, %d no match, %d failed, %d skipped (of %d)%s",
            summary.geocoded,
            summary.no_match,
            summary.failed,
            summary.skipped,
            total,
            " [cancelled]" if summary.cancelled else "",
        )
        return summary

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _publish_progress(self, processed: int, total: int) -> None:
        self._current_index = max(self._current_index, processed)
        if self.on_progress is not None:
            self.on_progress(self._current_index, total)

    def _enrich_one(
        self,
        store: RecordStore,
        index: int,
        record: AddressRecord,
        credentials: Credentials,
    ) -> Outcome:
        """Geocode one record and patch it into *store* on success."""
        if not record.has_address:
            logger.debug("[%s] no address, skipped", record.position)
            return Outcome.SKIPPED

        address = record.address or ""
        try:
            coords = with_retry(
                lambda: self.backend.lookup(address, credentials),
                max_attempts=self.max_attempts,
                backoff_seconds=self.backoff_seconds,
                label=f"{record.position} {address!r}",
            )
        except NoMatchFound:
            logger.debug("[%s] no match for %r", record.position, address)
            return Outcome.NO_MATCH
        except TransportError as exc:
            logger.warning("[%s] failed for %r: %s", record.position, address, exc)
            return Outcome.FAILED

        store.patch(index, record.with_coordinates(coords))
        logger.debug(
            "[%s] %r → (%.6f, %.6f)", record.position, address, coords.latitude, coords.longitude
        )
        return Outcome.GEOCODED
