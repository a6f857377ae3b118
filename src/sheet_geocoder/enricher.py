"""
Sheet Geocoder — Workbook Enricher
===================================
Loads an address workbook, geocodes every row through an
:class:`~sheet_geocoder.pipeline.EnrichmentPipeline` and writes the
result workbook with columns C/D filled in.

Usage::

    from pathlib import Path
    from sheet_geocoder import Credentials, HereBackend, SheetEnricher

    tool = SheetEnricher(
        input_path=Path("data/addresses.xlsx"),
        output_path=Path("output/result.xlsx"),
        backend=HereBackend(),
        credentials=Credentials(app_id="...", app_code="..."),
    )
    tool.run()
    print(tool.summary)
"""

from __future__ import annotations

import logging
from pathlib import Path

from sheet_geocoder.backends import Credentials, GeocoderBackend, HereBackend
from sheet_geocoder.base_tool import SheetTool
from sheet_geocoder.pipeline import EnrichmentPipeline, ProgressCallback, RunSummary
from sheet_geocoder.records import RecordStore
from sheet_geocoder.retry import DEFAULT_MAX_ATTEMPTS
from sheet_geocoder.scheduler import DEFAULT_WINDOW_SIZE
from sheet_geocoder.validators import Validators
from sheet_geocoder.workbook import (
    load_workbook,
    read_records,
    save_workbook,
    write_coordinates,
)

logger = logging.getLogger("sheet_geocoder.enricher")

SUPPORTED_EXTENSIONS = [".xlsx"]


class SheetEnricher(SheetTool):
    """Geocode every address in a workbook and save the enriched copy.

    Rows that cannot be geocoded keep empty coordinate cells, so no row
    is ever dropped from the output.

    Args:
        input_path: Path to the source ``.xlsx`` workbook.
        output_path: Path for the result workbook.
        backend: Geocoding provider.  Defaults to :class:`HereBackend`.
        credentials: Key material for *backend*.
        window_size: Records geocoded concurrently per window.
        max_attempts: Attempts per record before giving up.
        backoff_seconds: Base delay between retries.
        on_progress: Called as ``(current, total)`` after each window.
        verbose: Enable DEBUG-level logging.
    """

    def __init__(
        self,
        input_path: Path,
        output_path: Path,
        backend: GeocoderBackend | None = None,
        credentials: Credentials | None = None,
        *,
        window_size: int = DEFAULT_WINDOW_SIZE,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        backoff_seconds: float = 0.0,
        on_progress: ProgressCallback | None = None,
        verbose: bool = False,
    ) -> None:
        super().__init__(input_path, output_path, verbose=verbose)
        self.backend: GeocoderBackend = backend or HereBackend()
        self.credentials: Credentials = credentials or Credentials()
        self.window_size = window_size
        self.max_attempts = max_attempts
        self.backoff_seconds = backoff_seconds
        self.on_progress = on_progress

        self._store: RecordStore | None = None
        self._summary: RunSummary | None = None
        self._written = 0

    # ------------------------------------------------------------------
    # SheetTool abstract method implementations
    # ------------------------------------------------------------------

    def validate_inputs(self) -> None:
        """Check credentials first, then files and run options.

        Raises:
            PreconditionError: If credentials are missing.
            InputValidationError: If the input is missing, not ``.xlsx``,
                or an option is out of range.
            OutputWriteError: If the output directory cannot be created.
        """
        Validators.assert_credentials_present(
            self.credentials, self.backend.required_credentials, self.backend.name
        )
        Validators.assert_file_exists(self.input_path)
        Validators.assert_supported_extension(self.input_path, SUPPORTED_EXTENSIONS)
        Validators.assert_supported_extension(self.output_path, SUPPORTED_EXTENSIONS)
        Validators.assert_output_dir_writable(self.output_path)
        Validators.assert_positive(self.window_size, "window_size")
        Validators.assert_positive(self.max_attempts, "max_attempts")
        logger.debug("Inputs validated successfully.")

    def process(self) -> None:
        """Load the workbook, run the pipeline and write the result.

        The store is fully built before the pipeline starts; a workbook
        that cannot be read aborts here with no network activity.
        """
        workbook = load_workbook(self.input_path)
        store = read_records(workbook)
        self._store = store

        pipeline = EnrichmentPipeline(
            self.backend,
            window_size=self.window_size,
            max_attempts=self.max_attempts,
            backoff_seconds=self.backoff_seconds,
            on_progress=self.on_progress,
        )
        self._summary = pipeline.start(store, self.credentials)

        self._written = write_coordinates(workbook, store)
        save_workbook(workbook, self.output_path)

    def describe_result(self) -> str:
        summary = self._summary
        if summary is None:
            return super().describe_result()
        return (
            f"{summary.geocoded}/{summary.total} row(s) geocoded via {self.backend.name} "
            f"({summary.no_match} no match, {summary.failed} failed, {summary.skipped} skipped), "
            f"{self._written} with coordinates in {self.output_path}"
        )

    # ------------------------------------------------------------------
    # Results
    # ------------------------------------------------------------------

    @property
    def store(self) -> RecordStore | None:
        """Records from the last run, or ``None`` before :meth:`run`."""
        return self._store

    @property
    def summary(self) -> RunSummary | None:
        return self._summary
