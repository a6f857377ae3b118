"""
Sheet Geocoder — Base Tool
===========================
Abstract base class for tools that turn one workbook into another.

Design Pattern:
    Template Method — ``run()`` fixes the order validate → process →
    report.  Subclasses fill in ``validate_inputs`` and ``process`` and
    may override ``describe_result`` to say what the run produced.

The console handler for the ``sheet_geocoder`` logger is installed here
and nowhere else; library modules only create child loggers.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from pathlib import Path

logger = logging.getLogger("sheet_geocoder")

LOG_FORMAT = "[%(asctime)s] %(levelname)-8s %(name)s — %(message)s"


def configure_logging(verbose: bool = False) -> logging.Logger:
    """Install the console handler on the ``sheet_geocoder`` logger.

    Calling it again only changes the level, so several tools in one
    process never print a line twice.
    """
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt="%H:%M:%S"))
        logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    return logger


class SheetTool(ABC):
    """Base class for workbook-in, workbook-out tools.

    Attributes:
        input_path: Source workbook.
        output_path: Result workbook.
        verbose: Log at DEBUG instead of INFO.
    """

    def __init__(self, input_path: Path, output_path: Path, *, verbose: bool = False) -> None:
        self.input_path = Path(input_path)
        self.output_path = Path(output_path)
        self.verbose = verbose
        configure_logging(verbose)

    @abstractmethod
    def validate_inputs(self) -> None:
        """Check everything that can be checked before any work starts.

        Raises:
            PreconditionError: If the run cannot start at all.
            InputValidationError: If a file or option is unusable.
        """

    @abstractmethod
    def process(self) -> None:
        """Do the work.  Only called once :meth:`validate_inputs` passed."""

    def describe_result(self) -> str:
        """One-line description of what :meth:`process` produced."""
        return f"wrote {self.output_path}"

    def run(self) -> None:
        """Validate, process, then log the outcome with the elapsed time.

        Errors from either step propagate unchanged; nothing is logged
        as a success unless both steps returned.
        """
        logger.info("%s: %s → %s", self.__class__.__name__, self.input_path.name, self.output_path)
        started = time.perf_counter()

        self.validate_inputs()
        self.process()

        logger.info(
            "%s finished in %.2fs: %s",
            self.__class__.__name__,
            time.perf_counter() - started,
            self.describe_result(),
        )
