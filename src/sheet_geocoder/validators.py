"""
Sheet Geocoder — Input Validators
==================================
Static precondition checks used before a run begins.

All methods raise an appropriate exception from
:mod:`sheet_geocoder.exceptions` rather than returning booleans, which
keeps ``validate_inputs`` implementations short::

    class MyTool(SheetTool):
        def validate_inputs(self) -> None:
            Validators.assert_file_exists(self.input_path)
            Validators.assert_supported_extension(self.input_path, [".xlsx"])
"""

from __future__ import annotations

from pathlib import Path
from typing import Sequence

from sheet_geocoder.backends import Credentials
from sheet_geocoder.exceptions import (
    InputValidationError,
    OutputWriteError,
    PreconditionError,
)


class Validators:
    """Collection of static precondition checks.

    All methods are ``@staticmethod`` — this class is never instantiated.
    It exists purely as a logical namespace.
    """

    # ------------------------------------------------------------------
    # File-system checks
    # ------------------------------------------------------------------

    @staticmethod
    def assert_file_exists(path: Path | None) -> None:
        """Assert that *path* points to an existing regular file.

        Raises:
            PreconditionError: If no path was given at all.
            InputValidationError: If *path* does not exist or is a
                directory rather than a file.
        """
        if path is None:
            raise PreconditionError("No source file selected.")
        path = Path(path)
        if not path.exists():
            raise InputValidationError(
                f"Input file not found: '{path}'. "
                "Check that the path is correct and the file exists."
            )
        if path.is_dir():
            raise InputValidationError(
                f"Expected a file but got a directory: '{path}'."
            )

    @staticmethod
    def assert_output_dir_writable(output_path: Path) -> None:
        """Assert that the parent directory of *output_path* is writable.

        Creates the parent directory (and any missing parents) if it does
        not yet exist.

        Raises:
            OutputWriteError: If the parent directory cannot be created.
        """
        parent = Path(output_path).parent
        try:
            parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise OutputWriteError(str(output_path), str(exc)) from exc

    @staticmethod
    def assert_supported_extension(path: Path, extensions: Sequence[str]) -> None:
        """Assert that *path* has one of the allowed file extensions.

        Args:
            path: File path to check.
            extensions: Allowed extensions, each starting with a dot.

        Raises:
            InputValidationError: If the file extension is not allowed.
        """
        path = Path(path)
        suffix = path.suffix.lower()
        allowed = [ext.lower() for ext in extensions]
        if suffix not in allowed:
            raise InputValidationError(
                f"Unsupported file extension '{suffix}' for '{path.name}'. "
                f"Accepted extensions: {', '.join(allowed)}"
            )

    # ------------------------------------------------------------------
    # Run configuration checks
    # ------------------------------------------------------------------

    @staticmethod
    def assert_credentials_present(
        credentials: Credentials, required: Sequence[str], provider: str
    ) -> None:
        """Assert that every field in *required* is set on *credentials*.

        Raises:
            PreconditionError: Naming the missing fields.
        """
        missing = credentials.missing(required)
        if missing:
            raise PreconditionError(
                f"Missing API key. {provider} needs: {', '.join(missing)}."
            )

    @staticmethod
    def assert_positive(value: int, name: str) -> None:
        """Assert that the integer option *name* is at least 1.

        Raises:
            InputValidationError: If *value* is less than 1.
        """
        if value < 1:
            raise InputValidationError(f"{name} must be >= 1, got {value}.")
