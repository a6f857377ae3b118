"""
Sheet Geocoder — Exception Hierarchy
=====================================
Every module in the package raises exceptions from here so callers can
catch them at the right level of granularity.

Hierarchy::

    SheetGeocoderError                   ← catch-all base
    ├── InputValidationError             ← bad files, bad options
    │   ├── SheetNotFoundError           ← workbook lacks the addresses sheet
    │   ├── WorkbookFormatError          ← corrupt or schema-mismatched workbook
    │   └── CellAddressError             ← malformed "B17"-style reference
    ├── PreconditionError                ← missing credentials / no file loaded
    │   └── RunInProgressError           ← a run is already active
    ├── GeocodingError                   ← per-record geocoding failures
    │   ├── NoMatchFound                 ← provider returned zero results
    │   └── TransportError               ← network / HTTP / parse failure
    │       ├── AuthError                ← credentials rejected
    │       └── GeocodingRateLimitError  ← quota or HTTP 429
    └── OutputWriteError                 ← cannot write to output path

Only :class:`TransportError` and its subclasses are worth retrying.

Usage::

    from sheet_geocoder.exceptions import NoMatchFound

    raise NoMatchFound("10 Downing Street", provider="HERE")
"""

from __future__ import annotations


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


class SheetGeocoderError(Exception):
    """Base exception for the whole package.

    Args:
        message: Human-readable description of the error.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message: str = message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r})"


# ---------------------------------------------------------------------------
# Input validation
# ---------------------------------------------------------------------------


class InputValidationError(SheetGeocoderError):
    """Raised when inputs fail validation before any processing starts."""


class SheetNotFoundError(InputValidationError):
    """Raised when the workbook does not contain the expected sheet.

    Args:
        sheet: Name of the sheet that was expected.
        available: Sheet names that ARE present, used to build a helpful
                   error message.

    Example::

        raise SheetNotFoundError("addresses", workbook.sheetnames)
    """

    def __init__(self, sheet: str, available: list[str]) -> None:
        available_str = ", ".join(f"'{s}'" for s in available)
        super().__init__(
            f"Sheet '{sheet}' not found. Available sheets: {available_str}"
        )
        self.sheet: str = sheet
        self.available: list[str] = available


class WorkbookFormatError(InputValidationError):
    """Raised when a workbook cannot be parsed or does not match the
    four-column address schema."""


class CellAddressError(InputValidationError):
    """Raised when an A1-style cell reference cannot be parsed.

    Args:
        reference: The raw reference string (e.g. ``"17B"``).
    """

    def __init__(self, reference: str) -> None:
        super().__init__(
            f"Invalid cell address: {reference!r}. Expected a column "
            "letter followed by a row number, e.g. 'B17'."
        )
        self.reference: str = reference


# ---------------------------------------------------------------------------
# Run preconditions
# ---------------------------------------------------------------------------


class PreconditionError(SheetGeocoderError):
    """Raised when a run cannot start: missing credentials, no source
    file loaded, and similar user-correctable conditions.

    Raising this never involves any network activity.
    """


class RunInProgressError(PreconditionError):
    """Raised when a run is requested, or a new store loaded, while a
    previous run is still active."""

    def __init__(self) -> None:
        super().__init__("A geocoding run is already in progress.")


# ---------------------------------------------------------------------------
# Geocoding
# ---------------------------------------------------------------------------


class GeocodingError(SheetGeocoderError):
    """Base class for per-record geocoding failures."""


class NoMatchFound(GeocodingError):
    """Raised when the provider answered but returned zero candidates.

    Terminal: a confirmed "no result" is never retried.

    Args:
        address: The address text that produced no match.
        provider: Name of the geocoding service.
    """

    def __init__(self, address: str, provider: str | None = None) -> None:
        source = f" from {provider}" if provider else ""
        super().__init__(f"No match{source} for address {address!r}.")
        self.address: str = address
        self.provider: str | None = provider


class TransportError(GeocodingError):
    """Raised when the provider call itself failed: network error,
    non-2xx response, or a body that could not be interpreted."""


class AuthError(TransportError):
    """Raised when the provider rejects the supplied credentials.

    Args:
        provider: Name of the geocoding service (e.g. ``"HERE"``).
        detail: Optional provider message.
    """

    def __init__(self, provider: str, detail: str | None = None) -> None:
        suffix = f": {detail}" if detail else "."
        super().__init__(f"{provider} rejected the supplied credentials{suffix}")
        self.provider: str = provider
        self.detail: str | None = detail


class GeocodingRateLimitError(TransportError):
    """Raised when the geocoding provider returns a rate-limit response.

    Args:
        provider: Name of the geocoding service (e.g. ``"HERE"``).
        retry_after: Suggested seconds to wait before retrying, if
                     provided by the API.  ``None`` if unknown.

    Example::

        raise GeocodingRateLimitError("HERE", retry_after=60)
    """

    def __init__(self, provider: str, retry_after: int | None = None) -> None:
        hint = f" Retry after {retry_after}s." if retry_after else ""
        super().__init__(f"Rate limit exceeded for provider '{provider}'.{hint}")
        self.provider: str = provider
        self.retry_after: int | None = retry_after


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------


class OutputWriteError(SheetGeocoderError):
    """Raised when the result workbook cannot be written to disk.

    Args:
        output_path: String representation of the path that failed.
        reason: Underlying OS or library error message.

    Example::

        raise OutputWriteError("/read-only/dir/result.xlsx", "Permission denied")
    """

    def __init__(self, output_path: str, reason: str) -> None:
        super().__init__(
            f"Failed to write output to '{output_path}': {reason}"
        )
        self.output_path: str = output_path
        self.reason: str = reason
