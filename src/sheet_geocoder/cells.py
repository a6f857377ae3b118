"""
Sheet Geocoder — Cell Addresses
================================
Maps an A1-style cell reference onto its column and row so an address
cell can be paired with the coordinate cells on the same row.

Example::

    >>> parse_cell_address("B17")
    CellAddress(column='B', row=17)
    >>> parse_cell_address("A5").sibling("C")
    'C5'
"""

from __future__ import annotations

from dataclasses import dataclass

from openpyxl.utils.cell import coordinate_from_string
from openpyxl.utils.exceptions import CellCoordinatesException

from sheet_geocoder.exceptions import CellAddressError


@dataclass(frozen=True)
class CellAddress:
    """Column letter(s) and 1-based row number of a single cell."""

    column: str
    row: int

    def sibling(self, column: str) -> str:
        """Return the reference of the cell in *column* on the same row."""
        return f"{column}{self.row}"

    def __str__(self) -> str:
        return f"{self.column}{self.row}"


def parse_cell_address(reference: str) -> CellAddress:
    """Split an A1-style reference such as ``"B17"`` into its parts.

    Args:
        reference: Cell reference; absolute markers (``"$B$17"``) and
                   lower-case letters are accepted.

    Returns:
        The parsed :class:`CellAddress` with an upper-case column.

    Raises:
        CellAddressError: If *reference* is not a valid cell reference.
    """
    if not isinstance(reference, str):
        raise CellAddressError(repr(reference))
    try:
        column, row = coordinate_from_string(reference.strip())
    except CellCoordinatesException as exc:
        raise CellAddressError(reference) from exc
    return CellAddress(column=column.upper(), row=int(row))
