"""
Sheet Geocoder — Record Store
==============================
In-memory model of the rows being enriched.

Classes:
    Coordinates     Immutable WGS84 latitude/longitude pair.
    AddressRecord   Immutable snapshot of one spreadsheet row.
    RecordStore     Fixed-length, index-addressable sequence of records.

The store is patched in place by index while a run is active.  Tasks in
the same window always own distinct indices, so no locking is needed.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Iterable, Iterator

import pandas as pd

from sheet_geocoder.cells import CellAddress, parse_cell_address

FRAME_COLUMNS = ["no", "address", "latitude", "longitude"]


@dataclass(frozen=True)
class Coordinates:
    """A single WGS84 coordinate pair returned by a geocoder."""

    latitude: float
    longitude: float


@dataclass(frozen=True)
class AddressRecord:
    """Immutable result-in-progress for a single spreadsheet row.

    Attributes:
        position: Column-A cell reference of the row (e.g. ``"A2"``).
                  Only used to write results back to the same row.
        address: Text to geocode.  ``None`` or blank means "skip".
        latitude: Latitude in WGS84, ``None`` until geocoded.
        longitude: Longitude in WGS84, ``None`` until geocoded.
        label: Raw value of the column-A cell, kept for display.
    """

    position: str
    address: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    label: Any = None

    @property
    def cell(self) -> CellAddress:
        return parse_cell_address(self.position)

    @property
    def row(self) -> int:
        """1-based worksheet row this record was read from."""
        return self.cell.row

    @property
    def has_address(self) -> bool:
        return bool(self.address and self.address.strip())

    @property
    def is_geocoded(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    def with_coordinates(self, coords: Coordinates) -> AddressRecord:
        """Return a copy of this record carrying *coords*."""
        return replace(self, latitude=coords.latitude, longitude=coords.longitude)


class RecordStore:
    """Ordered, fixed-length collection of :class:`AddressRecord` objects.

    The length is fixed at construction.  Loading a new file means
    building a new store, never resizing an existing one.

    Args:
        records: Records in worksheet order.
    """

    def __init__(self, records: Iterable[AddressRecord] = ()) -> None:
        self._records: list[AddressRecord] = list(records)

    def patch(self, index: int, record: AddressRecord) -> None:
        """Replace the record at *index*.

        Raises:
            IndexError: If *index* is outside ``0..len(self) - 1``.
        """
        if not 0 <= index < len(self._records):
            raise IndexError(
                f"Record index {index} out of range for store of {len(self._records)}"
            )
        self._records[index] = record

    def snapshot(self) -> tuple[AddressRecord, ...]:
        """Return an immutable copy of the current records."""
        return tuple(self._records)

    def to_frame(self) -> pd.DataFrame:
        """Return the records as a DataFrame for tabular display."""
        rows = [
            {
                "no": record.position,
                "address": record.address,
                "latitude": record.latitude,
                "longitude": record.longitude,
            }
            for record in self._records
        ]
        return pd.DataFrame(rows, columns=FRAME_COLUMNS)

    @property
    def geocoded_count(self) -> int:
        return sum(1 for record in self._records if record.is_geocoded)

    def __getitem__(self, index: int) -> AddressRecord:
        return self._records[index]

    def __iter__(self) -> Iterator[AddressRecord]:
        return iter(self.snapshot())

    def __len__(self) -> int:
        return len(self._records)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(records={len(self._records)})"
