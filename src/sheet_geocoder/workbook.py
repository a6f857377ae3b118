"""
Sheet Geocoder — Workbook I/O
==============================
Reads address rows out of an ``.xlsx`` workbook and writes coordinates
back into it.

Schema: a sheet named ``addresses`` with four columns in fixed
positions, header in row 1 and data from row 2 onward::

    A: no    B: address    C: latitude    D: longitude

Only columns C and D are ever written; everything else in the workbook
is preserved as loaded.
"""

from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import Any
from zipfile import BadZipFile

import pandas as pd
from openpyxl import Workbook
from openpyxl import load_workbook as _openpyxl_load
from openpyxl.cell.cell import Cell
from openpyxl.utils.exceptions import InvalidFileException
from openpyxl.worksheet.worksheet import Worksheet

from sheet_geocoder.exceptions import (
    OutputWriteError,
    SheetNotFoundError,
    WorkbookFormatError,
)
from sheet_geocoder.records import AddressRecord, RecordStore

logger = logging.getLogger("sheet_geocoder.workbook")

SHEET_NAME = "addresses"
COLUMNS = ("no", "address", "latitude", "longitude")
LATITUDE_COLUMN = "C"
LONGITUDE_COLUMN = "D"


def load_workbook(source: bytes | Path | str) -> Workbook:
    """Parse an ``.xlsx`` workbook from raw bytes or a file path.

    Raises:
        WorkbookFormatError: If the content is not a readable workbook.
    """
    handle: Any = io.BytesIO(source) if isinstance(source, (bytes, bytearray)) else Path(source)
    try:
        return _openpyxl_load(handle)
    except (InvalidFileException, BadZipFile, KeyError, ValueError, OSError) as exc:
        raise WorkbookFormatError(f"Could not read workbook: {exc}") from exc


def read_records(workbook: Workbook, sheet_name: str = SHEET_NAME) -> RecordStore:
    """Build a :class:`RecordStore` from the data rows of *sheet_name*.

    A row is included when its column-A or column-B cell holds a value.
    Pre-existing coordinates in columns C/D are carried over.

    Raises:
        SheetNotFoundError: If the sheet is missing.
        WorkbookFormatError: If the header row does not match
            :data:`COLUMNS` or a coordinate cell holds non-numeric text.
    """
    if sheet_name not in workbook.sheetnames:
        raise SheetNotFoundError(sheet_name, list(workbook.sheetnames))
    sheet = workbook[sheet_name]
    _check_header(sheet, sheet_name)

    records: list[AddressRecord] = []
    for no, address, latitude, longitude in sheet.iter_rows(min_row=2, max_col=4):
        label = _text(no.value)
        text = _text(address.value)
        if label is None and text is None:
            continue
        records.append(
            AddressRecord(
                position=no.coordinate,
                address=text,
                latitude=_number(latitude),
                longitude=_number(longitude),
                label=no.value,
            )
        )

    logger.debug("Read %d record(s) from sheet '%s'", len(records), sheet_name)
    return RecordStore(records)


def write_coordinates(
    workbook: Workbook, store: RecordStore, sheet_name: str = SHEET_NAME
) -> int:
    """Write latitude/longitude of every geocoded record into C/D.

    Each record writes only to the row it was read from.  Records
    without coordinates leave their cells untouched.

    Returns:
        Number of rows written.
    """
    if sheet_name not in workbook.sheetnames:
        raise SheetNotFoundError(sheet_name, list(workbook.sheetnames))
    sheet = workbook[sheet_name]

    written = 0
    for record in store:
        if not record.is_geocoded:
            continue
        cell = record.cell
        sheet[cell.sibling(LATITUDE_COLUMN)] = record.latitude
        sheet[cell.sibling(LONGITUDE_COLUMN)] = record.longitude
        written += 1
    logger.debug("Wrote coordinates for %d row(s)", written)
    return written


def serialize(workbook: Workbook) -> bytes:
    """Return the workbook as ``.xlsx`` bytes."""
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def save_workbook(workbook: Workbook, path: Path) -> None:
    """Save *workbook* to *path*.

    Raises:
        OutputWriteError: If the file cannot be written.
    """
    try:
        workbook.save(path)
    except OSError as exc:
        raise OutputWriteError(str(path), str(exc)) from exc


def build_template() -> bytes:
    """Return an ``.xlsx`` template: the four headers over one empty row."""
    frame = pd.DataFrame([{column: "" for column in COLUMNS}], columns=list(COLUMNS))
    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        frame.to_excel(writer, sheet_name=SHEET_NAME, index=False)
    return buffer.getvalue()


# ---------------------------------------------------------------------------
# Cell value helpers
# ---------------------------------------------------------------------------


def _check_header(sheet: Worksheet, sheet_name: str) -> None:
    """Compare row 1 with :data:`COLUMNS`, ignoring case and padding."""
    found = [_text(cell.value) for cell in next(sheet.iter_rows(min_row=1, max_row=1, max_col=4))]
    normalised = [value.lower() if value else None for value in found]
    if normalised != list(COLUMNS):
        raise WorkbookFormatError(
            f"Sheet '{sheet_name}' has header {found}, expected {list(COLUMNS)} "
            "in columns A-D. Download the template for the expected layout."
        )


def _text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _number(cell: Cell) -> float | None:
    value = cell.value
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if isinstance(value, bool):
        raise WorkbookFormatError(f"Cell {cell.coordinate} holds a boolean, expected a coordinate.")
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise WorkbookFormatError(
            f"Cell {cell.coordinate} holds {value!r}, expected a numeric coordinate."
        ) from exc
