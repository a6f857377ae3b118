"""
Shared fixtures: a scriptable in-memory geocoder backend and small
address workbooks written to ``tmp_path``.
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Any, Callable

import pytest
from openpyxl import Workbook

from sheet_geocoder.backends import Credentials, GeocoderBackend
from sheet_geocoder.exceptions import NoMatchFound
from sheet_geocoder.records import AddressRecord, Coordinates, RecordStore


class StubBackend(GeocoderBackend):
    """Backend answering from a dict instead of the network.

    Each answer is one of:
        * ``(lat, lon)`` tuple — success
        * ``None`` — no match
        * an exception instance — raised on every attempt
        * a list — consumed one item per call (same item kinds)
    """

    name = "Stub"
    required_credentials = ("api_key",)

    def __init__(self, answers: dict[str, Any] | None = None, default: Any = None) -> None:
        self.answers = dict(answers or {})
        self.default = default
        self.calls: list[str] = []
        self._lock = threading.Lock()

    def _lookup(self, address: str, credentials: Credentials) -> Coordinates:
        with self._lock:
            self.calls.append(address)
            answer = self.answers.get(address, self.default)
            if isinstance(answer, list):
                answer = answer.pop(0)
        if isinstance(answer, Exception):
            raise answer
        if answer is None:
            raise NoMatchFound(address, provider=self.name)
        return Coordinates(*answer)


@pytest.fixture()
def make_stub() -> Callable[..., StubBackend]:
    """Factory for :class:`StubBackend` instances."""
    return StubBackend


@pytest.fixture()
def credentials() -> Credentials:
    return Credentials(api_key="test-key")


@pytest.fixture()
def make_store() -> Callable[[list[str | None]], RecordStore]:
    """Build a store whose records start at row 2, one per address."""

    def _build(addresses: list[str | None]) -> RecordStore:
        return RecordStore(
            AddressRecord(position=f"A{row}", address=address, label=row - 1)
            for row, address in enumerate(addresses, start=2)
        )

    return _build


@pytest.fixture()
def address_workbook(tmp_path: Path) -> Path:
    """Write a workbook with an ``addresses`` sheet and a second sheet."""
    path = tmp_path / "addresses.xlsx"
    wb = Workbook()
    ws = wb.active
    ws.title = "addresses"
    ws.append(["no", "address", "latitude", "longitude"])
    ws.append([1, "221B Baker Street, London", None, None])
    ws.append([2, None, None, None])
    ws.append([3, "10 Downing Street, London", None, None])
    ws.append([4, "Tower of London", 51.5081, -0.0759])
    notes = wb.create_sheet("notes")
    notes["A1"] = "keep me"
    wb.save(path)
    return path
