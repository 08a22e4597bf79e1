"""
Row Adapters - Bridge from files to header -> value rows.

The engine never reads spreadsheets itself; these adapters hand it plain
mappings. Swapping the adapter (file, upload, in-memory) leaves the loader
untouched.
"""

import csv
import io
import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, BinaryIO

from openpyxl import load_workbook

SUPPORTED_SUFFIXES = (".csv", ".json", ".xlsx", ".xlsm")


class RowSource(ABC):
    """
    Abstract interface for row data access.

    Implementations return rows in sheet order, each a mapping from the
    header text to the raw cell value.
    """

    @abstractmethod
    def get_rows(self) -> list[dict[str, Any]]:
        pass

    @property
    def name(self) -> str:
        return self.__class__.__name__


class FileRowSource(RowSource):
    """
    Loads rows from a CSV, JSON or XLSX file.

    JSON format expected:
        [{"product name": "TV 55in", "product code": "A1", ...}, ...]
    XLSX: first sheet, headers on row 1.
    """

    def __init__(self, data_path: str | Path):
        self._data_path = Path(data_path)
        if not self._data_path.exists():
            raise FileNotFoundError(f"Inventory data file not found: {self._data_path}")
        suffix = self._data_path.suffix.lower()
        if suffix not in SUPPORTED_SUFFIXES:
            raise ValueError(f"Unsupported file format: {suffix}")

    @property
    def name(self) -> str:
        return self._data_path.name

    def get_rows(self) -> list[dict[str, Any]]:
        with open(self._data_path, "rb") as f:
            return read_rows_from_stream(f, self._data_path.name)


class InMemoryRowSource(RowSource):
    """
    In-memory rows for programmatic setup.

    Useful for unit tests where you want to control exact rows.
    """

    def __init__(self, rows: list[dict[str, Any]] | None = None, name: str = "memory"):
        self._rows = list(rows or [])
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    def add_row(self, row: dict[str, Any]):
        self._rows.append(row)

    def get_rows(self) -> list[dict[str, Any]]:
        return [dict(r) for r in self._rows]


def read_rows(path: str | Path) -> list[dict[str, Any]]:
    """Read rows from a file path (CSV, JSON or XLSX)."""
    return FileRowSource(path).get_rows()


def read_rows_from_stream(stream: BinaryIO, filename: str) -> list[dict[str, Any]]:
    """
    Read rows from an open binary stream, dispatching on the filename.

    Raises:
        ValueError: Unsupported suffix or malformed content
    """
    suffix = Path(filename).suffix.lower()
    if suffix == ".csv":
        return _read_csv(stream.read())
    if suffix == ".json":
        return _read_json(stream.read())
    if suffix in (".xlsx", ".xlsm"):
        return _read_xlsx(stream)
    raise ValueError(f"Unsupported file format: {suffix or filename}")


def _read_csv(data: bytes) -> list[dict[str, Any]]:
    # utf-8-sig drops the BOM spreadsheet tools write
    text = data.decode("utf-8-sig")
    reader = csv.DictReader(io.StringIO(text, newline=""))
    return [dict(row) for row in reader]


def _read_json(data: bytes) -> list[dict[str, Any]]:
    try:
        payload = json.loads(data.decode("utf-8-sig"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ValueError(f"Invalid JSON rows: {e}") from e

    if isinstance(payload, dict):
        payload = payload.get("rows", [])
    if not isinstance(payload, list):
        raise ValueError("JSON rows must be a list of objects")
    return [row for row in payload if isinstance(row, dict)]


def _read_xlsx(stream: BinaryIO) -> list[dict[str, Any]]:
    content = stream.read()
    try:
        workbook = load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    except Exception as e:
        raise ValueError(f"Unreadable workbook: {e}") from e

    try:
        sheet = workbook.worksheets[0]
        row_iter = sheet.iter_rows(values_only=True)
        header = next(row_iter, None)
        if header is None:
            return []
        headers = [str(h).strip() if h is not None else None for h in header]

        rows = []
        for values in row_iter:
            if values is None or all(v is None for v in values):
                continue
            row = {}
            for col, value in zip(headers, values):
                if col:
                    row[col] = value
            rows.append(row)
        return rows
    finally:
        workbook.close()
