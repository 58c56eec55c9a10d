"""
XLSX source adapter for stock and cost spreadsheets.

Options:
  sheet: 0-based sheet index (int) or sheet name (str). Default: active sheet.
  skip_rows: rows to skip at the top of the sheet before the header. Default: 0.
  header_row: 0-based row index (after skip_rows) holding column names. Default: 0.

Cell values are normalized: whole floats become ints, strings are stripped,
empty cells become "". Fully empty rows are skipped.
"""

from __future__ import annotations

import re
from datetime import datetime
from pathlib import Path
from typing import Any, Iterator

import openpyxl

from dealer_ingestion.adapters.base import SourceProbe

_SAMPLE_SIZE = 5


def _normalize_header_cell(value: Any) -> str:
    if value is None:
        return ""
    return re.sub(r"\s+", " ", str(value)).strip()


def _cell_value(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, float):
        return int(value) if value == int(value) else value
    if isinstance(value, datetime):
        # Date-only cells come back as midnight datetimes
        return value.date() if value.time() == datetime.min.time() else value
    if isinstance(value, str):
        return value.strip()
    return value


def _headers(header_values: tuple[Any, ...]) -> list[str]:
    headers: list[str] = []
    for index, raw in enumerate(header_values):
        key = _normalize_header_cell(raw) or f"Column_{index + 1}"
        base, count = key, 0
        while key in headers:
            count += 1
            key = f"{base}_{count}"
        headers.append(key)
    return headers


class XlsxSourceAdapter:
    """Read .xlsx files as one dict per row, using a header row for keys."""

    def _get_sheet(self, wb: Any, options: dict[str, Any]) -> Any:
        sheet_ref = options.get("sheet")
        if sheet_ref is None:
            return wb.active
        if isinstance(sheet_ref, int):
            return wb.worksheets[sheet_ref]
        return wb[sheet_ref]

    def read(self, source_path: Path, options: dict[str, Any]) -> Iterator[dict[str, Any]]:
        wb = openpyxl.load_workbook(source_path, read_only=True, data_only=True)
        try:
            sheet = self._get_sheet(wb, options)
            skip_rows = int(options.get("skip_rows", 0))
            header_index = int(options.get("header_row", 0))

            rows = sheet.iter_rows(min_row=1 + skip_rows, values_only=True)
            headers: list[str] | None = None
            for index, values in enumerate(rows):
                if index < header_index:
                    continue
                if headers is None:
                    headers = _headers(values)
                    continue
                cells = [_cell_value(v) for v in values[: len(headers)]]
                if not any(c != "" for c in cells):
                    continue
                yield dict(zip(headers, cells))
        finally:
            wb.close()

    def probe(self, source_path: Path, options: dict[str, Any]) -> SourceProbe:
        sample: list[dict[str, Any]] = []
        count = 0
        for row in self.read(source_path, options):
            count += 1
            if len(sample) < _SAMPLE_SIZE:
                sample.append(row)
        columns = tuple(sample[0].keys()) if sample else ()
        return SourceProbe(
            row_count=count,
            columns=columns,
            sample_rows=tuple(sample),
            encoding=None,
            detected_delimiter=None,
        )
