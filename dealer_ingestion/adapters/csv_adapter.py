"""
CSV source adapter.

Uses csv.DictReader. Options: delimiter, encoding, has_header, columns,
quoting, skip_rows. Handles BOM via utf-8-sig when encoding is utf-8
(spreadsheet exports of stock lists usually carry one). Streams rows.
"""

from __future__ import annotations

import csv
from pathlib import Path
from typing import Any, Iterator

from dealer_ingestion.adapters.base import SourceProbe, strip_keys

_QUOTING = {
    "minimal": csv.QUOTE_MINIMAL,
    "all": csv.QUOTE_ALL,
    "nonnumeric": csv.QUOTE_NONNUMERIC,
    "none": csv.QUOTE_NONE,
}

_SAMPLE_SIZE = 5


def _get_encoding(options: dict[str, Any]) -> str:
    enc = options.get("encoding", "utf-8")
    if enc.lower() in ("utf-8", "utf8"):
        return "utf-8-sig"
    return enc


def _get_quoting(options: dict[str, Any]) -> int:
    q = options.get("quoting", "minimal")
    if isinstance(q, int):
        return q
    return _QUOTING.get(str(q).lower(), csv.QUOTE_MINIMAL)


class CsvSourceAdapter:
    """Read CSV files as one dict per row. Streams; does not load entire file."""

    def read(self, source_path: Path, options: dict[str, Any]) -> Iterator[dict[str, Any]]:
        delimiter = options.get("delimiter", ",")
        quoting = _get_quoting(options)
        skip_rows = int(options.get("skip_rows", 0))

        with source_path.open("r", encoding=_get_encoding(options), newline="") as f:
            for _ in range(skip_rows):
                next(f, None)
            if options.get("has_header", True):
                for row in csv.DictReader(f, delimiter=delimiter, quoting=quoting):
                    yield strip_keys(row)
                return

            columns = options.get("columns")
            for values in csv.reader(f, delimiter=delimiter, quoting=quoting):
                if columns is None:
                    columns = [f"field_{i}" for i in range(len(values))]
                yield dict(zip(columns, values))

    def probe(self, source_path: Path, options: dict[str, Any]) -> SourceProbe:
        sample: list[dict[str, Any]] = []
        count = 0
        columns: tuple[str, ...] = ()
        for row in self.read(source_path, options):
            if not columns:
                columns = tuple(row.keys())
            count += 1
            if len(sample) < _SAMPLE_SIZE:
                sample.append(row)
        return SourceProbe(
            row_count=count,
            columns=columns,
            sample_rows=tuple(sample),
            encoding=_get_encoding(options),
            detected_delimiter=options.get("delimiter", ","),
        )
