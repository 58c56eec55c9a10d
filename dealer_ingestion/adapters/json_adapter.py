"""
JSON source adapter.

Handles JSON array (file is [{...}, {...}, ...]) and JSON Lines (one object per line).
Options: ``format`` "array" | "jsonl", ``json_path`` for nested arrays
(e.g. "data.vehicles"), ``required_keys`` to skip incomplete rows.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Iterator

from dealer_ingestion.adapters.base import SourceProbe, strip_keys

_SAMPLE_SIZE = 5


def _get_nested(data: Any, path: str) -> Any:
    """Follow dot-separated path into dict/list. Returns None if key missing."""
    if not path.strip():
        return data
    for key in path.split("."):
        key = key.strip()
        if not key:
            continue
        if isinstance(data, list):
            try:
                data = data[int(key)]
            except (ValueError, IndexError):
                return None
        elif isinstance(data, dict) and key in data:
            data = data[key]
        else:
            return None
    return data


def _all_keys(rows: list[dict[str, Any]]) -> tuple[str, ...]:
    seen: set[str] = set()
    for row in rows[:_SAMPLE_SIZE]:
        seen.update(row.keys())
    return tuple(sorted(seen))


def _has_required_keys(row: dict[str, Any], required_keys: list[str]) -> bool:
    for key in required_keys:
        val = row.get(key)
        if val is None:
            return False
        if isinstance(val, str) and not val.strip():
            return False
    return True


class JsonSourceAdapter:
    """Read JSON array or JSON Lines files as one dict per record."""

    def _items(self, source_path: Path, options: dict[str, Any]) -> Iterator[Any]:
        encoding = options.get("encoding", "utf-8")
        if options.get("format", "array") == "jsonl":
            with source_path.open("r", encoding=encoding) as f:
                for line in f:
                    line = line.strip()
                    if line:
                        yield json.loads(line)
            return

        with source_path.open("r", encoding=encoding) as f:
            data = json.load(f)
        json_path = options.get("json_path")
        root = _get_nested(data, json_path) if json_path else data
        if isinstance(root, list):
            yield from root

    def read(self, source_path: Path, options: dict[str, Any]) -> Iterator[dict[str, Any]]:
        required_keys = options.get("required_keys")
        for item in self._items(source_path, options):
            if not isinstance(item, dict):
                continue
            row = strip_keys(item)
            if required_keys and not _has_required_keys(row, required_keys):
                continue
            yield row

    def probe(self, source_path: Path, options: dict[str, Any]) -> SourceProbe:
        count = 0
        sample: list[dict[str, Any]] = []
        for item in self._items(source_path, options):
            count += 1
            if isinstance(item, dict) and len(sample) < _SAMPLE_SIZE:
                sample.append(strip_keys(item))
        return SourceProbe(
            row_count=count,
            columns=_all_keys(sample),
            sample_rows=tuple(sample),
            encoding=options.get("encoding", "utf-8"),
            detected_delimiter=None,
        )
