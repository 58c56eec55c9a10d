"""Source adapters for stock lists and saved forms (file I/O only)."""

from dealer_ingestion.adapters.base import SourceAdapter, SourceProbe
from dealer_ingestion.adapters.csv_adapter import CsvSourceAdapter
from dealer_ingestion.adapters.json_adapter import JsonSourceAdapter
from dealer_ingestion.adapters.xlsx_adapter import XlsxSourceAdapter

__all__ = [
    "SourceAdapter",
    "SourceProbe",
    "CsvSourceAdapter",
    "JsonSourceAdapter",
    "XlsxSourceAdapter",
]
