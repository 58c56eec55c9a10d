"""
Dealer Services - Orchestration over ingestion, engines and config.

    InvoiceService       raw invoice form -> derived fields
    MarginsService       per-vehicle margins and the stock overview
    export_margins_xlsx  overview -> Excel workbook
"""

from dealer_services.export import export_margins_xlsx
from dealer_services.formatting import format_currency, format_percentage
from dealer_services.invoice_service import InvoiceService
from dealer_services.margins_service import (
    MarginsOverview,
    MarginsService,
    MarginsSummary,
    summarize,
)

__all__ = [
    "InvoiceService",
    "MarginsOverview",
    "MarginsService",
    "MarginsSummary",
    "export_margins_xlsx",
    "format_currency",
    "format_percentage",
    "summarize",
]
