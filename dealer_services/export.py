"""
Margins overview export to an Excel workbook.

Writes two sheets:
    Margins  -- one row per calculated vehicle, sorted as in the overview
    Summary  -- totals, averages, profit-band counts and pending stock ids

Amounts are written as numbers (rounded to pence) with a currency number
format, so the workbook stays sortable and summable in a spreadsheet.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from pathlib import Path

from openpyxl import Workbook
from openpyxl.styles import Font

from dealer_engines.margins import DetailedMarginCalculations, ProfitCategory
from dealer_kernel.logging_config import get_logger
from dealer_services.margins_service import MarginsOverview

logger = get_logger("services.export")

_PENCE = Decimal("0.01")
_CURRENCY_FORMAT = '"£"#,##0.00'
_PERCENT_FORMAT = '0.00"%"'

# (header, attribute, number format); None format = written as-is
MARGIN_COLUMNS: tuple[tuple[str, str, str | None], ...] = (
    ("Stock ID", "stock_id", None),
    ("Registration", "registration", None),
    ("Purchase Date", "purchase_date", "yyyy-mm-dd"),
    ("Sale Date", "sale_date", "yyyy-mm-dd"),
    ("Purchase Price", "purchase_price", _CURRENCY_FORMAT),
    ("Sale Price", "sale_price", _CURRENCY_FORMAT),
    ("Outlay", "outlay_on_vehicle", _CURRENCY_FORMAT),
    ("VAT on Spend", "vat_on_spend", _CURRENCY_FORMAT),
    ("VAT on Purchase", "vat_on_purchase", _CURRENCY_FORMAT),
    ("VAT on Sale Price", "vat_on_sale_price", _CURRENCY_FORMAT),
    ("VAT to Pay", "vat_to_pay", _CURRENCY_FORMAT),
    ("Gross Profit", "gross_profit", _CURRENCY_FORMAT),
    ("Net Profit", "net_profit", _CURRENCY_FORMAT),
    ("Profit Pre-VAT", "profit_margin_pre_vat", _CURRENCY_FORMAT),
    ("Profit Post-VAT", "profit_margin_post_vat", _CURRENCY_FORMAT),
    ("Total Investment", "total_investment", _CURRENCY_FORMAT),
    ("Uplift %", "percentage_uplift_after_all_costs", _PERCENT_FORMAT),
    ("Gross Margin %", "gross_margin_percent", _PERCENT_FORMAT),
    ("Net Margin %", "net_margin_percent", _PERCENT_FORMAT),
    ("Category", "profit_category", None),
    ("Status", "profit_status", None),
    ("Days in Stock", "days_in_stock", None),
    ("Profit per Day", "profit_per_day", _CURRENCY_FORMAT),
    ("Purchase Month", "purchase_month", None),
    ("Sale Month", "sale_month", None),
)


def _cell(value: object) -> object:
    if isinstance(value, Decimal):
        return float(value.quantize(_PENCE, rounding=ROUND_HALF_UP))
    if isinstance(value, Enum):
        return value.value
    return value


def _margin_row(row: DetailedMarginCalculations) -> list[object]:
    return [_cell(getattr(row, attr)) for _, attr, _ in MARGIN_COLUMNS]


def export_margins_xlsx(overview: MarginsOverview, path: Path | str) -> Path:
    """Write ``overview`` to an .xlsx workbook at ``path`` and return the path."""
    path = Path(path)
    wb = Workbook()

    sheet = wb.active
    sheet.title = "Margins"
    sheet.append([header for header, _, _ in MARGIN_COLUMNS])
    for cell in sheet[1]:
        cell.font = Font(bold=True)
    for row in overview.vehicles:
        sheet.append(_margin_row(row))
    for col_index, (_, _, number_format) in enumerate(MARGIN_COLUMNS, start=1):
        if number_format is None:
            continue
        for (cell,) in sheet.iter_rows(
            min_row=2, min_col=col_index, max_col=col_index
        ):
            cell.number_format = number_format
    sheet.freeze_panes = "A2"

    summary = overview.summary
    summary_sheet = wb.create_sheet("Summary")
    summary_sheet.append(["Metric", "Value"])
    for cell in summary_sheet[1]:
        cell.font = Font(bold=True)
    summary_sheet.append(["Total Vehicles", summary.total_vehicles])
    summary_sheet.append(["Total Gross Profit", _cell(summary.total_gross_profit)])
    summary_sheet.append(["Total Net Profit", _cell(summary.total_net_profit)])
    summary_sheet.append(["Total VAT to Pay", _cell(summary.total_vat_to_pay)])
    summary_sheet.append(["Average Net Margin %", _cell(summary.average_net_margin)])
    summary_sheet.append(["Average Days in Stock", _cell(summary.average_days_in_stock)])
    for category in ProfitCategory:
        summary_sheet.append(
            [f"{category.value.title()} Margin Vehicles", summary.category_counts.get(category, 0)]
        )
    summary_sheet.append(["Pending Vehicles", len(overview.pending)])
    if overview.pending:
        summary_sheet.append(["Pending Stock IDs", ", ".join(overview.pending)])

    wb.save(path)
    logger.info("margins_export_written", extra={
        "path": str(path),
        "vehicle_rows": len(overview.vehicles),
    })
    return path
