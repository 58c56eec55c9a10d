"""
Dealer Ingestion - Boundary parsing for forms and stock data.

Everything that turns display strings and files into engine inputs lives
here, so the engines never see a currency string.

    parse_currency("£1,234.56")          -> Decimal("1234.56")
    sale_record_from_form(form_payload)  -> SaleRecord
    margin_data_from_row(stock_row)      -> VehicleMarginData
"""

from dealer_ingestion.currency import parse_currency, parse_currency_lenient, parse_form_date
from dealer_ingestion.form_mapping import margin_data_from_row, sale_record_from_form

__all__ = [
    "parse_currency",
    "parse_currency_lenient",
    "parse_form_date",
    "sale_record_from_form",
    "margin_data_from_row",
]
