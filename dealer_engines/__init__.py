"""
Dealer Engines - Pure calculation engines for vehicle sales.

These engines are pure functions with no I/O: records in, records out.
Time is never read from the system clock; callers pass dates explicitly.

Engines:
    - stock_dates: Sale month/quarter, days in stock, reporting periods
    - invoice: Discounts, part exchange, deposits, balances and VAT
    - margins: VAT and profit breakdown per vehicle
"""

from dealer_engines.invoice import (
    BalanceResult,
    CalculationResult,
    CalculationValidation,
    DepositResult,
    DiscountResult,
    InvoiceRecipient,
    SaleRecord,
    calculate_all_fields,
    calculate_balances,
    calculate_customer_deposits,
    calculate_discounts,
    calculate_finance_deposits,
    calculate_part_exchange,
    validate_calculations,
)
from dealer_engines.margins import (
    DetailedMarginCalculations,
    MarginPolicy,
    MarginValidation,
    ProfitCategory,
    ProfitStatus,
    VehicleMarginData,
    calculate_detailed_margins,
    validate_margin_data,
)
from dealer_engines.stock_dates import (
    DateFields,
    calculate_date_fields,
    calculate_days_in_stock,
    format_month_year,
    format_quarter,
    parse_calendar_date,
)

__all__ = [
    # Stock dates
    "DateFields",
    "calculate_date_fields",
    "calculate_days_in_stock",
    "format_month_year",
    "format_quarter",
    "parse_calendar_date",
    # Invoice
    "InvoiceRecipient",
    "SaleRecord",
    "DiscountResult",
    "DepositResult",
    "BalanceResult",
    "CalculationResult",
    "CalculationValidation",
    "calculate_discounts",
    "calculate_part_exchange",
    "calculate_finance_deposits",
    "calculate_customer_deposits",
    "calculate_balances",
    "calculate_all_fields",
    "validate_calculations",
    # Margins
    "MarginPolicy",
    "ProfitCategory",
    "ProfitStatus",
    "VehicleMarginData",
    "DetailedMarginCalculations",
    "MarginValidation",
    "calculate_detailed_margins",
    "validate_margin_data",
]
