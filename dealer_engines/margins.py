"""
Margin Engine - VAT and profit breakdown for a single vehicle.

Pure functions with no I/O. The VAT fraction and profit-band thresholds
are provided through ``MarginPolicy``; the reference date for an unsold
vehicle is provided through ``as_of`` (engines never read the clock).

Usage:
    from dealer_engines.margins import VehicleMarginData, calculate_detailed_margins
    from decimal import Decimal
    from datetime import date

    data = VehicleMarginData(
        stock_id="TEST001",
        registration="AB12 CDE",
        purchase_price=Decimal("10000"),
        sale_price=Decimal("15000"),
        total_costs=Decimal("1200"),
        vatable_costs=Decimal("600"),
        non_vatable_costs=Decimal("600"),
        purchase_date=date(2024, 1, 15),
        sale_date=date(2024, 3, 15),
    )
    margins = calculate_detailed_margins(data, as_of=date(2024, 6, 1))
    print(margins.net_profit)        # 3700
    print(margins.profit_category)   # ProfitCategory.HIGH

VAT convention:
    Amounts are VAT-inclusive at 20%, so the VAT portion is amount / 6.
    Margin-scheme VAT is due on the difference between sale and purchase
    price; VAT on vatable spend, and on the purchase itself when it was a
    commercial (VAT-qualifying) purchase, is reclaimed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any

from dealer_engines.stock_dates import (
    calculate_days_in_stock,
    format_month_year,
    format_quarter,
    parse_calendar_date,
)
from dealer_engines.tracer import traced_engine
from dealer_kernel.domain.values import ZERO, safe_divide, to_amount
from dealer_kernel.logging_config import get_logger

logger = get_logger("engines.margins")

_HUNDRED = Decimal("100")


class ProfitCategory(str, Enum):
    """Band of the net margin percentage."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class ProfitStatus(str, Enum):
    """Sign of the net profit."""

    PROFIT = "PROFIT"
    LOSS = "LOSS"


@dataclass(frozen=True)
class MarginPolicy:
    """
    Dealer policy for margin calculations.

    Built from configuration by ``DealerConfig.margin_policy()``.
    """

    vat_fraction_denominator: Decimal = Decimal("6")
    low_max_percent: Decimal = Decimal("10")
    medium_max_percent: Decimal = Decimal("20")

    def vat_portion(self, amount: Decimal) -> Decimal:
        return safe_divide(amount, self.vat_fraction_denominator)

    def categorize(self, net_margin_percent: Decimal) -> ProfitCategory:
        if net_margin_percent <= self.low_max_percent:
            return ProfitCategory.LOW
        if net_margin_percent <= self.medium_max_percent:
            return ProfitCategory.MEDIUM
        return ProfitCategory.HIGH


@dataclass(frozen=True)
class VehicleMarginData:
    """
    Inputs for one vehicle's margin calculation.

    ``total_costs`` is the full outlay on the vehicle; ``vatable_costs`` are
    the VAT-inclusive costs whose VAT can be reclaimed and
    ``non_vatable_costs`` the remainder. Amounts are coerced to Decimal.
    """

    stock_id: str = ""
    registration: str = ""
    purchase_price: Decimal = ZERO
    sale_price: Decimal = ZERO
    total_costs: Decimal = ZERO
    vatable_costs: Decimal = ZERO
    non_vatable_costs: Decimal = ZERO
    purchase_date: date | None = None
    sale_date: date | None = None
    is_commercial_purchase: bool = False

    def __post_init__(self) -> None:
        for name in (
            "purchase_price",
            "sale_price",
            "total_costs",
            "vatable_costs",
            "non_vatable_costs",
        ):
            object.__setattr__(self, name, to_amount(getattr(self, name)))
        object.__setattr__(self, "purchase_date", parse_calendar_date(self.purchase_date))
        object.__setattr__(self, "sale_date", parse_calendar_date(self.sale_date))
        object.__setattr__(self, "stock_id", str(self.stock_id or ""))
        object.__setattr__(self, "registration", str(self.registration or ""))
        object.__setattr__(self, "is_commercial_purchase", bool(self.is_commercial_purchase))


@dataclass(frozen=True)
class DetailedMarginCalculations:
    """VAT and profit breakdown for one vehicle. Every field is populated."""

    stock_id: str
    registration: str
    purchase_price: Decimal
    sale_price: Decimal
    total_costs: Decimal
    purchase_date: date | None
    sale_date: date | None

    # Cost totals
    vatable_total: Decimal
    non_vatable_total: Decimal
    outlay_on_vehicle: Decimal

    # VAT
    vat_on_spend: Decimal
    vat_on_purchase: Decimal
    vat_on_sale_price: Decimal
    vat_to_pay: Decimal

    # Profit
    gross_profit: Decimal
    net_profit: Decimal
    profit_margin_pre_vat: Decimal
    profit_margin_post_vat: Decimal

    # Metrics
    total_investment: Decimal
    percentage_uplift_after_all_costs: Decimal
    gross_margin_percent: Decimal
    net_margin_percent: Decimal
    profit_category: ProfitCategory
    profit_status: ProfitStatus
    days_in_stock: int
    profit_per_day: Decimal

    # Reporting periods
    purchase_month: str
    purchase_quarter: str
    sale_month: str | None = None
    sale_quarter: str | None = None

    @property
    def is_sold(self) -> bool:
        return self.sale_date is not None


@traced_engine("margin_calculation", "1.0", fingerprint_fields=("data", "as_of"))
def calculate_detailed_margins(
    data: VehicleMarginData,
    *,
    as_of: date,
    policy: MarginPolicy | None = None,
) -> DetailedMarginCalculations:
    """
    Calculate the full VAT and profit breakdown for a vehicle.

    Days in stock run from the purchase date to the sale date, or to
    ``as_of`` when the vehicle is unsold. Percentages are 0 when their
    denominator is not positive; profit per day divides by at least one day.
    """
    policy = policy or MarginPolicy()

    logger.info("margin_calculation_started", extra={
        "stock_id": data.stock_id,
        "purchase_price": str(data.purchase_price),
        "sale_price": str(data.sale_price),
        "is_commercial_purchase": data.is_commercial_purchase,
    })

    vatable_total = data.vatable_costs
    non_vatable_total = data.non_vatable_costs
    outlay = data.total_costs

    vat_on_spend = policy.vat_portion(vatable_total)
    vat_on_purchase = (
        policy.vat_portion(data.purchase_price) if data.is_commercial_purchase else ZERO
    )
    vat_on_sale_price = policy.vat_portion(data.sale_price - data.purchase_price)
    vat_to_pay = vat_on_sale_price - vat_on_spend - vat_on_purchase

    gross_profit = data.sale_price - data.purchase_price
    net_profit = gross_profit - vat_on_spend - outlay
    profit_margin_pre_vat = data.sale_price - data.purchase_price - outlay
    profit_margin_post_vat = profit_margin_pre_vat - vat_to_pay

    total_investment = data.purchase_price + outlay
    if total_investment > ZERO:
        uplift = (data.sale_price - total_investment) / total_investment * _HUNDRED
    else:
        uplift = ZERO
    if data.sale_price > ZERO:
        gross_margin_percent = (data.sale_price - data.purchase_price) / data.sale_price * _HUNDRED
        net_margin_percent = (data.sale_price - total_investment) / data.sale_price * _HUNDRED
    else:
        gross_margin_percent = ZERO
        net_margin_percent = ZERO

    days_in_stock = calculate_days_in_stock(data.sale_date or as_of, data.purchase_date)
    profit_per_day = net_profit / max(days_in_stock, 1)

    result = DetailedMarginCalculations(
        stock_id=data.stock_id,
        registration=data.registration,
        purchase_price=data.purchase_price,
        sale_price=data.sale_price,
        total_costs=data.total_costs,
        purchase_date=data.purchase_date,
        sale_date=data.sale_date,
        vatable_total=vatable_total,
        non_vatable_total=non_vatable_total,
        outlay_on_vehicle=outlay,
        vat_on_spend=vat_on_spend,
        vat_on_purchase=vat_on_purchase,
        vat_on_sale_price=vat_on_sale_price,
        vat_to_pay=vat_to_pay,
        gross_profit=gross_profit,
        net_profit=net_profit,
        profit_margin_pre_vat=profit_margin_pre_vat,
        profit_margin_post_vat=profit_margin_post_vat,
        total_investment=total_investment,
        percentage_uplift_after_all_costs=uplift,
        gross_margin_percent=gross_margin_percent,
        net_margin_percent=net_margin_percent,
        profit_category=policy.categorize(net_margin_percent),
        profit_status=ProfitStatus.PROFIT if net_profit >= ZERO else ProfitStatus.LOSS,
        days_in_stock=days_in_stock,
        profit_per_day=profit_per_day,
        purchase_month=format_month_year(data.purchase_date),
        purchase_quarter=format_quarter(data.purchase_date),
        sale_month=format_month_year(data.sale_date) if data.sale_date else None,
        sale_quarter=format_quarter(data.sale_date) if data.sale_date else None,
    )

    logger.info("margin_calculation_completed", extra={
        "stock_id": data.stock_id,
        "net_profit": str(result.net_profit),
        "vat_to_pay": str(result.vat_to_pay),
        "profit_category": result.profit_category.value,
        "days_in_stock": days_in_stock,
    })

    return result


@dataclass(frozen=True)
class MarginValidation:
    is_valid: bool
    errors: tuple[str, ...] = field(default_factory=tuple)


def validate_margin_data(data: VehicleMarginData | dict[str, Any]) -> MarginValidation:
    """
    Check there is enough data to calculate margins.

    Accepts a ``VehicleMarginData`` or a partial dict of its fields; in the
    dict form an absent cost field is reported as missing, whereas a
    ``VehicleMarginData`` always carries costs (defaulting to 0).
    """
    if isinstance(data, VehicleMarginData):
        values: dict[str, Any] = {
            name: getattr(data, name) for name in VehicleMarginData.__dataclass_fields__
        }
    else:
        values = dict(data)

    def amount(name: str) -> Decimal | None:
        raw = values.get(name)
        return None if raw is None else to_amount(raw)

    errors: list[str] = []

    if not values.get("stock_id"):
        errors.append("Stock ID is required")

    purchase_price = amount("purchase_price")
    if purchase_price is None or purchase_price <= ZERO:
        errors.append("Valid purchase price is required")

    sale_price = amount("sale_price")
    if sale_price is None or sale_price <= ZERO:
        errors.append("Valid sale price is required")

    if parse_calendar_date(values.get("purchase_date")) is None:
        errors.append("Purchase date is required")

    for name, label in (
        ("total_costs", "Total costs"),
        ("vatable_costs", "Vatable costs"),
        ("non_vatable_costs", "Non-vatable costs"),
    ):
        cost = amount(name)
        if cost is None or cost < ZERO:
            errors.append(f"{label} must be provided (can be 0)")

    return MarginValidation(is_valid=not errors, errors=tuple(errors))
