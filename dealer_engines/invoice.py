"""
Invoice Calculation Engine - Derived financial fields for a vehicle sale.

Pure functions with no I/O. Takes a flat sale-record snapshot and returns
every derived field an invoice needs: sale month/quarter, days in stock,
post-discount prices, part-exchange equity, finance/customer deposits,
balances and VAT.

Usage:
    from dealer_engines.invoice import SaleRecord, calculate_all_fields

    record = SaleRecord(
        invoice_to="Customer",
        sale_price="10000",
        discount_on_sale_price="500",
        dealer_deposit="1000",
        amount_paid_deposit_customer="1000",
        date_of_sale="2024-03-15",
        date_of_purchase="2024-01-01",
    )
    result = calculate_all_fields(record)
    print(result.sale_price_post_discount)  # 9500
    print(result.remaining_balance)          # 8500

Rules:
    - Every subtraction that produces a reported amount is floor-clamped at
      zero; negative balances are never reported.
    - Outstanding deposit and overpayment are mutually exclusive.
    - Used vehicles are VAT-exempt: vat_commercial is always zero.
    - Nothing here raises on data. Missing or non-numeric inputs are zero,
      missing dates yield no month and no duration.

Preserved quirks:
    - The finance compulsory deposit subtracts the warranty discount from
      an already post-discount warranty price, but never subtracts the
      delivery discount.
    - Days in stock uses the absolute date difference.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import asdict, dataclass, field, fields, replace
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any

from dealer_engines.stock_dates import (
    calculate_date_fields,
    calculate_days_in_stock,
    parse_calendar_date,
)
from dealer_engines.tracer import traced_engine
from dealer_kernel.domain.values import (
    ZERO,
    clamp_zero,
    is_yes,
    to_amount,
    to_optional_amount,
)
from dealer_kernel.logging_config import get_logger
from dealer_kernel.utils.naming import camel_case, snake_case

logger = get_logger("engines.invoice")


class InvoiceRecipient(str, Enum):
    """Who the invoice is addressed to; selects the deposit formulas."""

    CUSTOMER = "Customer"
    FINANCE_COMPANY = "Finance Company"

    @classmethod
    def parse(cls, value: Any) -> InvoiceRecipient | None:
        """Accept "Customer", "Finance Company", "FinanceCompany", "finance_company"."""
        if isinstance(value, cls):
            return value
        if value is None:
            return None
        key = "".join(ch for ch in str(value).lower() if ch.isalnum())
        if key == "customer":
            return cls.CUSTOMER
        if key == "financecompany":
            return cls.FINANCE_COMPANY
        return None


# ============================================================================
# Input record
# ============================================================================

_DATE_FIELDS = frozenset({
    "date_of_sale",
    "date_of_purchase",
    "dealer_deposit_payment_date_customer",
    "deposit_date_finance",
    "deposit_date_customer",
})

# Values a form may already carry from an earlier calculation; None = not supplied
_SUPPLIED_FIELDS = frozenset({
    "sale_price_post_discount",
    "warranty_price_post_discount",
    "delivery_price_post_discount",
    "amount_paid_part_exchange",
    "overpayments_finance",
})

_ADDON_FIELDS = frozenset({"finance_addons", "customer_addons"})


def _to_addons(value: Any) -> tuple[Decimal, ...]:
    if value is None:
        return ()
    if isinstance(value, (list, tuple)):
        return tuple(to_amount(v) for v in value)
    return (to_amount(value),)


@dataclass(frozen=True)
class SaleRecord:
    """
    Immutable snapshot of every field that feeds one sale's invoice.

    Every field is defaulted, so absence is a valid zero/empty state.
    Construction coerces values: numbers become Decimal (non-numeric,
    NaN and infinities become zero), dates are parsed from ISO strings,
    ``invoice_to`` is parsed into an ``InvoiceRecipient`` and
    ``part_ex_included`` accepts "Yes"/True.
    """

    date_of_sale: date | None = None
    date_of_purchase: date | None = None
    invoice_to: InvoiceRecipient | None = None

    # Pricing
    sale_price: Decimal = ZERO
    discount_on_sale_price: Decimal = ZERO
    warranty_price: Decimal = ZERO
    discount_on_warranty_price: Decimal = ZERO
    delivery_cost: Decimal = ZERO
    discount_on_delivery_price: Decimal = ZERO
    finance_addons: tuple[Decimal, ...] = ()
    customer_addons: tuple[Decimal, ...] = ()

    # Part exchange
    part_ex_included: bool = False
    value_of_px_vehicle: Decimal = ZERO
    settlement_amount: Decimal = ZERO

    # Deposits
    dealer_deposit: Decimal = ZERO
    dealer_deposit_paid_customer: Decimal = ZERO
    dealer_deposit_payment_date_customer: date | None = None
    amount_paid_deposit_finance: Decimal = ZERO
    deposit_date_finance: date | None = None
    amount_paid_deposit_customer: Decimal = ZERO
    deposit_date_customer: date | None = None

    # Direct payments against balance
    amount_paid_card: Decimal = ZERO
    amount_paid_bacs: Decimal = ZERO
    amount_paid_cash: Decimal = ZERO

    # Previously derived values, None when not supplied
    sale_price_post_discount: Decimal | None = None
    warranty_price_post_discount: Decimal | None = None
    delivery_price_post_discount: Decimal | None = None
    amount_paid_part_exchange: Decimal | None = None
    overpayments_finance: Decimal | None = None

    def __post_init__(self) -> None:
        for f in fields(self):
            raw = getattr(self, f.name)
            if f.name in _DATE_FIELDS:
                value: Any = parse_calendar_date(raw)
            elif f.name in _SUPPLIED_FIELDS:
                value = to_optional_amount(raw)
            elif f.name in _ADDON_FIELDS:
                value = _to_addons(raw)
            elif f.name == "invoice_to":
                value = InvoiceRecipient.parse(raw)
            elif f.name == "part_ex_included":
                value = is_yes(raw)
            else:
                value = to_amount(raw)
            object.__setattr__(self, f.name, value)

    @property
    def finance_addons_total(self) -> Decimal:
        return sum(self.finance_addons, ZERO)

    @property
    def customer_addons_total(self) -> Decimal:
        return sum(self.customer_addons, ZERO)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> SaleRecord:
        """
        Build a record from a flat mapping with camelCase or snake_case keys.

        Numbered add-on keys (``financeAddon1Cost``, ``customerAddon2Cost``)
        are collected into the add-on tuples. Unknown keys are ignored.
        Never raises on values.
        """
        normalized = {snake_case(str(k)): v for k, v in data.items()}
        kwargs: dict[str, Any] = {}
        for f in fields(cls):
            if f.name in _ADDON_FIELDS:
                continue
            if f.name in normalized:
                kwargs[f.name] = normalized[f.name]

        for kind in ("finance", "customer"):
            listed = normalized.get(f"{kind}_addons")
            if isinstance(listed, (list, tuple)):
                kwargs[f"{kind}_addons"] = listed
                continue
            numbered = sorted(
                (key, value)
                for key, value in normalized.items()
                if key.startswith(f"{kind}_addon_") and key.endswith("_cost")
            )
            if numbered:
                kwargs[f"{kind}_addons"] = [value for _, value in numbered]

        return cls(**kwargs)


# ============================================================================
# Results
# ============================================================================


class _FormFieldsMixin:
    def to_form_fields(self) -> dict[str, Any]:
        """Render as a dict keyed by camelCase form field names."""
        return {camel_case(k): v for k, v in asdict(self).items()}


@dataclass(frozen=True)
class DiscountResult(_FormFieldsMixin):
    sale_price_pre_discount: Decimal = ZERO
    sale_price_post_discount: Decimal = ZERO
    warranty_price_pre_discount: Decimal = ZERO
    warranty_price_post_discount: Decimal = ZERO
    delivery_price_pre_discount: Decimal = ZERO
    delivery_price_post_discount: Decimal = ZERO


@dataclass(frozen=True)
class DepositResult:
    """Compulsory deposit with its outstanding/overpaid split."""

    compulsory: Decimal = ZERO
    outstanding: Decimal = ZERO
    overpayment: Decimal = ZERO


@dataclass(frozen=True)
class BalanceResult(_FormFieldsMixin):
    balance_to_finance: Decimal = ZERO
    paid_from_balance: Decimal = ZERO
    subtotal_finance: Decimal = ZERO
    balance_to_customer: Decimal = ZERO
    customer_balance_due: Decimal = ZERO
    balance_to_finance_company: Decimal = ZERO
    subtotal_customer: Decimal = ZERO
    amount_paid: Decimal = ZERO
    remaining_balance: Decimal = ZERO
    vat_commercial: Decimal = ZERO
    remaining_balance_inc_vat: Decimal = ZERO


@dataclass(frozen=True)
class CalculationResult(_FormFieldsMixin):
    """Every derived invoice field, always populated."""

    # Dates
    month_of_sale: str = ""
    quarter_of_sale: int = 0
    days_in_stock: int = 0

    # Discounts
    sale_price_pre_discount: Decimal = ZERO
    sale_price_post_discount: Decimal = ZERO
    warranty_price_pre_discount: Decimal = ZERO
    warranty_price_post_discount: Decimal = ZERO
    delivery_price_pre_discount: Decimal = ZERO
    delivery_price_post_discount: Decimal = ZERO

    # Part exchange
    amount_paid_part_exchange: Decimal = ZERO

    # Finance deposits
    compulsory_sale_deposit_finance: Decimal = ZERO
    outstanding_deposit_amount_finance: Decimal = ZERO
    overpayments_finance: Decimal = ZERO

    # Customer deposits
    compulsory_sale_deposit_customer: Decimal = ZERO
    outstanding_deposit_amount_customer: Decimal = ZERO
    overpayments_customer: Decimal = ZERO

    # Balances
    balance_to_finance: Decimal = ZERO
    paid_from_balance: Decimal = ZERO
    subtotal_finance: Decimal = ZERO
    balance_to_customer: Decimal = ZERO
    customer_balance_due: Decimal = ZERO
    balance_to_finance_company: Decimal = ZERO
    subtotal_customer: Decimal = ZERO
    amount_paid: Decimal = ZERO
    remaining_balance: Decimal = ZERO
    vat_commercial: Decimal = ZERO
    remaining_balance_inc_vat: Decimal = ZERO


# ============================================================================
# Calculations
# ============================================================================


def _split_deposit(compulsory: Decimal, paid: Decimal) -> DepositResult:
    return DepositResult(
        compulsory=compulsory,
        outstanding=clamp_zero(compulsory - paid),
        overpayment=clamp_zero(paid - compulsory),
    )


def _supplied_or(value: Decimal | None, fallback: Decimal) -> Decimal:
    return value if value is not None else fallback


def calculate_discounts(record: SaleRecord) -> DiscountResult:
    """Post-discount sale, warranty and delivery prices, each clamped at zero."""
    return DiscountResult(
        sale_price_pre_discount=record.sale_price,
        sale_price_post_discount=clamp_zero(
            record.sale_price - record.discount_on_sale_price
        ),
        warranty_price_pre_discount=record.warranty_price,
        warranty_price_post_discount=clamp_zero(
            record.warranty_price - record.discount_on_warranty_price
        ),
        delivery_price_pre_discount=record.delivery_cost,
        delivery_price_post_discount=clamp_zero(
            record.delivery_cost - record.discount_on_delivery_price
        ),
    )


def calculate_part_exchange(record: SaleRecord) -> Decimal:
    """Net equity released by the part-exchange vehicle after settlement."""
    if not record.part_ex_included:
        return ZERO
    return clamp_zero(record.value_of_px_vehicle - record.settlement_amount)


def calculate_finance_deposits(record: SaleRecord) -> DepositResult:
    """
    Compulsory deposit for a finance-company invoice.

    Recovers everything the finance company will not fund: warranty,
    delivery and customer-paid add-ons, less the warranty discount.
    Paid amount combines the dealer deposit paid by the customer and the
    finance deposit paid.
    """
    if record.invoice_to is not InvoiceRecipient.FINANCE_COMPANY:
        return DepositResult()

    warranty = _supplied_or(record.warranty_price_post_discount, record.warranty_price)
    delivery = _supplied_or(record.delivery_price_post_discount, record.delivery_cost)
    compulsory = (
        warranty
        + delivery
        + record.customer_addons_total
        - record.discount_on_warranty_price
    )
    paid = record.dealer_deposit_paid_customer + record.amount_paid_deposit_finance
    return _split_deposit(compulsory, paid)


def calculate_customer_deposits(record: SaleRecord) -> DepositResult:
    """Compulsory deposit for a customer invoice: the dealer-imposed deposit."""
    if record.invoice_to is not InvoiceRecipient.CUSTOMER:
        return DepositResult()
    return _split_deposit(record.dealer_deposit, record.amount_paid_deposit_customer)


def calculate_balances(record: SaleRecord) -> BalanceResult:
    """Balances, totals and VAT for both finance and customer invoices."""
    sale_price = _supplied_or(record.sale_price_post_discount, record.sale_price)
    warranty = _supplied_or(record.warranty_price_post_discount, record.warranty_price)
    delivery = _supplied_or(record.delivery_price_post_discount, record.delivery_cost)
    finance_addons = record.finance_addons_total
    customer_addons = record.customer_addons_total

    total_sale_amount = sale_price + warranty + delivery + finance_addons + customer_addons

    total_direct_payments = (
        record.amount_paid_card
        + record.amount_paid_bacs
        + record.amount_paid_cash
        + _supplied_or(record.amount_paid_part_exchange, ZERO)
    )
    total_deposit_payments = (
        record.amount_paid_deposit_finance + record.amount_paid_deposit_customer
    )
    overpayments_finance = _supplied_or(record.overpayments_finance, ZERO)

    balance_to_finance = clamp_zero(
        sale_price
        + record.settlement_amount
        + finance_addons
        - overpayments_finance
        - total_direct_payments
        - total_deposit_payments
    )

    balance_to_customer = clamp_zero(total_sale_amount - balance_to_finance)
    amount_paid = total_direct_payments + total_deposit_payments
    remaining_balance = clamp_zero(total_sale_amount - amount_paid)

    # Used vehicles are VAT-exempt
    vat_commercial = ZERO

    return BalanceResult(
        balance_to_finance=balance_to_finance,
        paid_from_balance=total_direct_payments,
        subtotal_finance=total_sale_amount,
        balance_to_customer=balance_to_customer,
        customer_balance_due=clamp_zero(balance_to_customer - amount_paid),
        balance_to_finance_company=balance_to_finance,
        subtotal_customer=total_sale_amount,
        amount_paid=amount_paid,
        remaining_balance=remaining_balance,
        vat_commercial=vat_commercial,
        remaining_balance_inc_vat=remaining_balance + vat_commercial,
    )


@traced_engine("invoice_calculation", "1.0", fingerprint_fields=("record",))
def calculate_all_fields(record: SaleRecord | Mapping[str, Any]) -> CalculationResult:
    """
    Run every invoice calculation and merge the results.

    Deposits are computed from the record as given. Balances are computed
    with the freshly derived post-discount prices, part-exchange amount and
    finance overpayment threaded in. Accepts a SaleRecord or a flat mapping
    (camelCase or snake_case keys). Never raises on data.
    """
    if not isinstance(record, SaleRecord):
        record = SaleRecord.from_mapping(record)

    logger.info("invoice_calculation_started", extra={
        "invoice_to": record.invoice_to.value if record.invoice_to else None,
        "sale_price": str(record.sale_price),
        "part_ex_included": record.part_ex_included,
    })

    date_fields = calculate_date_fields(record.date_of_sale)
    days_in_stock = calculate_days_in_stock(record.date_of_sale, record.date_of_purchase)
    discounts = calculate_discounts(record)
    part_exchange = calculate_part_exchange(record)
    finance = calculate_finance_deposits(record)
    customer = calculate_customer_deposits(record)

    balances = calculate_balances(replace(
        record,
        sale_price_post_discount=discounts.sale_price_post_discount,
        warranty_price_post_discount=discounts.warranty_price_post_discount,
        delivery_price_post_discount=discounts.delivery_price_post_discount,
        amount_paid_part_exchange=part_exchange,
        overpayments_finance=finance.overpayment,
    ))

    result = CalculationResult(
        month_of_sale=date_fields.month_of_sale,
        quarter_of_sale=date_fields.quarter_of_sale,
        days_in_stock=days_in_stock,
        **asdict(discounts),
        amount_paid_part_exchange=part_exchange,
        compulsory_sale_deposit_finance=finance.compulsory,
        outstanding_deposit_amount_finance=finance.outstanding,
        overpayments_finance=finance.overpayment,
        compulsory_sale_deposit_customer=customer.compulsory,
        outstanding_deposit_amount_customer=customer.outstanding,
        overpayments_customer=customer.overpayment,
        **asdict(balances),
    )

    logger.info("invoice_calculation_completed", extra={
        "subtotal": str(result.subtotal_customer),
        "balance_to_finance": str(result.balance_to_finance),
        "remaining_balance": str(result.remaining_balance),
    })
    return result


# ============================================================================
# Validation of a calculated form snapshot
# ============================================================================


@dataclass(frozen=True)
class CalculationValidation:
    is_valid: bool
    missing_fields: tuple[str, ...] = field(default_factory=tuple)


def validate_calculations(form_fields: Mapping[str, Any]) -> CalculationValidation:
    """
    Check that a camelCase form snapshot carries the derived values its
    inputs imply. A zero or empty derived value counts as missing.
    """
    missing: list[str] = []

    def absent(key: str) -> bool:
        value = form_fields.get(key)
        if isinstance(value, str):
            return not value.strip()
        return not value

    if not absent("dateOfSale"):
        if absent("monthOfSale"):
            missing.append("monthOfSale")
        if absent("quarterOfSale"):
            missing.append("quarterOfSale")

    if is_yes(form_fields.get("applyDiscounts")):
        if absent("salePricePreDiscount"):
            missing.append("salePricePreDiscount")
        if absent("salePricePostDiscount"):
            missing.append("salePricePostDiscount")

    recipient = InvoiceRecipient.parse(form_fields.get("invoiceTo"))
    if recipient is InvoiceRecipient.FINANCE_COMPANY and absent("compulsorySaleDepositFinance"):
        missing.append("compulsorySaleDepositFinance")
    if recipient is InvoiceRecipient.CUSTOMER and absent("compulsorySaleDepositCustomer"):
        missing.append("compulsorySaleDepositCustomer")

    if absent("subtotalCustomer"):
        missing.append("subtotalCustomer")
    if absent("remainingBalance"):
        missing.append("remainingBalance")

    return CalculationValidation(is_valid=not missing, missing_fields=tuple(missing))
