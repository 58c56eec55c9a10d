"""
Form and stock-row mapping.

Turns raw boundary payloads into engine inputs:

    sale_record_from_form(payload)  -> SaleRecord
    margin_data_from_row(row)       -> VehicleMarginData

Form payloads use the invoice form's camelCase field names and carry
display strings, payment lists and add-on lists.  Stock rows combine
inventory, sale and cost-ledger columns for one vehicle.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from decimal import Decimal
from typing import Any

from dealer_engines.invoice import SaleRecord
from dealer_engines.margins import VehicleMarginData
from dealer_ingestion.currency import parse_currency, parse_currency_lenient, parse_form_date
from dealer_kernel.domain.values import ZERO, is_yes
from dealer_kernel.logging_config import get_logger

logger = get_logger("ingestion.form_mapping")

# Form field -> SaleRecord attribute, for amounts
_AMOUNT_FIELDS: dict[str, str] = {
    "salePrice": "sale_price",
    "discountOnSalePrice": "discount_on_sale_price",
    "warrantyPrice": "warranty_price",
    "discountOnWarrantyPrice": "discount_on_warranty_price",
    "deliveryCost": "delivery_cost",
    "discountOnDeliveryPrice": "discount_on_delivery_price",
    "valueOfPxVehicle": "value_of_px_vehicle",
    "settlementAmount": "settlement_amount",
    "dealerDeposit": "dealer_deposit",
    "dealerDepositPaidCustomer": "dealer_deposit_paid_customer",
    "amountPaidDepositFinance": "amount_paid_deposit_finance",
    "amountPaidDepositCustomer": "amount_paid_deposit_customer",
}

# Previously derived values; absent or blank means not supplied
_SUPPLIED_FIELDS: dict[str, str] = {
    "salePricePostDiscount": "sale_price_post_discount",
    "warrantyPricePostDiscount": "warranty_price_post_discount",
    "deliveryPricePostDiscount": "delivery_price_post_discount",
    "amountPaidPartExchange": "amount_paid_part_exchange",
    "overpaymentsFinance": "overpayments_finance",
}

_DATE_FIELDS: dict[str, str] = {
    "dateOfSale": "date_of_sale",
    "dateOfPurchase": "date_of_purchase",
    "dealerDepositPaymentDateCustomer": "dealer_deposit_payment_date_customer",
    "depositDateFinance": "deposit_date_finance",
    "depositDateCustomer": "deposit_date_customer",
}

# Single legacy amount -> list of {amount, date} entries
_PAYMENT_FIELDS: dict[str, tuple[str, str]] = {
    "amount_paid_card": ("amountPaidCard", "cardPayments"),
    "amount_paid_bacs": ("amountPaidBacs", "bacsPayments"),
    "amount_paid_cash": ("amountPaidCash", "cashPayments"),
}


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _sum_entries(entries: Any, key: str, parse: Any, field: str) -> Decimal:
    if not isinstance(entries, Sequence) or isinstance(entries, str):
        return ZERO
    total = ZERO
    for index, entry in enumerate(entries):
        if isinstance(entry, Mapping):
            total += parse(entry.get(key), f"{field}[{index}].{key}")
    return total


def _addons(payload: Mapping[str, Any], kind: str, parse: Any) -> list[Decimal]:
    costs: list[Decimal] = []
    for position in (1, 2):
        name = f"{kind}Addon{position}Cost"
        if not _is_blank(payload.get(name)):
            costs.append(parse(payload.get(name), name))
    entries = payload.get(f"{kind}AddonsArray")
    if isinstance(entries, Sequence) and not isinstance(entries, str):
        for index, entry in enumerate(entries):
            if isinstance(entry, Mapping):
                costs.append(parse(entry.get("cost"), f"{kind}AddonsArray[{index}].cost"))
    return costs


def sale_record_from_form(payload: Mapping[str, Any], *, strict: bool = False) -> SaleRecord:
    """
    Build a ``SaleRecord`` from a raw invoice-form payload.

    Currency strings are parsed.  Payment lists (``cardPayments``,
    ``bacsPayments``, ``cashPayments``) are summed, but a non-zero legacy
    single amount (``amountPaidCard``, ...) takes precedence.  Numbered
    add-on costs and ``financeAddonsArray``/``customerAddonsArray`` entries
    are combined.

    With ``strict`` set, malformed amounts raise ``CurrencyParseError`` and
    malformed dates raise ``DateParseError``; otherwise both degrade to
    zero/None.
    """
    parse = parse_currency if strict else parse_currency_lenient
    kwargs: dict[str, Any] = {}

    for form_name, attr in _AMOUNT_FIELDS.items():
        kwargs[attr] = parse(payload.get(form_name), form_name)

    for form_name, attr in _SUPPLIED_FIELDS.items():
        raw = payload.get(form_name)
        kwargs[attr] = None if _is_blank(raw) else parse(raw, form_name)

    for form_name, attr in _DATE_FIELDS.items():
        kwargs[attr] = parse_form_date(payload.get(form_name), form_name, strict=strict)

    for attr, (single, listed) in _PAYMENT_FIELDS.items():
        amount = parse(payload.get(single), single)
        if amount == ZERO:
            amount = _sum_entries(payload.get(listed), "amount", parse, listed)
        kwargs[attr] = amount

    kwargs["finance_addons"] = _addons(payload, "finance", parse)
    kwargs["customer_addons"] = _addons(payload, "customer", parse)
    kwargs["invoice_to"] = payload.get("invoiceTo")
    kwargs["part_ex_included"] = is_yes(payload.get("partExIncluded"))

    record = SaleRecord(**kwargs)
    logger.debug("sale_record_mapped", extra={
        "invoice_to": record.invoice_to.value if record.invoice_to else None,
        "finance_addons": len(record.finance_addons),
        "customer_addons": len(record.customer_addons),
        "strict": strict,
    })
    return record


def _first(row: Mapping[str, Any], *names: str) -> Any:
    for name in names:
        value = row.get(name)
        if not _is_blank(value):
            return value
    return None


def margin_data_from_row(row: Mapping[str, Any]) -> VehicleMarginData:
    """
    Build margin inputs from a stock/cost row.

    Vatable costs are the VAT-inclusive cost total; non-vatable costs are
    the ex-VAT and fixed cost totals combined.  Total costs default to the
    sum of both when no grand total is present.
    """
    vatable = parse_currency_lenient(_first(row, "incVatCostsTotal", "vatableCosts"), "incVatCostsTotal")
    ex_vat = parse_currency_lenient(row.get("exVatCostsTotal"), "exVatCostsTotal")
    fixed = parse_currency_lenient(row.get("fixedCostsTotal"), "fixedCostsTotal")
    non_vatable_raw = row.get("nonVatableCosts")
    non_vatable = (
        parse_currency_lenient(non_vatable_raw, "nonVatableCosts")
        if _is_blank(row.get("exVatCostsTotal")) and _is_blank(row.get("fixedCostsTotal"))
        and not _is_blank(non_vatable_raw)
        else ex_vat + fixed
    )
    total_raw = _first(row, "grandTotal", "totalCosts")
    total = (
        parse_currency_lenient(total_raw, "grandTotal")
        if total_raw is not None
        else vatable + non_vatable
    )

    return VehicleMarginData(
        stock_id=str(_first(row, "stockId", "stock_id") or ""),
        registration=str(_first(row, "registration") or ""),
        purchase_price=parse_currency_lenient(
            _first(row, "costOfPurchase", "purchasePrice"), "costOfPurchase"
        ),
        sale_price=parse_currency_lenient(_first(row, "salePrice"), "salePrice"),
        total_costs=total,
        vatable_costs=vatable,
        non_vatable_costs=non_vatable,
        purchase_date=parse_form_date(_first(row, "dateOfPurchase", "purchaseDate")),
        sale_date=parse_form_date(_first(row, "saleDate", "dateOfSale")),
        is_commercial_purchase=is_yes(row.get("isCommercialPurchase")),
    )
