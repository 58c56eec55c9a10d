"""
dealer_services.margins_service -- Per-vehicle margins and the stock overview.

Responsibility:
    Decide whether a vehicle has enough data for a margin calculation,
    supply the reference date (from the injected Clock) and the dealer's
    margin policy (from configuration), run the margin engine, and
    aggregate a sorted overview with summary totals.
    Stock lists can also be read straight from CSV, JSON or XLSX files
    through the ingestion source adapters.

Architecture position:
    Services -- orchestration over engines + config.  Engines stay pure:
    the clock is read here and passed down as ``as_of``.

Invariants enforced:
    - The engine is only invoked for vehicles that pass
      ``validate_margin_data``.
    - Overview rows are sorted by net profit, highest first.

Failure modes:
    - ``MarginDataIncompleteError`` from ``calculate_for_vehicle`` when
      required fields are missing.  ``overview`` never raises for an
      incomplete vehicle; it lists the stock id as pending instead.
    - ``ValueError`` from ``overview_from_source`` when no adapter handles
      the source format.

Usage:
    service = MarginsService(SystemClock(), get_active_config(dealer_id))
    margins = service.calculate_for_vehicle(data)
    overview = service.overview(vehicles)
    overview = service.overview_from_source(Path("stock.xlsx"), options={"sheet": "Stock"})
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import Any

from dealer_config.schema import DealerConfig
from dealer_engines.margins import (
    DetailedMarginCalculations,
    MarginPolicy,
    ProfitCategory,
    VehicleMarginData,
    calculate_detailed_margins,
    validate_margin_data,
)
from dealer_ingestion.adapters import (
    CsvSourceAdapter,
    JsonSourceAdapter,
    SourceAdapter,
    XlsxSourceAdapter,
)
from dealer_ingestion.form_mapping import margin_data_from_row
from dealer_kernel.domain.clock import Clock
from dealer_kernel.domain.values import ZERO
from dealer_kernel.exceptions import MarginDataIncompleteError
from dealer_kernel.logging_config import LogContext, get_logger

logger = get_logger("services.margins")


@dataclass(frozen=True)
class MarginsSummary:
    """Totals and averages across every calculated vehicle."""

    total_vehicles: int = 0
    total_gross_profit: Decimal = ZERO
    total_net_profit: Decimal = ZERO
    total_vat_to_pay: Decimal = ZERO
    average_net_margin: Decimal = ZERO
    average_days_in_stock: Decimal = ZERO
    category_counts: dict[ProfitCategory, int] = field(
        default_factory=lambda: {category: 0 for category in ProfitCategory}
    )


@dataclass(frozen=True)
class MarginsOverview:
    vehicles: tuple[DetailedMarginCalculations, ...]
    summary: MarginsSummary
    pending: tuple[str, ...] = ()


def _default_adapters() -> dict[str, SourceAdapter]:
    return {
        "csv": CsvSourceAdapter(),
        "json": JsonSourceAdapter(),
        "jsonl": JsonSourceAdapter(),
        "xlsx": XlsxSourceAdapter(),
    }


def summarize(vehicles: Iterable[DetailedMarginCalculations]) -> MarginsSummary:
    """Aggregate totals; averages are zero for an empty set."""
    rows = list(vehicles)
    if not rows:
        return MarginsSummary()

    counts = {category: 0 for category in ProfitCategory}
    for row in rows:
        counts[row.profit_category] += 1

    count = Decimal(len(rows))
    return MarginsSummary(
        total_vehicles=len(rows),
        total_gross_profit=sum((r.gross_profit for r in rows), ZERO),
        total_net_profit=sum((r.net_profit for r in rows), ZERO),
        total_vat_to_pay=sum((r.vat_to_pay for r in rows), ZERO),
        average_net_margin=sum((r.net_margin_percent for r in rows), ZERO) / count,
        average_days_in_stock=Decimal(sum(r.days_in_stock for r in rows)) / count,
        category_counts=counts,
    )


class MarginsService:
    """
    Margin calculations for one dealer.

    Contract:
        Receives a Clock and the dealer's configuration via constructor
        injection.
    Guarantees:
        - Unsold vehicles accrue days in stock up to ``clock.today()``.
        - VAT fraction and profit bands follow the dealer configuration.
    """

    def __init__(
        self,
        clock: Clock,
        config: DealerConfig | None = None,
        adapters: dict[str, SourceAdapter] | None = None,
    ):
        self._clock = clock
        self._policy = config.margin_policy() if config is not None else MarginPolicy()
        self._adapters = adapters if adapters is not None else _default_adapters()

    @property
    def policy(self) -> MarginPolicy:
        return self._policy

    def calculate_for_vehicle(self, data: VehicleMarginData) -> DetailedMarginCalculations:
        """
        Validate and calculate margins for one vehicle.

        Raises:
            MarginDataIncompleteError: if the vehicle data is incomplete.
        """
        with LogContext.bind(stock_id=data.stock_id or None):
            validation = validate_margin_data(data)
            if not validation.is_valid:
                logger.warning("vehicle_data_incomplete", extra={
                    "errors": list(validation.errors),
                })
                raise MarginDataIncompleteError(data.stock_id, validation.errors)

            return calculate_detailed_margins(
                data, as_of=self._clock.today(), policy=self._policy
            )

    def overview(self, vehicles: Iterable[VehicleMarginData]) -> MarginsOverview:
        """
        Calculate every complete vehicle, sorted by net profit descending.

        Incomplete vehicles are skipped and their stock ids returned in
        ``pending``; one without a stock id is only logged.
        """
        calculated: list[DetailedMarginCalculations] = []
        pending: list[str] = []
        for data in vehicles:
            try:
                calculated.append(self.calculate_for_vehicle(data))
            except MarginDataIncompleteError as exc:
                if exc.stock_id:
                    pending.append(exc.stock_id)

        calculated.sort(key=lambda row: row.net_profit, reverse=True)
        summary = summarize(calculated)

        logger.info("margins_overview_completed", extra={
            "total_vehicles": summary.total_vehicles,
            "pending_vehicles": len(pending),
            "total_net_profit": str(summary.total_net_profit),
        })
        return MarginsOverview(
            vehicles=tuple(calculated),
            summary=summary,
            pending=tuple(pending),
        )

    def overview_from_source(
        self,
        source_path: Path,
        source_format: str | None = None,
        options: dict[str, Any] | None = None,
    ) -> MarginsOverview:
        """
        Read a stock list file and build its overview.

        ``source_format`` defaults to the file suffix ("csv", "json",
        "jsonl", "xlsx").  ``options`` are passed to the adapter; a
        ``.jsonl`` file is read line by line unless ``format`` is given.
        Each row is mapped with ``margin_data_from_row``.
        """
        fmt = (source_format or source_path.suffix.lstrip(".")).lower()
        adapter = self._adapters.get(fmt)
        if not adapter:
            raise ValueError(f"No adapter for source_format {fmt!r}")

        read_options = dict(options or {})
        if fmt == "jsonl":
            read_options.setdefault("format", "jsonl")

        logger.info("margins_source_read_started", extra={
            "source_path": str(source_path),
            "source_format": fmt,
        })
        return self.overview(
            margin_data_from_row(row) for row in adapter.read(source_path, read_options)
        )
