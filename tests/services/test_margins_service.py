"""Tests for MarginsService and the margins overview."""

import json
from dataclasses import replace
from datetime import datetime
from decimal import Decimal

import openpyxl
import pytest

from dealer_config.schema import DealerConfig, ProfitBands
from dealer_engines.margins import MarginPolicy, ProfitCategory, ProfitStatus
from dealer_ingestion.adapters import CsvSourceAdapter
from dealer_kernel.exceptions import MarginDataIncompleteError
from dealer_services.margins_service import MarginsService, MarginsSummary, summarize


@pytest.fixture
def stock(sample_vehicle):
    """High-margin, medium-margin and loss-making vehicles plus one incomplete."""
    return [
        replace(sample_vehicle, stock_id="LOSS", sale_price=Decimal("8000"), total_costs=Decimal("2000")),
        sample_vehicle,
        replace(sample_vehicle, stock_id="PENDING", purchase_price=Decimal("0")),
        replace(sample_vehicle, stock_id="MEDIUM", sale_price=Decimal("13000")),
    ]


class TestCalculateForVehicle:

    def test_uses_default_policy_without_config(self, deterministic_clock, sample_vehicle):
        service = MarginsService(deterministic_clock)

        result = service.calculate_for_vehicle(sample_vehicle)

        assert service.policy == MarginPolicy()
        assert result.net_profit == Decimal("3700")
        assert result.profit_category is ProfitCategory.HIGH

    def test_unsold_vehicle_counts_to_clock_date(self, deterministic_clock, sample_vehicle):
        service = MarginsService(deterministic_clock)

        result = service.calculate_for_vehicle(replace(sample_vehicle, sale_date=None))

        assert result.days_in_stock == 138
        assert not result.is_sold

    def test_clock_advance_moves_days_in_stock(self, deterministic_clock, sample_vehicle):
        service = MarginsService(deterministic_clock)
        unsold = replace(sample_vehicle, sale_date=None)

        deterministic_clock.advance_days(10)

        assert service.calculate_for_vehicle(unsold).days_in_stock == 148

    def test_config_profit_bands_apply(self, deterministic_clock, sample_vehicle):
        config = DealerConfig(
            config_id="WIDE-BANDS",
            version=1,
            profit_bands=ProfitBands(low_max_percent=Decimal("30"), medium_max_percent=Decimal("40")),
        )
        service = MarginsService(deterministic_clock, config)

        result = service.calculate_for_vehicle(sample_vehicle)

        assert service.policy.low_max_percent == Decimal("30")
        assert result.profit_category is ProfitCategory.LOW

    def test_incomplete_vehicle_raises(self, deterministic_clock, sample_vehicle):
        service = MarginsService(deterministic_clock)
        incomplete = replace(sample_vehicle, sale_price=Decimal("0"), purchase_date=None)

        with pytest.raises(MarginDataIncompleteError) as exc_info:
            service.calculate_for_vehicle(incomplete)

        assert exc_info.value.code == "VEHICLE_DATA_INCOMPLETE"
        assert exc_info.value.stock_id == "TEST001"
        assert exc_info.value.errors == [
            "Valid sale price is required",
            "Purchase date is required",
        ]

    def test_incomplete_vehicle_is_logged(self, deterministic_clock, sample_vehicle, captured_logs):
        service = MarginsService(deterministic_clock)

        with pytest.raises(MarginDataIncompleteError):
            service.calculate_for_vehicle(replace(sample_vehicle, purchase_price=Decimal("0")))

        warnings = [r for r in captured_logs() if r["message"] == "vehicle_data_incomplete"]
        assert len(warnings) == 1
        assert warnings[0]["stock_id"] == "TEST001"
        assert warnings[0]["errors"] == ["Valid purchase price is required"]


class TestOverview:

    def test_sorted_by_net_profit_descending(self, deterministic_clock, stock):
        overview = MarginsService(deterministic_clock).overview(stock)

        assert [v.stock_id for v in overview.vehicles] == ["TEST001", "MEDIUM", "LOSS"]
        assert [v.net_profit for v in overview.vehicles] == [
            Decimal("3700"),
            Decimal("1700"),
            Decimal("-4100"),
        ]

    def test_incomplete_vehicles_are_pending(self, deterministic_clock, stock):
        overview = MarginsService(deterministic_clock).overview(stock)

        assert overview.pending == ("PENDING",)

    def test_incomplete_vehicle_without_stock_id_is_not_pending(
        self, deterministic_clock, sample_vehicle, captured_logs
    ):
        overview = MarginsService(deterministic_clock).overview([
            sample_vehicle,
            replace(sample_vehicle, stock_id="", sale_price=Decimal("0")),
        ])

        assert overview.pending == ()
        assert [v.stock_id for v in overview.vehicles] == ["TEST001"]
        warnings = [r for r in captured_logs() if r["message"] == "vehicle_data_incomplete"]
        assert len(warnings) == 1

    def test_summary(self, deterministic_clock, stock):
        summary = MarginsService(deterministic_clock).overview(stock).summary

        assert summary.total_vehicles == 3
        assert summary.total_gross_profit == Decimal("6000")
        assert summary.total_net_profit == Decimal("1300")
        assert summary.average_days_in_stock == Decimal("60")
        assert summary.category_counts == {
            ProfitCategory.LOW: 1,
            ProfitCategory.MEDIUM: 1,
            ProfitCategory.HIGH: 1,
        }

    def test_loss_row_status(self, deterministic_clock, stock):
        overview = MarginsService(deterministic_clock).overview(stock)

        assert overview.vehicles[-1].profit_status is ProfitStatus.LOSS

    def test_empty_stock(self, deterministic_clock):
        overview = MarginsService(deterministic_clock).overview([])

        assert overview.vehicles == ()
        assert overview.pending == ()
        assert overview.summary == MarginsSummary()

    def test_logs_overview(self, deterministic_clock, stock, captured_logs):
        MarginsService(deterministic_clock).overview(stock)

        completed = [r for r in captured_logs() if r["message"] == "margins_overview_completed"]
        assert len(completed) == 1
        assert completed[0]["total_vehicles"] == 3
        assert completed[0]["pending_vehicles"] == 1
        assert completed[0]["total_net_profit"] == "1300"


class TestSummarize:

    def test_empty_has_zero_averages_and_all_categories(self):
        summary = summarize([])

        assert summary.average_net_margin == Decimal("0")
        assert summary.category_counts == {category: 0 for category in ProfitCategory}

    def test_average_net_margin(self, deterministic_clock, sample_vehicle):
        service = MarginsService(deterministic_clock)
        rows = [
            service.calculate_for_vehicle(sample_vehicle),
            service.calculate_for_vehicle(replace(sample_vehicle, sale_price=Decimal("13000"))),
        ]

        summary = summarize(rows)

        expected = (rows[0].net_margin_percent + rows[1].net_margin_percent) / 2
        assert summary.average_net_margin == expected


STOCK_CSV = """\
stockId,registration,costOfPurchase,salePrice,incVatCostsTotal,exVatCostsTotal,fixedCostsTotal,dateOfPurchase,saleDate,isCommercialPurchase
TEST001,AB12 CDE,"£10,000.00","£15,000.00",600,400,200,15/01/2024,15/03/2024,No
MEDIUM,CD34 EFG,10000,13000,600,400,200,2024-01-15,2024-03-15,No
PENDING,EF56 GHI,,13000,600,400,200,2024-01-15,2024-03-15,No
,GH78 IJK,10000,13000,600,400,200,2024-01-15,2024-03-15,No
"""


class TestOverviewFromSource:
    """Stock lists read through the ingestion source adapters."""

    def test_csv_stock_list(self, deterministic_clock, tmp_path):
        path = tmp_path / "stock.csv"
        path.write_text(STOCK_CSV, encoding="utf-8")

        overview = MarginsService(deterministic_clock).overview_from_source(path)

        assert [v.stock_id for v in overview.vehicles] == ["TEST001", "MEDIUM"]
        assert [v.net_profit for v in overview.vehicles] == [Decimal("3700"), Decimal("1700")]
        assert overview.pending == ("PENDING",)

    def test_jsonl_stock_list(self, deterministic_clock, tmp_path):
        path = tmp_path / "stock.jsonl"
        rows = [
            {"stockId": "J1", "costOfPurchase": "10000", "salePrice": "15000",
             "incVatCostsTotal": "600", "exVatCostsTotal": "600",
             "dateOfPurchase": "2024-01-15", "saleDate": "2024-03-15"},
            {"stockId": "J2", "salePrice": "9000"},
        ]
        path.write_text("\n".join(json.dumps(r) for r in rows) + "\n", encoding="utf-8")

        overview = MarginsService(deterministic_clock).overview_from_source(path)

        assert [v.stock_id for v in overview.vehicles] == ["J1"]
        assert overview.vehicles[0].net_profit == Decimal("3700")
        assert overview.pending == ("J2",)

    def test_xlsx_stock_list(self, deterministic_clock, tmp_path):
        path = tmp_path / "stock.xlsx"
        wb = openpyxl.Workbook()
        ws = wb.active
        ws.title = "Stock"
        ws.append(["stockId", "costOfPurchase", "salePrice", "incVatCostsTotal",
                   "exVatCostsTotal", "dateOfPurchase", "saleDate"])
        ws.append(["X1", 10000, 15000, 600, 600, datetime(2024, 1, 15), datetime(2024, 3, 15)])
        wb.save(path)

        overview = MarginsService(deterministic_clock).overview_from_source(
            path, options={"sheet": "Stock"}
        )

        assert [v.stock_id for v in overview.vehicles] == ["X1"]
        assert overview.vehicles[0].days_in_stock == 60

    def test_explicit_format_and_injected_adapters(self, deterministic_clock, tmp_path):
        path = tmp_path / "stock.txt"
        path.write_text(STOCK_CSV, encoding="utf-8")
        service = MarginsService(deterministic_clock, adapters={"csv": CsvSourceAdapter()})

        overview = service.overview_from_source(path, source_format="CSV")

        assert overview.summary.total_vehicles == 2

    def test_unknown_format_raises(self, deterministic_clock, tmp_path):
        path = tmp_path / "stock.txt"
        path.write_text(STOCK_CSV, encoding="utf-8")

        with pytest.raises(ValueError, match="txt"):
            MarginsService(deterministic_clock).overview_from_source(path)
