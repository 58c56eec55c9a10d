"""
DealerConfig schema.

Frozen dataclasses that YAML configuration sets are parsed into by the
loader. A set with ``dealer_id: "*"`` is the default; a set naming a
specific dealer overrides it for that dealer.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from dealer_engines.margins import MarginPolicy

# ---------------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class VatPolicy:
    """VAT treatment of VAT-inclusive amounts."""

    # VAT portion of a VAT-inclusive amount is amount / fraction_denominator
    fraction_denominator: Decimal = Decimal("6")


@dataclass(frozen=True)
class ProfitBands:
    """Net margin % thresholds: <= low_max is LOW, <= medium_max is MEDIUM."""

    low_max_percent: Decimal = Decimal("10")
    medium_max_percent: Decimal = Decimal("20")


@dataclass(frozen=True)
class CurrencyFormat:
    """How amounts are rendered for display and export."""

    symbol: str = "£"
    decimal_places: int = 2


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DealerConfig:
    """Active configuration for one dealer."""

    config_id: str
    version: int
    dealer_id: str = "*"
    vat: VatPolicy = field(default_factory=VatPolicy)
    profit_bands: ProfitBands = field(default_factory=ProfitBands)
    currency: CurrencyFormat = field(default_factory=CurrencyFormat)
    checksum: str = ""

    @property
    def is_default(self) -> bool:
        return self.dealer_id == "*"

    def margin_policy(self) -> MarginPolicy:
        """Translate this configuration into the margin engine's policy."""
        return MarginPolicy(
            vat_fraction_denominator=self.vat.fraction_denominator,
            low_max_percent=self.profit_bands.low_max_percent,
            medium_max_percent=self.profit_bands.medium_max_percent,
        )
