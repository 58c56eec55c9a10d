"""
Configuration Loader (``dealer_config.loader``).

Responsibility
--------------
Loads YAML configuration sets and parses them into typed
``dealer_config.schema`` dataclasses.  Services should not call this
directly; the single public entry point for runtime config is
``dealer_config.get_active_config()``.

Invariants enforced
-------------------
* Every parsed object is a frozen dataclass from ``schema.py``.
* Validation problems are collected and raised together as one
  ``ConfigValidationError``; no silent defaults for required keys.
* Unknown keys inside a section are rejected rather than ignored.
* ``compute_checksum`` produces a deterministic SHA-256 hash for
  configuration identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing keys or invalid values  -> ``ConfigValidationError``.
"""

from __future__ import annotations

from dataclasses import fields
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from dealer_config.schema import CurrencyFormat, DealerConfig, ProfitBands, VatPolicy
from dealer_kernel.exceptions import ConfigValidationError
from dealer_kernel.utils.hashing import hash_payload


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    return hash_payload(data)


class _Collector:
    """Accumulates validation errors while parsing one set."""

    def __init__(self) -> None:
        self.errors: list[str] = []

    def decimal(self, section: dict[str, Any], key: str, default: Decimal, path: str) -> Decimal:
        if key not in section:
            return default
        raw = section[key]
        try:
            value = Decimal(str(raw))
        except (InvalidOperation, ValueError):
            self.errors.append(f"{path}.{key}: not a number ({raw!r})")
            return default
        if not value.is_finite():
            self.errors.append(f"{path}.{key}: must be finite")
            return default
        return value

    def section(self, data: dict[str, Any], key: str, schema: type) -> dict[str, Any]:
        raw = data.get(key) or {}
        if not isinstance(raw, dict):
            self.errors.append(f"{key}: expected a mapping")
            return {}
        known = {f.name for f in fields(schema)}
        for name in sorted(set(raw) - known, key=str):
            self.errors.append(f"{key}.{name}: unknown key")
        return raw


def parse_vat(data: dict[str, Any], collector: _Collector) -> VatPolicy:
    defaults = VatPolicy()
    vat = VatPolicy(
        fraction_denominator=collector.decimal(
            data, "fraction_denominator", defaults.fraction_denominator, "vat"
        ),
    )
    if vat.fraction_denominator <= 0:
        collector.errors.append("vat.fraction_denominator: must be positive")
    return vat


def parse_profit_bands(data: dict[str, Any], collector: _Collector) -> ProfitBands:
    defaults = ProfitBands()
    bands = ProfitBands(
        low_max_percent=collector.decimal(
            data, "low_max_percent", defaults.low_max_percent, "profit_bands"
        ),
        medium_max_percent=collector.decimal(
            data, "medium_max_percent", defaults.medium_max_percent, "profit_bands"
        ),
    )
    if bands.low_max_percent > bands.medium_max_percent:
        collector.errors.append(
            "profit_bands: low_max_percent must not exceed medium_max_percent"
        )
    return bands


def parse_currency_format(data: dict[str, Any], collector: _Collector) -> CurrencyFormat:
    defaults = CurrencyFormat()
    places = data.get("decimal_places", defaults.decimal_places)
    if not isinstance(places, int) or isinstance(places, bool) or places < 0:
        collector.errors.append(f"currency.decimal_places: expected a non-negative integer ({places!r})")
        places = defaults.decimal_places
    return CurrencyFormat(
        symbol=str(data.get("symbol", defaults.symbol)),
        decimal_places=places,
    )


def parse_config(data: dict[str, Any], source: str = "<memory>") -> DealerConfig:
    """
    Parse a ``DealerConfig`` from a dict loaded from YAML.

    Raises:
        ConfigValidationError: listing every problem found in the set.
    """
    collector = _Collector()

    for key in ("config_id", "version"):
        if key not in data:
            collector.errors.append(f"{key}: required")

    version = data.get("version", 0)
    if "version" in data and (not isinstance(version, int) or isinstance(version, bool)):
        collector.errors.append(f"version: expected an integer ({version!r})")
        version = 0

    config = DealerConfig(
        config_id=str(data.get("config_id", "")),
        version=version,
        dealer_id=str(data.get("dealer_id", "*")),
        vat=parse_vat(collector.section(data, "vat", VatPolicy), collector),
        profit_bands=parse_profit_bands(
            collector.section(data, "profit_bands", ProfitBands), collector
        ),
        currency=parse_currency_format(
            collector.section(data, "currency", CurrencyFormat), collector
        ),
        checksum=compute_checksum(data),
    )

    if collector.errors:
        raise ConfigValidationError(source, collector.errors)
    return config


def load_config_file(path: Path) -> DealerConfig:
    """Load and parse one YAML configuration set."""
    return parse_config(load_yaml_file(path), source=str(path))
