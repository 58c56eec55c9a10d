"""
dealer_config -- single public entrypoint for dealer configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  Services receive the returned
    ``DealerConfig`` and translate it into engine inputs (for example
    ``DealerConfig.margin_policy()``); engines never read configuration.

Architecture position:
    Configuration -- YAML-driven, validated at load time.  This package
    sits above ``dealer_kernel`` / ``dealer_engines`` and below
    ``dealer_services``.  The kernel MUST NEVER import from
    ``dealer_config``.

Failure modes:
    - ``ConfigNotFoundError`` -- no set for the dealer and no default set.
    - ``ConfigValidationError`` -- a set fails validation.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``DEALER_CONFIG_TRACE`` log entry with the config_id, version,
    dealer scope and checksum, tying each calculation to the exact
    configuration that governed it.
"""

from __future__ import annotations

import logging
from pathlib import Path

from dealer_config.loader import load_config_file
from dealer_config.schema import CurrencyFormat, DealerConfig, ProfitBands, VatPolicy
from dealer_kernel.exceptions import ConfigNotFoundError

_logger = logging.getLogger("dealer_kernel.config")

# Default configuration sets directory
_DEFAULT_CONFIG_DIR = Path(__file__).parent / "sets"

__all__ = [
    "CurrencyFormat",
    "DealerConfig",
    "ProfitBands",
    "VatPolicy",
    "get_active_config",
]


def get_active_config(
    dealer_id: str = "*",
    config_dir: Path | None = None,
) -> DealerConfig:
    """The ONLY public configuration entrypoint.

    Scans ``*.yaml`` sets in ``config_dir`` (default ``dealer_config/sets``)
    and returns the set for ``dealer_id``, falling back to the default set
    (``dealer_id: "*"``).  When several sets match at the same specificity
    the highest ``version`` wins.

    Raises:
        ConfigNotFoundError: If no set matches and there is no default.
        ConfigValidationError: If a candidate set fails validation.
    """
    sets_dir = Path(config_dir) if config_dir is not None else _DEFAULT_CONFIG_DIR
    config = _find_matching_config(sets_dir, dealer_id)

    _logger.info(
        "DEALER_CONFIG_TRACE",
        extra={
            "trace_type": "DEALER_CONFIG_TRACE",
            "config_set_id": config.config_id,
            "config_set_version": config.version,
            "checksum": config.checksum,
            "requested_dealer_id": dealer_id,
            "scope_dealer_id": config.dealer_id,
        },
    )
    return config


def _find_matching_config(sets_dir: Path, dealer_id: str) -> DealerConfig:
    if not sets_dir.is_dir():
        raise ConfigNotFoundError(dealer_id, str(sets_dir))

    specific: list[DealerConfig] = []
    defaults: list[DealerConfig] = []
    for path in sorted(sets_dir.glob("*.yaml")):
        config = load_config_file(path)
        if config.dealer_id == dealer_id and not config.is_default:
            specific.append(config)
        elif config.is_default:
            defaults.append(config)

    candidates = specific or defaults
    if not candidates:
        raise ConfigNotFoundError(dealer_id, str(sets_dir))
    return max(candidates, key=lambda c: c.version)
