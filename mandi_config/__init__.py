"""
mandi_config -- single public entrypoint for bookkeeping configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  No other component may read configuration
    files directly.  Returns a frozen ``BookkeepingConfig``.

Architecture position:
    Configuration -- YAML-driven, validated on load.
    This package sits above ``mandi_kernel`` and below ``mandi_modules``.
    The kernel MUST NEVER import from ``mandi_config``; ``bridges``
    translates configuration into kernel service parameters.

Invariants enforced:
    - Single entrypoint: all runtime config flows through ``get_active_config()``.
    - Strict parsing: unknown keys and invalid values are rejected.

Failure modes:
    - ``FileNotFoundError`` -- the configuration file does not exist.
    - ``ValueError`` -- unknown key or invalid value.

Audit relevance:
    Every successful ``get_active_config()`` call emits a ``CONFIG_TRACE``
    log entry naming the config id, source path and the settings that
    change ledger behaviour.
"""

from __future__ import annotations

import logging
from pathlib import Path

from mandi_config.loader import load_config
from mandi_config.schema import BookkeepingConfig, InvoicePrefixes, LowStockThresholds

_logger = logging.getLogger("mandi_kernel.config")

_DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"


def get_active_config(config_path: Path | str | None = None) -> BookkeepingConfig:
    """The ONLY public configuration entrypoint.

    Args:
        config_path: Override path to a YAML configuration file.
            Defaults to mandi_config/sets/default.yaml.

    Returns:
        BookkeepingConfig -- frozen, validated.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If validation fails.
    """
    path = Path(config_path) if config_path is not None else _DEFAULT_CONFIG_PATH
    config = load_config(path)

    _logger.info(
        "CONFIG_TRACE",
        extra={
            "trace_type": "CONFIG_TRACE",
            "config_id": config.config_id,
            "config_path": str(path),
            "currency": config.currency,
            "crate_balance_policy": config.crate_balance_policy,
            "optimistic_retry_attempts": config.optimistic_retry_attempts,
        },
    )
    return config


__all__ = [
    "BookkeepingConfig",
    "InvoicePrefixes",
    "LowStockThresholds",
    "get_active_config",
]
