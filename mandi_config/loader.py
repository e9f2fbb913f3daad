"""
Configuration Loader (``mandi_config.loader``).

Responsibility
--------------
Loads a YAML configuration file and parses it into the frozen
``mandi_config.schema`` dataclasses.  Callers obtain configuration through
``mandi_config.get_active_config()``; this module is its internal tooling.

Architecture position
---------------------
**Config layer**.  Depends on PyYAML and on kernel domain enums for value
validation.  The kernel never imports this module.

Invariants enforced
-------------------
* Unknown keys are rejected rather than ignored, so a misspelt setting can
  never silently fall back to its default.
* Every value is type and range checked; the error names the offending key.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown key or invalid value  -> ``ValueError``.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from mandi_config.schema import BookkeepingConfig, InvoicePrefixes, LowStockThresholds
from mandi_kernel.domain.amounts import MONEY_DECIMAL_PLACES

CRATE_BALANCE_POLICIES = ("allow_negative", "reject_over_return")

_TOP_LEVEL_KEYS = frozenset(
    {
        "config_id",
        "money_decimal_places",
        "currency",
        "invoice_prefixes",
        "crate_balance_policy",
        "low_stock_thresholds",
        "optimistic_retry_attempts",
    }
)
_PREFIX_KEYS = frozenset({"purchase", "sales", "digits"})
_THRESHOLD_KEYS = frozenset({"crates", "boxes", "kgs"})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the document is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top-level YAML must be a mapping, got {type(data).__name__}")
    return data


def _check_keys(section: str, data: Any, allowed: frozenset[str]) -> dict[str, Any]:
    if not isinstance(data, dict):
        raise ValueError(f"{section}: expected a mapping, got {type(data).__name__}")
    unknown = sorted(set(data) - allowed)
    if unknown:
        raise ValueError(f"{section}: unknown key(s) {', '.join(unknown)}")
    return data


def _int(key: str, value: Any, minimum: int) -> int:
    # bool is an int subclass; "true" is never a valid count.
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{key}: expected an integer, got {value!r}")
    if value < minimum:
        raise ValueError(f"{key}: must be >= {minimum}, got {value}")
    return value


def _prefix(key: str, value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{key}: expected a non-empty string, got {value!r}")
    return value.strip()


def _threshold(key: str, value: Any) -> Decimal:
    if isinstance(value, bool):
        raise ValueError(f"{key}: expected a number, got {value!r}")
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"{key}: expected a number, got {value!r}") from None
    if not amount.is_finite() or amount < 0:
        raise ValueError(f"{key}: must be a non-negative number, got {value!r}")
    return amount


def parse_invoice_prefixes(data: Any) -> InvoicePrefixes:
    data = _check_keys("invoice_prefixes", data, _PREFIX_KEYS)
    defaults = InvoicePrefixes()
    return InvoicePrefixes(
        purchase=_prefix("invoice_prefixes.purchase", data.get("purchase", defaults.purchase)),
        sales=_prefix("invoice_prefixes.sales", data.get("sales", defaults.sales)),
        digits=_int("invoice_prefixes.digits", data.get("digits", defaults.digits), 1),
    )


def parse_low_stock_thresholds(data: Any) -> LowStockThresholds:
    data = _check_keys("low_stock_thresholds", data, _THRESHOLD_KEYS)
    defaults = LowStockThresholds()
    return LowStockThresholds(
        crates=_threshold("low_stock_thresholds.crates", data.get("crates", defaults.crates)),
        boxes=_threshold("low_stock_thresholds.boxes", data.get("boxes", defaults.boxes)),
        kgs=_threshold("low_stock_thresholds.kgs", data.get("kgs", defaults.kgs)),
    )


def parse_config(data: dict[str, Any]) -> BookkeepingConfig:
    """
    Build a BookkeepingConfig from a parsed YAML mapping.

    Keys left out take the schema defaults.

    Raises:
        ValueError: unknown key or invalid value.
    """
    data = _check_keys("config", data, _TOP_LEVEL_KEYS)
    defaults = BookkeepingConfig()

    places = _int(
        "money_decimal_places",
        data.get("money_decimal_places", defaults.money_decimal_places),
        0,
    )
    if places != MONEY_DECIMAL_PLACES:
        # Money columns are stored at a fixed scale.
        raise ValueError(
            f"money_decimal_places: only {MONEY_DECIMAL_PLACES} is supported, got {places}"
        )

    currency = data.get("currency", defaults.currency)
    if not isinstance(currency, str) or len(currency) != 3 or not currency.isalpha():
        raise ValueError(f"currency: expected a three-letter code, got {currency!r}")

    policy = data.get("crate_balance_policy", defaults.crate_balance_policy)
    if policy not in CRATE_BALANCE_POLICIES:
        raise ValueError(
            f"crate_balance_policy: expected one of {list(CRATE_BALANCE_POLICIES)}, got {policy!r}"
        )

    config_id = data.get("config_id", defaults.config_id)
    if not isinstance(config_id, str) or not config_id.strip():
        raise ValueError(f"config_id: expected a non-empty string, got {config_id!r}")

    return BookkeepingConfig(
        config_id=config_id,
        money_decimal_places=places,
        currency=currency.upper(),
        invoice_prefixes=parse_invoice_prefixes(data.get("invoice_prefixes", {})),
        crate_balance_policy=policy,
        low_stock_thresholds=parse_low_stock_thresholds(data.get("low_stock_thresholds", {})),
        optimistic_retry_attempts=_int(
            "optimistic_retry_attempts",
            data.get("optimistic_retry_attempts", defaults.optimistic_retry_attempts),
            1,
        ),
    )


def load_config(path: Path) -> BookkeepingConfig:
    return parse_config(load_yaml_file(path))
