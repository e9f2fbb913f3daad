"""
Tests for the YAML configuration loader and ``get_active_config``.
"""

from decimal import Decimal
from pathlib import Path

import pytest
import yaml

from mandi_config import get_active_config
from mandi_config.bridges import (
    crate_balance_policy,
    invoice_service_options,
    low_stock_thresholds,
)
from mandi_config.loader import parse_config
from mandi_kernel.domain.quantities import ItemUnit
from mandi_kernel.services.crate_tracker import CrateBalancePolicy


def _write(tmp_path: Path, data: dict) -> Path:
    path = tmp_path / "mandi.yaml"
    path.write_text(yaml.safe_dump(data))
    return path


class TestDefaultConfig:
    def test_shipped_defaults(self):
        config = get_active_config()
        assert config.config_id == "default"
        assert config.currency == "INR"
        assert config.money_decimal_places == 2
        assert config.invoice_prefixes.purchase == "PI"
        assert config.invoice_prefixes.sales == "SI"
        assert config.invoice_prefixes.digits == 6
        assert config.crate_balance_policy == "allow_negative"
        assert config.low_stock_thresholds.kgs == Decimal("50")
        assert config.optimistic_retry_attempts == 3

    def test_config_trace_logged(self, captured_logs):
        get_active_config()
        traces = [r for r in captured_logs() if r["message"] == "CONFIG_TRACE"]
        assert traces[-1]["logger"] == "mandi_kernel.config"
        assert traces[-1]["config_id"] == "default"
        assert traces[-1]["crate_balance_policy"] == "allow_negative"

    def test_config_is_frozen(self):
        config = get_active_config()
        with pytest.raises(AttributeError):
            config.currency = "USD"


class TestLoadFromFile:
    def test_partial_file_takes_defaults(self, tmp_path):
        path = _write(tmp_path, {"config_id": "azadpur", "invoice_prefixes": {"sales": "AZ-"}})
        config = get_active_config(path)
        assert config.config_id == "azadpur"
        assert config.invoice_prefixes.sales == "AZ-"
        assert config.invoice_prefixes.purchase == "PI"

    def test_empty_file_is_all_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert get_active_config(path).config_id == "default"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_config(tmp_path / "nope.yaml")

    def test_top_level_must_be_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ValueError):
            get_active_config(path)


class TestValidation:
    @pytest.mark.parametrize(
        "data, key",
        [
            ({"colour": "blue"}, "colour"),
            ({"invoice_prefixes": {"credit_note": "CN"}}, "credit_note"),
            ({"low_stock_thresholds": {"sacks": 3}}, "sacks"),
            ({"currency": "RUPEE"}, "currency"),
            ({"crate_balance_policy": "ignore"}, "crate_balance_policy"),
            ({"money_decimal_places": 3}, "money_decimal_places"),
            ({"optimistic_retry_attempts": 0}, "optimistic_retry_attempts"),
            ({"optimistic_retry_attempts": True}, "optimistic_retry_attempts"),
            ({"invoice_prefixes": {"digits": 0}}, "invoice_prefixes.digits"),
            ({"invoice_prefixes": {"sales": "  "}}, "invoice_prefixes.sales"),
            ({"low_stock_thresholds": {"kgs": -1}}, "low_stock_thresholds.kgs"),
            ({"low_stock_thresholds": {"kgs": "lots"}}, "low_stock_thresholds.kgs"),
        ],
    )
    def test_invalid_value_names_the_key(self, data, key):
        with pytest.raises(ValueError, match=key):
            parse_config(data)

    def test_currency_upper_cased(self):
        assert parse_config({"currency": "inr"}).currency == "INR"


class TestBridges:
    def test_invoice_service_options(self):
        config = parse_config(
            {
                "invoice_prefixes": {"purchase": "P-", "sales": "S-", "digits": 4},
                "crate_balance_policy": "reject_over_return",
            }
        )
        assert invoice_service_options(config) == {
            "crate_policy": CrateBalancePolicy.REJECT_OVER_RETURN,
            "purchase_prefix": "P-",
            "sales_prefix": "S-",
            "number_digits": 4,
        }
        assert crate_balance_policy(config) is CrateBalancePolicy.REJECT_OVER_RETURN

    def test_thresholds_by_unit(self):
        thresholds = low_stock_thresholds(parse_config({"low_stock_thresholds": {"crates": 2.5}}))
        assert thresholds[ItemUnit.CRATES] == Decimal("2.5")
        assert thresholds[ItemUnit.BOXES] == Decimal("10")
