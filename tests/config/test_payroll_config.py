"""
Tests for payroll configuration loading.

Covers:
- YAML parsing into PayrollConfig, with and without a ``payroll:`` key
- Ledger identity validation (missing, malformed, elided placeholder)
- Window and numeric settings validation
- get_active_config: path resolution, environment fallback, trace log
- Checksum determinism
"""

import pytest

from payroll_config import CONFIG_PATH_ENV, get_active_config
from payroll_config.loader import compute_checksum, load_yaml_file, parse_config
from payroll_config.schema import DEFAULT_HISTORY_WINDOW, PayrollConfig
from payroll_kernel.exceptions import (
    ConfigurationError,
    InvalidAddressError,
    InvalidBlockWindowError,
)

LEDGER = "0x" + "11" * 20
TOKEN = "0x" + "22" * 20

YAML_TEXT = f"""
payroll:
  ledger_address: "{LEDGER.upper().replace('0X', '0x')}"
  settlement_token_address: "{TOKEN}"
  rpc_url: https://rpc.sepolia.example
  block_tolerance: 500
  history_window: latest-1000
  default_page_size: 10
"""


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "payroll.yaml"
    path.write_text(YAML_TEXT)
    return path


class TestParseConfig:
    """Tests for parse_config."""

    def test_defaults(self):
        config = parse_config({"ledger_address": LEDGER})

        assert config.settlement_token_address is None
        assert not config.has_settlement_token
        assert config.decimals == 6
        assert config.block_tolerance == 1000
        assert config.history_window == DEFAULT_HISTORY_WINDOW
        assert config.logs_window == "latest-5000"
        assert config.default_page_size == 25
        assert config.rpc_max_concurrency == 8

    def test_nested_payroll_key(self, config_file):
        config = parse_config(load_yaml_file(config_file))

        assert config.ledger_address == LEDGER
        assert config.settlement_token_address == TOKEN
        assert config.block_tolerance == 500
        assert config.default_page_size == 10
        assert config.rpc_url == "https://rpc.sepolia.example"

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_missing_ledger(self, value):
        with pytest.raises(ConfigurationError) as exc_info:
            parse_config({"ledger_address": value})

        assert exc_info.value.setting == "ledger_address"

    @pytest.mark.parametrize("value", ["0x12…ab", "0x12...ab"])
    def test_elided_placeholder_rejected(self, value):
        with pytest.raises(ConfigurationError, match="placeholder"):
            parse_config({"ledger_address": value})

    def test_malformed_ledger(self):
        with pytest.raises(InvalidAddressError):
            parse_config({"ledger_address": "0x1234"})

    def test_malformed_token(self):
        with pytest.raises(InvalidAddressError) as exc_info:
            parse_config({"ledger_address": LEDGER, "settlement_token_address": "nope"})

        assert exc_info.value.setting == "settlement_token_address"

    def test_invalid_window(self):
        with pytest.raises(InvalidBlockWindowError):
            parse_config({"ledger_address": LEDGER, "logs_window": "yesterday"})

    @pytest.mark.parametrize("key,value", [
        ("block_tolerance", -1),
        ("decimals", "six"),
        ("default_page_size", 0),
        ("rpc_max_concurrency", 0),
    ])
    def test_invalid_numbers(self, key, value):
        with pytest.raises(ConfigurationError):
            parse_config({"ledger_address": LEDGER, key: value})

    def test_config_is_frozen(self):
        config = parse_config({"ledger_address": LEDGER})

        with pytest.raises(AttributeError):
            config.decimals = 18


class TestLoadYaml:
    """Tests for load_yaml_file."""

    def test_top_level_must_be_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")

        with pytest.raises(ConfigurationError):
            load_yaml_file(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_yaml_file(tmp_path / "absent.yaml")


class TestGetActiveConfig:
    """Tests for the single configuration entrypoint."""

    def test_explicit_path(self, config_file):
        assert isinstance(get_active_config(config_file), PayrollConfig)

    def test_environment_fallback(self, config_file, monkeypatch):
        monkeypatch.setenv(CONFIG_PATH_ENV, str(config_file))

        assert get_active_config().ledger_address == LEDGER

    def test_no_source(self, monkeypatch):
        monkeypatch.delenv(CONFIG_PATH_ENV, raising=False)

        with pytest.raises(ConfigurationError):
            get_active_config()

    def test_emits_config_trace(self, config_file, captured_logs):
        config = get_active_config(config_file)

        traces = [r for r in captured_logs() if r["message"] == "PAYROLL_CONFIG_TRACE"]
        assert len(traces) == 1
        assert traces[0]["ledger_address"] == LEDGER
        assert traces[0]["checksum"] == compute_checksum(config)


class TestChecksum:
    """Tests for configuration checksums."""

    def test_deterministic(self):
        a = parse_config({"ledger_address": LEDGER})
        b = parse_config({"ledger_address": LEDGER.upper().replace("0X", "0x")})

        assert compute_checksum(a) == compute_checksum(b)
        assert len(compute_checksum(a)) == 64

    def test_changes_with_settings(self):
        a = parse_config({"ledger_address": LEDGER})
        b = parse_config({"ledger_address": LEDGER, "block_tolerance": 10})

        assert compute_checksum(a) != compute_checksum(b)
