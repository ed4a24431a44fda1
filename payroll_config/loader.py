"""
Configuration Loader (``payroll_config.loader``).

Responsibility
--------------
Loads a YAML configuration file and parses it into a frozen
``PayrollConfig``.  Runtime callers go through
``payroll_config.get_active_config()``; this module is the parsing step.

Invariants enforced
-------------------
* The payroll ledger address is required and must be a well-formed
  address.  Placeholder values copied from documentation ("0x12…ab",
  "0x12...ab") are rejected explicitly.
* The settlement token address is optional; when present it must be
  well-formed.
* ``compute_checksum`` produces a deterministic SHA-256 hash for
  configuration identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing or invalid ledger identity  -> ``ConfigurationError``.
* Invalid windows or numeric settings  -> ``ConfigurationError``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from payroll_config.schema import (
    DEFAULT_BLOCK_TOLERANCE,
    DEFAULT_DECIMALS,
    DEFAULT_EXPLORER_TX_BASE,
    DEFAULT_HISTORY_WINDOW,
    DEFAULT_LOGS_WINDOW,
    DEFAULT_PAGE_SIZE,
    DEFAULT_RPC_MAX_CONCURRENCY,
    DEFAULT_SETTLEMENT_CACHE_URL,
    PayrollConfig,
)
from payroll_kernel.domain.blocks import BlockWindowSpec
from payroll_kernel.domain.values import normalize_address
from payroll_kernel.exceptions import ConfigurationError


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ConfigurationError: if the top level is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigurationError(str(path), "top level must be a mapping")
    return data


def parse_ledger_address(value: Any) -> str:
    """Validate the payroll ledger identity."""
    raw = str(value or "").strip()
    if not raw:
        raise ConfigurationError("ledger_address", "no payroll ledger address configured")
    if "…" in raw or "..." in raw:
        raise ConfigurationError("ledger_address", "address is an elided placeholder")
    return normalize_address(raw, "ledger_address")


def _positive_int(data: dict[str, Any], key: str, default: int) -> int:
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ConfigurationError(key, f"expected a non-negative integer, got {value!r}")
    return value


def _window(data: dict[str, Any], key: str, default: str) -> str:
    value = str(data.get(key, default))
    BlockWindowSpec.parse(value)
    return value


def parse_config(data: dict[str, Any]) -> PayrollConfig:
    """Parse a ``PayrollConfig`` from a dict (YAML top level or ``payroll:`` key)."""
    data = data.get("payroll", data)

    token = data.get("settlement_token_address")
    token_address = (
        normalize_address(str(token), "settlement_token_address")
        if token not in (None, "")
        else None
    )

    page_size = _positive_int(data, "default_page_size", DEFAULT_PAGE_SIZE)
    if page_size == 0:
        raise ConfigurationError("default_page_size", "must be at least 1")

    rpc_concurrency = _positive_int(data, "rpc_max_concurrency", DEFAULT_RPC_MAX_CONCURRENCY)
    if rpc_concurrency == 0:
        raise ConfigurationError("rpc_max_concurrency", "must be at least 1")

    return PayrollConfig(
        ledger_address=parse_ledger_address(data.get("ledger_address")),
        settlement_token_address=token_address,
        rpc_url=data.get("rpc_url") or None,
        network_name=str(data.get("network_name", "Sepolia")),
        decimals=_positive_int(data, "decimals", DEFAULT_DECIMALS),
        explorer_tx_base=str(data.get("explorer_tx_base", DEFAULT_EXPLORER_TX_BASE)),
        block_tolerance=_positive_int(data, "block_tolerance", DEFAULT_BLOCK_TOLERANCE),
        history_window=_window(data, "history_window", DEFAULT_HISTORY_WINDOW),
        logs_window=_window(data, "logs_window", DEFAULT_LOGS_WINDOW),
        default_page_size=page_size,
        settlement_cache_url=str(
            data.get("settlement_cache_url", DEFAULT_SETTLEMENT_CACHE_URL)
        ),
        rpc_timeout_seconds=float(data.get("rpc_timeout_seconds", 30.0)),
        rpc_max_concurrency=rpc_concurrency,
    )


def compute_checksum(config: PayrollConfig) -> str:
    """Deterministic SHA-256 of the canonical JSON form of a config."""
    canonical = json.dumps(config.to_dict(), sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()
