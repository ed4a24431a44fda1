"""
PayrollConfig schema.

The human-authored YAML file is parsed into this frozen dataclass by the
loader.  Everything downstream receives a ``PayrollConfig`` instance; no
component reads YAML or environment variables itself.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

DEFAULT_DECIMALS = 6
DEFAULT_BLOCK_TOLERANCE = 1000
DEFAULT_HISTORY_WINDOW = "latest-500000"
DEFAULT_LOGS_WINDOW = "latest-5000"
DEFAULT_PAGE_SIZE = 25
DEFAULT_EXPLORER_TX_BASE = "https://sepolia.etherscan.io/tx/"
DEFAULT_SETTLEMENT_CACHE_URL = "sqlite:///payroll_settlements.db"
DEFAULT_RPC_MAX_CONCURRENCY = 8


@dataclass(frozen=True)
class PayrollConfig:
    """Runtime configuration for the payroll core."""

    ledger_address: str
    settlement_token_address: str | None = None
    rpc_url: str | None = None
    network_name: str = "Sepolia"
    decimals: int = DEFAULT_DECIMALS
    explorer_tx_base: str = DEFAULT_EXPLORER_TX_BASE
    block_tolerance: int = DEFAULT_BLOCK_TOLERANCE
    history_window: str = DEFAULT_HISTORY_WINDOW
    logs_window: str = DEFAULT_LOGS_WINDOW
    default_page_size: int = DEFAULT_PAGE_SIZE
    settlement_cache_url: str = DEFAULT_SETTLEMENT_CACHE_URL
    rpc_timeout_seconds: float = 30.0
    rpc_max_concurrency: int = DEFAULT_RPC_MAX_CONCURRENCY

    @property
    def has_settlement_token(self) -> bool:
        return self.settlement_token_address is not None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
