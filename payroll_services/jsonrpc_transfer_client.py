"""
payroll_services.jsonrpc_transfer_client -- Settlement transfer log over JSON-RPC.

Responsibility:
    Concrete ``TransferLedgerClient`` that reads ERC-20 ``Transfer`` logs of
    the settlement token from an Ethereum JSON-RPC node and turns them into
    plaintext ``TransferRecord`` values.

Architecture position:
    Services -- collaborator implementation.  Uses ``httpx.AsyncClient``;
    a client may be injected (tests pass one built on ``httpx.MockTransport``).

Invariants enforced:
    - Results are ordered oldest first by (block, log index).
    - Each block's timestamp is fetched at most once per query.
    - At most ``max_concurrency`` block lookups are in flight at once.
    - Logs flagged ``removed`` by the node (reorged out) are skipped.

Failure modes:
    - LedgerReadError: transport failure, non-2xx status, or a JSON-RPC
      error object.  Nothing is retried.
"""

from __future__ import annotations

import asyncio
from typing import Any

import httpx

from payroll_config.schema import PayrollConfig
from payroll_kernel.domain.records import TransferRecord
from payroll_kernel.domain.values import address_key
from payroll_kernel.exceptions import ConfigurationError, LedgerReadError
from payroll_kernel.logging_config import get_logger
from payroll_services.ledger_client import TransferLedgerClient

logger = get_logger("services.jsonrpc_transfer_client")

TRANSFER_TOPIC = "0xddf252ad1be2c89b69c2b068fc378daa952ba7f163c4a11628f55a4df523b3ef"
"""keccak256("Transfer(address,address,uint256)")."""


def address_topic(address: str) -> str:
    """Left-pad a 20-byte address to a 32-byte log topic."""
    return "0x" + address_key(address)[2:].rjust(64, "0")


def topic_address(topic: str) -> str:
    """Last 20 bytes of a 32-byte topic as a lowercase address."""
    return "0x" + topic[-40:].lower()


def _quantity(value: str | None) -> int:
    if value in (None, "", "0x"):
        return 0
    return int(value, 16)


class JsonRpcTransferLedger(TransferLedgerClient):
    """
    Reads the settlement token's transfer log from a JSON-RPC node.

    Usage:
        async with JsonRpcTransferLedger(config.rpc_url) as transfers:
            head = await transfers.current_height()
            rows = await transfers.query_transfers(token, employee, 0, head)
    """

    def __init__(
        self,
        rpc_url: str,
        client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
        max_concurrency: int = 8,
    ):
        if max_concurrency < 1:
            raise ConfigurationError("rpc_max_concurrency", "must be at least 1")
        self.rpc_url = rpc_url
        self.max_concurrency = max_concurrency
        self._lookups = asyncio.Semaphore(max_concurrency)
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = client is None
        self._request_id = 0

    @classmethod
    def from_config(
        cls,
        config: PayrollConfig,
        client: httpx.AsyncClient | None = None,
    ) -> JsonRpcTransferLedger:
        if not config.rpc_url:
            raise ConfigurationError("rpc_url", "a JSON-RPC endpoint is required to read transfers")
        return cls(
            config.rpc_url,
            client=client,
            timeout=config.rpc_timeout_seconds,
            max_concurrency=config.rpc_max_concurrency,
        )

    async def __aenter__(self) -> JsonRpcTransferLedger:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def _next_id(self) -> int:
        self._request_id += 1
        return self._request_id

    async def _call(self, method: str, params: list) -> Any:
        payload = {
            "jsonrpc": "2.0",
            "id": self._next_id(),
            "method": method,
            "params": params,
        }
        try:
            response = await self._client.post(self.rpc_url, json=payload)
            response.raise_for_status()
            body = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("rpc_request_failed", extra={
                "method": method,
                "error": str(exc),
            })
            raise LedgerReadError(method, str(exc)) from exc

        error = body.get("error")
        if error:
            message = error.get("message", str(error)) if isinstance(error, dict) else str(error)
            logger.error("rpc_error", extra={"method": method, "error": message})
            raise LedgerReadError(method, message)
        return body.get("result")

    async def current_height(self) -> int:
        return _quantity(await self._call("eth_blockNumber", []))

    async def block_timestamp(self, block_number: int) -> int:
        async with self._lookups:
            block = await self._call("eth_getBlockByNumber", [hex(block_number), False])
        if not block:
            raise LedgerReadError("eth_getBlockByNumber", f"block {block_number} not found")
        return _quantity(block.get("timestamp"))

    async def query_transfers(
        self,
        token: str,
        recipient: str | None,
        from_block: int,
        to_block: int,
    ) -> list[TransferRecord]:
        topics: list[str | None] = [TRANSFER_TOPIC]
        if recipient is not None:
            topics += [None, address_topic(recipient)]

        logs = await self._call("eth_getLogs", [{
            "address": address_key(token),
            "fromBlock": hex(from_block),
            "toBlock": hex(to_block),
            "topics": topics,
        }]) or []
        logs = [
            log for log in logs
            if not log.get("removed") and len(log.get("topics", ())) >= 3
        ]
        logs.sort(key=lambda log: (_quantity(log["blockNumber"]), _quantity(log.get("logIndex"))))

        blocks = sorted({_quantity(log["blockNumber"]) for log in logs})
        stamps = dict(zip(blocks, await asyncio.gather(
            *(self.block_timestamp(b) for b in blocks)
        )))

        records = [
            TransferRecord(
                block_number=_quantity(log["blockNumber"]),
                timestamp=stamps[_quantity(log["blockNumber"])],
                recipient=topic_address(log["topics"][2]),
                amount=_quantity(log.get("data")),
                tx_hash=log["transactionHash"],
                sender=topic_address(log["topics"][1]),
            )
            for log in logs
        ]
        logger.debug("transfers_queried", extra={
            "token": token,
            "recipient": recipient,
            "from_block": from_block,
            "to_block": to_block,
            "count": len(records),
        })
        return records
