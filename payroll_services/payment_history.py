"""
payroll_services.payment_history -- Build one employee's payment history.

Responsibility:
    Fetch the employee's Paid events from the payroll ledger and the
    settlement transfers they received, over the same block window, resolve
    the encrypted Paid amounts, and hand everything to the pure reconciler.

Architecture position:
    Services -- orchestration.  Calls ``LedgerClient``,
    ``TransferLedgerClient`` and ``DecryptionResolver``; the merge itself
    is ``payroll_engines.reconciliation.reconcile_payments``.

Invariants enforced:
    - Both streams are read over one window resolved against one height.
    - The two reads run concurrently; decryption waits for the events.
    - Without a configured settlement token, no transfer read is made and
      every recorded payment is reported as awaiting transfer.

Failure modes:
    - Read failures from either ledger propagate; no partial history is
      returned.
    - Undecryptable Paid amounts do not fail the call; they surface as
      ``net_resolved=False`` on the affected entries.
"""

from __future__ import annotations

import asyncio

from payroll_config.schema import PayrollConfig
from payroll_engines.reconciliation import ReconciliationResult, reconcile_payments
from payroll_kernel.domain.blocks import BlockWindow, BlockWindowSpec
from payroll_kernel.domain.records import (
    PaymentHistoryEntry,
    PayrollEvent,
    PayrollEventKind,
    TransferRecord,
)
from payroll_kernel.domain.values import normalize_address
from payroll_kernel.logging_config import LogContext, get_logger
from payroll_services.decryption_resolver import (
    DecryptionResolver,
    QuantityKind,
    value_or_none,
)
from payroll_services.ledger_client import LedgerClient, TransferLedgerClient

logger = get_logger("services.payment_history")


class PaymentHistoryService:
    """
    Reconciled payment history per employee.

    Usage:
        service = PaymentHistoryService(ledger, transfers, resolver, config)
        entries = await service.build_payment_history(employee, "latest-500000")
    """

    def __init__(
        self,
        ledger: LedgerClient,
        transfers: TransferLedgerClient | None,
        resolver: DecryptionResolver,
        config: PayrollConfig,
    ):
        self._ledger = ledger
        self._transfers = transfers
        self._resolver = resolver
        self._config = config

    async def build_payment_history(
        self,
        employee: str,
        window: str | int | BlockWindowSpec | None = None,
    ) -> list[PaymentHistoryEntry]:
        """Entries newest first; see ``reconcile`` for the pairing detail."""
        result = await self.reconcile(employee, window)
        return list(result.entries)

    async def reconcile(
        self,
        employee: str,
        window: str | int | BlockWindowSpec | None = None,
    ) -> ReconciliationResult:
        address = normalize_address(employee, "employee")
        with LogContext.bind(employee=address, ledger=self._ledger.address):
            block_window = await self.resolve_window(window)
            events, transfers = await asyncio.gather(
                self._ledger.query_events(
                    PayrollEventKind.PAID,
                    address,
                    block_window.from_block,
                    block_window.to_block,
                ),
                self._query_transfers(address, block_window),
            )

            handles = [e.amount_handle for e in events]
            resolutions = await self._resolver.resolve_personal(
                [h for h in handles if h is not None], QuantityKind.PAYMENT_RECORD
            )
            amounts = _align(events, [value_or_none(r) for r in resolutions])

            result = reconcile_payments(
                events,
                amounts,
                transfers,
                block_tolerance=self._config.block_tolerance,
            )
            logger.info("payment_history_built", extra={
                "from_block": block_window.from_block,
                "to_block": block_window.to_block,
                "entries": len(result.entries),
                "awaiting_transfer": result.awaiting_count,
            })
            return result

    async def resolve_window(
        self,
        window: str | int | BlockWindowSpec | None,
    ) -> BlockWindow:
        if isinstance(window, BlockWindowSpec):
            spec = window
        else:
            spec = BlockWindowSpec.parse(
                window if window is not None else self._config.history_window
            )
        return spec.resolve(await self._ledger.current_height())

    async def _query_transfers(
        self,
        employee: str,
        window: BlockWindow,
    ) -> list[TransferRecord]:
        token = self._config.settlement_token_address
        if token is None or self._transfers is None:
            return []
        return await self._transfers.query_transfers(
            token, employee, window.from_block, window.to_block
        )


def _align(events: list[PayrollEvent], values: list[int | None]) -> list[int | None]:
    """Spread resolved values back over events; handle-less events get None."""
    it = iter(values)
    return [next(it) if e.amount_handle is not None else None for e in events]
