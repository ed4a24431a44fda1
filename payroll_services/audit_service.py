"""
payroll_services.audit_service -- Auditor views over the payroll ledger.

Responsibility:
    Department and company aggregates (with optional publish-then-read),
    a per-department breakdown, the top-N earner ranking and the
    block-ordered audit trail of every payroll event plus settlement
    transfers to employees.

Architecture position:
    Services -- orchestration.  The ranking and the trail merge are pure
    engines in ``payroll_engines``; this module only gathers their inputs.

Invariants enforced:
    - Aggregates resolve public-first; the ranking resolves owner-first.
    - Gross is computed after both net and tax resolved, in plaintext.
    - Employees with ``exists=False`` never enter the ranking.
    - The audit trail lists settlement transfers only for employees on the
      payroll; transfers to anyone else are omitted.

Failure modes:
    - A failed publish write is logged as ``aggregate_publish_failed`` and
      does not stop the read; the read may then come back Unavailable.
    - Ledger and transfer-log read failures propagate.

Audit relevance:
    Aggregates are the only figures an auditor can read without owner
    authorization, which is why the publish step precedes the read.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass

from payroll_config.schema import PayrollConfig
from payroll_engines.audit_trail import AuditRow, merge_audit_trail
from payroll_engines.ranking import EarnerAccrual, rank_top_earners
from payroll_engines.view_window import RowFilter, ViewWindow
from payroll_kernel.domain.blocks import BlockWindow, BlockWindowSpec
from payroll_kernel.domain.records import EmployeeRecord, PayrollEventKind, TransferRecord
from payroll_kernel.exceptions import TransactionError
from payroll_kernel.logging_config import get_logger
from payroll_services.decryption_resolver import DecryptionResolver, value_or_none
from payroll_services.department_directory import DepartmentDirectory
from payroll_services.ledger_client import (
    AggregateHandles,
    LedgerClient,
    PendingTransaction,
    TransferLedgerClient,
    confirm,
)

logger = get_logger("services.audit_service")

COMPANY_SCOPE = "company"


@dataclass(frozen=True)
class AggregateFigures:
    """Resolved accrued totals for a department or the company."""

    scope: str
    label: str
    net: int | None
    tax: int | None

    @property
    def gross(self) -> int | None:
        if self.net is None or self.tax is None:
            return None
        return self.net + self.tax

    @property
    def is_available(self) -> bool:
        return self.net is not None and self.tax is not None


class AuditService:
    """
    Auditor-facing reads.

    Usage:
        audit = AuditService(ledger, transfers, resolver, departments, config)
        company = await audit.company_aggregates()
        top = await audit.top_earners(5)
        rows = await audit.audit_trail("latest-5000")
    """

    def __init__(
        self,
        ledger: LedgerClient,
        transfers: TransferLedgerClient | None,
        resolver: DecryptionResolver,
        departments: DepartmentDirectory,
        config: PayrollConfig,
    ):
        self._ledger = ledger
        self._transfers = transfers
        self._resolver = resolver
        self._departments = departments
        self._config = config

    # -- aggregates -------------------------------------------------------

    async def department_aggregates(
        self,
        department_id: str,
        publish: bool = True,
    ) -> AggregateFigures:
        if publish:
            await self._publish(
                department_id,
                lambda: self._ledger.publish_dept_accrued(department_id),
                lambda: self._ledger.publish_dept_tax(department_id),
            )
        await self._departments.ensure_loaded()
        handles = await self._ledger.get_dept_aggregate_handles(department_id)
        return await self._resolve_aggregate(
            department_id, self._departments.name_of(department_id), handles
        )

    async def company_aggregates(self, publish: bool = True) -> AggregateFigures:
        if publish:
            await self._publish(
                COMPANY_SCOPE,
                self._ledger.publish_company_accrued,
                self._ledger.publish_company_tax,
            )
        handles = await self._ledger.get_company_aggregate_handles()
        return await self._resolve_aggregate(COMPANY_SCOPE, "Company", handles)

    async def department_breakdown(self, publish: bool = False) -> list[AggregateFigures]:
        """Aggregates for every department, ordered by department name."""
        await self._departments.ensure_loaded()
        dept_ids = [o.value for o in self._departments.options()]
        if publish:
            return [await self.department_aggregates(d, publish=True) for d in dept_ids]
        return list(await asyncio.gather(
            *(self.department_aggregates(d, publish=False) for d in dept_ids)
        ))

    async def _publish(
        self,
        scope: str,
        *writes: Callable[[], Awaitable[PendingTransaction]],
    ) -> None:
        for write in writes:
            try:
                await confirm(await write())
            except TransactionError as exc:
                logger.warning("aggregate_publish_failed", extra={
                    "scope": scope,
                    "operation": exc.operation,
                    "reason": exc.reason,
                })

    async def _resolve_aggregate(
        self,
        scope: str,
        label: str,
        handles: AggregateHandles,
    ) -> AggregateFigures:
        net, tax = await self._resolver.resolve_aggregate([handles.net, handles.tax])
        figures = AggregateFigures(
            scope=scope,
            label=label,
            net=value_or_none(net),
            tax=value_or_none(tax),
        )
        logger.info("aggregate_resolved", extra={
            "scope": scope,
            "available": figures.is_available,
        })
        return figures

    # -- ranking ----------------------------------------------------------

    async def existing_employees(self) -> list[EmployeeRecord]:
        addresses = await self._ledger.get_all_employees()
        records = await asyncio.gather(
            *(self._ledger.get_employee_info(a) for a in addresses)
        )
        return [r for r in records if r.exists]

    async def top_earners(self, limit: int = 5) -> tuple[EarnerAccrual, ...]:
        """Highest accrued net first; unavailable figures rank last."""
        if limit < 0:
            raise ValueError(f"limit must not be negative, got {limit}")
        records = await self.existing_employees()
        handles = [h for r in records for h in r.accrued_handles]
        values = [value_or_none(r) for r in await self._resolver.resolve_ranking(handles)]
        accruals = [
            EarnerAccrual(
                address=record.address,
                department_id=record.department_id,
                net=values[2 * i],
                tax=values[2 * i + 1],
            )
            for i, record in enumerate(records)
        ]
        return rank_top_earners(accruals, limit)

    # -- audit trail ------------------------------------------------------

    async def audit_trail(
        self,
        window: str | int | BlockWindowSpec | None = None,
    ) -> tuple[AuditRow, ...]:
        """Every payroll event in the window plus transfers to employees."""
        block_window = await self._resolve_window(window)
        kinds = list(PayrollEventKind)
        results = await asyncio.gather(
            *(
                self._ledger.query_events(
                    kind, None, block_window.from_block, block_window.to_block
                )
                for kind in kinds
            ),
            self._query_transfers(block_window),
            self._ledger.get_all_employees(),
            self._departments.ensure_loaded(),
        )
        event_lists = results[:len(kinds)]
        transfers, employees, names = results[len(kinds):]
        events = [e for events in event_lists for e in events]

        rows = merge_audit_trail(events, transfers, employees, names)
        logger.info("audit_trail_built", extra={
            "from_block": block_window.from_block,
            "to_block": block_window.to_block,
            "rows": len(rows),
        })
        return rows

    def audit_view(
        self,
        rows: Sequence[AuditRow],
        filters: Sequence[RowFilter] = (),
        page_size: int | None = None,
    ) -> ViewWindow:
        return ViewWindow(
            tuple(rows),
            page_size=page_size or self._config.default_page_size,
            filters=tuple(filters),
        )

    async def _resolve_window(
        self,
        window: str | int | BlockWindowSpec | None,
    ) -> BlockWindow:
        if isinstance(window, BlockWindowSpec):
            spec = window
        else:
            spec = BlockWindowSpec.parse(
                window if window is not None else self._config.logs_window
            )
        return spec.resolve(await self._ledger.current_height())

    async def _query_transfers(self, window: BlockWindow) -> list[TransferRecord]:
        token = self._config.settlement_token_address
        if token is None or self._transfers is None:
            return []
        return await self._transfers.query_transfers(
            token, None, window.from_block, window.to_block
        )
