"""
payroll_services.roster -- HR roster of existing employees.

Responsibility:
    Walk departments -> employees -> employee records, keep the records that
    exist, resolve each one's monthly figure and accrued net in a single
    batch, and return rows ready for ``ViewWindow`` filtering and paging.

Invariants enforced:
    - Existence gate: records with ``exists=False`` are dropped before any
      decryption and never shown as zero.
    - Rows keep department order, then the ledger's employee order.
    - An employee listed under several departments appears once, under the
      department named on its record.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass

from payroll_engines.view_window import RowFilter, ViewWindow
from payroll_kernel.domain.records import EmployeeRecord
from payroll_kernel.domain.values import address_key
from payroll_kernel.logging_config import get_logger
from payroll_services.decryption_resolver import (
    DecryptionResolver,
    QuantityKind,
    value_or_none,
)
from payroll_services.department_directory import DepartmentDirectory
from payroll_services.ledger_client import LedgerClient

logger = get_logger("services.roster")


@dataclass(frozen=True)
class RosterRow:
    """One employee line. ``None`` figures are unavailable, not zero."""

    department_id: str
    department_name: str
    address: str
    exists: bool
    monthly: int | None
    accrued_net: int | None


class RosterService:

    def __init__(
        self,
        ledger: LedgerClient,
        resolver: DecryptionResolver,
        departments: DepartmentDirectory,
        default_page_size: int = 25,
    ):
        self._ledger = ledger
        self._resolver = resolver
        self._departments = departments
        self._default_page_size = default_page_size

    async def load_records(self) -> list[EmployeeRecord]:
        """Existing employee records, grouped by department."""
        await self._departments.ensure_loaded()
        dept_ids = self._departments.ids()
        members = await asyncio.gather(
            *(self._ledger.get_dept_employees(d) for d in dept_ids)
        )

        seen: set[str] = set()
        addresses: list[str] = []
        for employees in members:
            for address in employees:
                key = address_key(address)
                if key not in seen:
                    seen.add(key)
                    addresses.append(address)

        records = await asyncio.gather(
            *(self._ledger.get_employee_info(a) for a in addresses)
        )
        return [r for r in records if r.exists]

    async def load_roster(self) -> list[RosterRow]:
        records = await self.load_records()

        handles = [h for r in records for h in r.display_handles]
        resolutions = await self._resolver.resolve(handles, QuantityKind.ROSTER)
        values = [value_or_none(r) for r in resolutions]

        rows = [
            RosterRow(
                department_id=record.department_id,
                department_name=self._departments.name_of(record.department_id),
                address=record.address,
                exists=record.exists,
                monthly=values[2 * i],
                accrued_net=values[2 * i + 1],
            )
            for i, record in enumerate(records)
        ]
        logger.info("roster_loaded", extra={
            "employees": len(rows),
            "unavailable": sum(1 for v in values if v is None),
        })
        return rows

    def view(
        self,
        rows: Sequence[RosterRow],
        filters: Sequence[RowFilter] = (),
        page_size: int | None = None,
    ) -> ViewWindow:
        return ViewWindow(
            tuple(rows),
            page_size=page_size or self._default_page_size,
            filters=tuple(filters),
        )
