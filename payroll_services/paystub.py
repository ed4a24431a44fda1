"""
payroll_services.paystub -- Employee pay statement.

Responsibility:
    Assemble one employee's pay statement: per-second and hourly rate,
    accrued net and tax, gross, last accrual time and the reconciled
    payment history.

Architecture position:
    Services -- orchestration over the ledger, the resolver and
    ``PaymentHistoryService``.

Invariants enforced:
    - Existence gate: a record with ``exists=False`` raises before any
      decryption is attempted.
    - The rate is read owner-first (PERSONAL_RATE); accrued net and tax are
      read public-first (PERSONAL_ACCRUED).
    - Gross is computed in plaintext and only when both net and tax
      resolved; otherwise it is None, never a partial sum.

Failure modes:
    - EmployeeNotFoundError for a non-existent employee.
    - Ledger read failures propagate.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

from payroll_engines.rates import hourly_rate
from payroll_kernel.domain.blocks import BlockWindowSpec
from payroll_kernel.domain.records import PaymentHistoryEntry
from payroll_kernel.domain.values import normalize_address
from payroll_kernel.exceptions import EmployeeNotFoundError
from payroll_kernel.logging_config import get_logger
from payroll_services.decryption_resolver import (
    DecryptionResolver,
    QuantityKind,
    value_or_none,
)
from payroll_services.department_directory import DepartmentDirectory
from payroll_services.ledger_client import LedgerClient
from payroll_services.payment_history import PaymentHistoryService

logger = get_logger("services.paystub")


@dataclass(frozen=True)
class Paystub:
    """Resolved pay statement. ``None`` means the value is unavailable."""

    employee: str
    department_id: str
    department_name: str
    rate_per_second: int | None
    hourly: int | None
    accrued_net: int | None
    accrued_tax: int | None
    last_accrual: int
    history: tuple[PaymentHistoryEntry, ...] = ()

    @property
    def gross(self) -> int | None:
        if self.accrued_net is None or self.accrued_tax is None:
            return None
        return self.accrued_net + self.accrued_tax


class PaystubService:

    def __init__(
        self,
        ledger: LedgerClient,
        resolver: DecryptionResolver,
        history: PaymentHistoryService,
        departments: DepartmentDirectory | None = None,
    ):
        self._ledger = ledger
        self._resolver = resolver
        self._history = history
        self._departments = departments

    async def build_paystub(
        self,
        employee: str,
        window: str | int | BlockWindowSpec | None = None,
    ) -> Paystub:
        """
        Read, resolve and assemble the statement for ``employee``.

        Raises:
            EmployeeNotFoundError: the ledger has no such employee.
        """
        address = normalize_address(employee, "employee")
        record = await self._ledger.get_employee_info(address)
        if not record.exists:
            raise EmployeeNotFoundError(address)

        rate, accrued, history = await asyncio.gather(
            self._resolver.resolve_personal([record.rate_handle], QuantityKind.PERSONAL_RATE),
            self._resolver.resolve_personal(
                list(record.accrued_handles), QuantityKind.PERSONAL_ACCRUED
            ),
            self._history.build_payment_history(address, window),
        )

        rate_value = value_or_none(rate[0])
        net, tax = (value_or_none(r) for r in accrued)
        dept_name = (
            self._departments.name_of(record.department_id)
            if self._departments is not None
            else record.department_id
        )
        stub = Paystub(
            employee=address,
            department_id=record.department_id,
            department_name=dept_name,
            rate_per_second=rate_value,
            hourly=hourly_rate(rate_value) if rate_value is not None else None,
            accrued_net=net,
            accrued_tax=tax,
            last_accrual=record.last_accrual,
            history=tuple(history),
        )
        logger.info("paystub_built", extra={
            "employee": address,
            "rate_resolved": rate_value is not None,
            "accrued_resolved": stub.gross is not None,
            "payments": len(stub.history),
        })
        return stub
