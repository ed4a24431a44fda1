"""
payroll_services.workflows -- Payroll write sequences.

Responsibility:
    The multi-step writes an HR operator triggers: add an employee, change
    a rate, accrue, record a payment (optionally followed by the settlement
    transfer), grant bonuses and name departments.  The owner additionally
    appoints HR operators.  Each step is encrypt -> submit -> await
    confirmation, strictly in that order.

Architecture position:
    Services -- orchestration over ``ValueEncryptionGateway``,
    ``LedgerClient`` and ``SettlementPayer``.  Figures are derived by the
    pure ``payroll_engines.rates`` functions before encryption.

Invariants enforced:
    - Every write is awaited to confirmation before the next step begins.
    - Each quantity gets its own encryption, even when values repeat.
    - A sequence cannot be started again for the same target while it is
      still running (``WorkflowGuard``).
    - Record-then-settle is NOT atomic.  When the transfer fails after the
      payment was recorded, the recorded state stays and the failure is
      reported with the recorded transaction hash.  Nothing is retried.

Failure modes:
    - AuthenticationError / SubmissionError from the encryption gateway.
    - TransactionError when a write is rejected or reverts.
    - SettlementTransferError when the payment was recorded but the
      settlement transfer failed.
    - ConfigurationError when settlement is requested without a payer or
      token, raised before any write.
    - OperationInProgressError for a duplicate concurrent invocation.
"""

from __future__ import annotations

import re
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass

from payroll_config.schema import PayrollConfig
from payroll_engines.rates import RateDerivation, derive_bonus_tax, derive_rate_and_tax
from payroll_kernel.domain.values import address_key, normalize_address
from payroll_kernel.exceptions import (
    ConfigurationError,
    OperationInProgressError,
    SettlementTransferError,
    SubmissionError,
    TransactionError,
)
from payroll_kernel.logging_config import LogContext, get_logger
from payroll_services.department_directory import DepartmentDirectory
from payroll_services.encryption_gateway import ValueEncryptionGateway
from payroll_services.ledger_client import (
    LedgerClient,
    SettlementPayer,
    TransactionReceipt,
    confirm,
)
from payroll_services.settlement_cache import SettlementCache

logger = get_logger("services.workflows")

_DEPARTMENT_ID_RE = re.compile(r"^0x[0-9a-fA-F]{64}$")


def normalize_department_id(value: str) -> str:
    """Validate a bytes32 department id and return it lowercase."""
    text = str(value or "").strip()
    if not _DEPARTMENT_ID_RE.match(text):
        raise SubmissionError(value, "department id must be 0x + 64 hex chars")
    return text.lower()


class WorkflowGuard:
    """Tracks running write sequences by (operation, target)."""

    def __init__(self) -> None:
        self._active: set[tuple[str, str]] = set()

    def is_active(self, operation: str, target: str = "") -> bool:
        return (operation, address_key(target)) in self._active

    @contextmanager
    def hold(self, operation: str, target: str = "") -> Iterator[None]:
        key = (operation, address_key(target))
        if key in self._active:
            logger.warning("operation_rejected_in_progress", extra={
                "operation": operation,
                "target": key[1],
            })
            raise OperationInProgressError(operation)
        self._active.add(key)
        try:
            yield
        finally:
            self._active.discard(key)


@dataclass(frozen=True)
class RateChange:
    """Derived figures and the confirmed write that stored them."""

    derivation: RateDerivation
    receipt: TransactionReceipt


@dataclass(frozen=True)
class SettledPayment:
    """A payment both recorded on the payroll ledger and transferred."""

    employee: str
    net: int
    recorded: TransactionReceipt
    settled: TransactionReceipt


class PayrollWorkflows:
    """
    HR write sequences.

    Usage:
        workflows = PayrollWorkflows(ledger, gateway, config, payer=payer,
                                     settlement_cache=cache)
        await workflows.add_employee(alice, dept_id, 5_000_000_000)
        await workflows.accrue(alice)
        payment = await workflows.pay_and_settle(alice, 1_000_000)
    """

    def __init__(
        self,
        ledger: LedgerClient,
        gateway: ValueEncryptionGateway,
        config: PayrollConfig,
        payer: SettlementPayer | None = None,
        settlement_cache: SettlementCache | None = None,
        departments: DepartmentDirectory | None = None,
        guard: WorkflowGuard | None = None,
    ):
        self._ledger = ledger
        self._gateway = gateway
        self._config = config
        self._payer = payer
        self._settlement_cache = settlement_cache
        self._departments = departments
        self.guard = guard or WorkflowGuard()

    # -- employees --------------------------------------------------------

    async def add_employee(
        self,
        employee: str,
        department_id: str,
        monthly: int,
    ) -> RateChange:
        """Derive rate and tax from ``monthly``, encrypt all three, submit."""
        address = normalize_address(employee, "employee")
        dept = normalize_department_id(department_id)
        with self.guard.hold("add_employee", address), LogContext.bind(employee=address):
            derived = derive_rate_and_tax(monthly)
            rate, monthly_enc, tax = await self._gateway.submit_many(
                [derived.rate_per_second, derived.monthly, derived.tax_per_second]
            )
            receipt = await confirm(
                await self._ledger.add_employee(address, dept, rate, monthly_enc, tax)
            )
            logger.info("employee_added", extra={
                "department_id": dept,
                "tx_hash": receipt.tx_hash,
            })
            return RateChange(derived, receipt)

    async def update_rate(self, employee: str, monthly: int) -> RateChange:
        address = normalize_address(employee, "employee")
        with self.guard.hold("update_rate", address), LogContext.bind(employee=address):
            derived = derive_rate_and_tax(monthly)
            rate, monthly_enc, tax = await self._gateway.submit_many(
                [derived.rate_per_second, derived.monthly, derived.tax_per_second]
            )
            receipt = await confirm(
                await self._ledger.update_rate(address, rate, monthly_enc, tax)
            )
            logger.info("rate_updated", extra={"tx_hash": receipt.tx_hash})
            return RateChange(derived, receipt)

    async def accrue(self, employee: str) -> TransactionReceipt:
        address = normalize_address(employee, "employee")
        with self.guard.hold("accrue", address):
            receipt = await confirm(await self._ledger.accrue_by_rate(address))
            logger.info("accrued", extra={"employee": address, "tx_hash": receipt.tx_hash})
            return receipt

    async def accrue_all(self) -> TransactionReceipt | None:
        """Accrue every employee in one write; no write when there are none."""
        with self.guard.hold("accrue_all"):
            employees = await self._ledger.get_all_employees()
            if not employees:
                logger.info("accrue_all_skipped", extra={"reason": "no employees"})
                return None
            receipt = await confirm(await self._ledger.accrue_many(employees))
            logger.info("accrued_all", extra={
                "employees": len(employees),
                "tx_hash": receipt.tx_hash,
            })
            return receipt

    # -- payments ---------------------------------------------------------

    async def record_payment(self, employee: str, net: int) -> TransactionReceipt:
        """Record a net payment on the payroll ledger (no token transfer)."""
        address = normalize_address(employee, "employee")
        with self.guard.hold("record_payment", address):
            return await self._record(address, net)

    async def pay_and_settle(self, employee: str, net: int) -> SettledPayment:
        """
        Record the payment, then send the settlement transfer.

        Raises:
            ConfigurationError: no payer or no settlement token; nothing is
                written.
            SettlementTransferError: recorded, but the transfer failed.
        """
        address = normalize_address(employee, "employee")
        if self._payer is None or not self._config.has_settlement_token:
            raise ConfigurationError(
                "settlement_token_address",
                "settlement requires a configured token and payer",
            )

        with self.guard.hold("pay_and_settle", address), LogContext.bind(employee=address):
            recorded = await self._record(address, net)
            try:
                settled = await confirm(await self._payer.transfer(address, net))
            except TransactionError as exc:
                logger.error("settlement_transfer_failed", extra={
                    "recorded_tx_hash": recorded.tx_hash,
                    "amount": net,
                    "reason": str(exc),
                })
                raise SettlementTransferError(
                    address, net, recorded.tx_hash, str(exc)
                ) from exc

            if self._settlement_cache is not None:
                self._settlement_cache.record(address, settled.tx_hash)
            logger.info("payment_settled", extra={
                "recorded_tx_hash": recorded.tx_hash,
                "settlement_tx_hash": settled.tx_hash,
            })
            return SettledPayment(address, net, recorded, settled)

    async def _record(self, address: str, net: int) -> TransactionReceipt:
        encrypted = await self._gateway.submit_encrypted_amount(net)
        receipt = await confirm(await self._ledger.mark_paid(address, encrypted))
        logger.info("payment_recorded", extra={
            "employee": address,
            "tx_hash": receipt.tx_hash,
        })
        return receipt

    # -- bonuses ----------------------------------------------------------

    async def grant_bonus(self, employee: str, gross: int) -> TransactionReceipt:
        """Grant ``gross`` with a withheld tax of ``gross // 5``."""
        address = normalize_address(employee, "employee")
        with self.guard.hold("grant_bonus", address):
            tax = derive_bonus_tax(gross)
            gross_enc, tax_enc = await self._gateway.submit_many([gross, tax])
            receipt = await confirm(
                await self._ledger.grant_bonus(address, gross_enc, tax_enc)
            )
            logger.info("bonus_granted", extra={
                "employee": address,
                "tx_hash": receipt.tx_hash,
            })
            return receipt

    async def grant_department_bonus(
        self,
        department_id: str,
        gross_each: int,
    ) -> TransactionReceipt | None:
        """Same bonus for every department member; no write for an empty one."""
        dept = normalize_department_id(department_id)
        with self.guard.hold("grant_department_bonus", dept):
            tax = derive_bonus_tax(gross_each)
            employees = await self._ledger.get_dept_employees(dept)
            if not employees:
                logger.info("department_bonus_skipped", extra={
                    "department_id": dept,
                    "reason": "no employees",
                })
                return None

            grosses = []
            taxes = []
            for _ in employees:
                grosses.append(await self._gateway.submit_encrypted_amount(gross_each))
                taxes.append(await self._gateway.submit_encrypted_amount(tax))
            receipt = await confirm(
                await self._ledger.grant_bonus_many(employees, grosses, taxes)
            )
            logger.info("department_bonus_granted", extra={
                "department_id": dept,
                "employees": len(employees),
                "tx_hash": receipt.tx_hash,
            })
            return receipt

    # -- departments ------------------------------------------------------

    async def add_department(self, department_id: str, name: str) -> TransactionReceipt:
        dept = normalize_department_id(department_id)
        label = (name or "").strip()
        if not label:
            raise SubmissionError(name, "department name must not be empty")
        with self.guard.hold("add_department", dept):
            receipt = await confirm(await self._ledger.upsert_dept_name(dept, label))
            logger.info("department_named", extra={
                "department_id": dept,
                "tx_hash": receipt.tx_hash,
            })
            if self._departments is not None:
                await self._departments.refresh()
            return receipt

    # -- roles ------------------------------------------------------------

    async def set_hr(self, operator: str, enabled: bool = True) -> TransactionReceipt:
        """Grant (or with ``enabled=False`` revoke) HR rights. Owner only."""
        address = normalize_address(operator, "operator")
        with self.guard.hold("set_hr", address):
            receipt = await confirm(await self._ledger.set_hr(address, enabled))
            logger.info("hr_role_changed", extra={
                "operator": address,
                "enabled": enabled,
                "tx_hash": receipt.tx_hash,
            })
            return receipt
