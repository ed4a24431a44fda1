"""
payroll_services.ledger_client -- Interfaces to the payroll and settlement ledgers.

Responsibility:
    Declares the read/write surface of the two external ledgers this core
    consumes.  The payroll ledger keeps encrypted payroll state and emits
    payroll events; the settlement ledger is a plain token whose transfer
    log is the authoritative record of money actually moved.

Architecture position:
    Services -- collaborator boundary.  Concrete clients live beside this
    module (``jsonrpc_transfer_client``) or are supplied by the host
    application.  Nothing here performs I/O itself.

Contract for writes:
    Every write returns a ``PendingTransaction`` immediately after
    submission.  Ledger state is NOT updated until ``wait()`` returns a
    successful receipt; ``confirm()`` turns a reverted receipt into a
    ``TransactionError``.  Implementations raise ``TransactionError`` when
    the ledger rejects a submission outright.

Failure modes:
    - TransactionError: write rejected at submission or reverted.
    - Read failures propagate from the implementation unchanged.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass

from payroll_kernel.domain.records import (
    Department,
    EmployeeRecord,
    PayrollEvent,
    PayrollEventKind,
    TransferRecord,
)
from payroll_kernel.domain.values import EncryptedInput, Handle
from payroll_kernel.exceptions import TransactionError
from payroll_kernel.logging_config import get_logger

logger = get_logger("services.ledger_client")


@dataclass(frozen=True)
class TransactionReceipt:
    """Confirmation of a mined write."""

    tx_hash: str
    block_number: int
    succeeded: bool = True


@dataclass(frozen=True)
class AggregateHandles:
    """Accrued net and tax handles for a department or the whole company."""

    net: Handle
    tax: Handle


class PendingTransaction(ABC):
    """A submitted write awaiting confirmation."""

    def __init__(self, operation: str, tx_hash: str):
        self.operation = operation
        self.tx_hash = tx_hash

    @abstractmethod
    async def wait(self) -> TransactionReceipt:
        """Block (cooperatively) until the write is mined."""
        ...

    def __repr__(self) -> str:
        return f"<PendingTransaction {self.operation} {self.tx_hash}>"


async def confirm(pending: PendingTransaction) -> TransactionReceipt:
    """
    Await a pending write and insist that it succeeded.

    Raises:
        TransactionError: the receipt reports a revert.
    """
    receipt = await pending.wait()
    if not receipt.succeeded:
        logger.error("transaction_reverted", extra={
            "operation": pending.operation,
            "tx_hash": pending.tx_hash,
            "block_number": receipt.block_number,
        })
        raise TransactionError(pending.operation, "reverted", pending.tx_hash)
    logger.info("transaction_confirmed", extra={
        "operation": pending.operation,
        "tx_hash": pending.tx_hash,
        "block_number": receipt.block_number,
    })
    return receipt


class LedgerClient(ABC):
    """Read/write surface of the encrypted payroll ledger."""

    @property
    @abstractmethod
    def address(self) -> str:
        """Ledger identity that encryptions and sessions are bound to."""
        ...

    # -- reads -------------------------------------------------------------

    @abstractmethod
    async def current_height(self) -> int:
        ...

    @abstractmethod
    async def get_owner(self) -> str:
        """Address allowed to appoint HR operators."""
        ...

    @abstractmethod
    async def is_hr(self, address: str) -> bool:
        ...

    @abstractmethod
    async def query_events(
        self,
        kind: PayrollEventKind,
        address: str | None,
        from_block: int,
        to_block: int,
    ) -> list[PayrollEvent]:
        """Events of one kind in [from_block, to_block], oldest first."""
        ...

    @abstractmethod
    async def get_employee_info(self, address: str) -> EmployeeRecord:
        ...

    @abstractmethod
    async def get_departments(self) -> list[Department]:
        ...

    @abstractmethod
    async def get_dept_employees(self, department_id: str) -> list[str]:
        ...

    @abstractmethod
    async def get_all_employees(self) -> list[str]:
        ...

    @abstractmethod
    async def get_dept_aggregate_handles(self, department_id: str) -> AggregateHandles:
        ...

    @abstractmethod
    async def get_company_aggregate_handles(self) -> AggregateHandles:
        ...

    # -- writes ------------------------------------------------------------

    @abstractmethod
    async def add_employee(
        self,
        employee: str,
        department_id: str,
        rate: EncryptedInput,
        monthly: EncryptedInput,
        tax: EncryptedInput,
    ) -> PendingTransaction:
        ...

    @abstractmethod
    async def update_rate(
        self,
        employee: str,
        rate: EncryptedInput,
        monthly: EncryptedInput,
        tax: EncryptedInput,
    ) -> PendingTransaction:
        ...

    @abstractmethod
    async def accrue_by_rate(self, employee: str) -> PendingTransaction:
        ...

    @abstractmethod
    async def accrue_many(self, employees: Sequence[str]) -> PendingTransaction:
        ...

    @abstractmethod
    async def mark_paid(self, employee: str, net: EncryptedInput) -> PendingTransaction:
        ...

    @abstractmethod
    async def grant_bonus(
        self,
        employee: str,
        gross: EncryptedInput,
        tax: EncryptedInput,
    ) -> PendingTransaction:
        ...

    @abstractmethod
    async def grant_bonus_many(
        self,
        employees: Sequence[str],
        gross: Sequence[EncryptedInput],
        tax: Sequence[EncryptedInput],
    ) -> PendingTransaction:
        ...

    @abstractmethod
    async def publish_dept_accrued(self, department_id: str) -> PendingTransaction:
        ...

    @abstractmethod
    async def publish_company_accrued(self) -> PendingTransaction:
        ...

    @abstractmethod
    async def publish_dept_tax(self, department_id: str) -> PendingTransaction:
        ...

    @abstractmethod
    async def publish_company_tax(self) -> PendingTransaction:
        ...

    @abstractmethod
    async def upsert_dept_name(self, department_id: str, name: str) -> PendingTransaction:
        ...

    @abstractmethod
    async def set_hr(self, address: str, enabled: bool) -> PendingTransaction:
        """Grant or revoke HR rights.  Only the owner may submit this."""
        ...

class TransferLedgerClient(ABC):
    """Read-only view of the settlement token's transfer log."""

    @abstractmethod
    async def current_height(self) -> int:
        ...

    @abstractmethod
    async def query_transfers(
        self,
        token: str,
        recipient: str | None,
        from_block: int,
        to_block: int,
    ) -> list[TransferRecord]:
        """Transfers of ``token`` in [from_block, to_block], oldest first."""
        ...


class SettlementPayer(ABC):
    """Write half of the settlement token: sends a transfer."""

    @abstractmethod
    async def transfer(self, recipient: str, amount: int) -> PendingTransaction:
        ...
