"""
Ledger Records -- Immutable snapshots read from the payroll and settlement ledgers.

Responsibility:
    Defines the frozen record types that flow from the ledger clients into
    the engines: employee state, payroll events, settlement transfers, and
    the derived payment-history entries produced by reconciliation.

Architecture position:
    Kernel > Domain -- pure data, zero I/O.

Invariants enforced:
    - PayrollEvent and TransferRecord are immutable once emitted.
    - TransferRecord amounts are plaintext integers; they are the
      authoritative record of actual fund movement.
    - EmployeeRecord.exists gates every derived read.  A record with
      ``exists=False`` is never decrypted and never displayed as zero.
    - PaymentHistoryEntry.net_resolved is False only when the amount of a
      recorded payment could not be decrypted.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from payroll_kernel.domain.values import Handle


class PayrollEventKind(str, Enum):
    """Event types emitted by the payroll ledger."""

    EMPLOYEE_ADDED = "EmployeeAdded"
    RATE_UPDATED = "RateUpdated"
    ACCRUED = "Accrued"
    PAID = "Paid"
    BONUS_GRANTED = "BonusGranted"
    DEPT_AGGREGATE_PUBLISHED = "DeptAggregatePublished"
    COMPANY_AGGREGATE_PUBLISHED = "CompanyAggregatePublished"
    DEPT_TAX_PUBLISHED = "DeptTaxPublished"
    COMPANY_TAX_PUBLISHED = "CompanyTaxPublished"


class PaymentStatus(str, Enum):
    """Settlement status of a payment-history entry."""

    PAID = "paid"
    RECORDED_AWAITING_TRANSFER = "recorded_awaiting_transfer"


class Role(str, Enum):
    """Caller's standing on the payroll ledger."""

    OWNER = "owner"
    HR = "hr"
    EMPLOYEE = "employee"

    @property
    def can_manage_payroll(self) -> bool:
        return self is not Role.EMPLOYEE

    @property
    def can_manage_hr(self) -> bool:
        return self is Role.OWNER


@dataclass(frozen=True)
class EmployeeRecord:
    """Employee state as returned by the ledger's employee view."""

    address: str
    department_id: str
    rate_handle: Handle
    monthly_handle: Handle
    accrued_handle: Handle
    tax_handle: Handle
    last_accrual: int
    exists: bool

    @property
    def display_handles(self) -> tuple[Handle, Handle]:
        """(monthly, accrued net) -- the pair shown in the HR roster."""
        return (self.monthly_handle, self.accrued_handle)

    @property
    def accrued_handles(self) -> tuple[Handle, Handle]:
        """(accrued net, accrued tax)."""
        return (self.accrued_handle, self.tax_handle)


@dataclass(frozen=True)
class PayrollEvent:
    """A single event log entry from the payroll ledger."""

    kind: PayrollEventKind
    block_number: int
    timestamp: int
    employee: str | None = None
    department_id: str | None = None
    handles: tuple[Handle, ...] = ()
    delta_seconds: int | None = None
    tx_hash: str | None = None

    @property
    def amount_handle(self) -> Handle | None:
        """Net-amount handle carried by a Paid event (first payload handle)."""
        return self.handles[0] if self.handles else None


@dataclass(frozen=True)
class TransferRecord:
    """A settlement-token transfer to an employee. Always plaintext."""

    block_number: int
    timestamp: int
    recipient: str
    amount: int
    tx_hash: str
    sender: str | None = None


@dataclass(frozen=True)
class PaymentHistoryEntry:
    """
    One reconciled payment, derived on demand.

    A recorded-but-unsettled payment whose amount could not be decrypted
    carries ``net=0`` with ``net_resolved=False``; readers that need to
    tell the two apart must check the flag.
    """

    timestamp: int
    net: int
    status: PaymentStatus
    tx_hash: str | None = None
    block_number: int | None = None
    net_resolved: bool = True

    @property
    def is_settled(self) -> bool:
        return self.status == PaymentStatus.PAID

    def explorer_url(self, explorer_tx_base: str) -> str | None:
        """Block-explorer link for the settlement transaction, if any."""
        if not self.tx_hash:
            return None
        return explorer_tx_base + self.tx_hash


@dataclass(frozen=True)
class Department:
    """Department id (bytes32 hex) and its display name."""

    department_id: str
    name: str
