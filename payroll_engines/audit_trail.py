"""
payroll_engines.audit_trail -- Block-ordered audit log of payroll activity.

Responsibility:
    Flatten every payroll event kind and the settlement transfers that went
    to known employees into one list of display rows, newest block first.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Block timestamps,
    department names and the employee roster are supplied by the caller.

Invariants enforced:
    - Display order is block-descending; rows from the same block keep
      their input order (payroll events before transfers).
    - Transfers whose recipient is not a known employee are dropped.
    - Department ids are shown by name when the directory knows them,
      otherwise by id.
"""

from __future__ import annotations

from collections.abc import Collection, Mapping, Sequence
from dataclasses import dataclass

from payroll_engines.tracer import traced_engine
from payroll_kernel.domain.records import PayrollEvent, PayrollEventKind, TransferRecord
from payroll_kernel.domain.values import address_key

TRANSFER_ROW_TYPE = "SettlementTransfer"


@dataclass(frozen=True)
class AuditRow:
    """One line of the audit trail."""

    block_number: int
    timestamp: int
    row_type: str
    employee: str | None = None
    department_id: str | None = None
    department_name: str | None = None
    meta: str = ""
    amount: int | None = None
    tx_hash: str | None = None

    @property
    def department_label(self) -> str:
        return self.department_name or self.department_id or ""


def _event_meta(event: PayrollEvent) -> str:
    if event.kind == PayrollEventKind.ACCRUED and event.delta_seconds is not None:
        return f"dt={event.delta_seconds}s"
    return ""


@traced_engine(
    "audit_trail",
    "1.0",
    fingerprint_fields=("events", "transfers", "known_employees"),
)
def merge_audit_trail(
    events: Sequence[PayrollEvent],
    transfers: Sequence[TransferRecord],
    known_employees: Collection[str],
    department_names: Mapping[str, str] | None = None,
) -> tuple[AuditRow, ...]:
    """
    Build audit rows from payroll events and settlement transfers.

    Args:
        events: Payroll events of any kind from one block window.
        transfers: Settlement transfers from the same window.
        known_employees: Addresses on the payroll; other recipients are
            ignored.
        department_names: Lowercase department id -> display name.
    """
    names = department_names or {}
    roster = {address_key(a) for a in known_employees}

    rows: list[AuditRow] = []
    for event in events:
        dept = event.department_id
        rows.append(AuditRow(
            block_number=event.block_number,
            timestamp=event.timestamp,
            row_type=event.kind.value,
            employee=event.employee,
            department_id=dept,
            department_name=names.get(address_key(dept)) if dept else None,
            meta=_event_meta(event),
            tx_hash=event.tx_hash,
        ))

    for transfer in transfers:
        if address_key(transfer.recipient) not in roster:
            continue
        rows.append(AuditRow(
            block_number=transfer.block_number,
            timestamp=transfer.timestamp,
            row_type=TRANSFER_ROW_TYPE,
            employee=transfer.recipient,
            amount=transfer.amount,
            tx_hash=transfer.tx_hash,
        ))

    rows.sort(key=lambda r: r.block_number, reverse=True)
    return tuple(rows)
