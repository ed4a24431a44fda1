"""
payroll_engines.reconciliation -- Merge recorded payments with settlement transfers.

Responsibility:
    Produce one deduplicated, time-ordered payment history for an employee
    from two independently paced streams: the payroll ledger's encrypted
    "Paid" events (a debit commitment) and the settlement token's plaintext
    transfer log (actual fund movement).

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Decryption of the Paid
    amounts happens in the service layer; this engine receives the
    already-resolved amounts aligned with the events.

Algorithm:
    1. Every TransferRecord becomes a PAID entry.  Transfers are
       authoritative for settlement.
    2. Paid events are visited in chronological order.  Each scans the
       transfers not yet claimed, in chronological order, for the first
       one whose block lies within ``block_tolerance`` of the event's
       block.  On a match the transfer is claimed and no separate entry is
       emitted for the event (it is already represented).
    3. Unmatched Paid events become RECORDED_AWAITING_TRANSFER entries,
       using the resolved amount, or 0 flagged ``net_resolved=False``.
    4. Output is sorted by timestamp, newest first.

Invariants enforced:
    - A TransferRecord is claimed by at most one Paid event.
    - The claimed set lives only for one call; inputs are never mutated.
    - Determinism: same inputs produce the same output.

Known limitation:
    Matching is by block proximity only, with no amount check.  Two
    near-simultaneous payments of different amounts to the same employee
    can be paired with each other's transfers.  The pairing never changes
    the emitted entries when every event finds a transfer, but a lone
    recorded payment may hide behind an unrelated transfer.

Failure modes:
    - ValueError if ``amounts`` is not aligned with ``paid_events``.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from payroll_engines.tracer import traced_engine
from payroll_kernel.domain.records import (
    PaymentHistoryEntry,
    PaymentStatus,
    PayrollEvent,
    TransferRecord,
)
from payroll_kernel.logging_config import get_logger

logger = get_logger("engines.reconciliation")

DEFAULT_BLOCK_TOLERANCE = 1000


@dataclass(frozen=True)
class ReconciliationResult:
    """History entries plus the pairing that produced them."""

    entries: tuple[PaymentHistoryEntry, ...]
    matches: tuple[tuple[int, int], ...]  # (paid index, transfer index)
    unmatched_paid: tuple[int, ...]

    @property
    def settled_count(self) -> int:
        return sum(1 for e in self.entries if e.status == PaymentStatus.PAID)

    @property
    def awaiting_count(self) -> int:
        return len(self.entries) - self.settled_count


def _chronological(items: Sequence, key) -> list[int]:
    return sorted(range(len(items)), key=lambda i: key(items[i]))


@traced_engine(
    "payment_reconciliation",
    "1.0",
    fingerprint_fields=("paid_events", "amounts", "transfers", "block_tolerance"),
)
def reconcile_payments(
    paid_events: Sequence[PayrollEvent],
    amounts: Sequence[int | None],
    transfers: Sequence[TransferRecord],
    block_tolerance: int = DEFAULT_BLOCK_TOLERANCE,
) -> ReconciliationResult:
    """
    Merge Paid events with settlement transfers.

    Args:
        paid_events: Paid events for one employee.
        amounts: Resolved net amount per event (None when unresolved),
            aligned index-for-index with ``paid_events``.
        transfers: Settlement transfers to the same employee, drawn from the
            same block window.
        block_tolerance: Maximum block distance for a Paid event to claim a
            transfer.

    Returns:
        ReconciliationResult with entries sorted newest first.
    """
    if len(amounts) != len(paid_events):
        raise ValueError(
            f"amounts ({len(amounts)}) must align with paid_events ({len(paid_events)})"
        )

    entries: list[PaymentHistoryEntry] = [
        PaymentHistoryEntry(
            timestamp=t.timestamp,
            net=t.amount,
            status=PaymentStatus.PAID,
            tx_hash=t.tx_hash,
            block_number=t.block_number,
        )
        for t in transfers
    ]

    transfer_order = _chronological(transfers, lambda t: (t.block_number, t.timestamp))
    claimed: set[int] = set()
    matches: list[tuple[int, int]] = []
    unmatched: list[int] = []

    for pi in _chronological(paid_events, lambda e: (e.block_number, e.timestamp)):
        event = paid_events[pi]
        match = next(
            (
                ti
                for ti in transfer_order
                if ti not in claimed
                and abs(transfers[ti].block_number - event.block_number) <= block_tolerance
            ),
            None,
        )
        if match is not None:
            claimed.add(match)
            matches.append((pi, match))
            continue

        unmatched.append(pi)
        amount = amounts[pi]
        entries.append(
            PaymentHistoryEntry(
                timestamp=event.timestamp,
                net=amount if amount is not None else 0,
                status=PaymentStatus.RECORDED_AWAITING_TRANSFER,
                tx_hash=None,
                block_number=event.block_number,
                net_resolved=amount is not None,
            )
        )

    entries.sort(key=lambda e: e.timestamp, reverse=True)

    logger.info("payments_reconciled", extra={
        "paid_events": len(paid_events),
        "transfers": len(transfers),
        "matched": len(matches),
        "awaiting_transfer": len(unmatched),
        "block_tolerance": block_tolerance,
    })

    return ReconciliationResult(
        entries=tuple(entries),
        matches=tuple(matches),
        unmatched_paid=tuple(unmatched),
    )
