"""
Settlement transaction cache rows.

One row per employee holding the hash of the most recent settlement
transfer sent to them.  Rows are overwritten on every new settlement
(last-write-wins); there is no history here -- the settlement ledger
itself is the history.
"""

from datetime import datetime

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from payroll_kernel.db.base import Base


class SettlementTransaction(Base):
    """Last settlement transfer per employee address."""

    __tablename__ = "settlement_transactions"

    employee: Mapped[str] = mapped_column(String(42), unique=True, index=True)
    tx_hash: Mapped[str] = mapped_column(String(66))
    recorded_at: Mapped[datetime]

    def __repr__(self) -> str:
        return f"<SettlementTransaction {self.employee} {self.tx_hash}>"
