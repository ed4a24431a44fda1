"""
Top-earner ranking across employees.

Pure engine: receives each employee's resolved accrued net and tax (None
when the value could not be decrypted) and orders them by net, highest
first.  Employees whose net is unavailable are ranked after every resolved
one rather than treated as zero.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from payroll_engines.tracer import traced_engine


@dataclass(frozen=True)
class EarnerAccrual:
    """Resolved accrual figures for one employee."""

    address: str
    department_id: str
    net: int | None
    tax: int | None

    @property
    def gross(self) -> int | None:
        if self.net is None or self.tax is None:
            return None
        return self.net + self.tax

    @property
    def is_available(self) -> bool:
        return self.net is not None


@traced_engine("earner_ranking", "1.0", fingerprint_fields=("accruals", "limit"))
def rank_top_earners(
    accruals: Sequence[EarnerAccrual],
    limit: int = 5,
) -> tuple[EarnerAccrual, ...]:
    """Highest accrued net first; ties keep input order."""
    if limit < 0:
        raise ValueError(f"limit must not be negative, got {limit}")
    ordered = sorted(
        accruals,
        key=lambda a: (not a.is_available, -(a.net or 0)),
    )
    return tuple(ordered[:limit])
