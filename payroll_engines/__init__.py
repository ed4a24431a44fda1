"""
Payroll Engines - Pure calculation functions.

All engines are pure: no I/O, no clock, no network.  Every input is passed
explicitly, so identical inputs always produce identical outputs.

Engines:
    - rates: monthly amount -> per-second rate and tax
    - reconciliation: Paid events + settlement transfers -> payment history
    - view_window: paged, filtered views over ordered rows
    - ranking: top earners by accrued net
    - audit_trail: block-ordered audit rows
"""

from payroll_engines.audit_trail import AuditRow, merge_audit_trail
from payroll_engines.ranking import EarnerAccrual, rank_top_earners
from payroll_engines.rates import (
    SECONDS_PER_MONTH,
    RateDerivation,
    derive_bonus_tax,
    derive_rate_and_tax,
    hourly_rate,
)
from payroll_engines.reconciliation import (
    DEFAULT_BLOCK_TOLERANCE,
    ReconciliationResult,
    reconcile_payments,
)
from payroll_engines.view_window import (
    AddressFilter,
    DepartmentFilter,
    RangeFilter,
    RowFilter,
    ViewState,
    ViewWindow,
)

__all__ = [
    "AuditRow",
    "merge_audit_trail",
    "EarnerAccrual",
    "rank_top_earners",
    "SECONDS_PER_MONTH",
    "RateDerivation",
    "derive_bonus_tax",
    "derive_rate_and_tax",
    "hourly_rate",
    "DEFAULT_BLOCK_TOLERANCE",
    "ReconciliationResult",
    "reconcile_payments",
    "AddressFilter",
    "DepartmentFilter",
    "RangeFilter",
    "RowFilter",
    "ViewState",
    "ViewWindow",
]
