"""ORM models for the payroll kernel."""

from payroll_kernel.models.settlement import SettlementTransaction

__all__ = ["SettlementTransaction"]
