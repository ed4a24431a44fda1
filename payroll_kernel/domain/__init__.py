"""
Pure domain layer.

Immutable records and value objects with NO dependencies on the ORM,
the network, or the wall clock (apart from SystemClock).
"""

from payroll_kernel.domain.blocks import BlockWindow, BlockWindowSpec
from payroll_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from payroll_kernel.domain.records import (
    Department,
    EmployeeRecord,
    PaymentHistoryEntry,
    PaymentStatus,
    PayrollEvent,
    PayrollEventKind,
    Role,
    TransferRecord,
)
from payroll_kernel.domain.values import (
    UINT64_MAX,
    EncryptedInput,
    Handle,
    address_key,
    format_base_units,
    is_address,
    normalize_address,
    short_address,
    to_base_units,
)

__all__ = [
    "BlockWindow",
    "BlockWindowSpec",
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "Department",
    "EmployeeRecord",
    "PaymentHistoryEntry",
    "PaymentStatus",
    "PayrollEvent",
    "PayrollEventKind",
    "Role",
    "TransferRecord",
    "UINT64_MAX",
    "EncryptedInput",
    "Handle",
    "address_key",
    "format_base_units",
    "is_address",
    "normalize_address",
    "short_address",
    "to_base_units",
]
