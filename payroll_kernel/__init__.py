"""
Payroll Kernel

Shared foundation for the confidential payroll reconciliation core:
- Typed exceptions with machine-readable codes
- Structured JSON logging with async-safe context
- Deterministic clock abstraction
- Immutable domain records for ledger events and settlement transfers
- SQLAlchemy persistence for the settlement transaction cache
"""

__version__ = "0.1.0"
