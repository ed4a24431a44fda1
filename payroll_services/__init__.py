"""
Payroll Services - async orchestration over the external collaborators.

Services read from the payroll ledger and the settlement token's transfer
log, encrypt and decrypt values through the relayer, and delegate every
calculation to ``payroll_engines``.

Services:
    - encryption_gateway: plaintext -> encrypted input
    - decryption_resolver: handle -> plaintext, ordered channel fallback
    - payment_history: reconciled payments per employee
    - paystub, roster, audit_service: read views
    - workflows: HR write sequences, record-and-settle
    - context: explicit runtime context wiring all of the above
"""

from payroll_services.audit_service import AggregateFigures, AuditService
from payroll_services.context import PayrollContext
from payroll_services.decryption_resolver import (
    FALLBACK_ORDER,
    ChannelName,
    DecryptionResolver,
    PublicDecryptionChannel,
    QuantityKind,
    Resolved,
    Unavailable,
    UserDecryptionChannel,
    require,
    value_or_none,
)
from payroll_services.department_directory import DepartmentDirectory
from payroll_services.encryption_gateway import ValueEncryptionGateway
from payroll_services.jsonrpc_transfer_client import JsonRpcTransferLedger
from payroll_services.ledger_client import (
    AggregateHandles,
    LedgerClient,
    PendingTransaction,
    SettlementPayer,
    TransactionReceipt,
    TransferLedgerClient,
    confirm,
)
from payroll_services.payment_history import PaymentHistoryService
from payroll_services.paystub import Paystub, PaystubService
from payroll_services.relayer import AuthSession, Relayer
from payroll_services.roster import RosterRow, RosterService
from payroll_services.settlement_cache import SettlementCache
from payroll_services.workflows import PayrollWorkflows, WorkflowGuard

__all__ = [
    "AggregateFigures",
    "AuditService",
    "PayrollContext",
    "FALLBACK_ORDER",
    "ChannelName",
    "DecryptionResolver",
    "PublicDecryptionChannel",
    "QuantityKind",
    "Resolved",
    "Unavailable",
    "UserDecryptionChannel",
    "require",
    "value_or_none",
    "DepartmentDirectory",
    "ValueEncryptionGateway",
    "JsonRpcTransferLedger",
    "AggregateHandles",
    "LedgerClient",
    "PendingTransaction",
    "SettlementPayer",
    "TransactionReceipt",
    "TransferLedgerClient",
    "confirm",
    "PaymentHistoryService",
    "Paystub",
    "PaystubService",
    "AuthSession",
    "Relayer",
    "RosterRow",
    "RosterService",
    "SettlementCache",
    "PayrollWorkflows",
    "WorkflowGuard",
]
