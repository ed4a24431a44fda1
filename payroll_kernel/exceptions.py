"""
Typed Exception Hierarchy for the Payroll Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Payroll flows cross three systems that are not atomically linked: the
encrypted payroll ledger, the relayer that encrypts and decrypts values, and
the settlement token ledger.  Callers must be able to tell *which* step
failed without parsing message strings, because the right reaction differs:

    try:
        await workflows.pay_and_settle(employee, amount)
    except SettlementTransferError as e:
        # The payment IS recorded on the payroll ledger.  Do not retry the
        # whole sequence -- that would record it twice.
        alert_operator(e.recorded_tx_hash)
    except TransactionError as e:
        api_response(code=e.code, operation=e.operation)

Every exception:
  1. Is a TYPED class (catch by type, not message)
  2. Has a CODE class attribute (machine-readable, API-safe)
  3. Carries structured DATA as attributes

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    PayrollKernelError (base)
    |
    +-- ConfigurationError
    |   +-- InvalidAddressError
    |   +-- InvalidBlockWindowError
    |
    +-- AuthenticationError
    |
    +-- SubmissionError
    |
    +-- TransactionError
    |   +-- SettlementTransferError
    |
    +-- LedgerReadError
    |
    +-- DecryptionError
    |   +-- DecryptionChannelError
    |   +-- DecryptionUnavailableError
    |
    +-- EmployeeNotFoundError
    |
    +-- OperationInProgressError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Configuration   | CONFIGURATION_ERROR         | No valid ledger identity configured
                | INVALID_ADDRESS             | Address is not 0x + 40 hex chars
                | INVALID_BLOCK_WINDOW        | fromBlock spec cannot be parsed
----------------|-----------------------------|-----------------------------------------
Authentication  | AUTHENTICATION_REQUIRED     | No established submitter/reader session
----------------|-----------------------------|-----------------------------------------
Submission      | SUBMISSION_REJECTED         | Negative or out-of-domain plaintext
----------------|-----------------------------|-----------------------------------------
Transaction     | TRANSACTION_FAILED          | Ledger write rejected or reverted
                | SETTLEMENT_TRANSFER_FAILED  | Payment recorded, settlement failed
----------------|-----------------------------|-----------------------------------------
Read            | LEDGER_READ_FAILED          | Node returned an error for a read call
----------------|-----------------------------|-----------------------------------------
Decryption      | DECRYPTION_CHANNEL_FAILED   | One channel rejected a batch
                | DECRYPTION_UNAVAILABLE      | Every channel failed for a handle
----------------|-----------------------------|-----------------------------------------
Employee        | EMPLOYEE_NOT_FOUND          | Record's existence flag is false
----------------|-----------------------------|-----------------------------------------
Concurrency     | OPERATION_IN_PROGRESS       | Same write sequence already running

===============================================================================
DESIGN DECISIONS
===============================================================================

1. NO RETRYABLE CATEGORY.
   Unlike a posting kernel, nothing here is auto-retried.  A financial write
   that is retried blindly may take effect twice.

2. RECONCILIATION AMBIGUITY HAS NO CLASS.
   Block-proximity matching cannot detect a mis-pairing, so there is nothing
   to raise.  The limitation is covered by tests instead.

===============================================================================
"""


class PayrollKernelError(Exception):
    """
    Base exception for all payroll kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "PAYROLL_KERNEL_ERROR"


# Configuration exceptions


class ConfigurationError(PayrollKernelError):
    """Configuration is missing or invalid."""

    code: str = "CONFIGURATION_ERROR"

    def __init__(self, setting: str, reason: str):
        self.setting = setting
        self.reason = reason
        super().__init__(f"Invalid configuration for {setting}: {reason}")


class InvalidAddressError(ConfigurationError):
    """Value is not a well-formed account address."""

    code: str = "INVALID_ADDRESS"

    def __init__(self, value: str, setting: str = "address"):
        self.value = value
        super().__init__(setting, f"'{value}' is not a 0x-prefixed 20-byte hex address")


class InvalidBlockWindowError(ConfigurationError):
    """A fromBlock specification could not be parsed."""

    code: str = "INVALID_BLOCK_WINDOW"

    def __init__(self, spec: str):
        self.spec = spec
        super().__init__(
            "from_block",
            f"'{spec}' is not 'latest', 'latest-K' or a block height",
        )


# Authentication


class AuthenticationError(PayrollKernelError):
    """No authenticated session is established for the operation."""

    code: str = "AUTHENTICATION_REQUIRED"

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"An authenticated session is required for {operation}")


# Submission


class SubmissionError(PayrollKernelError):
    """Plaintext value rejected before encryption."""

    code: str = "SUBMISSION_REJECTED"

    def __init__(self, value: object, reason: str):
        self.value = value
        self.reason = reason
        super().__init__(f"Cannot submit value {value!r}: {reason}")


# Transactions


class TransactionError(PayrollKernelError):
    """A ledger write was rejected or reverted."""

    code: str = "TRANSACTION_FAILED"

    def __init__(self, operation: str, reason: str, tx_hash: str | None = None):
        self.operation = operation
        self.reason = reason
        self.tx_hash = tx_hash
        suffix = f" (tx {tx_hash})" if tx_hash else ""
        super().__init__(f"{operation} failed: {reason}{suffix}")


class SettlementTransferError(TransactionError):
    """
    The payment was recorded on the payroll ledger but settlement failed.

    The recorded state persists.  Retrying the full record-and-settle
    sequence would record the payment a second time.
    """

    code: str = "SETTLEMENT_TRANSFER_FAILED"

    def __init__(self, employee: str, amount: int, recorded_tx_hash: str, reason: str):
        self.employee = employee
        self.amount = amount
        self.recorded_tx_hash = recorded_tx_hash
        super().__init__("settlement_transfer", reason)


# Reads


class LedgerReadError(PayrollKernelError):
    """A ledger node answered a read call with an error."""

    code: str = "LEDGER_READ_FAILED"

    def __init__(self, method: str, reason: str):
        self.method = method
        self.reason = reason
        super().__init__(f"{method} failed: {reason}")


# Decryption


class DecryptionError(PayrollKernelError):
    """Base exception for decryption failures."""

    code: str = "DECRYPTION_ERROR"


class DecryptionChannelError(DecryptionError):
    """A decryption channel rejected a whole batch."""

    code: str = "DECRYPTION_CHANNEL_FAILED"

    def __init__(self, channel: str, batch_size: int, reason: str):
        self.channel = channel
        self.batch_size = batch_size
        self.reason = reason
        super().__init__(f"{channel} decryption of {batch_size} handle(s) failed: {reason}")


class DecryptionUnavailableError(DecryptionError):
    """Every channel failed for a handle; the value is unknown, not zero."""

    code: str = "DECRYPTION_UNAVAILABLE"

    def __init__(self, handle: str, channels: tuple[str, ...]):
        self.handle = handle
        self.channels = channels
        super().__init__(
            f"Handle {handle} could not be decrypted via {', '.join(channels) or 'any channel'}"
        )


# Employees


class EmployeeNotFoundError(PayrollKernelError):
    """Employee record does not exist on the ledger."""

    code: str = "EMPLOYEE_NOT_FOUND"

    def __init__(self, address: str):
        self.address = address
        super().__init__(f"Employee not found: {address}")


# Concurrency


class OperationInProgressError(PayrollKernelError):
    """A write sequence was triggered again before the first one finished."""

    code: str = "OPERATION_IN_PROGRESS"

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"{operation} is already in progress")
