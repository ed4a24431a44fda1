"""
In-memory collaborators for the payroll test suite.

A ``SandboxChain`` stands in for the block height and timestamps shared by
the payroll ledger and the settlement token.  ``SandboxRelayer`` keeps
plaintexts behind handles and enforces the two decryption channels' rules
(published handles for public decryption, per-handle reader sets for user
decryption).  ``SandboxLedger`` keeps plaintext payroll state and emits
events; ``SandboxTransferLedger`` and ``SandboxPayer`` model the token.

Each write mines exactly one block.  Operations listed in ``reject`` fail
at submission; operations listed in ``revert`` are mined but report a
failed receipt and leave state unchanged.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from payroll_kernel.domain.records import (
    Department,
    EmployeeRecord,
    PayrollEvent,
    PayrollEventKind,
    TransferRecord,
)
from payroll_kernel.domain.values import EncryptedInput, Handle, address_key
from payroll_kernel.exceptions import DecryptionChannelError, TransactionError
from payroll_services.ledger_client import (
    AggregateHandles,
    LedgerClient,
    PendingTransaction,
    SettlementPayer,
    TransactionReceipt,
    TransferLedgerClient,
)
from payroll_services.relayer import AuthSession, Relayer

LEDGER = "0x" + "11" * 20
TOKEN = "0x" + "22" * 20
ADMIN = "0x" + "ad" * 20
ALICE = "0x" + "a1" * 20
BOB = "0x" + "b2" * 20
CAROL = "0x" + "c3" * 20
OUTSIDER = "0x" + "99" * 20
HR_OPERATOR = "0x" + "4e" * 20

DEPT_ENG = "0x" + "e1" * 32
DEPT_OPS = "0x" + "0f" * 32

ZERO_HANDLE = Handle("0x" + "00" * 32)
ZERO_DEPT = "0x" + "00" * 32

GENESIS_TS = 1_735_732_800
BLOCK_TIME = 12


def session_for(caller: str, ledger: str = LEDGER, expires_at: int | None = None) -> AuthSession:
    return AuthSession(ledger=ledger, caller=caller, expires_at=expires_at)


class SandboxChain:
    """Shared block height, block timestamps and transaction hashes."""

    def __init__(self, height: int = 100):
        self.height = height
        self._tx_counter = 0

    def mine(self) -> int:
        self.height += 1
        return self.height

    def advance(self, blocks: int) -> None:
        self.height += blocks

    def timestamp_of(self, block_number: int) -> int:
        return GENESIS_TS + block_number * BLOCK_TIME

    def next_tx_hash(self) -> str:
        self._tx_counter += 1
        return "0x" + f"{self._tx_counter:064x}"


class SandboxPending(PendingTransaction):

    def __init__(self, operation: str, tx_hash: str, block_number: int, succeeded: bool = True):
        super().__init__(operation, tx_hash)
        self.block_number = block_number
        self.succeeded = succeeded

    async def wait(self) -> TransactionReceipt:
        return TransactionReceipt(self.tx_hash, self.block_number, self.succeeded)


class SandboxRelayer(Relayer):
    """Plaintext store behind handles, with channel access rules."""

    def __init__(self) -> None:
        self._values: dict[str, int] = {}
        self._readers: dict[str, set[str]] = {}
        self._published: set[str] = set()
        self._counter = 0
        self.encrypt_calls: list[tuple[str, str, int]] = []
        self.public_batches: list[int] = []
        self.user_batches: list[int] = []
        self.public_down = False
        self.user_down = False

    def mint(self, value: int, readers: Sequence[str] = (), published: bool = False) -> Handle:
        self._counter += 1
        handle = Handle.from_bytes(self._counter.to_bytes(32, "big"))
        key = str(handle)
        self._values[key] = value
        self._readers[key] = {address_key(r) for r in readers}
        if published:
            self._published.add(key)
        return handle

    def publish(self, handle: Handle) -> None:
        self._published.add(str(handle))

    def allow(self, handle: Handle, reader: str) -> None:
        self._readers.setdefault(str(handle), set()).add(address_key(reader))

    def plaintext(self, handle: Handle) -> int:
        return self._values[str(handle)]

    async def encrypt_uint64(self, ledger: str, submitter: str, value: int) -> EncryptedInput:
        self.encrypt_calls.append((ledger, submitter, value))
        handle = self.mint(value, readers=(submitter,))
        attestation = f"{address_key(ledger)}|{address_key(submitter)}|{handle}".encode()
        return EncryptedInput(handle, attestation)

    async def public_decrypt(self, handles: Sequence[Handle]) -> list[int]:
        self.public_batches.append(len(handles))
        if self.public_down:
            raise DecryptionChannelError("public", len(handles), "relayer unavailable")
        hidden = [h for h in handles if str(h) not in self._published]
        if hidden:
            raise DecryptionChannelError("public", len(handles), f"{len(hidden)} not published")
        return [self._values[str(h)] for h in handles]

    async def user_decrypt(self, handles: Sequence[Handle], session: AuthSession) -> list[int]:
        self.user_batches.append(len(handles))
        if self.user_down:
            raise DecryptionChannelError("user", len(handles), "relayer unavailable")
        caller = address_key(session.caller)
        denied = [h for h in handles if caller not in self._readers.get(str(h), set())]
        if denied:
            raise DecryptionChannelError("user", len(handles), f"{len(denied)} not readable")
        return [self._values[str(h)] for h in handles]


@dataclass
class _EmployeeState:
    address: str
    department_id: str
    rate: int
    tax_rate: int
    rate_handle: Handle
    monthly_handle: Handle
    accrued_net: int = 0
    accrued_tax: int = 0
    last_accrual: int = 0


class SandboxLedger(LedgerClient):
    """Plaintext payroll state; hands out freshly minted handles on read."""

    def __init__(
        self,
        chain: SandboxChain,
        relayer: SandboxRelayer,
        admin: str = ADMIN,
        address: str = LEDGER,
    ):
        self._address = address
        self.chain = chain
        self.relayer = relayer
        self.admin = admin
        self.owner = admin
        self.hr: set[str] = set()
        self.employees: dict[str, _EmployeeState] = {}
        self.departments: dict[str, str] = {}
        self.members: dict[str, list[str]] = {}
        self.events: list[PayrollEvent] = []
        self.published: set[str] = set()
        self.reject: set[str] = set()
        self.revert: set[str] = set()
        self.writes: list[str] = []
        self.accrual_seconds = 3600
        self.read_error: Exception | None = None

    @property
    def address(self) -> str:
        return self._address

    # -- helpers ----------------------------------------------------------

    def _submit(self, operation: str) -> SandboxPending:
        if operation in self.reject:
            raise TransactionError(operation, "rejected by ledger")
        block = self.chain.mine()
        self.writes.append(operation)
        return SandboxPending(
            operation, self.chain.next_tx_hash(), block, succeeded=operation not in self.revert
        )

    def _emit(self, kind: PayrollEventKind, pending: SandboxPending, **fields) -> None:
        self.events.append(PayrollEvent(
            kind=kind,
            block_number=pending.block_number,
            timestamp=self.chain.timestamp_of(pending.block_number),
            tx_hash=pending.tx_hash,
            **fields,
        ))

    def _check_read(self) -> None:
        if self.read_error is not None:
            raise self.read_error

    def _scope_totals(self, employees: Sequence[_EmployeeState]) -> tuple[int, int]:
        return (sum(e.accrued_net for e in employees), sum(e.accrued_tax for e in employees))

    def seed_department(self, department_id: str, name: str = "") -> None:
        key = address_key(department_id)
        self.departments[key] = name
        self.members.setdefault(key, [])

    def seed_employee(
        self,
        address: str,
        department_id: str,
        monthly: int,
        rate: int,
        tax_rate: int,
        accrued_net: int = 0,
        accrued_tax: int = 0,
    ) -> None:
        """Place an employee directly, bypassing encryption."""
        key = address_key(address)
        dept = address_key(department_id)
        self.employees[key] = _EmployeeState(
            address=key,
            department_id=dept,
            rate=rate,
            tax_rate=tax_rate,
            rate_handle=self.relayer.mint(rate, readers=(key, self.admin)),
            monthly_handle=self.relayer.mint(monthly, readers=(key, self.admin)),
            accrued_net=accrued_net,
            accrued_tax=accrued_tax,
        )
        self.members.setdefault(dept, []).append(key)
        self.departments.setdefault(dept, "")

    # -- reads ------------------------------------------------------------

    async def current_height(self) -> int:
        return self.chain.height

    async def get_owner(self) -> str:
        self._check_read()
        return self.owner

    async def is_hr(self, address: str) -> bool:
        self._check_read()
        return address_key(address) in self.hr

    async def query_events(
        self,
        kind: PayrollEventKind,
        address: str | None,
        from_block: int,
        to_block: int,
    ) -> list[PayrollEvent]:
        self._check_read()
        return [
            e for e in self.events
            if e.kind == kind
            and (address is None or address_key(e.employee or "") == address_key(address))
            and from_block <= e.block_number <= to_block
        ]

    async def get_employee_info(self, address: str) -> EmployeeRecord:
        self._check_read()
        emp = self.employees.get(address_key(address))
        if emp is None:
            return EmployeeRecord(
                address=address_key(address),
                department_id=ZERO_DEPT,
                rate_handle=ZERO_HANDLE,
                monthly_handle=ZERO_HANDLE,
                accrued_handle=ZERO_HANDLE,
                tax_handle=ZERO_HANDLE,
                last_accrual=0,
                exists=False,
            )
        readers = (emp.address, self.admin)
        return EmployeeRecord(
            address=emp.address,
            department_id=emp.department_id,
            rate_handle=emp.rate_handle,
            monthly_handle=emp.monthly_handle,
            accrued_handle=self.relayer.mint(emp.accrued_net, readers=readers),
            tax_handle=self.relayer.mint(emp.accrued_tax, readers=readers),
            last_accrual=emp.last_accrual,
            exists=True,
        )

    async def get_departments(self) -> list[Department]:
        self._check_read()
        return [Department(k, v) for k, v in self.departments.items()]

    async def get_dept_employees(self, department_id: str) -> list[str]:
        self._check_read()
        return list(self.members.get(address_key(department_id), []))

    async def get_all_employees(self) -> list[str]:
        self._check_read()
        return list(self.employees)

    async def get_dept_aggregate_handles(self, department_id: str) -> AggregateHandles:
        self._check_read()
        dept = address_key(department_id)
        members = [self.employees[a] for a in self.members.get(dept, []) if a in self.employees]
        return self._aggregate(f"dept:{dept}", members)

    async def get_company_aggregate_handles(self) -> AggregateHandles:
        self._check_read()
        return self._aggregate("company", list(self.employees.values()))

    def _aggregate(self, scope: str, employees: Sequence[_EmployeeState]) -> AggregateHandles:
        net, tax = self._scope_totals(employees)
        return AggregateHandles(
            net=self.relayer.mint(
                net, readers=(self.admin,), published=f"{scope}:accrued" in self.published
            ),
            tax=self.relayer.mint(
                tax, readers=(self.admin,), published=f"{scope}:tax" in self.published
            ),
        )

    # -- writes -----------------------------------------------------------

    async def add_employee(self, employee, department_id, rate, monthly, tax) -> PendingTransaction:
        pending = self._submit("add_employee")
        if pending.succeeded:
            key = address_key(employee)
            dept = address_key(department_id)
            for enc in (rate, monthly, tax):
                self.relayer.allow(enc.handle, key)
            self.employees[key] = _EmployeeState(
                address=key,
                department_id=dept,
                rate=self.relayer.plaintext(rate.handle),
                tax_rate=self.relayer.plaintext(tax.handle),
                rate_handle=rate.handle,
                monthly_handle=monthly.handle,
                last_accrual=self.chain.timestamp_of(pending.block_number),
            )
            self.members.setdefault(dept, []).append(key)
            self.departments.setdefault(dept, "")
            self._emit(
                PayrollEventKind.EMPLOYEE_ADDED, pending,
                employee=key, department_id=dept, handles=(rate.handle, monthly.handle),
            )
        return pending

    async def update_rate(self, employee, rate, monthly, tax) -> PendingTransaction:
        pending = self._submit("update_rate")
        if pending.succeeded:
            emp = self.employees[address_key(employee)]
            for enc in (rate, monthly, tax):
                self.relayer.allow(enc.handle, emp.address)
            emp.rate = self.relayer.plaintext(rate.handle)
            emp.tax_rate = self.relayer.plaintext(tax.handle)
            emp.rate_handle = rate.handle
            emp.monthly_handle = monthly.handle
            self._emit(
                PayrollEventKind.RATE_UPDATED, pending,
                employee=emp.address, department_id=emp.department_id,
                handles=(rate.handle, monthly.handle),
            )
        return pending

    def _accrue(self, emp: _EmployeeState, pending: SandboxPending) -> None:
        dt = self.accrual_seconds
        emp.accrued_net += (emp.rate - emp.tax_rate) * dt
        emp.accrued_tax += emp.tax_rate * dt
        emp.last_accrual = self.chain.timestamp_of(pending.block_number)
        self._emit(
            PayrollEventKind.ACCRUED, pending,
            employee=emp.address, department_id=emp.department_id, delta_seconds=dt,
        )

    async def accrue_by_rate(self, employee) -> PendingTransaction:
        pending = self._submit("accrue_by_rate")
        if pending.succeeded:
            self._accrue(self.employees[address_key(employee)], pending)
        return pending

    async def accrue_many(self, employees) -> PendingTransaction:
        pending = self._submit("accrue_many")
        if pending.succeeded:
            for employee in employees:
                self._accrue(self.employees[address_key(employee)], pending)
        return pending

    async def mark_paid(self, employee, net) -> PendingTransaction:
        pending = self._submit("mark_paid")
        if pending.succeeded:
            emp = self.employees[address_key(employee)]
            self.relayer.allow(net.handle, emp.address)
            emp.accrued_net = max(0, emp.accrued_net - self.relayer.plaintext(net.handle))
            self._emit(
                PayrollEventKind.PAID, pending,
                employee=emp.address, department_id=emp.department_id, handles=(net.handle,),
            )
        return pending

    def _bonus(self, emp: _EmployeeState, gross, tax, pending: SandboxPending) -> None:
        g = self.relayer.plaintext(gross.handle)
        t = self.relayer.plaintext(tax.handle)
        emp.accrued_net += g - t
        emp.accrued_tax += t
        self._emit(
            PayrollEventKind.BONUS_GRANTED, pending,
            employee=emp.address, department_id=emp.department_id,
            handles=(gross.handle, tax.handle),
        )

    async def grant_bonus(self, employee, gross, tax) -> PendingTransaction:
        pending = self._submit("grant_bonus")
        if pending.succeeded:
            self._bonus(self.employees[address_key(employee)], gross, tax, pending)
        return pending

    async def grant_bonus_many(self, employees, gross, tax) -> PendingTransaction:
        if not (len(employees) == len(gross) == len(tax)):
            raise TransactionError("grant_bonus_many", "length mismatch")
        pending = self._submit("grant_bonus_many")
        if pending.succeeded:
            for employee, g, t in zip(employees, gross, tax):
                self._bonus(self.employees[address_key(employee)], g, t, pending)
        return pending

    def _publish(self, operation: str, scope: str, kind: PayrollEventKind, dept: str | None):
        pending = self._submit(operation)
        if pending.succeeded:
            self.published.add(scope)
            self._emit(kind, pending, department_id=dept)
        return pending

    async def publish_dept_accrued(self, department_id) -> PendingTransaction:
        dept = address_key(department_id)
        return self._publish(
            "publish_dept_accrued", f"dept:{dept}:accrued",
            PayrollEventKind.DEPT_AGGREGATE_PUBLISHED, dept,
        )

    async def publish_company_accrued(self) -> PendingTransaction:
        return self._publish(
            "publish_company_accrued", "company:accrued",
            PayrollEventKind.COMPANY_AGGREGATE_PUBLISHED, None,
        )

    async def publish_dept_tax(self, department_id) -> PendingTransaction:
        dept = address_key(department_id)
        return self._publish(
            "publish_dept_tax", f"dept:{dept}:tax",
            PayrollEventKind.DEPT_TAX_PUBLISHED, dept,
        )

    async def publish_company_tax(self) -> PendingTransaction:
        return self._publish(
            "publish_company_tax", "company:tax",
            PayrollEventKind.COMPANY_TAX_PUBLISHED, None,
        )

    async def upsert_dept_name(self, department_id, name) -> PendingTransaction:
        pending = self._submit("upsert_dept_name")
        if pending.succeeded:
            dept = address_key(department_id)
            self.departments[dept] = name
            self.members.setdefault(dept, [])
        return pending

    async def set_hr(self, address, enabled) -> PendingTransaction:
        pending = self._submit("set_hr")
        if pending.succeeded:
            if enabled:
                self.hr.add(address_key(address))
            else:
                self.hr.discard(address_key(address))
        return pending


class SandboxTransferLedger(TransferLedgerClient):
    """Token transfer log on the shared chain."""

    def __init__(self, chain: SandboxChain, token: str = TOKEN):
        self.chain = chain
        self.token = token
        self.transfers: list[TransferRecord] = []
        self.queries: list[tuple[str, str | None, int, int]] = []
        self.read_error: Exception | None = None

    def record(self, recipient: str, amount: int, block_number: int | None = None) -> TransferRecord:
        block = block_number if block_number is not None else self.chain.mine()
        transfer = TransferRecord(
            block_number=block,
            timestamp=self.chain.timestamp_of(block),
            recipient=address_key(recipient),
            amount=amount,
            tx_hash=self.chain.next_tx_hash(),
            sender=ADMIN,
        )
        self.transfers.append(transfer)
        return transfer

    async def current_height(self) -> int:
        return self.chain.height

    async def query_transfers(self, token, recipient, from_block, to_block) -> list[TransferRecord]:
        self.queries.append((token, recipient, from_block, to_block))
        if self.read_error is not None:
            raise self.read_error
        if address_key(token) != address_key(self.token):
            return []
        return [
            t for t in self.transfers
            if (recipient is None or address_key(t.recipient) == address_key(recipient))
            and from_block <= t.block_number <= to_block
        ]


class SandboxPayer(SettlementPayer):
    """Sends transfers into a ``SandboxTransferLedger``."""

    def __init__(self, token_ledger: SandboxTransferLedger):
        self.token_ledger = token_ledger
        self.reject = False
        self.revert = False

    async def transfer(self, recipient: str, amount: int) -> PendingTransaction:
        if self.reject:
            raise TransactionError("transfer", "insufficient balance")
        if self.revert:
            block = self.token_ledger.chain.mine()
            return SandboxPending(
                "transfer", self.token_ledger.chain.next_tx_hash(), block, succeeded=False
            )
        transfer = self.token_ledger.record(recipient, amount)
        return SandboxPending("transfer", transfer.tx_hash, transfer.block_number)
