"""
payroll_services.context -- Explicit runtime context for one client.

Responsibility:
    Holds the configuration, the external collaborators, the current
    authenticated session and the shared caches (department directory,
    settlement cache), and wires the services on top of them.  There is no
    module-level mutable state; everything shared lives on this object.

Architecture position:
    Services -- composition root.  Host applications build one context
    per connected wallet.

Invariants enforced:
    - Sessions are bound to the configured ledger; a session for another
      ledger is rejected when established.
    - Caches are snapshot-loaded by ``load()`` and refreshed explicitly.
    - A settlement cache built here from ``settlement_cache_url`` belongs to
      this context alone and is disposed by ``close()``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import cached_property

from payroll_config.schema import PayrollConfig
from payroll_kernel.domain.clock import Clock, SystemClock
from payroll_kernel.domain.records import Role
from payroll_kernel.domain.values import address_key
from payroll_kernel.exceptions import AuthenticationError
from payroll_kernel.logging_config import get_logger
from payroll_services.audit_service import AuditService
from payroll_services.decryption_resolver import (
    DecryptionResolver,
    PublicDecryptionChannel,
    UserDecryptionChannel,
)
from payroll_services.department_directory import DepartmentDirectory
from payroll_services.encryption_gateway import ValueEncryptionGateway
from payroll_services.ledger_client import (
    LedgerClient,
    SettlementPayer,
    TransferLedgerClient,
)
from payroll_services.payment_history import PaymentHistoryService
from payroll_services.paystub import PaystubService
from payroll_services.relayer import AuthSession, Relayer
from payroll_services.roster import RosterService
from payroll_services.settlement_cache import SettlementCache
from payroll_services.workflows import PayrollWorkflows, WorkflowGuard

logger = get_logger("services.context")


@dataclass
class PayrollContext:
    """
    Everything a payroll client needs, in one place.

    Usage:
        ctx = PayrollContext(config, ledger, relayer, transfers=transfers)
        ctx.establish_session(session)
        await ctx.load()
        stub = await ctx.paystub.build_paystub(ctx.session.caller)
    """

    config: PayrollConfig
    ledger: LedgerClient
    relayer: Relayer
    transfers: TransferLedgerClient | None = None
    payer: SettlementPayer | None = None
    clock: Clock = field(default_factory=SystemClock)
    settlement_cache: SettlementCache | None = None
    session: AuthSession | None = None
    guard: WorkflowGuard = field(default_factory=WorkflowGuard)
    _owns_cache: bool = field(default=False, init=False, repr=False)

    def __post_init__(self) -> None:
        if self.settlement_cache is None:
            self.settlement_cache = SettlementCache.from_url(
                self.config.settlement_cache_url, self.clock
            )
            self._owns_cache = True

    def close(self) -> None:
        if self._owns_cache:
            self.settlement_cache.close()

    # -- session ----------------------------------------------------------

    def establish_session(self, session: AuthSession) -> None:
        if not session.is_bound_to(self.config.ledger_address):
            raise AuthenticationError("establish_session")
        self.session = session
        logger.info("session_established", extra={
            "caller": session.caller,
            "ledger": session.ledger,
        })

    def clear_session(self) -> None:
        self.session = None

    def current_session(self) -> AuthSession | None:
        return self.session

    async def detect_role(self, address: str | None = None) -> Role:
        """
        Owner, HR operator or employee, for ``address`` (default: the caller).

        The owner check wins; HR rights are only consulted for everyone
        else.  Ledger read failures propagate.
        """
        if address is None:
            if self.session is None:
                raise AuthenticationError("detect_role")
            address = self.session.caller
        who = address_key(address)

        if address_key(await self.ledger.get_owner()) == who:
            role = Role.OWNER
        elif await self.ledger.is_hr(who):
            role = Role.HR
        else:
            role = Role.EMPLOYEE
        logger.info("role_detected", extra={"caller": who, "role": role})
        return role

    # -- caches -----------------------------------------------------------

    async def load(self) -> None:
        """Snapshot-load the department directory and settlement cache."""
        await self.departments.refresh()
        self.settlement_cache.load()

    # -- wiring -----------------------------------------------------------

    @cached_property
    def departments(self) -> DepartmentDirectory:
        return DepartmentDirectory(self.ledger)

    @cached_property
    def gateway(self) -> ValueEncryptionGateway:
        return ValueEncryptionGateway(
            self.relayer, self.config.ledger_address, self.current_session, self.clock
        )

    @cached_property
    def resolver(self) -> DecryptionResolver:
        return DecryptionResolver(
            PublicDecryptionChannel(self.relayer),
            UserDecryptionChannel(
                self.relayer, self.config.ledger_address, self.current_session, self.clock
            ),
        )

    @cached_property
    def history(self) -> PaymentHistoryService:
        return PaymentHistoryService(self.ledger, self.transfers, self.resolver, self.config)

    @cached_property
    def paystub(self) -> PaystubService:
        return PaystubService(self.ledger, self.resolver, self.history, self.departments)

    @cached_property
    def roster(self) -> RosterService:
        return RosterService(
            self.ledger, self.resolver, self.departments, self.config.default_page_size
        )

    @cached_property
    def audit(self) -> AuditService:
        return AuditService(
            self.ledger, self.transfers, self.resolver, self.departments, self.config
        )

    @cached_property
    def workflows(self) -> PayrollWorkflows:
        return PayrollWorkflows(
            self.ledger,
            self.gateway,
            self.config,
            payer=self.payer,
            settlement_cache=self.settlement_cache,
            departments=self.departments,
            guard=self.guard,
        )
