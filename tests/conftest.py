"""
Pytest fixtures for the payroll test suite.

Provides:
- Structured-logging setup and a ``captured_logs`` fixture
- In-memory sandbox collaborators (chain, relayer, payroll ledger, token)
- A seeded payroll with two departments and three employees
- An in-memory SQLite settlement cache
- A fully wired ``PayrollContext``

No network or external database is needed; the settlement cache runs on
``sqlite:///:memory:``.
"""

import json
import logging
from io import StringIO

import pytest

from payroll_config.schema import PayrollConfig
from payroll_kernel.domain.clock import DeterministicClock
from payroll_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from payroll_services.context import PayrollContext
from payroll_services.decryption_resolver import (
    DecryptionResolver,
    PublicDecryptionChannel,
    UserDecryptionChannel,
)
from payroll_services.encryption_gateway import ValueEncryptionGateway
from payroll_services.settlement_cache import SettlementCache
from tests.sandbox import (
    ADMIN,
    ALICE,
    BOB,
    CAROL,
    DEPT_ENG,
    DEPT_OPS,
    LEDGER,
    TOKEN,
    SandboxChain,
    SandboxLedger,
    SandboxPayer,
    SandboxRelayer,
    SandboxTransferLedger,
    session_for,
)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture payroll_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs):
            ...
            logs = captured_logs()
            assert any(r["message"] == "payments_reconciled" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("payroll_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Sandbox collaborators
# =============================================================================

# Monthly figures chosen so the per-second rate is exact.
ALICE_MONTHLY = 5_184_000_000   # 2000 / s, tax 400 / s
BOB_MONTHLY = 2_592_000_000     # 1000 / s, tax 200 / s
CAROL_MONTHLY = 7_776_000_000   # 3000 / s, tax 600 / s


@pytest.fixture
def clock():
    return DeterministicClock()


@pytest.fixture
def chain():
    return SandboxChain(height=100)


@pytest.fixture
def relayer():
    return SandboxRelayer()


@pytest.fixture
def ledger(chain, relayer):
    return SandboxLedger(chain, relayer)


@pytest.fixture
def staffed_ledger(ledger):
    """Engineering: Alice, Bob.  Operations: Carol."""
    ledger.seed_department(DEPT_ENG, "Engineering")
    ledger.seed_department(DEPT_OPS, "Operations")
    ledger.seed_employee(ALICE, DEPT_ENG, ALICE_MONTHLY, 2000, 400, 1_600_000, 400_000)
    ledger.seed_employee(BOB, DEPT_ENG, BOB_MONTHLY, 1000, 200, 800_000, 200_000)
    ledger.seed_employee(CAROL, DEPT_OPS, CAROL_MONTHLY, 3000, 600, 2_400_000, 600_000)
    return ledger


@pytest.fixture
def token_ledger(chain):
    return SandboxTransferLedger(chain)


@pytest.fixture
def payer(token_ledger):
    return SandboxPayer(token_ledger)


@pytest.fixture
def config():
    return PayrollConfig(
        ledger_address=LEDGER,
        settlement_token_address=TOKEN,
        settlement_cache_url="sqlite:///:memory:",
    )


@pytest.fixture
def admin_session():
    return session_for(ADMIN)


@pytest.fixture
def make_resolver(relayer, clock):
    """Build a resolver whose user channel reads as ``caller``."""

    def _make(caller=ADMIN):
        session = session_for(caller) if caller else None
        return DecryptionResolver(
            PublicDecryptionChannel(relayer),
            UserDecryptionChannel(relayer, LEDGER, lambda: session, clock),
        )

    return _make


@pytest.fixture
def gateway(relayer, clock, admin_session):
    return ValueEncryptionGateway(relayer, LEDGER, lambda: admin_session, clock)


# =============================================================================
# Persistence and context
# =============================================================================


@pytest.fixture
def settlement_cache(clock):
    cache = SettlementCache.from_url("sqlite:///:memory:", clock)
    yield cache
    cache.close()


@pytest.fixture
def context(config, staffed_ledger, relayer, token_ledger, payer, clock, settlement_cache, admin_session):
    return PayrollContext(
        config=config,
        ledger=staffed_ledger,
        relayer=relayer,
        transfers=token_ledger,
        payer=payer,
        clock=clock,
        settlement_cache=settlement_cache,
        session=admin_session,
    )
