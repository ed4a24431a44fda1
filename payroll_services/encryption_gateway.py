"""
payroll_services.encryption_gateway -- Package plaintext amounts as encrypted inputs.

Responsibility:
    Validate a plaintext amount and have the relayer wrap it into an opaque
    handle plus attestation bound to (ledger, submitter), ready to be passed
    to a ledger write.

Architecture position:
    Services -- thin orchestration over the ``Relayer`` collaborator.

Invariants enforced:
    - One relayer call per quantity.  Equal values are NOT deduplicated:
      each attestation is bound to its own submission context.
    - Plaintexts are integers in [0, 2**64 - 1].

Failure modes:
    - AuthenticationError: no live session bound to this ledger.
    - SubmissionError: negative, non-integer, or out-of-domain value.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence

from payroll_kernel.domain.clock import Clock, SystemClock
from payroll_kernel.domain.values import UINT64_MAX, EncryptedInput
from payroll_kernel.exceptions import AuthenticationError, SubmissionError
from payroll_kernel.logging_config import get_logger
from payroll_services.relayer import AuthSession, Relayer

logger = get_logger("services.encryption_gateway")

SessionProvider = Callable[[], AuthSession | None]


def require_session(
    session_provider: SessionProvider,
    ledger: str,
    clock: Clock,
    operation: str,
) -> AuthSession:
    """Return the live session bound to ``ledger`` or raise AuthenticationError."""
    session = session_provider()
    if session is None or not session.is_bound_to(ledger) or not session.is_live(clock.timestamp()):
        raise AuthenticationError(operation)
    return session


def validate_amount(value: object) -> int:
    """Check that value is an integer inside the encrypted 64-bit domain."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise SubmissionError(value, "amount must be an integer in base units")
    if value < 0:
        raise SubmissionError(value, "amount must not be negative")
    if value > UINT64_MAX:
        raise SubmissionError(value, "amount exceeds the 64-bit encrypted domain")
    return value


class ValueEncryptionGateway:
    """
    Turns plaintext amounts into ledger-ready encrypted inputs.

    Usage:
        gateway = ValueEncryptionGateway(relayer, ledger.address, lambda: session)
        enc = await gateway.submit_encrypted_amount(1_500_000)
        await ledger.mark_paid(employee, enc)
    """

    def __init__(
        self,
        relayer: Relayer,
        ledger_address: str,
        session_provider: SessionProvider,
        clock: Clock | None = None,
    ):
        self._relayer = relayer
        self._ledger = ledger_address
        self._session_provider = session_provider
        self._clock = clock or SystemClock()

    async def submit_encrypted_amount(self, value: int) -> EncryptedInput:
        """
        Encrypt one plaintext for submission by the current session's caller.

        Raises:
            AuthenticationError: no live session.
            SubmissionError: value outside [0, 2**64 - 1].
        """
        session = require_session(
            self._session_provider, self._ledger, self._clock, "submit_encrypted_amount"
        )
        amount = validate_amount(value)
        encrypted = await self._relayer.encrypt_uint64(self._ledger, session.caller, amount)
        logger.debug("amount_encrypted", extra={
            "ledger": self._ledger,
            "submitter": session.caller,
            "handle": str(encrypted.handle),
            "attestation_bytes": len(encrypted.attestation),
        })
        return encrypted

    async def submit_many(self, values: Sequence[int]) -> list[EncryptedInput]:
        """Encrypt each value with its own relayer call, in order."""
        return [await self.submit_encrypted_amount(v) for v in values]
