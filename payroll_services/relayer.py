"""
payroll_services.relayer -- Interface to the encryption/decryption relayer.

The relayer is the external service that turns plaintexts into ledger
handles (with an attestation) and handles back into plaintexts, through
two channels:

* public decryption -- no caller authorization, only for handles the
  ledger has marked revealable with a prior "publish" write;
* user decryption -- requires an ``AuthSession`` bound to (ledger, caller)
  and succeeds only for handles that caller may read.

Both decryption calls are atomic per batch: implementations either return
exactly one plaintext per handle, in order, or raise
``DecryptionChannelError`` for the whole batch.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass

from payroll_kernel.domain.values import EncryptedInput, Handle, address_key


@dataclass(frozen=True)
class AuthSession:
    """
    An authenticated reader/submitter session.

    Established outside this core (wallet signature); the core only checks
    that it is bound to the right ledger and has not expired.
    """

    ledger: str
    caller: str
    expires_at: int | None = None
    credential: bytes = b""

    def is_live(self, now: int) -> bool:
        return self.expires_at is None or now < self.expires_at

    def is_bound_to(self, ledger: str) -> bool:
        return address_key(self.ledger) == address_key(ledger)


class Relayer(ABC):
    """Encryption and decryption service for ledger values."""

    @abstractmethod
    async def encrypt_uint64(
        self,
        ledger: str,
        submitter: str,
        value: int,
    ) -> EncryptedInput:
        """Encrypt one 64-bit plaintext for submission by ``submitter``."""
        ...

    @abstractmethod
    async def public_decrypt(self, handles: Sequence[Handle]) -> list[int]:
        """Decrypt published handles. Atomic per batch."""
        ...

    @abstractmethod
    async def user_decrypt(
        self,
        handles: Sequence[Handle],
        session: AuthSession,
    ) -> list[int]:
        """Decrypt handles the session's caller may read. Atomic per batch."""
        ...
