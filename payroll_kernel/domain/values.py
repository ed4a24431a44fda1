"""
Value Objects -- Addresses, encrypted handles and base-unit amounts.

Responsibility:
    Provides the small immutable value types that every layer shares:
    normalised account addresses, opaque encrypted handles with their
    submission attestations, and conversions between display amounts and
    integer base units.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Addresses are compared case-insensitively; ``address_key`` is the
      canonical lowercase form used for every map key.
    - Handles are fixed-size (32-byte) opaque references; they carry no
      information about the plaintext.
    - Amounts are integers in base units.  Display conversion goes through
      ``Decimal`` only; floats never touch an amount.

Failure modes:
    - InvalidAddressError from ``normalize_address`` on malformed input.
    - ValueError from ``to_base_units`` when the display string is not a
      number or has more fractional digits than the token allows.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from payroll_kernel.exceptions import InvalidAddressError

UINT64_MAX = 2**64 - 1
"""Largest plaintext accepted by the 64-bit encrypted domain."""

HANDLE_BYTES = 32

_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")
_HANDLE_RE = re.compile(r"^0x[0-9a-fA-F]{64}$")


def is_address(value: object) -> bool:
    """True if value is a 0x-prefixed 20-byte hex string."""
    return isinstance(value, str) and bool(_ADDRESS_RE.match(value.strip()))


def normalize_address(value: str, setting: str = "address") -> str:
    """Validate and return the canonical lowercase form of an address."""
    if not is_address(value):
        raise InvalidAddressError(str(value), setting)
    return value.strip().lower()


def address_key(value: str) -> str:
    """Lowercase lookup key for an address (no validation)."""
    return str(value or "").strip().lower()


def short_address(value: str) -> str:
    """0x1234…abcd form used in log rows and labels."""
    s = str(value or "")
    return f"{s[:6]}…{s[-4:]}" if s.startswith("0x") and len(s) == 42 else s


@dataclass(frozen=True)
class Handle:
    """Opaque reference to an encrypted value held by the ledger."""

    value: str

    def __post_init__(self) -> None:
        if not _HANDLE_RE.match(self.value):
            raise ValueError(f"Handle must be 0x + {HANDLE_BYTES * 2} hex chars: {self.value!r}")
        object.__setattr__(self, "value", self.value.lower())

    @classmethod
    def from_bytes(cls, raw: bytes) -> Handle:
        if len(raw) != HANDLE_BYTES:
            raise ValueError(f"Handle must be {HANDLE_BYTES} bytes, got {len(raw)}")
        return cls("0x" + raw.hex())

    @property
    def is_zero(self) -> bool:
        """Uninitialised ledger slots return the all-zero handle."""
        return int(self.value, 16) == 0

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class EncryptedInput:
    """
    A plaintext packaged for submission to the ledger.

    ``attestation`` binds (ledger, submitter, handle) and asserts the
    value's well-formedness without revealing it.
    """

    handle: Handle
    attestation: bytes


def to_base_units(display: str | int | Decimal, decimals: int) -> int:
    """
    Convert a display amount ("1234.5") into integer base units.

    Raises:
        ValueError: if the value is not numeric, is negative, or has more
            fractional digits than ``decimals``.
    """
    try:
        amount = Decimal(str(display).strip() or "0")
    except InvalidOperation as exc:
        raise ValueError(f"Not a numeric amount: {display!r}") from exc
    if amount < 0:
        raise ValueError(f"Amount must not be negative: {display!r}")
    scaled = amount.scaleb(decimals)
    if scaled != scaled.to_integral_value():
        raise ValueError(f"Amount {display!r} has more than {decimals} decimal places")
    return int(scaled)


def format_base_units(value: int | None, decimals: int) -> str:
    """Render base units as a display string; None renders as '-'."""
    if value is None:
        return "-"
    quantum = Decimal(1).scaleb(-decimals)
    text = format(Decimal(value).scaleb(-decimals).quantize(quantum), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text
