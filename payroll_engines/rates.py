"""
payroll_engines.rates -- Per-second rate and tax derivation.

Responsibility:
    Turn a monthly compensation figure (integer base units) into the
    per-second gross rate and per-second tax that the payroll ledger
    accrues against.  Also derives the tax share of one-off bonuses and
    the hourly figure shown on paystubs.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Determinism: identical input always yields identical output.  The
      rate, the monthly figure and the tax are encrypted and submitted
      independently, so any drift between two derivations of the same
      input would leave the ledger internally inconsistent.
    - Integer arithmetic only: rate = round_half_up(monthly / S) computed
      as (monthly + S // 2) // S; tax = rate // 5 (truncating).

Failure modes:
    - SubmissionError for negative or non-integer input.

Usage:
    from payroll_engines.rates import derive_rate_and_tax

    derived = derive_rate_and_tax(5_000_000_000)   # 5,000.000000 tokens/month
    derived.rate_per_second, derived.tax_per_second
"""

from __future__ import annotations

from dataclasses import dataclass

from payroll_engines.tracer import traced_engine
from payroll_kernel.exceptions import SubmissionError

SECONDS_PER_MONTH = 30 * 24 * 3600
SECONDS_PER_HOUR = 3600
TAX_DIVISOR = 5  # fixed 20% tax ratio


@dataclass(frozen=True)
class RateDerivation:
    """Derived per-second figures for one monthly amount."""

    monthly: int
    rate_per_second: int
    tax_per_second: int

    @property
    def net_per_second(self) -> int:
        return self.rate_per_second - self.tax_per_second


def _require_amount(value: object) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise SubmissionError(value, "amount must be an integer in base units")
    if value < 0:
        raise SubmissionError(value, "amount must not be negative")
    return value


@traced_engine("rate_derivation", "1.0", fingerprint_fields=("monthly",))
def derive_rate_and_tax(monthly: int) -> RateDerivation:
    """
    Derive (rate/sec, tax/sec) from a monthly amount.

    Args:
        monthly: Non-negative monthly gross in base units.

    Returns:
        RateDerivation with rate rounded half-up and tax truncated.
    """
    monthly = _require_amount(monthly)
    rate = (monthly + SECONDS_PER_MONTH // 2) // SECONDS_PER_MONTH
    return RateDerivation(
        monthly=monthly,
        rate_per_second=rate,
        tax_per_second=rate // TAX_DIVISOR,
    )


def derive_bonus_tax(gross: int) -> int:
    """Tax withheld from a one-off bonus (truncating 20%)."""
    return _require_amount(gross) // TAX_DIVISOR


def hourly_rate(rate_per_second: int) -> int:
    """Gross per hour for paystub display."""
    return rate_per_second * SECONDS_PER_HOUR
