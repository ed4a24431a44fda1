"""
payroll_services.decryption_resolver -- Resolve encrypted handles to plaintext.

Responsibility:
    Turn ledger handles back into plaintext through two independent
    channels, trying them in a fixed order that depends on the kind of
    quantity being read, and report every handle's outcome as a tagged
    ``Resolution``: either ``Resolved(value)`` or ``Unavailable``.

Architecture position:
    Services -- orchestration over the ``Relayer`` collaborator.

Fallback order (fixed per quantity kind):

    Quantity                          Order
    --------------------------------  ---------------
    PERSONAL_RATE                     user  -> public
    PERSONAL_ACCRUED                  public -> user
    AGGREGATE                         public -> user
    RANKING                           user  -> public
    PAYMENT_RECORD (Paid amounts)     user  -> public
    ROSTER (HR monthly/accrued)       user  -> public

    Rates are private until revealed, so the owner channel is expected to
    succeed first; accrued figures and aggregates are published for audit,
    so the public channel is expected to succeed first.

Invariants enforced:
    - Exactly one Resolution per input handle, in input order, for any
      batch size; an empty batch performs no channel call.
    - Channel calls are atomic: a channel either returns every value of the
      batch or none of them.  No partial results are ever mixed in.
    - When no channel can decrypt the whole batch, each handle is retried
      on its own through the same order, so one unpublished handle does not
      make its neighbours unavailable.
    - Unavailable is never coalesced with zero.

Failure modes:
    - Channel rejections are captured as ``ChannelOutcome`` values; they
      never escape ``resolve``.
    - ``require`` raises DecryptionUnavailableError for an Unavailable.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import Enum

from payroll_kernel.domain.clock import Clock, SystemClock
from payroll_kernel.domain.values import Handle
from payroll_kernel.exceptions import (
    AuthenticationError,
    DecryptionError,
    DecryptionUnavailableError,
)
from payroll_kernel.logging_config import get_logger
from payroll_services.encryption_gateway import SessionProvider, require_session
from payroll_services.relayer import Relayer

logger = get_logger("services.decryption_resolver")


class ChannelName(str, Enum):
    """Decryption channel identifiers."""

    PUBLIC = "public"
    USER = "user"


class QuantityKind(str, Enum):
    """What a handle represents; selects the channel order."""

    PERSONAL_RATE = "personal_rate"
    PERSONAL_ACCRUED = "personal_accrued"
    AGGREGATE = "aggregate"
    RANKING = "ranking"
    PAYMENT_RECORD = "payment_record"
    ROSTER = "roster"


FALLBACK_ORDER: Mapping[QuantityKind, tuple[ChannelName, ...]] = {
    QuantityKind.PERSONAL_RATE: (ChannelName.USER, ChannelName.PUBLIC),
    QuantityKind.PERSONAL_ACCRUED: (ChannelName.PUBLIC, ChannelName.USER),
    QuantityKind.AGGREGATE: (ChannelName.PUBLIC, ChannelName.USER),
    QuantityKind.RANKING: (ChannelName.USER, ChannelName.PUBLIC),
    QuantityKind.PAYMENT_RECORD: (ChannelName.USER, ChannelName.PUBLIC),
    QuantityKind.ROSTER: (ChannelName.USER, ChannelName.PUBLIC),
}

_PERSONAL_KINDS = frozenset({
    QuantityKind.PERSONAL_RATE,
    QuantityKind.PERSONAL_ACCRUED,
    QuantityKind.PAYMENT_RECORD,
})


# ---------------------------------------------------------------------------
# Tagged results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ChannelOutcome:
    """Result of one atomic channel call."""

    channel: ChannelName
    values: tuple[int, ...] | None = None
    reason: str | None = None

    @property
    def ok(self) -> bool:
        return self.values is not None


@dataclass(frozen=True)
class Resolved:
    """Handle decrypted to a plaintext value."""

    handle: Handle
    value: int
    channel: ChannelName

    @property
    def is_resolved(self) -> bool:
        return True


@dataclass(frozen=True)
class Unavailable:
    """Every channel failed for this handle. Not the same as zero."""

    handle: Handle
    attempts: tuple[ChannelOutcome, ...]

    @property
    def is_resolved(self) -> bool:
        return False

    @property
    def channels(self) -> tuple[str, ...]:
        return tuple(a.channel.value for a in self.attempts)


Resolution = Resolved | Unavailable


def value_or_none(resolution: Resolution) -> int | None:
    """Plaintext for a Resolved, None for an Unavailable."""
    return resolution.value if isinstance(resolution, Resolved) else None


def require(resolution: Resolution) -> int:
    """Plaintext, or DecryptionUnavailableError for an Unavailable."""
    if isinstance(resolution, Resolved):
        return resolution.value
    raise DecryptionUnavailableError(str(resolution.handle), resolution.channels)


# ---------------------------------------------------------------------------
# Channels
# ---------------------------------------------------------------------------


class DecryptionChannel(ABC):
    """One decryption strategy. Never raises for a rejected batch."""

    name: ChannelName

    async def decrypt(self, handles: Sequence[Handle]) -> ChannelOutcome:
        try:
            values = await self._decrypt(handles)
        except (DecryptionError, AuthenticationError) as exc:
            return ChannelOutcome(self.name, reason=f"{type(exc).__name__}: {exc}")
        if len(values) != len(handles):
            return ChannelOutcome(
                self.name,
                reason=f"returned {len(values)} values for {len(handles)} handles",
            )
        return ChannelOutcome(self.name, values=tuple(int(v) for v in values))

    @abstractmethod
    async def _decrypt(self, handles: Sequence[Handle]) -> list[int]:
        ...


class PublicDecryptionChannel(DecryptionChannel):
    """Threshold decryption of published handles; no caller authorization."""

    name = ChannelName.PUBLIC

    def __init__(self, relayer: Relayer):
        self._relayer = relayer

    async def _decrypt(self, handles: Sequence[Handle]) -> list[int]:
        return await self._relayer.public_decrypt(handles)


class UserDecryptionChannel(DecryptionChannel):
    """Owner decryption; requires a live session bound to the ledger."""

    name = ChannelName.USER

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

    async def _decrypt(self, handles: Sequence[Handle]) -> list[int]:
        session = require_session(
            self._session_provider, self._ledger, self._clock, "user_decrypt"
        )
        return await self._relayer.user_decrypt(handles, session)


# ---------------------------------------------------------------------------
# Resolver
# ---------------------------------------------------------------------------


class DecryptionResolver:
    """
    Resolves handles through an ordered list of channels per quantity kind.

    Usage:
        resolver = DecryptionResolver(public_channel, user_channel)
        net, tax = await resolver.resolve_aggregate([h_net, h_tax])
        if net.is_resolved and tax.is_resolved:
            gross = net.value + tax.value
    """

    def __init__(
        self,
        public: DecryptionChannel,
        user: DecryptionChannel,
        order: Mapping[QuantityKind, tuple[ChannelName, ...]] | None = None,
    ):
        self._channels: dict[ChannelName, DecryptionChannel] = {
            ChannelName.PUBLIC: public,
            ChannelName.USER: user,
        }
        self._order = dict(order or FALLBACK_ORDER)

    def order_for(self, kind: QuantityKind) -> tuple[ChannelName, ...]:
        return self._order[kind]

    async def resolve(
        self,
        handles: Sequence[Handle],
        kind: QuantityKind,
    ) -> list[Resolution]:
        """One Resolution per handle, in order."""
        batch = list(handles)
        if not batch:
            return []

        order = self.order_for(kind)
        attempts = await self._run_chain(batch, order)
        winner = attempts[-1] if attempts and attempts[-1].ok else None
        if winner is not None:
            logger.debug("handles_resolved", extra={
                "kind": kind.value,
                "batch_size": len(batch),
                "channel": winner.channel.value,
                "attempts": len(attempts),
            })
            return [
                Resolved(handle=h, value=v, channel=winner.channel)
                for h, v in zip(batch, winner.values)
            ]

        if len(batch) == 1:
            self._log_unavailable(kind, batch, attempts)
            return [Unavailable(handle=batch[0], attempts=tuple(attempts))]

        # No channel took the whole batch: resolve handle by handle.
        results: list[Resolution] = []
        for handle in batch:
            results.extend(await self.resolve([handle], kind))
        return results

    async def resolve_personal(
        self,
        handles: Sequence[Handle],
        kind: QuantityKind,
    ) -> list[Resolution]:
        """Resolve the caller's own quantities (rate, accrued, payments)."""
        if kind not in _PERSONAL_KINDS:
            raise ValueError(f"{kind.value} is not a personal quantity")
        return await self.resolve(handles, kind)

    async def resolve_aggregate(self, handles: Sequence[Handle]) -> list[Resolution]:
        """Resolve department/company aggregates."""
        return await self.resolve(handles, QuantityKind.AGGREGATE)

    async def resolve_ranking(self, handles: Sequence[Handle]) -> list[Resolution]:
        """Resolve cross-employee figures for top-N ranking."""
        return await self.resolve(handles, QuantityKind.RANKING)

    async def _run_chain(
        self,
        batch: list[Handle],
        order: tuple[ChannelName, ...],
    ) -> list[ChannelOutcome]:
        attempts: list[ChannelOutcome] = []
        for name in order:
            outcome = await self._channels[name].decrypt(batch)
            attempts.append(outcome)
            if outcome.ok:
                break
        return attempts

    @staticmethod
    def _log_unavailable(
        kind: QuantityKind,
        batch: list[Handle],
        attempts: list[ChannelOutcome],
    ) -> None:
        logger.warning("handle_unavailable", extra={
            "kind": kind.value,
            "handle": str(batch[0]),
            "reasons": [f"{a.channel.value}: {a.reason}" for a in attempts],
        })
