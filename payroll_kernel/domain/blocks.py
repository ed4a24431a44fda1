"""
Block windows -- resolving a "fromBlock" setting against the chain head.

A window specification is one of:

    "latest"        -> only the head block
    "latest-K"      -> the last K blocks (clamped at genesis)
    "<height>"      -> an explicit starting height

and is resolved into a concrete inclusive ``BlockWindow`` once the current
height is known.
"""

from __future__ import annotations

from dataclasses import dataclass

from payroll_kernel.exceptions import InvalidBlockWindowError

DEFAULT_LOOKBACK = 5000
"""K used when the spec is the bare prefix "latest-"."""


def _is_block_number(text: str) -> bool:
    # str.isdigit() alone also accepts superscripts and other Unicode digits
    return text.isascii() and text.isdigit()


@dataclass(frozen=True)
class BlockWindow:
    """Inclusive block range [from_block, to_block]."""

    from_block: int
    to_block: int

    def __post_init__(self) -> None:
        if self.from_block < 0 or self.to_block < self.from_block:
            raise ValueError(f"Invalid block range {self.from_block}..{self.to_block}")

    def contains(self, block_number: int) -> bool:
        return self.from_block <= block_number <= self.to_block


@dataclass(frozen=True)
class BlockWindowSpec:
    """Unresolved window: either relative to latest or an explicit height."""

    lookback: int | None = 0
    explicit_from: int | None = None

    @classmethod
    def parse(cls, spec: str | int | None) -> BlockWindowSpec:
        if spec is None:
            return cls(lookback=0)
        if isinstance(spec, int) and not isinstance(spec, bool):
            if spec < 0:
                raise InvalidBlockWindowError(str(spec))
            return cls(lookback=None, explicit_from=spec)
        text = str(spec).strip().lower()
        if text in ("", "latest"):
            return cls(lookback=0)
        if text.startswith("latest-"):
            tail = text[len("latest-"):]
            if tail == "":
                return cls(lookback=DEFAULT_LOOKBACK)
            if not _is_block_number(tail):
                raise InvalidBlockWindowError(str(spec))
            return cls(lookback=int(tail))
        if _is_block_number(text):
            return cls(lookback=None, explicit_from=int(text))
        raise InvalidBlockWindowError(str(spec))

    @classmethod
    def last(cls, blocks: int) -> BlockWindowSpec:
        return cls(lookback=blocks)

    def resolve(self, latest: int) -> BlockWindow:
        """Concrete window ending at ``latest``."""
        if self.explicit_from is not None:
            start = min(self.explicit_from, latest)
        else:
            start = max(0, latest - (self.lookback or 0))
        return BlockWindow(from_block=start, to_block=latest)
