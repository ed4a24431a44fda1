"""
payroll_engines.view_window -- Paged, filtered view over an ordered collection.

Responsibility:
    Slice an ordered collection (roster rows, audit-trail rows, payment
    history) into 1-based pages after applying a set of composable filters.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  A ViewWindow is an
    immutable value: every navigation returns a new window.

Invariants enforced:
    - page is always clamped into [1, page_count]; page_count is at least 1
      even for an empty collection.
    - Changing the page size, the filters or the source resets to page 1.
    - Filters compose by logical AND.
    - The source order is preserved within and across pages.

Failure modes:
    - ValueError for page_size < 1.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field, replace
from functools import cached_property
from typing import Any, Protocol, runtime_checkable


def _field(row: Any, name: str) -> Any:
    if isinstance(row, Mapping):
        return row.get(name)
    return getattr(row, name, None)


@runtime_checkable
class RowFilter(Protocol):
    """A predicate over one row."""

    def matches(self, row: Any) -> bool:
        ...


@dataclass(frozen=True)
class DepartmentFilter:
    """Exact department match (hex ids compared case-insensitively)."""

    department_id: str
    field_name: str = "department_id"

    def matches(self, row: Any) -> bool:
        if not self.department_id:
            return True
        return str(_field(row, self.field_name) or "").lower() == self.department_id.lower()


@dataclass(frozen=True)
class AddressFilter:
    """Case-insensitive substring match on an address field."""

    substring: str
    field_name: str = "address"

    def matches(self, row: Any) -> bool:
        needle = self.substring.strip().lower()
        if not needle:
            return True
        return needle in str(_field(row, self.field_name) or "").lower()


@dataclass(frozen=True)
class RangeFilter:
    """
    Inclusive numeric range on a resolved field.

    Rows whose field is unresolved (None) are kept: an unknown value is not
    evidence that the row is out of range.
    """

    field_name: str
    minimum: int | None = None
    maximum: int | None = None

    def matches(self, row: Any) -> bool:
        value = _field(row, self.field_name)
        if value is None:
            return True
        if self.minimum is not None and value < self.minimum:
            return False
        if self.maximum is not None and value > self.maximum:
            return False
        return True


@dataclass(frozen=True)
class ViewState:
    """Navigation summary of a window."""

    page: int
    page_size: int
    page_count: int
    total: int

    @property
    def label(self) -> str:
        return f"page {self.page} / {self.page_count}"


@dataclass(frozen=True)
class ViewWindow:
    """
    Immutable page of a filtered, ordered collection.

    Usage:
        window = ViewWindow(rows, page_size=25)
        window = window.with_filters(DepartmentFilter(dept_id), AddressFilter("ab12"))
        for row in window.items:
            ...
        window = window.next_page()
    """

    source: Sequence[Any] = ()
    page_size: int = 25
    page: int = 1
    filters: tuple[RowFilter, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if self.page_size < 1:
            raise ValueError(f"page_size must be at least 1, got {self.page_size}")
        object.__setattr__(self, "source", tuple(self.source))
        object.__setattr__(self, "filters", tuple(self.filters))
        object.__setattr__(self, "page", min(max(1, int(self.page)), self.page_count))

    @cached_property
    def rows(self) -> tuple[Any, ...]:
        """Source rows passing every filter, in source order."""
        return tuple(r for r in self.source if all(f.matches(r) for f in self.filters))

    @property
    def total(self) -> int:
        return len(self.rows)

    @property
    def page_count(self) -> int:
        return max(1, math.ceil(len(self.rows) / self.page_size))

    @property
    def items(self) -> tuple[Any, ...]:
        start = (self.page - 1) * self.page_size
        return self.rows[start:start + self.page_size]

    @property
    def state(self) -> ViewState:
        return ViewState(
            page=self.page,
            page_size=self.page_size,
            page_count=self.page_count,
            total=self.total,
        )

    @property
    def has_next(self) -> bool:
        return self.page < self.page_count

    @property
    def has_prev(self) -> bool:
        return self.page > 1

    def with_page(self, page: int) -> ViewWindow:
        return replace(self, page=page)

    def next_page(self) -> ViewWindow:
        return self.with_page(self.page + 1)

    def prev_page(self) -> ViewWindow:
        return self.with_page(self.page - 1)

    def with_page_size(self, page_size: int) -> ViewWindow:
        return replace(self, page_size=page_size, page=1)

    def with_filters(self, *filters: RowFilter) -> ViewWindow:
        return replace(self, filters=tuple(filters), page=1)

    def clear_filters(self) -> ViewWindow:
        return self.with_filters()

    def with_source(self, source: Iterable[Any]) -> ViewWindow:
        return replace(self, source=tuple(source), page=1)
