"""
Department directory: id -> display name.

Loaded once from the payroll ledger and refreshed explicitly after a
department is added.  Keys are lowercase ids; a department whose name is
empty is shown by its id.  A failed read propagates and leaves the
previously loaded map in place.
"""

from __future__ import annotations

from dataclasses import dataclass

from payroll_kernel.domain.records import Department
from payroll_kernel.domain.values import address_key
from payroll_kernel.logging_config import get_logger
from payroll_services.ledger_client import LedgerClient

logger = get_logger("services.department_directory")


@dataclass(frozen=True)
class DepartmentOption:
    """Selectable department (value is the id, label the name)."""

    value: str
    label: str


class DepartmentDirectory:

    def __init__(self, ledger: LedgerClient):
        self._ledger = ledger
        self._names: dict[str, str] = {}
        self._loaded = False

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    async def refresh(self) -> dict[str, str]:
        departments = await self._ledger.get_departments()
        self._names = {
            address_key(d.department_id): d.name or d.department_id
            for d in departments
        }
        self._loaded = True
        logger.debug("departments_loaded", extra={"count": len(self._names)})
        return self.names()

    async def ensure_loaded(self) -> dict[str, str]:
        if not self._loaded:
            return await self.refresh()
        return self.names()

    def names(self) -> dict[str, str]:
        return dict(self._names)

    def ids(self) -> list[str]:
        return list(self._names)

    def name_of(self, department_id: str | None) -> str:
        if not department_id:
            return ""
        return self._names.get(address_key(department_id), department_id)

    def departments(self) -> list[Department]:
        return [Department(dept_id, name) for dept_id, name in self._names.items()]

    def options(self) -> list[DepartmentOption]:
        """Options sorted by display name."""
        return sorted(
            (DepartmentOption(value=k, label=v) for k, v in self._names.items()),
            key=lambda o: o.label,
        )
