"""
Tests for the department directory.

Covers:
- Snapshot refresh with lowercase keys and id fallback for unnamed departments
- Name lookup for unknown and empty ids
- Options sorted by label
- A failed refresh keeps the previous map
"""

import pytest

from payroll_kernel.exceptions import LedgerReadError
from payroll_services.department_directory import DepartmentDirectory, DepartmentOption
from tests.sandbox import DEPT_ENG, DEPT_OPS

DEPT_UNNAMED = "0x" + "5a" * 32


@pytest.fixture
def directory(staffed_ledger):
    return DepartmentDirectory(staffed_ledger)


class TestRefresh:

    @pytest.mark.asyncio
    async def test_names(self, directory):
        names = await directory.refresh()

        assert names == {DEPT_ENG: "Engineering", DEPT_OPS: "Operations"}
        assert directory.is_loaded

    @pytest.mark.asyncio
    async def test_unnamed_department_uses_id(self, directory, staffed_ledger):
        staffed_ledger.seed_department(DEPT_UNNAMED.upper().replace("0X", "0x"))

        await directory.refresh()

        assert directory.name_of(DEPT_UNNAMED) == DEPT_UNNAMED

    @pytest.mark.asyncio
    async def test_ensure_loaded_reads_once(self, directory, staffed_ledger):
        await directory.ensure_loaded()
        staffed_ledger.seed_department(DEPT_UNNAMED, "Finance")

        names = await directory.ensure_loaded()

        assert DEPT_UNNAMED not in names

    @pytest.mark.asyncio
    async def test_failed_refresh_keeps_previous_map(self, directory, staffed_ledger):
        await directory.refresh()
        staffed_ledger.read_error = LedgerReadError("get_departments", "timeout")

        with pytest.raises(LedgerReadError):
            await directory.refresh()

        assert directory.name_of(DEPT_ENG) == "Engineering"


class TestLookup:

    @pytest.mark.asyncio
    async def test_name_of_is_case_insensitive(self, directory):
        await directory.refresh()

        assert directory.name_of(DEPT_OPS.upper().replace("0X", "0x")) == "Operations"

    def test_unknown_id_returned_as_is(self, directory):
        assert directory.name_of(DEPT_UNNAMED) == DEPT_UNNAMED

    @pytest.mark.parametrize("value", ["", None])
    def test_empty(self, directory, value):
        assert directory.name_of(value) == ""

    @pytest.mark.asyncio
    async def test_options_sorted_by_label(self, directory, staffed_ledger):
        staffed_ledger.seed_department(DEPT_UNNAMED, "Accounting")
        await directory.refresh()

        assert directory.options() == [
            DepartmentOption(DEPT_UNNAMED, "Accounting"),
            DepartmentOption(DEPT_ENG, "Engineering"),
            DepartmentOption(DEPT_OPS, "Operations"),
        ]

    @pytest.mark.asyncio
    async def test_departments(self, directory):
        await directory.refresh()

        assert {d.department_id for d in directory.departments()} == {DEPT_ENG, DEPT_OPS}
