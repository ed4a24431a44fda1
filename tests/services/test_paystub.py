"""
Tests for PaystubService.

Covers:
- Rate, hourly figure and accrued amounts resolved for the employee
- Unavailable figures stay None (never zero) and gross follows them
- Missing employees and department naming
"""

import pytest

from payroll_kernel.exceptions import EmployeeNotFoundError
from payroll_services.department_directory import DepartmentDirectory
from payroll_services.payment_history import PaymentHistoryService
from payroll_services.paystub import PaystubService
from tests.sandbox import ALICE, DEPT_ENG, OUTSIDER


@pytest.fixture
def paystub_for(staffed_ledger, token_ledger, make_resolver, config):
    def _make(caller=ALICE, departments=None):
        resolver = make_resolver(caller)
        history = PaymentHistoryService(staffed_ledger, token_ledger, resolver, config)
        return PaystubService(staffed_ledger, resolver, history, departments)

    return _make


class TestBuildPaystub:
    """Statement assembly for an existing employee."""

    @pytest.mark.asyncio
    async def test_owner_view(self, paystub_for, staffed_ledger):
        departments = DepartmentDirectory(staffed_ledger)
        await departments.refresh()

        stub = await paystub_for(departments=departments).build_paystub(ALICE)

        assert stub.employee == ALICE
        assert stub.department_id == DEPT_ENG
        assert stub.department_name == "Engineering"
        assert stub.rate_per_second == 2000
        assert stub.hourly == 7_200_000
        assert stub.accrued_net == 1_600_000
        assert stub.accrued_tax == 400_000
        assert stub.gross == 2_000_000
        assert stub.history == ()

    @pytest.mark.asyncio
    async def test_includes_payment_history(self, paystub_for, staffed_ledger, gateway):
        await staffed_ledger.mark_paid(ALICE, await gateway.submit_encrypted_amount(600_000))

        stub = await paystub_for().build_paystub(ALICE)

        assert len(stub.history) == 1
        assert stub.history[0].net == 600_000
        assert stub.accrued_net == 1_000_000

    @pytest.mark.asyncio
    async def test_without_directory_uses_id(self, paystub_for):
        stub = await paystub_for().build_paystub(ALICE)

        assert stub.department_name == DEPT_ENG

    @pytest.mark.asyncio
    async def test_logs(self, paystub_for, captured_logs):
        await paystub_for().build_paystub(ALICE)

        (record,) = [r for r in captured_logs() if r["message"] == "paystub_built"]
        assert record["rate_resolved"] is True
        assert record["accrued_resolved"] is True


class TestUnavailableFigures:
    """A reader without access sees None, not zero."""

    @pytest.mark.asyncio
    async def test_outsider_view(self, paystub_for):
        stub = await paystub_for(caller=OUTSIDER).build_paystub(ALICE)

        assert stub.rate_per_second is None
        assert stub.hourly is None
        assert stub.accrued_net is None
        assert stub.gross is None


class TestMissingEmployee:

    @pytest.mark.asyncio
    async def test_not_found(self, paystub_for):
        with pytest.raises(EmployeeNotFoundError) as exc_info:
            await paystub_for().build_paystub(OUTSIDER)

        assert exc_info.value.address == OUTSIDER
        assert exc_info.value.code == "EMPLOYEE_NOT_FOUND"
