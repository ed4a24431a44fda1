"""Tests for top-earner ranking."""

import pytest

from payroll_engines.ranking import EarnerAccrual, rank_top_earners

DEPT = "0x" + "e1" * 32


def accrual(tag: str, net, tax=0) -> EarnerAccrual:
    return EarnerAccrual(address="0x" + tag * 40, department_id=DEPT, net=net, tax=tax)


class TestRanking:

    def test_highest_net_first(self):
        ranked = rank_top_earners([accrual("1", 10), accrual("2", 30), accrual("3", 20)])

        assert [a.net for a in ranked] == [30, 20, 10]

    def test_limit(self):
        accruals = [accrual(str(i), i * 10) for i in range(1, 9)]

        ranked = rank_top_earners(accruals, limit=5)

        assert [a.net for a in ranked] == [80, 70, 60, 50, 40]

    def test_unavailable_ranks_last_not_as_zero(self):
        ranked = rank_top_earners([accrual("1", None), accrual("2", 0), accrual("3", 5)])

        assert [a.net for a in ranked] == [5, 0, None]
        assert not ranked[-1].is_available

    def test_ties_keep_input_order(self):
        ranked = rank_top_earners([accrual("1", 10), accrual("2", 10)])

        assert [a.address[-1] for a in ranked] == ["1", "2"]

    def test_gross_requires_both(self):
        assert accrual("1", 80, 20).gross == 100
        assert accrual("1", 80, None).gross is None

    def test_zero_limit(self):
        assert rank_top_earners([accrual("1", 1)], limit=0) == ()

    def test_negative_limit_rejected(self):
        with pytest.raises(ValueError):
            rank_top_earners([], limit=-1)
