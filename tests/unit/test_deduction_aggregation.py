"""Юнит-тесты агрегации удержаний и авансов."""

from datetime import timedelta
from decimal import Decimal

from domain.entities import AdvanceStatus
from shared.services.deduction_aggregation import (
    active_advance_amount,
    active_discount_amount,
    expired_discounts,
    is_discount_applicable,
    recurring_discounts,
    total_discount_amount,
)


class TestDiscountApplicability:
    """Удержание действует, если оно активно И не истекло."""

    def test_open_ended_active_discount(self, make_discount, now):
        assert is_discount_applicable(make_discount(), now)

    def test_inactive_discount_before_end_date(self, make_discount, now):
        discount = make_discount(is_active=False, end_date=now + timedelta(days=30))
        assert not is_discount_applicable(discount, now)

    def test_expired_discount(self, make_discount, now):
        discount = make_discount(end_date=now - timedelta(seconds=1))
        assert not is_discount_applicable(discount, now)

    def test_end_date_is_inclusive(self, make_discount, now):
        assert is_discount_applicable(make_discount(end_date=now), now)

    def test_recurring_ignores_end_date(self, make_discount, now):
        discount = make_discount(is_recurring=True, end_date=now - timedelta(days=10))
        assert is_discount_applicable(discount, now)


class TestDiscountSums:

    def test_employee_amount_in_window(self, make_discount, now):
        start, end = now - timedelta(days=10), now
        discounts = [
            make_discount("d1", amount="50"),
            make_discount("d2", amount="20", start_date=now - timedelta(days=2)),
            make_discount("d3", amount="99", employee_id="e2"),
            make_discount("d4", amount="70", start_date=now - timedelta(days=30)),
            make_discount("d5", amount="15", is_active=False),
            make_discount("d6", amount="11", end_date=now - timedelta(days=1)),
        ]

        assert active_discount_amount(discounts, "e1", start, end, now) == Decimal("70")

    def test_total_for_all_employees(self, make_discount, now):
        discounts = [
            make_discount("d1", amount="50"),
            make_discount("d2", amount="30", employee_id="e2"),
            make_discount("d3", amount="15", is_active=False),
        ]

        assert total_discount_amount(discounts, now - timedelta(days=10), now) == Decimal("80")

    def test_expired_and_recurring_lists(self, make_discount, now):
        discounts = [
            make_discount("d1", end_date=now - timedelta(days=1)),
            make_discount("d2", is_recurring=True, end_date=now - timedelta(days=1)),
            make_discount("d3", end_date=now + timedelta(days=1)),
            make_discount("d4", is_active=False, end_date=now - timedelta(days=1)),
        ]

        assert [d.id for d in expired_discounts(discounts, now)] == ["d1"]
        assert [d.id for d in recurring_discounts(discounts)] == ["d2"]


class TestAdvanceSums:

    def test_outstanding_advances_only(self, make_advance, now):
        advances = [
            make_advance("a1", amount="200"),
            make_advance("a2", amount="100", status=AdvanceStatus.APPROVED),
            make_advance("a3", amount="300", status=AdvanceStatus.REJECTED),
            make_advance("a4", amount="400", status=AdvanceStatus.COMPLETED, is_fully_deducted=True),
            make_advance("a5", amount="500", employee_id="e2"),
            make_advance("a6", amount="600", request_date=now - timedelta(days=60)),
        ]

        total = active_advance_amount(advances, "e1", now - timedelta(days=30), now)

        assert total == Decimal("300")
