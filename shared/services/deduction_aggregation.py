"""Агрегация удержаний и авансов за период."""

from datetime import datetime
from decimal import Decimal
from typing import Iterable, List

from core.utils.timezone_helper import in_range
from domain.entities.advance import Advance
from domain.entities.discount import Discount

ZERO = Decimal("0")


def is_discount_applicable(discount: Discount, now: datetime) -> bool:
    """
    Действует ли удержание в момент now.

    Удержание должно быть активно И не истекло. Для повторяющихся
    удержаний дата окончания не проверяется.
    """
    if not discount.is_active:
        return False
    if discount.is_recurring or discount.end_date is None:
        return True
    return now <= discount.end_date


def active_discount_amount(
    discounts: Iterable[Discount],
    employee_id: str,
    start: datetime,
    end: datetime,
    now: datetime,
) -> Decimal:
    """Сумма действующих удержаний сотрудника, начатых в [start, end]."""
    return sum(
        (
            d.amount
            for d in discounts
            if d.employee_id == employee_id
            and in_range(d.start_date, start, end)
            and is_discount_applicable(d, now)
        ),
        ZERO,
    )


def active_advance_amount(
    advances: Iterable[Advance],
    employee_id: str,
    start: datetime,
    end: datetime,
) -> Decimal:
    """Сумма непогашенных и не отклоненных авансов сотрудника, запрошенных в [start, end]."""
    return sum(
        (
            a.amount
            for a in advances
            if a.employee_id == employee_id
            and in_range(a.request_date, start, end)
            and a.is_outstanding
        ),
        ZERO,
    )


def total_discount_amount(discounts: Iterable[Discount], start: datetime, end: datetime) -> Decimal:
    """Сумма активных удержаний всех сотрудников, начатых в [start, end]."""
    return sum(
        (d.amount for d in discounts if d.is_active and in_range(d.start_date, start, end)),
        ZERO,
    )


def expired_discounts(discounts: Iterable[Discount], now: datetime) -> List[Discount]:
    """Активные неповторяющиеся удержания, у которых прошла дата окончания."""
    return [
        d for d in discounts
        if d.is_active and not d.is_recurring and d.end_date is not None and d.end_date < now
    ]


def recurring_discounts(discounts: Iterable[Discount]) -> List[Discount]:
    return [d for d in discounts if d.is_recurring and d.is_active]
