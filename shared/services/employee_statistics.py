"""Статистика по отдельному сотруднику и помесячные итоги выплат."""

from datetime import datetime
from decimal import Decimal
from typing import Iterable, List, Optional, Sequence

import pytz

from core.utils.timezone_helper import (
    TimezoneLike,
    current_month,
    in_range,
    month_bounds,
    timezone_helper,
)
from domain.entities.advance import Advance
from domain.entities.discount import Discount
from domain.entities.employee import Employee
from domain.entities.payment import Payment, PaymentStatus
from domain.entities.statistics import EmployeeStatistics, MonthlyPayment, MonthlyStats

ZERO = Decimal("0")


def completed_payments_in_month(
    payments: Iterable[Payment],
    month: int,
    year: int,
    tz: TimezoneLike = None,
) -> List[Payment]:
    """Завершенные выплаты с датой внутри календарного месяца."""
    start, end = month_bounds(month, year, tz)
    return [
        p for p in payments
        if p.status == PaymentStatus.COMPLETED and in_range(p.payment_date, start, end)
    ]


def compute_monthly_stats(
    payments: Iterable[Payment],
    month: int,
    year: int,
    tz: TimezoneLike = None,
) -> MonthlyStats:
    """
    Итоги месяца по завершенным выплатам.

    Args:
        payments: Выплаты (любые статусы и периоды)
        month: Месяц 1-12
        year: Год
        tz: Временная зона для границ месяца

    Returns:
        MonthlyStats: сумма, количество, удержания, авансы и средняя выплата
    """
    monthly = completed_payments_in_month(payments, month, year, tz)
    total = sum((p.amount for p in monthly), ZERO)
    count = len(monthly)
    return MonthlyStats(
        month=month,
        year=year,
        total_payments=total,
        total_discounts=sum((p.total_discounts for p in monthly), ZERO),
        total_advances=sum((p.total_advances for p in monthly), ZERO),
        payment_count=count,
        average_payment=total / count if count else ZERO,
    )


def compute_employee_statistics(
    employee: Employee,
    payments: Sequence[Payment],
    now: Optional[datetime] = None,
    tz: TimezoneLike = None,
    discounts: Iterable[Discount] = (),
    advances: Iterable[Advance] = (),
) -> EmployeeStatistics:
    """
    Статистика сотрудника по его выплатам.

    total_payments учитывает только завершенные выплаты, а суммы
    удержаний и авансов берутся по всем выплатам независимо от статуса.
    Сотрудник считается ожидающим выплату, если в текущем месяце у него
    нет ни одной выплаты (любого статуса).
    """
    now = now or datetime.now(pytz.UTC)
    own = [p for p in payments if p.employee_id == employee.id]

    month, year = current_month(now, tz)
    start, end = month_bounds(month, year, tz)
    paid_this_month = any(in_range(p.payment_date, start, end) for p in own)

    history = []
    for p in own:
        local = timezone_helper.to_local(p.payment_date, tz)
        history.append(
            MonthlyPayment(
                month=local.month,
                year=local.year,
                amount=p.amount,
                payment_date=p.payment_date,
                status=p.status,
            )
        )

    return EmployeeStatistics(
        employee_id=employee.id,
        employee_name=employee.full_name,
        total_payments=sum((p.amount for p in own if p.status == PaymentStatus.COMPLETED), ZERO),
        total_discounts=sum((p.total_discounts for p in own), ZERO),
        total_advances=sum((p.total_advances for p in own), ZERO),
        last_payment_date=max((p.payment_date for p in own), default=None),
        pending_amount=ZERO if paid_this_month else employee.base_salary,
        payment_history=tuple(history),
        discount_history=tuple(sorted(discounts, key=lambda d: d.start_date, reverse=True)),
        advance_history=tuple(sorted(advances, key=lambda a: a.request_date, reverse=True)),
    )
