"""
Агрегатор статистики дашборда.

Все функции чистые: входные списки не изменяются, результат
зависит только от аргументов (включая now). Разовый расчет в
StatisticsService и живой поток используют одни и те же функции.
"""

from datetime import datetime
from decimal import Decimal
from typing import Iterable, List, Optional, Sequence, Tuple

import pytz

from core.config.settings import settings
from core.utils.money import format_currency
from core.utils.timezone_helper import (
    TimezoneLike,
    current_month,
    day_bounds,
    in_range,
    previous_month,
)
from domain.entities.employee import Employee
from domain.entities.payment import Payment
from domain.entities.payment_method import PaymentMethod
from domain.entities.statistics import (
    ActivityItem,
    ActivityType,
    DashboardStatistics,
    MonthlyComparison,
    PaymentMethodStats,
)
from shared.services.employee_statistics import completed_payments_in_month, compute_monthly_stats

ZERO = Decimal("0")
HUNDRED = Decimal("100")


def active_employees(employees: Iterable[Employee]) -> List[Employee]:
    return [e for e in employees if e.is_active]


def pending_amount(employees: Iterable[Employee], monthly_payments: Sequence[Payment]) -> Decimal:
    """
    Сумма окладов активных сотрудников без завершенной выплаты в месяце.

    Проверка по принципу «все или ничего»: одна завершенная выплата
    любого размера снимает сотрудника из ожидающих.
    """
    paid = {p.employee_id for p in monthly_payments}
    return sum((e.base_salary for e in active_employees(employees) if e.id not in paid), ZERO)


def today_payments_count(payments: Iterable[Payment], now: datetime, tz: TimezoneLike = None) -> int:
    """Количество выплат за сегодня (любой статус)."""
    start, end = day_bounds(now, tz)
    return sum(1 for p in payments if in_range(p.payment_date, start, end))


def percentage_change(current: Decimal, previous: Decimal) -> Decimal:
    """
    Изменение к прошлому месяцу в процентах.

    0 если обе суммы нулевые, 100 если прошлый месяц нулевой,
    иначе (current - previous) / previous * 100.
    """
    if previous == ZERO:
        return HUNDRED if current > ZERO else ZERO
    return (current - previous) / previous * HUNDRED


def payment_method_distribution(
    monthly_payments: Sequence[Payment],
    month_total: Decimal,
) -> Tuple[PaymentMethodStats, ...]:
    """Распределение выплат месяца по способам; пустые группы не выводятся."""
    result = []
    for method in PaymentMethod:
        group = [p for p in monthly_payments if p.payment_method == method]
        if not group:
            continue
        group_total = sum((p.amount for p in group), ZERO)
        result.append(
            PaymentMethodStats(
                method=method,
                count=len(group),
                total_amount=group_total,
                percentage=group_total / month_total * HUNDRED if month_total > ZERO else ZERO,
            )
        )
    return tuple(result)


def recent_activity(payments: Iterable[Payment], limit: Optional[int] = None) -> Tuple[ActivityItem, ...]:
    """Последние выплаты по дате, от новых к старым."""
    limit = settings.recent_activity_limit if limit is None else limit
    latest = sorted(payments, key=lambda p: p.payment_date, reverse=True)[:limit]
    return tuple(
        ActivityItem(
            id=p.id,
            type=ActivityType.PAYMENT,
            title="Payment made",
            description=f"Payment to {p.employee_name} of {format_currency(p.amount)} ({p.payment_method.label})",
            timestamp=p.payment_date,
            amount=p.amount,
            employee_name=p.employee_name,
        )
        for p in latest
    )


def monthly_comparison(payments: Sequence[Payment], now: datetime, tz: TimezoneLike = None) -> MonthlyComparison:
    month, year = current_month(now, tz)
    prev_month, prev_year = previous_month(month, year)
    current = compute_monthly_stats(payments, month, year, tz)
    previous = compute_monthly_stats(payments, prev_month, prev_year, tz)
    return MonthlyComparison(
        current_month=current,
        previous_month=previous,
        percentage_change=percentage_change(current.total_payments, previous.total_payments),
    )


def assemble_dashboard_statistics(
    total_pending_amount: Decimal,
    current_month_payments: Decimal,
    total_employees: int,
    today_payments: int,
    payments: Sequence[Payment],
    now: datetime,
    tz: TimezoneLike = None,
    activity_limit: Optional[int] = None,
) -> DashboardStatistics:
    """
    Собирает снимок из готовых итогов и списка выплат.

    Сравнение с прошлым месяцем, распределение по способам и лента
    активности считаются из payments.
    """
    month, year = current_month(now, tz)
    monthly = completed_payments_in_month(payments, month, year, tz)
    return DashboardStatistics(
        total_pending_amount=total_pending_amount,
        current_month_payments=current_month_payments,
        total_employees=total_employees,
        today_payments=today_payments,
        recent_activity=recent_activity(payments, activity_limit),
        monthly_comparison=monthly_comparison(payments, now, tz),
        payment_method_distribution=payment_method_distribution(monthly, current_month_payments),
    )


def compute_dashboard_statistics(
    employees: Sequence[Employee],
    payments: Sequence[Payment],
    now: Optional[datetime] = None,
    tz: TimezoneLike = None,
    activity_limit: Optional[int] = None,
) -> DashboardStatistics:
    """
    Полный снимок статистики дашборда на момент now.

    Args:
        employees: Все сотрудники
        payments: Все выплаты
        now: Момент расчета (по умолчанию текущее время)
        tz: Временная зона для границ дня и месяца
        activity_limit: Длина ленты активности

    Returns:
        DashboardStatistics
    """
    now = now or datetime.now(pytz.UTC)
    month, year = current_month(now, tz)
    monthly = completed_payments_in_month(payments, month, year, tz)
    return assemble_dashboard_statistics(
        total_pending_amount=pending_amount(employees, monthly),
        current_month_payments=sum((p.amount for p in monthly), ZERO),
        total_employees=len(active_employees(employees)),
        today_payments=today_payments_count(payments, now, tz),
        payments=payments,
        now=now,
        tz=tz,
        activity_limit=activity_limit,
    )


def quick_dashboard_statistics(
    employees: Sequence[Employee],
    payments: Sequence[Payment],
    now: Optional[datetime] = None,
    tz: TimezoneLike = None,
) -> DashboardStatistics:
    """Быстрый частичный снимок: только число сотрудников и выплат за сегодня."""
    now = now or datetime.now(pytz.UTC)
    return DashboardStatistics(
        total_employees=len(active_employees(employees)),
        today_payments=today_payments_count(payments, now, tz),
    )
