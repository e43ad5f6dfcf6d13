"""Производная статистика для дашборда и карточки сотрудника."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, Tuple

from domain.entities.advance import Advance
from domain.entities.discount import Discount
from domain.entities.payment import PaymentStatus
from domain.entities.payment_method import PaymentMethod

ZERO = Decimal("0")


class ActivityType(str, Enum):
    """Тип события в ленте активности."""
    PAYMENT = "PAYMENT"
    EMPLOYEE_ADDED = "EMPLOYEE_ADDED"
    DISCOUNT_APPLIED = "DISCOUNT_APPLIED"
    ADVANCE_REQUESTED = "ADVANCE_REQUESTED"
    ADVANCE_APPROVED = "ADVANCE_APPROVED"
    EMPLOYEE_UPDATED = "EMPLOYEE_UPDATED"


@dataclass(frozen=True)
class ActivityItem:
    id: str
    type: ActivityType
    title: str
    description: str
    timestamp: datetime
    amount: Optional[Decimal] = None
    employee_name: str = ""


@dataclass(frozen=True)
class MonthlyStats:
    month: int = 0
    year: int = 0
    total_payments: Decimal = ZERO
    total_discounts: Decimal = ZERO
    total_advances: Decimal = ZERO
    payment_count: int = 0
    average_payment: Decimal = ZERO


@dataclass(frozen=True)
class MonthlyComparison:
    current_month: MonthlyStats = MonthlyStats()
    previous_month: MonthlyStats = MonthlyStats()
    percentage_change: Decimal = ZERO


@dataclass(frozen=True)
class PaymentMethodStats:
    method: PaymentMethod
    count: int
    total_amount: Decimal
    percentage: Decimal


@dataclass(frozen=True)
class DashboardStatistics:
    """Снимок статистики дашборда. Не является источником истины."""

    total_pending_amount: Decimal = ZERO
    current_month_payments: Decimal = ZERO
    total_employees: int = 0
    today_payments: int = 0
    recent_activity: Tuple[ActivityItem, ...] = ()
    monthly_comparison: MonthlyComparison = MonthlyComparison()
    payment_method_distribution: Tuple[PaymentMethodStats, ...] = ()


@dataclass(frozen=True)
class MonthlyPayment:
    """Строка истории выплат: месяц и год берутся из даты выплаты."""

    month: int
    year: int
    amount: Decimal
    payment_date: datetime
    status: PaymentStatus


@dataclass(frozen=True)
class EmployeeStatistics:
    employee_id: str
    employee_name: str
    total_payments: Decimal = ZERO
    total_discounts: Decimal = ZERO
    total_advances: Decimal = ZERO
    last_payment_date: Optional[datetime] = None
    pending_amount: Decimal = ZERO
    payment_history: Tuple[MonthlyPayment, ...] = ()
    discount_history: Tuple[Discount, ...] = ()
    advance_history: Tuple[Advance, ...] = ()
