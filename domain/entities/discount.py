"""Модель удержания из зарплаты."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from domain.errors import ValidationFailure


class DiscountType(str, Enum):
    """Тип удержания."""
    TARDINESS = "TARDINESS"
    ABSENCE = "ABSENCE"
    LOAN_PAYMENT = "LOAN_PAYMENT"
    ADVANCE_DEDUCTION = "ADVANCE_DEDUCTION"
    UNIFORM = "UNIFORM"
    EQUIPMENT = "EQUIPMENT"
    INSURANCE = "INSURANCE"
    OTHER = "OTHER"


@dataclass(frozen=True)
class Discount:
    """
    Удержание из зарплаты.

    end_date=None означает бессрочное удержание. Для повторяющихся
    удержаний end_date игнорируется.
    """

    id: str
    employee_id: str
    amount: Decimal
    start_date: datetime
    created_at: datetime
    employee_name: str = ""
    type: DiscountType = DiscountType.OTHER
    reason: str = ""
    description: str = ""
    is_recurring: bool = False
    end_date: Optional[datetime] = None
    is_active: bool = True
    applied_in_payment_id: Optional[str] = None
    created_by: str = ""

    def validate(self) -> None:
        """Проверка полей перед записью в хранилище."""
        if not self.employee_id:
            raise ValidationFailure("Удержание должно быть привязано к сотруднику")
        if self.amount <= 0:
            raise ValidationFailure(
                "Сумма удержания должна быть больше нуля",
                details={"amount": str(self.amount)},
            )
        if self.end_date is not None and not self.is_recurring and self.end_date < self.start_date:
            raise ValidationFailure("Дата окончания удержания раньше даты начала")

    def __repr__(self) -> str:
        return f"<Discount(id='{self.id}', type='{self.type.value}', amount={self.amount})>"
