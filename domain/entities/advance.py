"""Модель аванса сотруднику."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from domain.entities.payment_method import PaymentMethod
from domain.errors import ValidationFailure


class AdvanceStatus(str, Enum):
    """Статус аванса."""
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    PAID = "PAID"
    REJECTED = "REJECTED"
    DEDUCTING = "DEDUCTING"
    COMPLETED = "COMPLETED"


@dataclass(frozen=True)
class DeductionSchedule:
    """График удержания аванса из зарплаты."""

    total_installments: int = 1
    installment_amount: Decimal = Decimal("0")
    remaining_installments: int = 0
    start_deduction_date: Optional[datetime] = None


@dataclass(frozen=True)
class Advance:
    """Аванс, выданный сотруднику."""

    id: str
    employee_id: str
    amount: Decimal
    request_date: datetime
    created_at: datetime
    employee_name: str = ""
    approved_date: Optional[datetime] = None
    paid_date: Optional[datetime] = None
    reason: str = ""
    notes: str = ""
    status: AdvanceStatus = AdvanceStatus.PENDING
    payment_method: PaymentMethod = PaymentMethod.CASH
    deduction_schedule: Optional[DeductionSchedule] = None
    remaining_amount: Decimal = Decimal("0")
    is_fully_deducted: bool = False
    approved_by: str = ""
    created_by: str = ""

    @property
    def is_outstanding(self) -> bool:
        """Аванс еще не погашен и не отклонен."""
        return self.status != AdvanceStatus.REJECTED and not self.is_fully_deducted

    def validate(self) -> None:
        """Проверка полей перед записью в хранилище."""
        if not self.employee_id:
            raise ValidationFailure("Аванс должен быть привязан к сотруднику")
        if self.amount <= 0:
            raise ValidationFailure(
                "Сумма аванса должна быть больше нуля",
                details={"amount": str(self.amount)},
            )
        schedule = self.deduction_schedule
        if schedule is not None and schedule.total_installments < 1:
            raise ValidationFailure("Количество взносов должно быть не меньше одного")

    def __repr__(self) -> str:
        return f"<Advance(id='{self.id}', status='{self.status.value}', amount={self.amount})>"
