"""Модель сотрудника."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

from domain.errors import ValidationFailure


@dataclass(frozen=True)
class EmergencyContact:
    """Контакт для экстренной связи."""

    name: str = ""
    phone: str = ""
    relationship: str = ""


@dataclass(frozen=True)
class Employee:
    """Сотрудник (неизменяемый снимок документа)."""

    id: str
    dni: str
    name: str
    last_name: str
    base_salary: Decimal
    start_date: datetime
    created_at: datetime
    updated_at: datetime
    position: str = ""
    phone: str = ""
    address: str = ""
    email: str = ""
    bank_account: str = ""
    is_active: bool = True
    emergency_contact: Optional[EmergencyContact] = None
    notes: str = ""
    created_by: str = ""

    @property
    def full_name(self) -> str:
        return f"{self.name} {self.last_name}".strip()

    def validate(self) -> None:
        """Проверка полей перед записью в хранилище."""
        if not self.dni.strip():
            raise ValidationFailure("DNI сотрудника обязателен")
        if not self.name.strip():
            raise ValidationFailure("Имя сотрудника обязательно")
        if self.base_salary <= 0:
            raise ValidationFailure(
                "Базовый оклад должен быть больше нуля",
                details={"base_salary": str(self.base_salary)},
            )

    def __repr__(self) -> str:
        return f"<Employee(id='{self.id}', dni='{self.dni}', active={self.is_active})>"
