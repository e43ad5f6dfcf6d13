"""Модель выплаты сотруднику."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, Tuple

from domain.entities.advance import Advance
from domain.entities.discount import Discount
from domain.entities.payment_method import PaymentMethod
from domain.errors import ValidationFailure


class PaymentStatus(str, Enum):
    """Статус выплаты."""
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    FAILED = "FAILED"


@dataclass(frozen=True)
class PaymentPeriod:
    """Расчетный период, за который производится выплата."""

    month: int = 0
    year: int = 0
    description: str = ""


@dataclass(frozen=True)
class BankDetails:
    """Реквизиты банковского перевода."""

    bank_name: str
    operation_number: str
    account_number: str = ""
    transfer_date: Optional[datetime] = None


@dataclass(frozen=True)
class DigitalWalletDetails:
    """Реквизиты перевода через электронный кошелек."""

    phone_number: str
    operation_number: str
    wallet_type: PaymentMethod = PaymentMethod.YAPE
    transaction_id: str = ""


@dataclass(frozen=True)
class Payment:
    """
    Выплата сотруднику.

    Ровно один набор реквизитов определяется способом выплаты:
    BANK_TRANSFER требует bank_details, YAPE/PLIN требуют
    digital_wallet_details, CASH не несет реквизитов, OTHER_DIGITAL
    может нести только реквизиты кошелька.
    """

    id: str
    employee_id: str
    amount: Decimal
    payment_date: datetime
    created_at: datetime
    employee_name: str = ""
    payment_period: PaymentPeriod = PaymentPeriod()
    payment_method: PaymentMethod = PaymentMethod.CASH
    bank_details: Optional[BankDetails] = None
    digital_wallet_details: Optional[DigitalWalletDetails] = None
    discounts: Tuple[Discount, ...] = ()
    advances: Tuple[Advance, ...] = ()
    notes: str = ""
    status: PaymentStatus = PaymentStatus.COMPLETED
    created_by: str = ""

    def __post_init__(self):
        # Списки приводим к кортежам, чтобы снимок оставался неизменяемым
        if not isinstance(self.discounts, tuple):
            object.__setattr__(self, "discounts", tuple(self.discounts))
        if not isinstance(self.advances, tuple):
            object.__setattr__(self, "advances", tuple(self.advances))
        self._check_method_details()

    def _check_method_details(self) -> None:
        method = self.payment_method
        bank = self.bank_details
        wallet = self.digital_wallet_details

        if method == PaymentMethod.BANK_TRANSFER:
            if bank is None:
                raise ValidationFailure("Для банковского перевода нужны банковские реквизиты")
            if not bank.bank_name or not bank.operation_number:
                raise ValidationFailure("Укажите банк и номер операции перевода")
            if wallet is not None:
                raise ValidationFailure("Банковский перевод не может нести реквизиты кошелька")
        elif method in (PaymentMethod.YAPE, PaymentMethod.PLIN):
            if wallet is None:
                raise ValidationFailure(f"Для {method.value} нужны реквизиты кошелька")
            if not wallet.phone_number or not wallet.operation_number:
                raise ValidationFailure("Укажите телефон и номер операции кошелька")
            if bank is not None:
                raise ValidationFailure("Перевод через кошелек не может нести банковские реквизиты")
        elif method == PaymentMethod.OTHER_DIGITAL:
            if bank is not None:
                raise ValidationFailure("Перевод через кошелек не может нести банковские реквизиты")
        elif bank is not None or wallet is not None:
            raise ValidationFailure("Выплата наличными не несет реквизитов")

    @property
    def total_discounts(self) -> Decimal:
        return sum((d.amount for d in self.discounts), Decimal("0"))

    @property
    def total_advances(self) -> Decimal:
        return sum((a.amount for a in self.advances), Decimal("0"))

    @property
    def net_amount(self) -> Decimal:
        """Сумма к выплате; может быть отрицательной."""
        return self.amount - self.total_discounts - self.total_advances

    def validate(self) -> None:
        """Проверка полей перед записью в хранилище."""
        if not self.employee_id:
            raise ValidationFailure("Выплата должна быть привязана к сотруднику")
        if self.amount <= 0:
            raise ValidationFailure(
                "Сумма выплаты должна быть больше нуля",
                details={"amount": str(self.amount)},
            )

    def __repr__(self) -> str:
        return (
            f"<Payment(id='{self.id}', employee_id='{self.employee_id}', "
            f"amount={self.amount}, status='{self.status.value}')>"
        )
