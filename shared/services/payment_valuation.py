"""Расчет суммы выплаты к получению (нетто)."""

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from domain.entities.advance import Advance
from domain.entities.discount import Discount
from domain.entities.payment import Payment

ZERO = Decimal("0")


@dataclass(frozen=True)
class PaymentValuation:
    """Разложение выплаты: брутто, удержания, авансы, нетто."""

    gross_amount: Decimal
    total_discounts: Decimal
    total_advances: Decimal

    @property
    def net_amount(self) -> Decimal:
        return self.gross_amount - self.total_discounts - self.total_advances

    @property
    def is_negative(self) -> bool:
        """Удержания и авансы превышают начисление."""
        return self.net_amount < ZERO


def valuate(
    amount: Decimal,
    discounts: Iterable[Discount] = (),
    advances: Iterable[Advance] = (),
) -> PaymentValuation:
    """
    Оценка выплаты до ее создания (например, для предпросмотра формы).

    Args:
        amount: Начисленная сумма (брутто)
        discounts: Удержания, которые будут применены
        advances: Авансы, которые будут зачтены

    Returns:
        PaymentValuation: нетто не ограничивается снизу нулем
    """
    return PaymentValuation(
        gross_amount=amount,
        total_discounts=sum((d.amount for d in discounts), ZERO),
        total_advances=sum((a.amount for a in advances), ZERO),
    )


def total_discounts(payment: Payment) -> Decimal:
    return payment.total_discounts


def total_advances(payment: Payment) -> Decimal:
    return payment.total_advances


def net_amount(payment: Payment) -> Decimal:
    """amount - total_discounts - total_advances; отрицательное значение допустимо."""
    return payment.net_amount
