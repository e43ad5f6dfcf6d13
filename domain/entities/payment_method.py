"""Способы выплаты."""

from enum import Enum


class PaymentMethod(str, Enum):
    """Способ выплаты."""
    CASH = "CASH"
    BANK_TRANSFER = "BANK_TRANSFER"
    YAPE = "YAPE"
    PLIN = "PLIN"
    OTHER_DIGITAL = "OTHER_DIGITAL"

    @property
    def label(self) -> str:
        return _METHOD_LABELS[self]

    @property
    def is_digital_wallet(self) -> bool:
        return self in (PaymentMethod.YAPE, PaymentMethod.PLIN, PaymentMethod.OTHER_DIGITAL)


_METHOD_LABELS = {
    PaymentMethod.CASH: "Cash",
    PaymentMethod.BANK_TRANSFER: "Bank transfer",
    PaymentMethod.YAPE: "Yape",
    PaymentMethod.PLIN: "Plin",
    PaymentMethod.OTHER_DIGITAL: "Other digital wallet",
}
