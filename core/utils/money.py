"""Форматирование и разбор денежных сумм."""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional, Union

from core.config.settings import settings

Number = Union[Decimal, int, float, str]

CENT = Decimal("0.01")
MAX_AMOUNT = Decimal("999999.99")


def to_decimal(value: Number) -> Decimal:
    """Приводит число к Decimal без потерь float-представления."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(repr(value))
    return Decimal(value)


def format_currency(amount: Number, symbol: Optional[str] = None) -> str:
    """
    Форматирует сумму в валюте: ``S/ 1,234.50``.

    Отрицательные суммы выводятся как ``-S/ 10.00``.
    """
    symbol = symbol if symbol is not None else settings.currency_symbol
    value = to_decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)
    sign = "-" if value < 0 else ""
    return f"{sign}{symbol} {abs(value):,.2f}"


def parse_currency(text: str, symbol: Optional[str] = None) -> Optional[Decimal]:
    """Разбирает строку вида ``S/ 1,234.50``; None если это не число."""
    symbol = symbol if symbol is not None else settings.currency_symbol
    cleaned = text.replace(symbol, "").replace(",", "").strip()
    if not cleaned:
        return None
    try:
        return Decimal(cleaned)
    except InvalidOperation:
        return None


def is_valid_amount(amount: Decimal) -> bool:
    return Decimal("0") < amount <= MAX_AMOUNT


def format_percentage(value: Number, decimals: int = 1) -> str:
    """Форматирует процент со знаком: ``+12.5%``."""
    quant = Decimal(1).scaleb(-decimals)
    number = to_decimal(value).quantize(quant, rounding=ROUND_HALF_UP)
    sign = "+" if number > 0 else ""
    return f"{sign}{number}%"
