"""Результат операции persistence-слоя: успех со значением или ошибка."""

from dataclasses import dataclass
from typing import Any, Dict, Generic, Optional, TypeVar

from domain.errors import PayrollError

T = TypeVar("T")


@dataclass(frozen=True)
class OperationResult(Generic[T]):
    """
    Сервисы не бросают исключения наружу, а возвращают OperationResult.

    Пример:
        result = await payment_service.get_payment(payment_id)
        if result.success:
            payment = result.value
        else:
            show_error(result.error.message)
    """

    value: Optional[T] = None
    error: Optional[PayrollError] = None

    @property
    def success(self) -> bool:
        return self.error is None

    @classmethod
    def ok(cls, value: T = None) -> "OperationResult[T]":
        return cls(value=value)

    @classmethod
    def fail(cls, error: PayrollError) -> "OperationResult[T]":
        return cls(error=error)

    def value_or(self, default: T) -> T:
        """Значение при успехе, иначе default."""
        return self.value if self.success else default

    def unwrap(self) -> T:
        """Значение при успехе, иначе исходная ошибка."""
        if self.error is not None:
            raise self.error
        return self.value

    def to_dict(self) -> Dict[str, Any]:
        """Словарь в формате ответов сервисов: success / error / error_code."""
        if self.success:
            return {"success": True}
        return {"success": False, "error": self.error.message, "error_code": self.error.code}
