"""Ошибки доменного и persistence-слоя."""

from typing import Optional


class PayrollError(Exception):
    """Базовая ошибка PayrollDesk."""

    code = "payroll_error"

    def __init__(self, message: str, *, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        return self.message


class NotFound(PayrollError):
    """Запись с указанным идентификатором не найдена."""

    code = "not_found"

    def __init__(self, collection: str, document_id: str):
        super().__init__(
            f"{collection}/{document_id} не найден",
            details={"collection": collection, "id": document_id},
        )
        self.collection = collection
        self.document_id = document_id


class ValidationFailure(PayrollError):
    """Некорректная сущность (например, перевод без банковских реквизитов)."""

    code = "validation_failure"


class PersistenceFailure(PayrollError):
    """Ошибка хранилища: сеть, права доступа, таймаут."""

    code = "persistence_failure"


class ParseFailure(PayrollError):
    """Сохраненный документ не удалось преобразовать в сущность."""

    code = "parse_failure"
