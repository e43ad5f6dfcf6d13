"""Базовый класс сервисов коллекций документного хранилища."""

from datetime import datetime
from typing import Any, AsyncIterator, Awaitable, Callable, Generic, Iterable, List, Optional, TypeVar

import pytz

from core.logging.logger import logger
from core.utils.timezone_helper import TimezoneLike
from domain.entities.session_context import SessionContext
from domain.errors import NotFound, ParseFailure, PayrollError, PersistenceFailure, ValidationFailure
from shared.models.operation_result import OperationResult
from shared.services.document_store import DocumentStore, Filter, StoredDocument

T = TypeVar("T")
R = TypeVar("R")


class BaseService(Generic[T]):
    """
    Общая часть сервисов сотрудников, выплат, удержаний и авансов.

    Наследник задает имя коллекции и функции кодирования. Операции
    возвращают OperationResult, подписки отдают списки сущностей.
    """

    collection: str = ""

    def __init__(
        self,
        store: DocumentStore,
        clock: Optional[Callable[[], datetime]] = None,
        tz: TimezoneLike = None,
    ):
        self.store = store
        self.tz = tz
        self._clock = clock or (lambda: datetime.now(pytz.UTC))

    # --- Методы для переопределения в наследниках ---

    def _decode(self, doc_id: str, data: Any) -> T:
        raise NotImplementedError

    def _encode(self, entity: T) -> dict:
        raise NotImplementedError

    def _sort(self, entities: List[T]) -> List[T]:
        return entities

    # --- Общие операции ---

    def now(self) -> datetime:
        return self._clock()

    def _decode_all(self, documents: Iterable[StoredDocument]) -> List[T]:
        """Декодирует документы; битые пропускаются с предупреждением."""
        entities = []
        for doc_id, data in documents:
            try:
                entities.append(self._decode(doc_id, data))
            except (ParseFailure, ValidationFailure) as e:
                logger.warning(
                    "Пропущен некорректный документ",
                    collection=self.collection,
                    document_id=doc_id,
                    reason=str(e),
                )
        return entities

    async def _load(self, doc_id: str) -> T:
        data = await self.store.get(self.collection, doc_id)
        if data is None:
            raise NotFound(self.collection, doc_id)
        return self._decode(doc_id, data)

    async def _list(self, *filters: Filter) -> List[T]:
        documents = await self.store.query(self.collection, *filters)
        return self._sort(self._decode_all(documents))

    async def _watch(self, *filters: Filter) -> AsyncIterator[List[T]]:
        snapshots = self.store.watch(self.collection, *filters)
        try:
            async for documents in snapshots:
                yield self._sort(self._decode_all(documents))
        except PersistenceFailure as e:
            logger.error("Подписка прервана", collection=self.collection, error=e.message)
            raise
        finally:
            await snapshots.aclose()

    def _check_writer(self, ctx: SessionContext) -> None:
        if not ctx.can_write:
            raise PersistenceFailure(
                "Недостаточно прав для изменения данных",
                details={"user_id": ctx.user_id, "role": ctx.role.value},
            )

    async def _execute(self, action: str, operation: Callable[[], Awaitable[R]], **context) -> OperationResult[R]:
        """Выполняет операцию и упаковывает результат или ошибку."""
        try:
            value = await operation()
        except PayrollError as e:
            logger.warning(
                "Операция не выполнена",
                collection=self.collection,
                action=action,
                error_code=e.code,
                error=e.message,
                **context,
            )
            return OperationResult.fail(e)
        return OperationResult.ok(value)

    async def _soft_delete(self, ctx: SessionContext, doc_id: str) -> OperationResult[None]:
        async def operation():
            self._check_writer(ctx)
            await self.store.soft_delete(self.collection, doc_id)
            logger.info("Документ удален", collection=self.collection, document_id=doc_id, deleted_by=ctx.actor)

        return await self._execute("delete", operation, document_id=doc_id)

    async def _set_fields(self, ctx: SessionContext, doc_id: str, action: str, **fields) -> OperationResult[None]:
        async def operation():
            self._check_writer(ctx)
            await self.store.update_fields(self.collection, doc_id, fields)
            logger.info(
                "Документ обновлен",
                collection=self.collection,
                document_id=doc_id,
                action=action,
                updated_by=ctx.actor,
            )

        return await self._execute(action, operation, document_id=doc_id)
