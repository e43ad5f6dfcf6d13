"""
Документное хранилище поверх SQL.

Коллекция документов хранится в таблице documents; содержимое
документа лежит в JSON-колонке. Каждая операция открывает отдельную
сессию, поэтому независимые запросы можно выполнять параллельно.
"""

import asyncio
import operator
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Optional, Tuple

import pytz
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.config.settings import settings
from core.logging.logger import logger
from domain.entities.document import DocumentRecord
from domain.errors import NotFound, PayrollError, PersistenceFailure
from shared.services.change_feed import ChangeFeed

StoredDocument = Tuple[str, Dict[str, Any]]

_OPERATORS = {
    "==": operator.eq,
    "!=": operator.ne,
    ">": operator.gt,
    ">=": operator.ge,
    "<": operator.lt,
    "<=": operator.le,
}


@dataclass(frozen=True)
class Filter:
    """Условие на поле документа: Filter("employeeId", "==", "e1")."""

    field: str
    op: str
    value: Any

    def clause(self):
        compare = _OPERATORS.get(self.op)
        if compare is None:
            raise ValueError(f"Неподдерживаемый оператор фильтра: {self.op}")
        element = DocumentRecord.data[self.field]
        # bool проверяем раньше int: bool является подклассом int
        if isinstance(self.value, bool):
            return compare(element.as_boolean(), self.value)
        if isinstance(self.value, (int, float)):
            return compare(element.as_float(), float(self.value))
        return compare(element.as_string(), str(self.value))


def _insert(session: AsyncSession, collection: str, doc_id: str, payload: Dict[str, Any]) -> None:
    session.add(DocumentRecord(collection=collection, id=doc_id, data=payload))


async def _merge_fields(session: AsyncSession, collection: str, doc_id: str, fields: Dict[str, Any]) -> bool:
    """Сливает поля в документ; False, если документа нет или он удален."""
    record = await session.get(DocumentRecord, (collection, doc_id))
    if record is None or record.is_deleted:
        return False
    # Новый словарь, чтобы ORM увидела изменение JSON
    record.data = {**record.data, **fields}
    return True


class DocumentStore:
    """Чтение, запись и подписка на коллекции документов."""

    def __init__(
        self,
        session_factory: async_sessionmaker,
        feed: Optional[ChangeFeed] = None,
        timeout: Optional[float] = None,
    ):
        self._session_factory = session_factory
        self.feed = feed or ChangeFeed()
        self.timeout = settings.store_timeout_seconds if timeout is None else timeout

    async def _run(self, action: str, collection: str, work: Callable[[AsyncSession], Awaitable[Any]]) -> Any:
        """Выполняет работу в отдельной сессии с таймаутом."""

        async def in_session():
            async with self._session_factory() as session:
                return await work(session)

        try:
            return await asyncio.wait_for(in_session(), timeout=self.timeout)
        except PayrollError:
            raise
        except asyncio.TimeoutError as e:
            logger.error("Document store timeout", action=action, collection=collection, timeout=self.timeout)
            raise PersistenceFailure(
                f"Хранилище не ответило за {self.timeout} с",
                details={"action": action, "collection": collection},
            ) from e
        except SQLAlchemyError as e:
            logger.error("Document store error", action=action, collection=collection, error=str(e))
            raise PersistenceFailure(
                f"Ошибка хранилища: {e}",
                details={"action": action, "collection": collection},
            ) from e

    async def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        """Документ по id или None, если его нет или он удален."""

        async def work(session: AsyncSession):
            record = await session.get(DocumentRecord, (collection, doc_id))
            if record is None or record.is_deleted:
                return None
            return dict(record.data)

        return await self._run("get", collection, work)

    async def query(self, collection: str, *filters: Filter, limit: Optional[int] = None) -> List[StoredDocument]:
        """Неудаленные документы коллекции, удовлетворяющие всем фильтрам, в порядке id."""

        async def work(session: AsyncSession):
            stmt = select(DocumentRecord).where(
                DocumentRecord.collection == collection,
                DocumentRecord.deleted_at.is_(None),
                *(f.clause() for f in filters),
            ).order_by(DocumentRecord.id)
            if limit is not None:
                stmt = stmt.limit(limit)
            result = await session.execute(stmt)
            return [(record.id, dict(record.data)) for record in result.scalars().all()]

        return await self._run("query", collection, work)

    async def add(self, collection: str, data: Dict[str, Any], doc_id: Optional[str] = None) -> str:
        """Создает документ и возвращает его id."""
        doc_id = doc_id or uuid.uuid4().hex
        payload = {**data, "id": doc_id}

        async def work(session: AsyncSession):
            async with session.begin():
                _insert(session, collection, doc_id, payload)

        await self._run("add", collection, work)
        self.feed.publish(collection)
        return doc_id

    async def put(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        """Записывает документ целиком (создает, если его нет)."""

        async def work(session: AsyncSession):
            async with session.begin():
                record = await session.get(DocumentRecord, (collection, doc_id))
                if record is None:
                    session.add(DocumentRecord(collection=collection, id=doc_id, data=data))
                else:
                    record.data = data
                    record.deleted_at = None

        await self._run("put", collection, work)
        self.feed.publish(collection)

    async def update_fields(self, collection: str, doc_id: str, fields: Dict[str, Any]) -> None:
        """Обновляет отдельные поля документа."""

        async def work(session: AsyncSession):
            async with session.begin():
                if not await _merge_fields(session, collection, doc_id, fields):
                    raise NotFound(collection, doc_id)

        await self._run("update", collection, work)
        self.feed.publish(collection)

    async def soft_delete(self, collection: str, doc_id: str) -> None:
        """Логическое удаление: документ остается, но скрыт от чтения."""

        async def work(session: AsyncSession):
            async with session.begin():
                record = await session.get(DocumentRecord, (collection, doc_id))
                if record is None or record.is_deleted:
                    raise NotFound(collection, doc_id)
                record.deleted_at = datetime.now(pytz.UTC)

        await self._run("delete", collection, work)
        self.feed.publish(collection)

    def batch(self) -> "WriteBatch":
        """Новый пакет записей, применяемых одной транзакцией."""
        return WriteBatch(self)

    async def watch(self, collection: str, *filters: Filter) -> AsyncIterator[List[StoredDocument]]:
        """
        Поток снимков запроса.

        Первый снимок выдается сразу, далее запрос перечитывается после
        каждого изменения коллекции. Совпадающие подряд снимки не выдаются.
        """
        queue = self.feed.subscribe(collection)
        previous = None
        try:
            while True:
                snapshot = await self.query(collection, *filters)
                if snapshot != previous:
                    previous = snapshot
                    yield snapshot
                await queue.get()
        finally:
            self.feed.unsubscribe(collection, queue)


class WriteBatch:
    """
    Пакет записей в одну или несколько коллекций.

    Записи копятся до commit() и применяются в одной транзакции:
    если одна из них не удалась, не сохраняется ни одна.
    """

    def __init__(self, store: DocumentStore):
        self._store = store
        self._writes: List[Tuple[str, str, str, Dict[str, Any], bool]] = []

    def add(self, collection: str, data: Dict[str, Any], doc_id: Optional[str] = None) -> str:
        doc_id = doc_id or uuid.uuid4().hex
        self._writes.append(("add", collection, doc_id, {**data, "id": doc_id}, False))
        return doc_id

    def update_fields(self, collection: str, doc_id: str, fields: Dict[str, Any], missing_ok: bool = False) -> None:
        """Обновление полей; при missing_ok отсутствующий документ пропускается."""
        self._writes.append(("update", collection, doc_id, fields, missing_ok))

    async def commit(self) -> None:
        collections = sorted({collection for _, collection, _, _, _ in self._writes})
        if not collections:
            return

        async def work(session: AsyncSession):
            async with session.begin():
                for kind, collection, doc_id, data, missing_ok in self._writes:
                    if kind == "add":
                        _insert(session, collection, doc_id, data)
                        continue
                    if await _merge_fields(session, collection, doc_id, data):
                        continue
                    if not missing_ok:
                        raise NotFound(collection, doc_id)
                    logger.warning("Документ для обновления не найден", collection=collection, document_id=doc_id)

        await self._store._run("batch", ",".join(collections), work)
        self._writes = []
        for collection in collections:
            self._store.feed.publish(collection)
