"""Оповещения об изменениях коллекций внутри процесса."""

import asyncio
from typing import AsyncIterator, Dict, Set, Tuple, TypeVar

from core.logging.logger import logger

A = TypeVar("A")
B = TypeVar("B")

_MISSING = object()
_DONE = object()


class ChangeFeed:
    """
    Подписки на изменения коллекций.

    Каждая успешная запись в хранилище публикует имя коллекции.
    Подписчик получает очередь, в которой максимум одно оповещение:
    несколько изменений подряд схлопываются в одно перечитывание.
    """

    def __init__(self):
        self._subscribers: Dict[str, Set[asyncio.Queue]] = {}

    def subscribe(self, collection: str) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=1)
        self._subscribers.setdefault(collection, set()).add(queue)
        logger.debug("Feed subscriber added", collection=collection)
        return queue

    def unsubscribe(self, collection: str, queue: asyncio.Queue) -> None:
        queues = self._subscribers.get(collection)
        if not queues:
            return
        queues.discard(queue)
        if not queues:
            del self._subscribers[collection]
        logger.debug("Feed subscriber removed", collection=collection)

    def publish(self, collection: str) -> None:
        for queue in list(self._subscribers.get(collection, ())):
            try:
                queue.put_nowait(collection)
            except asyncio.QueueFull:
                # Оповещение уже ждет обработки
                pass

    def subscriber_count(self, collection: str) -> int:
        return len(self._subscribers.get(collection, ()))


async def combine_latest(first: AsyncIterator[A], second: AsyncIterator[B]) -> AsyncIterator[Tuple[A, B]]:
    """
    Объединяет два потока снимков.

    Первая пара выдается, когда оба потока прислали хотя бы одно
    значение; далее пара выдается при каждом новом значении любого
    потока. Закрытие генератора отменяет чтение обоих потоков.
    """
    latest = [_MISSING, _MISSING]
    inbox: asyncio.Queue = asyncio.Queue()

    async def pump(index: int, stream: AsyncIterator) -> None:
        try:
            async for item in stream:
                await inbox.put((index, item, None))
        except Exception as e:
            await inbox.put((index, None, e))
        else:
            await inbox.put((index, _DONE, None))

    tasks = [
        asyncio.create_task(pump(0, first)),
        asyncio.create_task(pump(1, second)),
    ]
    finished = 0
    try:
        while finished < len(tasks):
            index, item, error = await inbox.get()
            if error is not None:
                raise error
            if item is _DONE:
                finished += 1
                continue
            latest[index] = item
            if _MISSING not in latest:
                yield latest[0], latest[1]
    finally:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        for stream in (first, second):
            aclose = getattr(stream, "aclose", None)
            if aclose is not None:
                await aclose()
