"""Очередь задач по ключу: FIFO внутри ключа, параллельно между ключами.

Для каждого активного ключа лениво поднимается один воркер, который
выполняет задачи строго по одной в порядке поступления и завершается,
как только его очередь опустела. Всё состояние живёт в одном event loop,
поэтому проверка «очередь пуста» и удаление воркера не требуют блокировок.
"""
import asyncio
import logging
from typing import Awaitable, Callable, Dict, Optional, Tuple, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

Job = Callable[[], Awaitable]


class KeyedTaskQueue:
    def __init__(self, name: str, max_workers: Optional[int] = None):
        self.name = name
        self._queues: Dict[str, asyncio.Queue] = {}
        self._workers: Dict[str, asyncio.Task] = {}
        # Ограничение на число одновременно работающих ключей
        self._semaphore = asyncio.Semaphore(max_workers) if max_workers else None

    def active_keys(self) -> list:
        return list(self._workers)

    async def submit(self, key: str, job: Callable[[], Awaitable[T]]) -> T:
        """Ставит задачу в очередь ключа и ждёт её результата.

        Если вызывающий отменён, задача всё равно будет выполнена в свою очередь.
        """
        future = asyncio.get_running_loop().create_future()
        queue = self._queues.get(key)
        if queue is None:
            queue = asyncio.Queue()
            self._queues[key] = queue
            self._workers[key] = asyncio.create_task(self._work(key, queue), name=f"{self.name}:{key}")
            logger.debug("[%s] воркер для %s запущен", self.name, key)
        queue.put_nowait((job, future))
        return await future

    async def _work(self, key: str, queue: asyncio.Queue) -> None:
        while True:
            try:
                job, future = queue.get_nowait()
            except asyncio.QueueEmpty:
                del self._queues[key]
                del self._workers[key]
                logger.debug("[%s] очередь %s пуста, воркер остановлен", self.name, key)
                return
            await self._run_job(key, job, future)

    async def _run_job(self, key: str, job: Job, future: asyncio.Future) -> None:
        try:
            if self._semaphore is not None:
                async with self._semaphore:
                    result = await job()
            else:
                result = await job()
        except asyncio.CancelledError:
            if not future.done():
                future.cancel()
            raise
        except Exception as e:
            if future.done():
                logger.error("[%s] задача %s упала без ожидающего: %s", self.name, key, e)
            else:
                future.set_exception(e)
        else:
            if not future.done():
                future.set_result(result)

    async def close(self) -> None:
        workers = list(self._workers.values())
        for worker in workers:
            worker.cancel()
        await asyncio.gather(*workers, return_exceptions=True)
        for queue in self._queues.values():
            while not queue.empty():
                _, future = queue.get_nowait()
                future.cancel()
        self._queues.clear()
        self._workers.clear()
