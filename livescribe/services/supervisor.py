import asyncio
import logging
from typing import Coroutine, Set

logger = logging.getLogger(__name__)


class TaskSupervisor:
    """Фоновые задачи, которые запрос не ждёт.

    Держит ссылки на задачи до их завершения и логирует их падения,
    чтобы ошибка не терялась вместе с задачей.
    """

    def __init__(self, name: str = "background"):
        self.name = name
        self._tasks: Set[asyncio.Task] = set()

    def __len__(self) -> int:
        return len(self._tasks)

    def spawn(self, coro: Coroutine, name: str) -> asyncio.Task:
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.info("[%s] задача %s отменена", self.name, task.get_name())
            return
        exc = task.exception()
        if exc is not None:
            logger.error("[%s] задача %s завершилась с ошибкой: %s", self.name, task.get_name(), exc,
                         exc_info=exc)

    async def join(self) -> None:
        """Дожидается всех текущих задач (используется в тестах и при остановке)."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
            # даём отработать done-колбэкам
            await asyncio.sleep(0)

    async def close(self) -> None:
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
