"""Отложенные одноразовые задачи: истечение срока задания и уборка сообщений."""

import asyncio
from typing import Awaitable, Callable, Set

from loguru import logger


class TaskScheduler:
    """
    Запускает действие один раз через заданную задержку.

    Отмены для корректности нет: действие само перепроверяет состояние
    в момент срабатывания. Задачи отменяются только при остановке бота.
    """

    def __init__(self):
        self._tasks: Set[asyncio.Task] = set()

    def schedule(
        self,
        delay: float,
        action: Callable[[], Awaitable[None]],
        name: str,
    ) -> asyncio.Task:
        task = asyncio.create_task(self._run_later(delay, action, name), name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        logger.debug(f"⏱️ Задача {name} запланирована через {delay:.0f} сек.")
        return task

    @staticmethod
    async def _run_later(delay: float, action: Callable[[], Awaitable[None]], name: str) -> None:
        await asyncio.sleep(max(delay, 0))
        try:
            await action()
        except Exception:
            logger.exception(f"Ошибка в отложенной задаче {name}")

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def close(self) -> None:
        """Отменяет все ожидающие задачи."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.info(f"Отменено отложенных задач: {len(tasks)}")
