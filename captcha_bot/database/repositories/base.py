"""Базовый класс для всех репозиториев."""

import asyncio

import aiosqlite


class BaseRepository:
    """Базовый класс репозитория."""

    def __init__(self, conn: aiosqlite.Connection):
        """
        Инициализация репозитория.

        :param conn: Соединение с базой данных.
        """
        self.conn = conn
        self._write_lock = asyncio.Lock()

    async def execute(self, query: str, parameters=None) -> int:
        """Выполнение SQL запроса с фиксацией. Возвращает число затронутых строк."""
        if parameters is None:
            parameters = ()
        async with self._write_lock:
            async with self.conn.execute(query, parameters) as cursor:
                await self.conn.commit()
                return cursor.rowcount

    async def fetchone(self, query: str, parameters=None):
        """Выполнение SQL запроса и получение одной записи."""
        if parameters is None:
            parameters = ()
        async with self.conn.execute(query, parameters) as cursor:
            return await cursor.fetchone()
