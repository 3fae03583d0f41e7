from pathlib import Path
from typing import Optional

from loguru import logger
import aiosqlite

from .repositories.verification_repository import VerificationRepository
from ..errors import StorageError


class DatabaseManager:
    """
    Управление базой данных SQLite и репозиториями.

    Отвечает за инициализацию соединения и создание таблиц,
    а также предоставляет доступ к репозиториям для работы с данными.
    """

    def __init__(self, db_path: str):
        """Инициализация менеджера базы данных."""
        self.db_path = db_path
        self.conn: Optional[aiosqlite.Connection] = None
        self.records: Optional[VerificationRepository] = None

    async def init_database(self) -> None:
        """Инициализация соединения с базой данных и создание таблиц."""
        try:
            self.conn = await aiosqlite.connect(self.db_path)
            self.conn.row_factory = aiosqlite.Row
            await self._run_sql_scripts()
        except aiosqlite.Error as e:
            raise StorageError(f"инициализация базы данных {self.db_path}: {e}") from e

        self._init_repositories()
        logger.info("База данных и репозитории успешно инициализированы")

    def _init_repositories(self) -> None:
        """Инициализация всех репозиториев."""
        self.records = VerificationRepository(self.conn)

    async def _run_sql_scripts(self) -> None:
        """
        Выполнение SQL-скриптов для создания таблиц.

        Скрипты читаются из директории captcha_bot/database/sql
        и выполняются в алфавитном порядке.
        """
        sql_dir = Path(__file__).parent / "sql"
        scripts = sorted(sql_dir.glob("*.sql"))

        async with self.conn.cursor() as cursor:
            for script_path in scripts:
                try:
                    sql_query = script_path.read_text(encoding="utf-8").strip()
                    await cursor.execute(sql_query)
                except aiosqlite.Error as e:
                    logger.error(f"❌ Ошибка выполнения SQL-скрипта {script_path.name}: {e}")
                    raise

        await self.conn.commit()
        logger.info(f"Инициализация БД завершена: выполнено {len(scripts)} SQL-скриптов")

    async def close(self) -> None:
        """Закрытие соединения с базой данных."""
        if self.conn:
            await self.conn.close()
            self.conn = None
            logger.info("Соединение с базой данных закрыто")
