"""Основной класс приложения для управления ботом."""

from typing import Optional

from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode
from loguru import logger

from .database.manager import DatabaseManager
from .dispatcher_setup import setup_dispatcher
from .services.chat_actions import TelegramChatActions
from .services.scheduler import TaskScheduler
from .services.verification_service import VerificationService
from .storage.session_store import SessionStore
from config.settings import Settings


class BotApp:
    """
    Основной класс приложения, который инициализирует и координирует
    все компоненты бота: настройки, базу данных, диспетчер, сервисы.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self.bot: Optional[Bot] = None
        self.dp: Optional[Dispatcher] = None
        self.db_manager: Optional[DatabaseManager] = None
        self.scheduler: Optional[TaskScheduler] = None
        self.verification_service: Optional[VerificationService] = None

    async def _setup_bot_and_dispatcher(self):
        """Инициализирует бота и диспетчер."""
        self.bot = Bot(
            token=self.settings.get_bot_token(),
            default=DefaultBotProperties(parse_mode=ParseMode.HTML),
        )
        self.dp = Dispatcher()
        logger.info("Бот и диспетчер успешно настроены.")

    async def _setup_database(self):
        """Инициализирует менеджер базы данных."""
        self.db_manager = DatabaseManager(self.settings.DATABASE_PATH)
        await self.db_manager.init_database()
        logger.info("База данных успешно инициализирована.")

    def _setup_services(self):
        """Создает общий сервис проверки и его хранилища."""
        self.scheduler = TaskScheduler()
        self.verification_service = VerificationService.from_settings(
            self.settings,
            records=self.db_manager.records,
            sessions=SessionStore(),
            actions=TelegramChatActions(self.bot),
            scheduler=self.scheduler,
        )
        logger.info(
            f"Сервис проверки настроен: {self.settings.CHALLENGE_TIME_LIMIT} сек. на ответ, "
            f"{self.settings.MAX_EXTRA_ATTEMPTS} лишних попыток"
        )

    async def _setup_dispatcher(self):
        """Настраивает и регистрирует все компоненты в диспетчере."""
        setup_dispatcher(
            dp=self.dp,
            settings=self.settings,
            verification_service=self.verification_service,
        )
        logger.info("Диспетчер полностью настроен.")

    async def on_startup(self):
        """Выполняется при старте бота."""
        me = await self.bot.get_me()
        logger.info(f"Запуск бота @{me.username}...")

    async def on_shutdown(self):
        """Выполняется при остановке бота."""
        logger.info("Остановка бота...")
        if self.scheduler:
            await self.scheduler.close()
        if self.db_manager:
            await self.db_manager.close()
        if self.bot:
            await self.bot.session.close()
        logger.info("Все ресурсы освобождены. Бот остановлен.")

    async def run(self):
        """Главный метод для запуска бота."""
        try:
            await self._setup_bot_and_dispatcher()
            await self._setup_database()
            self._setup_services()
            await self._setup_dispatcher()

            self.dp.startup.register(self.on_startup)

            allowed_updates = self.dp.resolve_used_update_types()
            if "my_chat_member" not in allowed_updates:
                allowed_updates.append("my_chat_member")
            if "chat_member" not in allowed_updates:
                allowed_updates.append("chat_member")

            logger.debug(f"Типы обновлений: {allowed_updates}")

            await self.dp.start_polling(
                self.bot,
                allowed_updates=allowed_updates,
            )
        finally:
            await self.on_shutdown()
