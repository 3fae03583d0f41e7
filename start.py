#!/usr/bin/env python3
"""
Запуск бота-капчи для групповых чатов.

Использование:
    python start.py
"""

import asyncio
import sys

from loguru import logger
from pydantic import ValidationError

from captcha_bot.app import BotApp
from captcha_bot.errors import StorageError
from config.settings import Settings


def setup_logging(settings: Settings) -> None:
    """Настройка логирования."""
    logger.remove()
    logger.add(sys.stderr, level=settings.log_level)
    if settings.LOG_FILE:
        logger.add(settings.LOG_FILE, level=settings.log_level, rotation="10 MB", retention=1)


def main():
    """Основная функция для запуска бота."""
    try:
        settings = Settings()
    except ValidationError as e:
        logger.critical(f"❌ Ошибка конфигурации: {e}")
        logger.info("💡 Задайте BOT_TOKEN в окружении или в файле .env")
        sys.exit(1)

    setup_logging(settings)
    logger.info("🚀 Запуск бота-капчи...")
    logger.info("📋 Для остановки нажмите Ctrl+C")

    try:
        asyncio.run(BotApp(settings).run())
    except StorageError as e:
        logger.critical(f"💥 Не удалось открыть базу данных: {e}")
        sys.exit(1)
    except (KeyboardInterrupt, SystemExit):
        logger.info("✅ Бот остановлен.")


if __name__ == "__main__":
    if sys.version_info < (3, 10):
        logger.critical("Требуется Python 3.10 или выше.")
        sys.exit(1)
    main()
