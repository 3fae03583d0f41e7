"""
Настройка и регистрация всех обработчиков и middleware для диспетчера.
"""
from typing import TYPE_CHECKING

from aiogram import Dispatcher
from loguru import logger

from .handlers import bot_lifecycle_router, group_events_router
from .middleware.event_filter import EventFilterMiddleware
from .middleware.services import ServiceMiddleware


if TYPE_CHECKING:
    from .services.verification_service import VerificationService
    from config.settings import Settings


def setup_dispatcher(
    dp: Dispatcher,
    settings: "Settings",
    verification_service: "VerificationService",
) -> None:
    """
    Настраивает диспетчер, регистрируя middleware и обработчики.

    Args:
        dp: Экземпляр Dispatcher.
        settings: Конфигурация бота.
        verification_service: Общий сервис проверки участников.
    """
    service_middleware = ServiceMiddleware(verification_service=verification_service)
    dp.update.middleware(service_middleware)

    event_filter = EventFilterMiddleware(settings)
    group_events_router.message.middleware(event_filter)
    group_events_router.chat_member.middleware(event_filter)

    dp.include_router(bot_lifecycle_router)
    dp.include_router(group_events_router)

    logger.info("Все обработчики успешно зарегистрированы.")
