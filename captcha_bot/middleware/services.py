"""Middleware для передачи сервисов в обработчики."""

from typing import Callable, Dict, Any, Awaitable

from aiogram import BaseMiddleware
from aiogram.types import TelegramObject

from ..services.verification_service import VerificationService


class ServiceMiddleware(BaseMiddleware):
    """
    Middleware для передачи сервисов в обработчики.

    Сервис верификации один на всё приложение: его хранилище заданий
    общее для всех событий.
    """

    def __init__(self, verification_service: VerificationService):
        """Инициализация middleware."""
        super().__init__()
        self.verification_service = verification_service

    async def __call__(
        self,
        handler: Callable[[TelegramObject, Dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: Dict[str, Any],
    ) -> Any:
        """Выполнение middleware."""
        data["verification_service"] = self.verification_service
        return await handler(event, data)
