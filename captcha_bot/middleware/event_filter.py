"""Middleware, отсекающее события, которые не должны доходить до проверки."""

import re
import time
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from aiogram import BaseMiddleware
from aiogram.exceptions import TelegramAPIError
from aiogram.types import ChatMemberUpdated, Message, TelegramObject, User
from loguru import logger

from config.settings import Settings

ADMIN_STATUSES = ("administrator", "creator")


class EventFilterMiddleware(BaseMiddleware):
    """
    Пропускает дальше только события от обычных участников групп.

    Отсекаются боты, пользователи из списка игнорирования (по ID и по
    шаблону username) и администраторы чата.
    """

    def __init__(self, settings: Settings, admin_cache_ttl: float = 300):
        super().__init__()
        self.ignored_ids = set(settings.IGNORED_USER_IDS)
        self.ignored_patterns: List[re.Pattern] = [
            re.compile(pattern) for pattern in settings.IGNORED_USERNAME_PATTERNS
        ]
        self._admin_cache: Dict[Tuple[int, int], bool] = {}
        self._admin_cache_ttl = admin_cache_ttl
        self._admin_cache_expires_at = time.monotonic() + admin_cache_ttl

    async def __call__(
        self,
        handler: Callable[[TelegramObject, Dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: Dict[str, Any],
    ) -> Any:
        user, chat_id = self._extract_user(event)
        if user is None or chat_id is None:
            return await handler(event, data)

        if user.is_bot:
            return None

        if self.is_ignored(user):
            logger.debug(f"🙈 Пользователь {user.id} (@{user.username}) в списке игнорирования")
            return None

        if await self._is_admin(event, chat_id, user.id):
            logger.debug(f"👑 Админ {user.id} (@{user.username}) в чате {chat_id} не проверяется")
            return None

        return await handler(event, data)

    @staticmethod
    def _extract_user(event: TelegramObject) -> Tuple[Optional[User], Optional[int]]:
        if isinstance(event, Message):
            return event.from_user, event.chat.id
        if isinstance(event, ChatMemberUpdated):
            return event.new_chat_member.user, event.chat.id
        return None, None

    def is_ignored(self, user: User) -> bool:
        """Проверяет пользователя по списку игнорирования."""
        if user.id in self.ignored_ids:
            return True
        username = user.username or ""
        return bool(username) and any(pattern.search(username) for pattern in self.ignored_patterns)

    async def _is_admin(self, event: TelegramObject, chat_id: int, user_id: int) -> bool:
        now = time.monotonic()
        if now >= self._admin_cache_expires_at:
            self._admin_cache.clear()
            self._admin_cache_expires_at = now + self._admin_cache_ttl

        key = (chat_id, user_id)
        if key in self._admin_cache:
            return self._admin_cache[key]

        try:
            member = await event.bot.get_chat_member(chat_id, user_id)
        except TelegramAPIError as e:
            logger.debug(f"Не удалось проверить права админа для {user_id} в чате {chat_id}: {e}")
            return False

        is_admin = member.status in ADMIN_STATUSES
        self._admin_cache[key] = is_admin
        return is_admin
