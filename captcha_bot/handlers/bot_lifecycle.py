"""
Обработчик событий, связанных с жизненным циклом бота в чатах.
(добавление в чат, удаление из чата)
"""
from aiogram import Router
from aiogram.filters.chat_member_updated import ChatMemberUpdatedFilter, IS_MEMBER, IS_NOT_MEMBER
from aiogram.types import ChatMemberUpdated
from loguru import logger

from ..services.verification_service import VerificationService


bot_lifecycle_router = Router(name="bot_lifecycle_router")


@bot_lifecycle_router.my_chat_member(ChatMemberUpdatedFilter(IS_NOT_MEMBER >> IS_MEMBER))
async def on_bot_added(event: ChatMemberUpdated, verification_service: VerificationService):
    """
    Бота добавили в чат: запоминаем время, чтобы не проверять
    существующих участников, которые приходят в первых обновлениях.
    """
    logger.info(f"🔥 Бот добавлен в чат '{event.chat.title}' ({event.chat.id})")
    await verification_service.on_bot_joined(event.chat.id, event.date)


@bot_lifecycle_router.my_chat_member(ChatMemberUpdatedFilter(IS_MEMBER >> IS_NOT_MEMBER))
async def on_bot_removed(event: ChatMemberUpdated):
    logger.warning(f"🚫 Бот удален из чата '{event.chat.title}' ({event.chat.id})")
