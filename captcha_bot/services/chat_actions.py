"""Действия бота в чате: сообщения, реакции, удаление, исключение участников."""

from typing import Optional, Protocol

from aiogram import Bot
from aiogram.enums import ParseMode
from aiogram.exceptions import TelegramAPIError, TelegramBadRequest
from aiogram.types import ReactionTypeEmoji
from loguru import logger

from ..errors import DeliveryError

# Ответы Telegram, означающие, что участника в чате уже нет
ABSENT_MEMBER_MARKERS = (
    "user not found",
    "user_not_participant",
    "participant_id_invalid",
    "member not found",
)


class ChatActions(Protocol):
    """Слой доставки, которым пользуется сервис верификации."""

    async def send_notice(self, room_id: int, text: str) -> None: ...

    async def send_formatted_message(self, room_id: int, markup: str) -> Optional[int]: ...

    async def react(self, room_id: int, message_ref: int, emoji: str) -> None: ...

    async def delete_message(self, room_id: int, message_ref: int) -> None: ...

    async def remove_member(self, room_id: int, user_id: int, reason: str) -> None: ...


class TelegramChatActions:
    """
    Реализация ChatActions поверх aiogram.

    Любая ошибка Telegram API поднимается как DeliveryError.
    """

    def __init__(self, bot: Bot):
        self.bot = bot

    async def send_notice(self, room_id: int, text: str) -> None:
        try:
            await self.bot.send_message(room_id, text, parse_mode=None)
        except TelegramAPIError as e:
            raise DeliveryError(f"отправка уведомления в чат {room_id}: {e}") from e

    async def send_formatted_message(self, room_id: int, markup: str) -> Optional[int]:
        try:
            message = await self.bot.send_message(room_id, markup, parse_mode=ParseMode.HTML)
        except TelegramAPIError as e:
            raise DeliveryError(f"отправка задания в чат {room_id}: {e}") from e
        return message.message_id if message else None

    async def react(self, room_id: int, message_ref: int, emoji: str) -> None:
        try:
            await self.bot.set_message_reaction(
                chat_id=room_id,
                message_id=message_ref,
                reaction=[ReactionTypeEmoji(emoji=emoji)],
            )
        except TelegramAPIError as e:
            raise DeliveryError(f"реакция на сообщение {message_ref} в чате {room_id}: {e}") from e

    async def delete_message(self, room_id: int, message_ref: int) -> None:
        try:
            await self.bot.delete_message(room_id, message_ref)
        except TelegramAPIError as e:
            raise DeliveryError(f"удаление сообщения {message_ref} в чате {room_id}: {e}") from e

    async def remove_member(self, room_id: int, user_id: int, reason: str) -> None:
        """
        Исключает участника (бан с последующим разбаном, чтобы он мог вернуться).

        Telegram не принимает причину исключения, поэтому она только пишется в лог.
        """
        try:
            await self.bot.ban_chat_member(room_id, user_id)
            await self.bot.unban_chat_member(room_id, user_id, only_if_banned=True)
        except TelegramBadRequest as e:
            if any(marker in str(e).lower() for marker in ABSENT_MEMBER_MARKERS):
                logger.debug(f"Пользователь {user_id} уже покинул чат {room_id}: {e}")
                return
            raise DeliveryError(f"исключение пользователя {user_id} из чата {room_id}: {e}") from e
        except TelegramAPIError as e:
            raise DeliveryError(f"исключение пользователя {user_id} из чата {room_id}: {e}") from e

        logger.info(f"🚪 Пользователь {user_id} исключен из чата {room_id}: {reason}")
