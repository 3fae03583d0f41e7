"""Обработчики вступлений и сообщений в группах."""

from aiogram import F, Router
from aiogram.filters.chat_member_updated import ChatMemberUpdatedFilter, IS_MEMBER, IS_NOT_MEMBER
from aiogram.types import ChatMemberUpdated, Message
from loguru import logger

from ..errors import CaptchaBotError
from ..services.verification_service import MessageOutcome, VerificationService

group_events_router = Router(name="group_events_router")
group_events_router.message.filter(F.chat.type.in_({"group", "supergroup"}))
group_events_router.chat_member.filter(F.chat.type.in_({"group", "supergroup"}))


@group_events_router.chat_member(ChatMemberUpdatedFilter(IS_NOT_MEMBER >> IS_MEMBER))
async def on_user_joined(event: ChatMemberUpdated, verification_service: VerificationService):
    """
    Обрабатывает вступление нового пользователя в группу.
    """
    user = event.new_chat_member.user
    logger.info(f"Новый участник: {user.full_name} (@{user.username}), ID: {user.id}, чат {event.chat.id}")

    try:
        outcome = await verification_service.on_member_join(
            event.chat.id,
            user.id,
            event.date,
            display_name=user.full_name,
        )
        logger.debug(f"Вступление {user.id} в чат {event.chat.id}: {outcome.value}")
    except CaptchaBotError as e:
        logger.error(f"Не удалось обработать вступление {user.id} в чат {event.chat.id}: {e}")
    except Exception:
        logger.exception(f"Непредвиденная ошибка при вступлении {user.id} в чат {event.chat.id}")


@group_events_router.message(F.from_user)
async def on_group_message(message: Message, verification_service: VerificationService):
    """
    Передает сообщение участника на проверку ответа.
    Сообщения пользователей без активного задания не трогаются.
    """
    if message.new_chat_members or message.left_chat_member:
        return

    body = message.text or message.caption
    try:
        formatted_body = message.html_text if body else None
        outcome = await verification_service.on_message(
            message.chat.id,
            message.from_user.id,
            body,
            formatted_body,
            message.date,
            message.message_id,
        )
        if outcome is not MessageOutcome.PASSED:
            logger.debug(f"Сообщение {message.message_id} от {message.from_user.id}: {outcome.value}")
    except CaptchaBotError as e:
        logger.error(
            f"Не удалось обработать сообщение {message.message_id} от {message.from_user.id} "
            f"в чате {message.chat.id}: {e}"
        )
    except Exception:
        logger.exception(
            f"Непредвиденная ошибка при обработке сообщения от {message.from_user.id} в чате {message.chat.id}"
        )
