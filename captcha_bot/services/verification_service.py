"""Сервис проверки новых участников арифметическим заданием."""

from datetime import datetime, timedelta, timezone
from enum import Enum
from functools import partial
from typing import Awaitable, Callable, List, Optional, Tuple

from loguru import logger

from ..database.repositories.verification_repository import VerificationRepository
from ..errors import ChallengeDeliveryError, DeliveryError, StorageError
from ..storage.models import ChallengeSession
from ..storage.session_store import SessionStore
from ..utils.answers import extract_answer
from ..utils.texts import challenge_text, format_timeout, welcome_back_text
from .challenge_service import ChallengeGenerator
from .chat_actions import ChatActions
from .scheduler import TaskScheduler

EXPIRY_REASON = "did not solve in time"
WRONG_ANSWERS_REASON = "too many wrong answers"
SUCCESS_REACTION = "👍"


class JoinOutcome(str, Enum):
    """Результат обработки вступления."""
    SUPPRESSED = "suppressed"
    WELCOMED_BACK = "welcomed_back"
    ALREADY_CHALLENGED = "already_challenged"
    CHALLENGED = "challenged"


class MessageOutcome(str, Enum):
    """Результат обработки сообщения."""
    PASSED = "passed"
    SOLVED = "solved"
    WRONG = "wrong"
    REMOVED = "removed"


class VerificationService:
    """
    Машина состояний проверки участника: UNSEEN -> CHALLENGED -> VERIFIED | REMOVED.

    Опирается на два хранилища:
    - база данных (VerificationRepository) - истина о том, проходил ли
      пользователь проверку в чате; переживает перезапуск;
    - SessionStore - активное задание, ответ и число попыток; теряется при
      перезапуске.

    При расхождении побеждает база данных. Сетевые действия выполняются
    только вне блокировок хранилищ.
    """

    def __init__(
        self,
        records: VerificationRepository,
        sessions: SessionStore,
        actions: ChatActions,
        scheduler: TaskScheduler,
        generator: Optional[ChallengeGenerator] = None,
        *,
        time_limit: timedelta = timedelta(minutes=5),
        max_extra_attempts: int = 2,
        cleanup_delay: timedelta = timedelta(minutes=1),
        join_grace_period: timedelta = timedelta(seconds=30),
        welcome_back_notice: bool = True,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.records = records
        self.sessions = sessions
        self.actions = actions
        self.scheduler = scheduler
        self.generator = generator or ChallengeGenerator()
        self.time_limit = time_limit
        self.max_extra_attempts = max_extra_attempts
        self.cleanup_delay = cleanup_delay
        self.join_grace_period = join_grace_period
        self.welcome_back_notice = welcome_back_notice
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    @classmethod
    def from_settings(
        cls,
        settings,
        records: VerificationRepository,
        sessions: SessionStore,
        actions: ChatActions,
        scheduler: TaskScheduler,
    ) -> "VerificationService":
        """Создает сервис с параметрами из конфигурации."""
        return cls(
            records,
            sessions,
            actions,
            scheduler,
            time_limit=settings.challenge_time_limit,
            max_extra_attempts=settings.MAX_EXTRA_ATTEMPTS,
            cleanup_delay=timedelta(seconds=settings.CLEANUP_DELAY),
            join_grace_period=timedelta(seconds=settings.JOIN_GRACE_PERIOD),
            welcome_back_notice=settings.WELCOME_BACK_NOTICE,
        )

    def _now(self) -> datetime:
        return self._clock()

    async def on_bot_joined(self, room_id: int, timestamp: datetime) -> None:
        """Запоминает, когда бот вступил в чат."""
        await self.sessions.put_joined_at(room_id, timestamp)
        logger.info(f"🤖 Бот вступил в чат {room_id} в {timestamp:%H:%M:%S}")

    async def on_member_join(
        self,
        room_id: int,
        user_id: int,
        timestamp: datetime,
        display_name: Optional[str] = None,
    ) -> JoinOutcome:
        """
        Обрабатывает вступление участника.

        Вступления в первые секунды после появления бота в чате игнорируются,
        чтобы не проверять всех старых участников разом. Верифицированным
        ранее пользователям задание не выдается. Повторное уведомление о
        вступлении при живом задании ничего не меняет.

        Raises:
            StorageError: ошибка базы данных.
            ChallengeDeliveryError: задание не удалось отправить.
        """
        joined_at = await self.sessions.get_joined_at(room_id)
        if joined_at is not None and timestamp < joined_at + self.join_grace_period:
            logger.debug(f"Вступление {user_id} в чат {room_id} пропущено: бот только что вступил в чат")
            return JoinOutcome.SUPPRESSED

        record = await self.records.get_user(room_id, user_id)
        await self.records.record_join(room_id, user_id, timestamp)

        if record and record.verified:
            logger.info(f"✅ Пользователь {user_id} уже верифицирован в чате {room_id}")
            if self.welcome_back_notice:
                await self._deliver(
                    self.actions.send_notice(room_id, welcome_back_text(display_name, user_id)),
                    f"приветствие {user_id} в чате {room_id}",
                )
            return JoinOutcome.WELCOMED_BACK

        now = self._now()
        current = await self.sessions.get(room_id, user_id)
        if current.is_live(now):
            await self.sessions.update(room_id, user_id, partial(_mark_rejoined, current.challenge_id))
            logger.debug(f"У пользователя {user_id} в чате {room_id} уже есть активное задание")
            return JoinOutcome.ALREADY_CHALLENGED

        session = self.generator.create_challenge(self.time_limit, now)
        if not await self.sessions.claim(room_id, user_id, session, now):
            logger.debug(f"Задание для {user_id} в чате {room_id} уже выдано параллельно")
            return JoinOutcome.ALREADY_CHALLENGED

        message_ref = await self._send_challenge(room_id, user_id, display_name, session)

        attached = await self.sessions.update(
            room_id, user_id, partial(_attach_message, session.challenge_id, message_ref)
        )
        if not attached:
            logger.warning(f"Задание {session.challenge_id} для {user_id} в чате {room_id} уже заменено")

        delay = (session.expiry - now).total_seconds()
        self.scheduler.schedule(
            delay,
            partial(self.enforce_expiry, room_id, user_id, session.challenge_id, message_ref),
            name=f"expiry:{room_id}:{user_id}:{session.challenge_id}",
        )
        logger.info(f"🧮 Пользователю {user_id} в чате {room_id} выдано задание: {session.puzzle}")
        return JoinOutcome.CHALLENGED

    async def _send_challenge(
        self,
        room_id: int,
        user_id: int,
        display_name: Optional[str],
        session: ChallengeSession,
    ) -> int:
        """Отправляет задание. Без ссылки на сообщение сессия сбрасывается."""
        text = challenge_text(
            user_id,
            display_name,
            session.puzzle,
            format_timeout(int(self.time_limit.total_seconds())),
        )
        try:
            message_ref = await self.actions.send_formatted_message(room_id, text)
        except DeliveryError as e:
            await self.sessions.discard(room_id, user_id, session.challenge_id)
            raise ChallengeDeliveryError(f"задание для {user_id} в чате {room_id}: {e}") from e

        if message_ref is None:
            await self.sessions.discard(room_id, user_id, session.challenge_id)
            raise ChallengeDeliveryError(
                f"задание для {user_id} в чате {room_id}: нет ссылки на отправленное сообщение"
            )
        return message_ref

    async def on_message(
        self,
        room_id: int,
        sender_id: int,
        body: Optional[str],
        formatted_body: Optional[str],
        timestamp: datetime,
        message_ref: int,
    ) -> MessageOutcome:
        """
        Проверяет сообщение участника с активным заданием.

        Сообщения пользователей без живого задания не трогаются.
        Верный ответ: верификация в базе, реакция, удаление задания и ответа
        через cleanup_delay. Неверный ответ: сообщение удаляется сразу,
        попытка засчитывается; после max_extra_attempts лишних попыток
        пользователь исключается, а задание и сессия остаются, сессия
        только помечается как removed до повторного вступления.

        Raises:
            StorageError: ошибка базы данных при верификации.
        """
        now = self._now()
        session = await self.sessions.get(room_id, sender_id)
        if not session.is_live(now):
            return MessageOutcome.PASSED

        answer = extract_answer(body, formatted_body)
        outcome, session = await self.sessions.update(
            room_id, sender_id, partial(self._apply_answer, answer, now)
        )

        if outcome is MessageOutcome.SOLVED:
            await self._handle_solved(room_id, sender_id, session, message_ref)
        elif outcome in (MessageOutcome.WRONG, MessageOutcome.REMOVED):
            logger.info(
                f"❌ Неверный ответ {answer!r} от {sender_id} в чате {room_id} "
                f"(попытка {session.tries}, ожидалось {session.expected_answer})"
            )
            await self._deliver(
                self.actions.delete_message(room_id, message_ref),
                f"удаление неверного ответа {message_ref} в чате {room_id}",
            )
            if outcome is MessageOutcome.REMOVED:
                logger.warning(f"🚫 Пользователь {sender_id} исчерпал попытки в чате {room_id}")
                await self._deliver(
                    self.actions.remove_member(room_id, sender_id, WRONG_ANSWERS_REASON),
                    f"исключение {sender_id} из чата {room_id}",
                )
        return outcome

    def _apply_answer(
        self,
        answer: Optional[int],
        now: datetime,
        session: ChallengeSession,
    ) -> Tuple[MessageOutcome, ChallengeSession]:
        """Применяет ответ к сессии под блокировкой хранилища."""
        if not session.is_live(now):
            return MessageOutcome.PASSED, session.model_copy()

        if answer is not None and answer == session.expected_answer:
            session.verified = True
            return MessageOutcome.SOLVED, session.model_copy()

        session.tries += 1
        if session.tries > self.max_extra_attempts:
            session.removed = True
            return MessageOutcome.REMOVED, session.model_copy()
        return MessageOutcome.WRONG, session.model_copy()

    async def _handle_solved(
        self,
        room_id: int,
        user_id: int,
        session: ChallengeSession,
        message_ref: int,
    ) -> None:
        try:
            await self.records.verify_user(room_id, user_id)
        except StorageError:
            await self.sessions.update(room_id, user_id, partial(_revert_verified, session.challenge_id))
            raise

        logger.info(f"🎉 Пользователь {user_id} решил задание в чате {room_id}")
        await self._deliver(
            self.actions.react(room_id, message_ref, SUCCESS_REACTION),
            f"реакция на сообщение {message_ref} в чате {room_id}",
        )

        refs = [ref for ref in (session.challenge_message_ref, message_ref) if ref is not None]
        self.scheduler.schedule(
            self.cleanup_delay.total_seconds(),
            partial(self.cleanup_messages, room_id, refs),
            name=f"cleanup:{room_id}:{user_id}:{session.challenge_id}",
        )

    async def cleanup_messages(self, room_id: int, message_refs: List[int]) -> None:
        """Удаляет задание и ответ после решения."""
        for message_ref in message_refs:
            await self._deliver(
                self.actions.delete_message(room_id, message_ref),
                f"удаление сообщения {message_ref} в чате {room_id}",
            )
        logger.debug(f"🗑️ Сообщения {message_refs} в чате {room_id} убраны")

    async def enforce_expiry(
        self,
        room_id: int,
        user_id: int,
        challenge_id: str,
        message_ref: int,
    ) -> bool:
        """
        Срабатывает один раз по истечении срока задания.

        Статус перечитывается в момент срабатывания: если пользователь успел
        верифицироваться, ничего не происходит. Исключенный за неверные
        ответы и не вернувшийся пользователь повторно не исключается.
        Возвращает True, если пользователь был исключен.
        """
        record = await self.records.get_user(room_id, user_id)
        session = await self.sessions.get(room_id, user_id)

        if record and record.verified:
            logger.debug(f"Срок задания истёк, но {user_id} уже верифицирован в чате {room_id}")
            return False
        if session.challenge_id == challenge_id and session.verified:
            logger.debug(f"Срок задания истёк, но {user_id} уже решил его в чате {room_id}")
            return False

        if session.challenge_id != challenge_id and session.is_live(self._now()):
            logger.info(f"Задание {challenge_id} для {user_id} в чате {room_id} заменено новым")
            await self._deliver(
                self.actions.delete_message(room_id, message_ref),
                f"удаление старого задания {message_ref} в чате {room_id}",
            )
            return False

        if session.challenge_id == challenge_id and session.removed:
            logger.debug(f"Срок задания истёк, {user_id} уже исключен из чата {room_id} и не вернулся")
            await self._deliver(
                self.actions.delete_message(room_id, message_ref),
                f"удаление задания {message_ref} в чате {room_id}",
            )
            return False

        logger.warning(f"⏰ Пользователь {user_id} не решил задание вовремя в чате {room_id}")
        await self._deliver(
            self.actions.remove_member(room_id, user_id, EXPIRY_REASON),
            f"исключение {user_id} из чата {room_id}",
        )
        await self._deliver(
            self.actions.delete_message(room_id, message_ref),
            f"удаление задания {message_ref} в чате {room_id}",
        )
        return True

    @staticmethod
    async def _deliver(action: Awaitable[None], description: str) -> bool:
        """Ошибки доставки только логируются и не откатывают состояние."""
        try:
            await action
            return True
        except DeliveryError as e:
            logger.warning(f"⚠️ Не удалось выполнить действие ({description}): {e}")
            return False


def _attach_message(challenge_id: str, message_ref: int, session: ChallengeSession) -> bool:
    if session.challenge_id != challenge_id:
        return False
    session.challenge_message_ref = message_ref
    return True


def _mark_rejoined(challenge_id: str, session: ChallengeSession) -> None:
    if session.challenge_id == challenge_id:
        session.removed = False


def _revert_verified(challenge_id: str, session: ChallengeSession) -> None:
    if session.challenge_id == challenge_id:
        session.verified = False
