"""Эфемерное хранилище активных заданий и времени вступления бота в чаты."""

import asyncio
from datetime import datetime
from typing import Callable, Dict, Optional, Tuple, TypeVar

from .models import ChallengeSession

T = TypeVar("T")


class SessionStore:
    """
    Потокобезопасная для asyncio карта (room_id, user_id) -> ChallengeSession.

    Все операции сериализованы одной блокировкой и не выполняют сетевых
    вызовов. Наружу всегда отдаются копии: изменения видны другим только
    после put/update. После перезапуска хранилище пустое.
    """

    def __init__(self):
        self._sessions: Dict[Tuple[int, int], ChallengeSession] = {}
        self._joined_at: Dict[int, datetime] = {}
        self._lock = asyncio.Lock()

    async def get(self, room_id: int, user_id: int) -> ChallengeSession:
        """Возвращает копию сессии или пустую сессию, если её нет."""
        async with self._lock:
            session = self._sessions.get((room_id, user_id))
            return session.model_copy() if session else ChallengeSession()

    async def put(self, room_id: int, user_id: int, session: ChallengeSession) -> None:
        """Полная перезапись сессии, побеждает последняя запись."""
        async with self._lock:
            self._sessions[(room_id, user_id)] = session.model_copy()

    async def update(
        self,
        room_id: int,
        user_id: int,
        mutate: Callable[[ChallengeSession], T],
    ) -> T:
        """
        Атомарно изменяет сессию.

        mutate получает сессию (пустую, если её нет), меняет её на месте;
        результат сохраняется, а возвращается то, что вернул mutate.
        """
        async with self._lock:
            stored = self._sessions.get((room_id, user_id))
            session = stored.model_copy() if stored else ChallengeSession()
            result = mutate(session)
            self._sessions[(room_id, user_id)] = session
            return result

    async def claim(
        self,
        room_id: int,
        user_id: int,
        session: ChallengeSession,
        now: datetime,
    ) -> bool:
        """Сохраняет сессию, только если у пользователя нет живого задания."""
        async with self._lock:
            current = self._sessions.get((room_id, user_id))
            if current is not None and current.is_live(now):
                return False
            self._sessions[(room_id, user_id)] = session.model_copy()
            return True

    async def discard(self, room_id: int, user_id: int, challenge_id: str) -> bool:
        """Сбрасывает сессию в пустую, если она всё ещё относится к challenge_id."""
        async with self._lock:
            current = self._sessions.get((room_id, user_id))
            if current is None or current.challenge_id != challenge_id:
                return False
            self._sessions[(room_id, user_id)] = ChallengeSession()
            return True

    async def get_joined_at(self, room_id: int) -> Optional[datetime]:
        """Время, когда бот вступил в чат, или None, если неизвестно."""
        async with self._lock:
            return self._joined_at.get(room_id)

    async def put_joined_at(self, room_id: int, joined_at: datetime) -> None:
        async with self._lock:
            self._joined_at[room_id] = joined_at
