"""
Модели эфемерного состояния проверки.
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class ChallengeSession(BaseModel):
    """
    Активное задание пользователя в чате.

    Пустая сессия (значение по умолчанию) равнозначна отсутствию сессии.
    """
    challenge_id: str = ""
    puzzle: str = ""
    expected_answer: int = 0
    expiry: Optional[datetime] = None
    tries: int = 0
    challenge_message_ref: Optional[int] = None
    verified: bool = False
    removed: bool = False

    @property
    def is_empty(self) -> bool:
        return not self.challenge_id

    def is_live(self, now: datetime) -> bool:
        """Задание ещё ждёт ответа: срок не истёк и пользователь не верифицирован."""
        if self.is_empty or self.verified or self.expiry is None:
            return False
        return self.expiry > now
