"""Генератор арифметических заданий."""

import operator
import random
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from ..storage.models import ChallengeSession

OPERATIONS = (
    ("+", operator.add),
    ("-", operator.sub),
    ("×", operator.mul),
)

MIN_OPERAND = 1
MAX_OPERAND = 50


class ChallengeGenerator:
    """
    Создает задания вида "7 + 5 = ?".

    Единственное изменяемое состояние - собственный экземпляр random.Random;
    в asyncio вызовы не пересекаются, поэтому генератор можно разделять
    между обработчиками.
    """

    def __init__(self, rng: Optional[random.Random] = None):
        self._rng = rng or random.Random()

    def create_challenge(
        self,
        time_limit: timedelta,
        now: Optional[datetime] = None,
    ) -> ChallengeSession:
        """Новое задание со сроком now + time_limit и нулевым счетчиком попыток."""
        now = now or datetime.now(timezone.utc)
        symbol, func = self._rng.choice(OPERATIONS)
        left = self._rng.randint(MIN_OPERAND, MAX_OPERAND)
        right = self._rng.randint(MIN_OPERAND, MAX_OPERAND)

        return ChallengeSession(
            challenge_id=uuid.uuid4().hex,
            puzzle=f"{left} {symbol} {right} = ?",
            expected_answer=func(left, right),
            expiry=now + time_limit,
            tries=0,
        )
