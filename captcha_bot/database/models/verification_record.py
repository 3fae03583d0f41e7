"""
Модель записи о верификации пользователя в чате.
"""
from datetime import datetime

from pydantic import BaseModel


class VerificationRecord(BaseModel):
    """
    Pydantic-модель записи о верификации, соответствующая структуре в БД.

    Одна запись на пару (room_id, user_id). Флаг verified, однажды
    установленный, больше не сбрасывается.
    """
    room_id: int
    user_id: int
    verified: bool = False
    muted: bool = False
    last_join: datetime
