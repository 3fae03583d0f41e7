"""
Репозиторий записей о верификации пользователей в чатах.
"""
from datetime import datetime, timezone
from typing import Optional

import aiosqlite

from .base import BaseRepository
from ..models.verification_record import VerificationRecord
from ...errors import RecordNotFound, StorageError


class VerificationRepository(BaseRepository):
    """
    Долговременное хранилище статуса верификации.

    Ключ записи составной: (room_id, user_id). Ошибки SQLite оборачиваются
    в StorageError с указанием чата и пользователя, повторов на этом уровне нет.
    """

    async def get_user(self, room_id: int, user_id: int) -> Optional[VerificationRecord]:
        """
        Получает запись пользователя в чате.

        Возвращает VerificationRecord или None, если пользователь здесь ещё не встречался.
        """
        sql = "SELECT * FROM verification_records WHERE room_id = ? AND user_id = ?"
        try:
            row = await self.fetchone(sql, (room_id, user_id))
        except aiosqlite.Error as e:
            raise StorageError(f"чтение пользователя {user_id} в чате {room_id}: {e}") from e
        return VerificationRecord(**dict(row)) if row else None

    async def record_join(self, room_id: int, user_id: int, joined_at: datetime) -> None:
        """
        Фиксирует вступление пользователя в чат.

        Создает неверифицированную запись при первом вступлении,
        у существующей обновляет только last_join.
        """
        sql = """
            INSERT INTO verification_records (room_id, user_id, verified, muted, last_join)
            VALUES (?, ?, 0, 0, ?)
            ON CONFLICT(room_id, user_id) DO UPDATE SET last_join = excluded.last_join
        """
        try:
            await self.execute(sql, (room_id, user_id, joined_at.isoformat()))
        except aiosqlite.Error as e:
            raise StorageError(f"вступление пользователя {user_id} в чат {room_id}: {e}") from e

    async def verify_user(self, room_id: int, user_id: int) -> None:
        """
        Помечает пользователя как верифицированного.

        Создает запись, если её нет; у существующей меняется только флаг verified.
        """
        sql = """
            INSERT INTO verification_records (room_id, user_id, verified, muted, last_join)
            VALUES (?, ?, 1, 0, ?)
            ON CONFLICT(room_id, user_id) DO UPDATE SET verified = 1
        """
        now = datetime.now(timezone.utc)
        try:
            await self.execute(sql, (room_id, user_id, now.isoformat()))
        except aiosqlite.Error as e:
            raise StorageError(f"верификация пользователя {user_id} в чате {room_id}: {e}") from e

    async def update_user(self, record: VerificationRecord) -> None:
        """
        Полное обновление записи по ключу. Запись должна существовать.

        Флаг verified можно только установить: сбросить его этим методом нельзя.
        """
        sql = """
            UPDATE verification_records
            SET verified = (verified OR ?), muted = ?, last_join = ?
            WHERE room_id = ? AND user_id = ?
        """
        try:
            updated = await self.execute(
                sql,
                (
                    int(record.verified),
                    int(record.muted),
                    record.last_join.isoformat(),
                    record.room_id,
                    record.user_id,
                ),
            )
        except aiosqlite.Error as e:
            raise StorageError(
                f"обновление пользователя {record.user_id} в чате {record.room_id}: {e}"
            ) from e

        if updated == 0:
            raise RecordNotFound(
                f"пользователь {record.user_id} в чате {record.room_id} не найден"
            )
