"""
Captcha Bot - Database Tests
============================

Tests for the durable verification records.
"""

from datetime import datetime, timezone

import pytest

from captcha_bot.database.models.verification_record import VerificationRecord
from captcha_bot.errors import RecordNotFound, StorageError
from tests.conftest import ROOM, START, USER


class TestGetUser:
    """Tests for record lookups."""

    async def test_get_user_empty_db(self, records):
        """Test a missing record is reported as None."""
        assert await records.get_user(ROOM, USER) is None

    async def test_get_user_after_verify(self, records):
        """Test a verified user is read back as verified."""
        await records.verify_user(ROOM, USER)
        record = await records.get_user(ROOM, USER)
        assert record is not None
        assert record.verified is True
        assert record.muted is False


class TestRecordJoin:
    """Tests for join bookkeeping."""

    async def test_first_join_creates_unverified(self, records):
        await records.record_join(ROOM, USER, START)
        record = await records.get_user(ROOM, USER)
        assert record.verified is False
        assert record.last_join == START

    async def test_rejoin_updates_last_join_only(self, records):
        await records.record_join(ROOM, USER, START)
        await records.verify_user(ROOM, USER)
        later = datetime(2026, 3, 1, tzinfo=timezone.utc)

        await records.record_join(ROOM, USER, later)
        record = await records.get_user(ROOM, USER)
        assert record.last_join == later
        assert record.verified is True


class TestVerifyUser:
    """Tests for the verification upsert."""

    async def test_verify_is_idempotent(self, records):
        await records.verify_user(ROOM, USER)
        await records.verify_user(ROOM, USER)
        assert (await records.get_user(ROOM, USER)).verified is True

    async def test_verify_keeps_other_fields(self, records):
        await records.record_join(ROOM, USER, START)
        await records.update_user(
            VerificationRecord(room_id=ROOM, user_id=USER, verified=False, muted=True, last_join=START)
        )

        await records.verify_user(ROOM, USER)
        record = await records.get_user(ROOM, USER)
        assert record.verified is True
        assert record.muted is True
        assert record.last_join == START


class TestUpdateUser:
    """Tests for full-record updates."""

    async def test_update_missing_raises(self, records):
        with pytest.raises(RecordNotFound):
            await records.update_user(VerificationRecord(room_id=ROOM, user_id=USER, last_join=START))

    async def test_update_cannot_unverify(self, records):
        await records.verify_user(ROOM, USER)
        await records.update_user(
            VerificationRecord(room_id=ROOM, user_id=USER, verified=False, last_join=START)
        )
        assert (await records.get_user(ROOM, USER)).verified is True


class TestCompositeKey:
    """Tests that room and user ids never collide."""

    async def test_concatenation_lookalikes_are_distinct(self, records):
        """Test (1, 23) and (12, 3) are separate records."""
        await records.verify_user(1, 23)
        assert (await records.get_user(1, 23)).verified is True
        assert await records.get_user(12, 3) is None

    async def test_same_user_other_room(self, records):
        await records.verify_user(ROOM, USER)
        assert await records.get_user(ROOM + 1, USER) is None


class TestStorageErrors:
    """Tests that SQLite failures are wrapped."""

    async def test_read_error_is_wrapped(self, db_manager, records):
        await db_manager.conn.execute("DROP TABLE verification_records")
        with pytest.raises(StorageError) as exc_info:
            await records.get_user(ROOM, USER)
        assert str(USER) in str(exc_info.value)

    async def test_write_error_is_wrapped(self, db_manager, records):
        await db_manager.conn.execute("DROP TABLE verification_records")
        with pytest.raises(StorageError):
            await records.verify_user(ROOM, USER)

    async def test_tables_survive_reopen(self, tmp_path):
        """Test records persist across a restart."""
        from captcha_bot.database.manager import DatabaseManager

        path = str(tmp_path / "persist.db")
        first = DatabaseManager(path)
        await first.init_database()
        await first.records.verify_user(ROOM, USER)
        await first.close()

        second = DatabaseManager(path)
        await second.init_database()
        try:
            assert (await second.records.get_user(ROOM, USER)).verified is True
        finally:
            await second.close()
