"""
Captcha Bot - Test Fixtures
===========================

Shared fixtures: a real temporary SQLite database, fake chat actions,
a manual scheduler and a controllable clock.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable, List, Optional, Tuple

import pytest

from captcha_bot.database.manager import DatabaseManager
from captcha_bot.errors import DeliveryError
from captcha_bot.services.challenge_service import ChallengeGenerator
from captcha_bot.services.verification_service import VerificationService
from captcha_bot.storage.models import ChallengeSession
from captcha_bot.storage.session_store import SessionStore

ROOM = -1001234567890
USER = 424242
START = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Clock that only moves when told to."""

    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


class FixedGenerator(ChallengeGenerator):
    """Always asks the same question."""

    def __init__(self, puzzle: str = "7 + 5 = ?", answer: int = 12):
        super().__init__()
        self.puzzle = puzzle
        self.answer = answer
        self.created = 0

    def create_challenge(self, time_limit, now=None):
        session = super().create_challenge(time_limit, now)
        session.puzzle = self.puzzle
        session.expected_answer = self.answer
        self.created += 1
        return session


class FakeChatActions:
    """Records every action; message ids are handed out sequentially."""

    def __init__(self):
        self.next_message_id = 1000
        self.notices: List[Tuple[int, str]] = []
        self.formatted: List[Tuple[int, str, int]] = []
        self.reactions: List[Tuple[int, int, str]] = []
        self.deleted: List[Tuple[int, int]] = []
        self.removed: List[Tuple[int, int, str]] = []
        self.fail_send = False
        self.return_no_ref = False
        self.fail_remove = False
        self.fail_delete = False

    async def send_notice(self, room_id, text):
        self.notices.append((room_id, text))

    async def send_formatted_message(self, room_id, markup) -> Optional[int]:
        if self.fail_send:
            raise DeliveryError("chat not found")
        if self.return_no_ref:
            return None
        self.next_message_id += 1
        self.formatted.append((room_id, markup, self.next_message_id))
        return self.next_message_id

    async def react(self, room_id, message_ref, emoji):
        self.reactions.append((room_id, message_ref, emoji))

    async def delete_message(self, room_id, message_ref):
        if self.fail_delete:
            raise DeliveryError("message to delete not found")
        self.deleted.append((room_id, message_ref))

    async def remove_member(self, room_id, user_id, reason):
        if self.fail_remove:
            raise DeliveryError("not enough rights")
        self.removed.append((room_id, user_id, reason))


@dataclass
class ScheduledJob:
    delay: float
    action: Callable[[], Awaitable[None]]
    name: str


class ManualScheduler:
    """Collects scheduled jobs so tests decide when they fire."""

    def __init__(self):
        self.jobs: List[ScheduledJob] = []

    def schedule(self, delay, action, name):
        self.jobs.append(ScheduledJob(delay, action, name))

    def named(self, prefix: str) -> List[ScheduledJob]:
        return [job for job in self.jobs if job.name.startswith(prefix)]

    async def fire(self, prefix: str):
        results = []
        for job in self.named(prefix):
            results.append(await job.action())
        return results


@pytest.fixture
async def db_manager(tmp_path):
    """Initialised database in a temporary directory."""
    manager = DatabaseManager(str(tmp_path / "test.db"))
    await manager.init_database()
    yield manager
    await manager.close()


@pytest.fixture
def records(db_manager):
    return db_manager.records


@pytest.fixture
def sessions():
    return SessionStore()


@pytest.fixture
def actions():
    return FakeChatActions()


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def generator():
    return FixedGenerator()


@pytest.fixture
def service(records, sessions, actions, scheduler, generator, clock):
    return VerificationService(
        records,
        sessions,
        actions,
        scheduler,
        generator,
        time_limit=timedelta(minutes=5),
        max_extra_attempts=2,
        cleanup_delay=timedelta(minutes=1),
        join_grace_period=timedelta(seconds=30),
        welcome_back_notice=True,
        clock=clock,
    )


@pytest.fixture
def live_session(clock):
    """A session that has not expired yet."""
    return ChallengeSession(
        challenge_id="abc",
        puzzle="7 + 5 = ?",
        expected_answer=12,
        expiry=clock() + timedelta(minutes=5),
        challenge_message_ref=1,
    )
