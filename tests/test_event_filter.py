"""
Captcha Bot - Event Filter Tests
================================
"""

from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from aiogram.exceptions import TelegramBadRequest
from aiogram.types import Chat, Message, User

from captcha_bot.middleware.event_filter import EventFilterMiddleware
from config.settings import Settings
from tests.conftest import ROOM, USER


@pytest.fixture
def settings():
    return Settings(
        BOT_TOKEN="1:a",
        IGNORED_USER_IDS=[999],
        IGNORED_USERNAME_PATTERNS=["^telegram_", "^discord_"],
        _env_file=None,
    )


@pytest.fixture
def middleware(settings):
    return EventFilterMiddleware(settings)


def _message(user_id=USER, username="alice", is_bot=False):
    return Message(
        message_id=1,
        date=datetime(2026, 1, 1, tzinfo=timezone.utc),
        chat=Chat(id=ROOM, type="supergroup"),
        from_user=User(id=user_id, is_bot=is_bot, first_name="Alice", username=username),
        text="12",
    )


def _mark_admin(middleware, user_id, is_admin):
    middleware._admin_cache[(ROOM, user_id)] = is_admin


class TestIgnoreList:
    def test_ignored_id(self, middleware):
        assert middleware.is_ignored(User(id=999, is_bot=False, first_name="x")) is True

    def test_ignored_username_pattern(self, middleware):
        assert middleware.is_ignored(User(id=1, is_bot=False, first_name="x", username="telegram_bob")) is True

    def test_regular_user(self, middleware):
        assert middleware.is_ignored(User(id=1, is_bot=False, first_name="x", username="bob")) is False

    def test_no_username(self, middleware):
        assert middleware.is_ignored(User(id=1, is_bot=False, first_name="x")) is False


class TestMiddlewareCall:
    async def test_regular_member_passes(self, middleware):
        handler = AsyncMock(return_value="handled")
        _mark_admin(middleware, USER, False)

        assert await middleware(handler, _message(), {}) == "handled"
        handler.assert_awaited_once()

    async def test_bot_dropped(self, middleware):
        handler = AsyncMock()
        await middleware(handler, _message(is_bot=True), {})
        handler.assert_not_awaited()

    async def test_ignored_dropped(self, middleware):
        handler = AsyncMock()
        await middleware(handler, _message(username="discord_bridge"), {})
        handler.assert_not_awaited()

    async def test_admin_dropped(self, middleware):
        handler = AsyncMock()
        _mark_admin(middleware, USER, True)
        await middleware(handler, _message(), {})
        handler.assert_not_awaited()


def _bot_event(status="member"):
    bot = SimpleNamespace(get_chat_member=AsyncMock(return_value=SimpleNamespace(status=status)))
    return SimpleNamespace(bot=bot)


class TestAdminCache:
    """Tests for cached admin lookups."""

    async def test_lookup_is_cached(self, settings):
        middleware = EventFilterMiddleware(settings)
        event = _bot_event("administrator")

        assert await middleware._is_admin(event, ROOM, USER) is True
        assert await middleware._is_admin(event, ROOM, USER) is True
        event.bot.get_chat_member.assert_awaited_once_with(ROOM, USER)

    async def test_cache_cleared_after_ttl(self, settings):
        """Test stale entries for many users do not pile up."""
        middleware = EventFilterMiddleware(settings, admin_cache_ttl=0)
        event = _bot_event()

        for user_id in range(1000):
            assert await middleware._is_admin(event, ROOM, user_id) is False

        assert len(middleware._admin_cache) <= 1
        assert event.bot.get_chat_member.await_count == 1000

    async def test_api_error_is_not_admin(self, settings):
        middleware = EventFilterMiddleware(settings)
        event = _bot_event()
        event.bot.get_chat_member.side_effect = TelegramBadRequest(method=MagicMock(), message="chat not found")

        assert await middleware._is_admin(event, ROOM, USER) is False
        assert middleware._admin_cache == {}
