"""Тексты сообщений бота."""

from typing import Optional

from aiogram.utils.text_decorations import html_decoration


def mention(user_id: int, display_name: Optional[str] = None) -> str:
    """HTML-упоминание пользователя."""
    name = display_name or str(user_id)
    return html_decoration.link(html_decoration.quote(name), f"tg://user?id={user_id}")


def challenge_text(user_id: int, display_name: Optional[str], puzzle: str, timeout: str) -> str:
    """Приветствие с заданием для нового участника."""
    who = mention(user_id, display_name)
    return (
        f"Привет, {who}! Реши пример, чтобы писать в чат:\n"
        f"Welcome, {who}! Solve this to send messages:\n\n"
        f"<b>{html_decoration.quote(puzzle)}</b>\n\n"
        f"⏰ На ответ: {timeout}"
    )


def welcome_back_text(display_name: Optional[str], user_id: int) -> str:
    name = display_name or str(user_id)
    return f"С возвращением, {name}! / Welcome back, {name}!"


def format_timeout(seconds: int) -> str:
    """Форматирование времени с правильным склонением."""
    if seconds >= 60 and seconds % 60 == 0:
        minutes = seconds // 60
        return f"{minutes} {_plural_minutes(minutes)}"
    return f"{seconds} {_plural_seconds(seconds)}"


def _plural_minutes(n: int) -> str:
    """Склонение для минут."""
    if n % 10 == 1 and n % 100 != 11:
        return "минута"
    if 2 <= n % 10 <= 4 and (n % 100 < 10 or n % 100 >= 20):
        return "минуты"
    return "минут"


def _plural_seconds(n: int) -> str:
    """Склонение для секунд."""
    if n % 10 == 1 and n % 100 != 11:
        return "секунда"
    if 2 <= n % 10 <= 4 and (n % 100 < 10 or n % 100 >= 20):
        return "секунды"
    return "секунд"
