"""Извлечение ответа пользователя из текста сообщения."""

import html
import re
from typing import Optional

INTEGER_TOKEN = re.compile(r"[-+]?[0-9]+")
REPLY_QUOTE = re.compile(r"<blockquote[^>]*>.*?</blockquote>", re.DOTALL | re.IGNORECASE)
HTML_TAG = re.compile(r"<[^>]+>")
MAX_ANSWER_DIGITS = 18
UNICODE_MINUS = "\u2212"


def strip_reply_quote(formatted_body: str) -> str:
    """Убирает цитату, которую клиенты вставляют в ответ, и HTML-разметку."""
    text = REPLY_QUOTE.sub("", formatted_body)
    return html.unescape(HTML_TAG.sub("", text)).strip()


def extract_answer(body: Optional[str], formatted_body: Optional[str] = None) -> Optional[int]:
    """
    Возвращает последнее целое число из текста или None.

    Если есть размеченный текст, число ищется в нём без цитаты;
    иначе используется обычный текст сообщения.
    """
    text = strip_reply_quote(formatted_body) if formatted_body else ""
    if not text:
        text = (body or "").strip()
    text = text.replace(UNICODE_MINUS, "-")

    tokens = INTEGER_TOKEN.findall(text)
    if not tokens:
        return None

    token = tokens[-1]
    if len(token.lstrip("+-")) > MAX_ANSWER_DIGITS:
        return None
    return int(token)
