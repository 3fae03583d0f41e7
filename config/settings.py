"""Настройки конфигурации бота-капчи."""
import re
from datetime import timedelta
from typing import Annotated, List, Optional

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """Основные настройки приложения."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # 1. Настройки Telegram
    BOT_TOKEN: SecretStr = Field(..., description="Токен Telegram бота")

    # 2. Настройки проверки
    CHALLENGE_TIME_LIMIT: int = Field(
        default=300,
        gt=0,
        description="Время на решение задания в секундах"
    )
    MAX_EXTRA_ATTEMPTS: int = Field(
        default=2,
        ge=0,
        description="Сколько неверных ответов прощается; следующий ведет к исключению"
    )
    CLEANUP_DELAY: int = Field(
        default=60,
        ge=0,
        description="Через сколько секунд удалять решенное задание и ответ"
    )
    JOIN_GRACE_PERIOD: int = Field(
        default=30,
        ge=0,
        description="Сколько секунд после вступления бота в чат не проверять вступающих"
    )
    WELCOME_BACK_NOTICE: bool = Field(
        default=True,
        description="Приветствовать вернувшихся верифицированных участников"
    )

    # 3. Фильтрация
    IGNORED_USER_IDS: Annotated[List[int], NoDecode] = Field(
        default_factory=list,
        description="ID пользователей, которых бот не проверяет (через запятую в .env)"
    )
    IGNORED_USERNAME_PATTERNS: Annotated[List[str], NoDecode] = Field(
        default_factory=list,
        description="Регулярные выражения для username, которые бот не проверяет (через запятую)"
    )

    # 4. Настройки базы данных
    DATABASE_PATH: str = Field(
        default="captcha.db",
        description="Путь к файлу SQLite"
    )

    # 5. Логирование
    DEBUG: bool = Field(default=False, description="Подробное логирование")
    LOG_FILE: Optional[str] = Field(default="bot.log", description="Файл лога (пусто - без файла)")

    # Валидаторы
    @field_validator('IGNORED_USER_IDS', mode='before')
    @classmethod
    def parse_ids(cls, value):
        if isinstance(value, str):
            return [int(x.strip()) for x in value.split(',') if x.strip()]
        return value

    @field_validator('IGNORED_USERNAME_PATTERNS', mode='before')
    @classmethod
    def parse_patterns(cls, value):
        if isinstance(value, str):
            value = [x.strip() for x in value.split(',') if x.strip()]
        for pattern in value or []:
            try:
                re.compile(pattern)
            except re.error as e:
                raise ValueError(f"некорректное регулярное выражение {pattern!r}: {e}") from e
        return value

    # Методы для удобства
    def get_bot_token(self) -> str:
        """Получить токен бота в виде строки."""
        return self.BOT_TOKEN.get_secret_value()

    @property
    def challenge_time_limit(self) -> timedelta:
        """Время на решение задания."""
        return timedelta(seconds=self.CHALLENGE_TIME_LIMIT)

    @property
    def log_level(self) -> str:
        return "DEBUG" if self.DEBUG else "INFO"
