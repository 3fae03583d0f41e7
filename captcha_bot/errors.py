"""Исключения бота-капчи."""


class CaptchaBotError(Exception):
    """Базовое исключение бота."""


class StorageError(CaptchaBotError):
    """Ошибка чтения или записи в базу данных."""


class RecordNotFound(CaptchaBotError):
    """Запись о верификации не найдена."""


class DeliveryError(CaptchaBotError):
    """Не удалось выполнить действие в чате (отправка, реакция, удаление, исключение)."""


class ChallengeDeliveryError(DeliveryError):
    """Не удалось отправить задание: без ссылки на сообщение сессия не создается."""
