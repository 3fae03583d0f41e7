"""Бот-капча для групповых чатов: арифметическая проверка новых участников."""

__version__ = "1.0.0"
