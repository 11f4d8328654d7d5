"""Версия сервиса."""

__version__ = "1.0.0"
