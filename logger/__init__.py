"""Логирование для media-link backend.

Экспортирует:
- app_logger: основной логгер приложения (файл + консоль)
- user_logger: JSON-логгер запросов на скачивание (по USER_LOG_PATH)
"""

from .logger import app_logger, user_logger  # noqa: F401

__all__ = ["app_logger", "user_logger"]
