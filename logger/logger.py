"""Логирование для приложения.

Содержит два логгера:
- app_logger: логгер сервиса с ротацией файлов и выводом в консоль.
- user_logger: JSON-логгер событий скачивания (если указан путь через USER_LOG_PATH).
"""

import os
import sys
import json
import logging
from logging.handlers import RotatingFileHandler

LOG_DIR = os.environ.get("LOG_DIR", "./logs")
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
os.makedirs(LOG_DIR, exist_ok=True)

_FORMAT = "%(asctime)s %(levelname)s %(message)s"

# --- App logger ---
app_logger = logging.getLogger("media_backend")
for _h in list(app_logger.handlers):
    app_logger.removeHandler(_h)
    _h.close()

app_handler = RotatingFileHandler(os.path.join(LOG_DIR, "app.log"), maxBytes=10 * 1024 * 1024, backupCount=5)
app_handler.setFormatter(logging.Formatter(_FORMAT))
app_logger.addHandler(app_handler)

console_handler = logging.StreamHandler(sys.stdout)
console_handler.setFormatter(logging.Formatter(_FORMAT))
app_logger.addHandler(console_handler)

app_logger.setLevel(getattr(logging, LOG_LEVEL, logging.INFO))
app_logger.propagate = False


# --- User logger (JSON, only if path set) ---
class JsonFileHandler(logging.FileHandler):
    """Пишет каждую запись отдельной JSON-строкой и сразу сбрасывает буфер."""

    def emit(self, record):
        try:
            self.stream.write(self.format(record) + "\n")
            self.flush()
        except Exception:
            self.handleError(record)


class JsonFormatter(logging.Formatter):
    """Форматтер, сериализующий записи логов в JSON."""

    def format(self, record):
        data = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
        }
        if hasattr(record, "extra"):
            data.update(record.extra)
        return json.dumps(data, ensure_ascii=False)


def get_user_logger():
    """Создаёт JSON-логгер событий скачивания, если задан USER_LOG_PATH.

    Если USER_LOG_PATH указывает на директорию, пишем в download_events.json внутри неё.

    :return: logging.Logger или None, если путь не задан или логгер не удалось создать."""
    base_path = os.environ.get("USER_LOG_PATH")
    if not base_path:
        return None
    log_file_path = os.path.join(base_path, "download_events.json") if os.path.isdir(base_path) else base_path
    logger = logging.getLogger("download_events")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    try:
        handler = JsonFileHandler(log_file_path, encoding="utf-8")
        handler.setFormatter(JsonFormatter())
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
        logger.propagate = False
    except OSError as e:
        app_logger.error("Failed to setup user logger: %s", e)
        return None
    return logger


user_logger = get_user_logger()
