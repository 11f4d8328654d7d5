"""Инструменты media-link backend.

Содержит подмодули:
- extractor: вызов yt-dlp (прямая ссылка, извлечение MP3)
- http: JSON-конверт ответов и обработчики ошибок
- janitor: периодическая чистка временной директории
- limits: rate limiting
- storage: временные MP3, одноразовая отдача
- system: проверки окружения (yt-dlp, ffmpeg)
- validation: валидация входящего запроса
"""

from . import http, limits, system, janitor, storage, extractor, validation

__all__ = [
    "extractor",
    "http",
    "janitor",
    "limits",
    "storage",
    "system",
    "validation",
]
