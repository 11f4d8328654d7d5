"""Валидация входного запроса для эндпоинта /api/download.

Модуль разбивает проверки на мелкие функции:
- is_allowed_platform: платформа из фиксированного списка;
- is_allowed_url: корректный URL с хостом из allow-list;
- parse_download_request: нормализация тела запроса и значения по умолчанию;
- validate_download_request: координирует проверки и формирует единый результат.

Сеть здесь не трогаем: только синтаксис и принадлежность множествам.
"""

from typing import Any, NamedTuple
from urllib.parse import urlparse

from flask import Response

from tools.http import bad_request

ALLOWED_PLATFORMS = frozenset({"youtube", "instagram", "tiktok", "twitter"})
ALLOWED_HOSTS = frozenset(
    {
        "youtube.com",
        "www.youtube.com",
        "youtu.be",
        "instagram.com",
        "www.instagram.com",
        "tiktok.com",
        "www.tiktok.com",
        "twitter.com",
        "www.twitter.com",
        "x.com",
        "www.x.com",
    }
)

INVALID_PLATFORM = "Invalid platform."
INVALID_URL = "Invalid/unsupported URL."


class DownloadRequest(NamedTuple):
    """Нормализованный запрос на скачивание."""

    platform: str
    url: Any
    format: str
    quality: str


class ValidationResult(NamedTuple):
    """Результат валидации запроса.

    Attributes:
        request: DownloadRequest при успешной валидации, иначе None.
        error_response: Готовый Flask-ответ с ошибкой, если валидация не прошла.
        status_code: HTTP-код для error_response или None при успехе.
    """

    request: DownloadRequest | None
    error_response: Response | None
    status_code: int | None


def is_allowed_platform(platform) -> bool:
    """Платформа входит в список поддерживаемых (без учёта регистра)."""
    return isinstance(platform, str) and platform.lower() in ALLOWED_PLATFORMS


def is_allowed_url(url) -> bool:
    """
    Проверяет, что строка является корректным http(s) URL, а его хост (в нижнем регистре)
    входит в ALLOWED_HOSTS. Любая ошибка разбора → False.
    """
    if not isinstance(url, str) or not url.strip():
        return False
    try:
        parsed = urlparse(url.strip())
        host = parsed.hostname
    except ValueError:
        return False
    if parsed.scheme.lower() not in ("http", "https") or not host:
        return False
    return host.lower() in ALLOWED_HOSTS


def parse_download_request(payload) -> DownloadRequest:
    """
    Собирает DownloadRequest из JSON-тела.
    platform/format приводятся к нижнему регистру; format по умолчанию "mp4", quality — "best".
    """
    data = payload if isinstance(payload, dict) else {}
    platform = str(data.get("platform") or "").lower()
    fmt = str(data.get("format") or "mp4").lower()
    quality = str(data.get("quality") or "best")
    return DownloadRequest(platform=platform, url=data.get("url"), format=fmt, quality=quality)


def validate_download_request(req: DownloadRequest) -> ValidationResult:
    """Возвращает ValidationResult с error_response=None, если ошибок нет."""
    if not is_allowed_platform(req.platform):
        resp, code = bad_request(INVALID_PLATFORM)
        return ValidationResult(None, resp, code)
    if not is_allowed_url(req.url):
        resp, code = bad_request(INVALID_URL)
        return ValidationResult(None, resp, code)
    return ValidationResult(req, None, None)
