"""Вспомогательные HTTP-утилиты: единый JSON-конверт ответов {success, downloadUrl?, message?}."""

from __future__ import annotations

from flask import Response, jsonify

from logger.logger import app_logger

__all__ = ["ok", "bad_request", "soft_failure", "server_error", "too_many_requests", "handle_413", "truncate"]

MAX_MESSAGE_LEN = 400
FALLBACK_MESSAGE = "Server error"


def truncate(msg, limit: int = MAX_MESSAGE_LEN) -> str:
    """Обрезает сообщение об ошибке до `limit` символов; пустое → 'Server error'."""
    text = str(msg).strip() if msg is not None else ""
    return (text or FALLBACK_MESSAGE)[:limit]


def ok(download_url: str) -> tuple[Response, int]:
    """Успешный ответ со ссылкой на скачивание."""
    return jsonify({"success": True, "downloadUrl": download_url}), 200


def bad_request(msg: str, code: int = 400) -> tuple[Response, int]:
    """Сформировать JSON-ответ для 4xx-ошибок клиента.

    Логирует сообщение на уровне WARNING и возвращает кортеж (Response, status_code).
    :param msg: Текст ошибки для пользователя (отдаётся как есть)
    :param code: HTTP-код (по умолчанию 400)
    """
    app_logger.warning("Bad request: %s", msg)
    return jsonify({"success": False, "message": msg}), code


def soft_failure(msg: str) -> tuple[Response, int]:
    """Инструмент отработал, но результата нет: 200 и success=false."""
    app_logger.info("Soft failure: %s", msg)
    return jsonify({"success": False, "message": msg}), 200


def server_error(msg=None) -> tuple[Response, int]:
    """Сформировать JSON-ответ для 5xx-ошибок сервера.

    Сообщение обрезается до 400 символов, при пустом — 'Server error'.
    """
    text = truncate(msg)
    app_logger.error("Server error: %s", text)
    return jsonify({"success": False, "message": text}), 500


def too_many_requests(retry_after: int) -> tuple[Response, int]:
    """Ответ 429 с заголовком Retry-After."""
    resp = jsonify({"success": False, "message": "Too many requests, please try again later."})
    resp.headers["Retry-After"] = str(retry_after)
    return resp, 429


def handle_413(max_content_length: int):
    """Фабрика обработчика ошибки 413 (слишком большое тело запроса).

    Возвращает функцию-обработчик, совместимую с `app.register_error_handler(413, ...)`.

    :param max_content_length: Максимальный размер тела запроса в байтах
    :return: callable, принимающий исключение и возвращающий (Response, 413)
    """

    def _handler(_e) -> tuple[Response, int]:
        app_logger.error("Request entity too large")
        mb = max_content_length / (1024 * 1024)
        return jsonify({"success": False, "message": f"Request body is too large (> {mb:g} MB)."}), 413

    return _handler
