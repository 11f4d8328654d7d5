"""
Simple in-memory rate limiter (fixed window, per client IP).

Notes:
- Not multi-process safe (gunicorn workers будут иметь отдельные бакеты).
- Не переживает перезапуск процесса.
- Заголовки: стандартные RateLimit-*, без устаревших X-RateLimit-*.
"""

import math
import time
import threading
from typing import NamedTuple

from flask import Response, request


class RateLimitState(NamedTuple):
    """Состояние лимита для текущего запроса."""

    allowed: bool
    limit: int
    remaining: int
    reset_sec: int


class RateLimiter:
    """Fixed-window rate limiter, keyed by IP."""

    MAX_KEYS = 10_000

    def __init__(self, window_sec: int, max_req: int) -> None:
        """
        :param window_sec: Длина окна (секунды).
        :param max_req: Максимум запросов на ключ за окно.
        """
        self.window = window_sec
        self.max_req = max_req
        # ключ -> (начало окна, счётчик)
        self.bucket: dict[str, tuple[float, int]] = {}
        self._lock = threading.Lock()

    @staticmethod
    def _key() -> str:
        """Ключ лимита: IP клиента (после ProxyFix: реальный)."""
        return "ip:" + (request.remote_addr or "unknown")

    def _purge(self, now: float) -> None:
        expired = [k for k, (start, _) in self.bucket.items() if now - start >= self.window]
        for k in expired:
            del self.bucket[k]

    def hit(self, key: str | None = None) -> RateLimitState:
        """
        Учесть текущий запрос и вернуть состояние.
        Запросы сверх лимита не увеличивают счётчик.
        """
        now = time.monotonic()
        key = key or self._key()
        with self._lock:
            if len(self.bucket) > self.MAX_KEYS:
                self._purge(now)

            start, count = self.bucket.get(key, (now, 0))
            if now - start >= self.window:
                start, count = now, 0

            allowed = count < self.max_req
            if allowed:
                count += 1
            self.bucket[key] = (start, count)

        reset = max(0, math.ceil(start + self.window - now))
        return RateLimitState(allowed, self.max_req, max(0, self.max_req - count), reset)

    def apply_headers(self, response: Response, state: RateLimitState) -> Response:
        """Проставляет RateLimit-Policy/Limit/Remaining/Reset."""
        response.headers["RateLimit-Policy"] = f"{self.max_req};w={self.window}"
        response.headers["RateLimit-Limit"] = str(state.limit)
        response.headers["RateLimit-Remaining"] = str(state.remaining)
        response.headers["RateLimit-Reset"] = str(state.reset_sec)
        return response
