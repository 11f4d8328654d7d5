"""
Периодическая чистка временной директории.

Notes:
- Страховка для файлов, которые клиент так и не забрал; одноразовая отдача удаляет файлы сама.
- С путём отдачи не синхронизируется: файл, удалённый параллельно, просто пропускается.
"""

from __future__ import annotations

import os
import time
import threading

from logger.logger import app_logger

from tools.storage import remove_quietly


def sweep(directory: str, max_age_sec: float, extension: str = ".mp3", now: float | None = None) -> int:
    """
    Удаляет файлы `*<extension>` (и недокачанные `*<extension>.part`) старше max_age_sec (по mtime).
    Ошибки чтения директории и отдельных файлов глушатся.
    :return: Сколько файлов удалено.
    """
    now = time.time() if now is None else now
    try:
        names = [n for n in os.listdir(directory) if n.endswith((extension, extension + ".part"))]
    except OSError:
        return 0

    removed = 0
    for name in names:
        path = os.path.join(directory, name)
        try:
            age = now - os.stat(path).st_mtime
        except OSError:
            continue
        if age > max_age_sec and remove_quietly(path):
            removed += 1
    return removed


class Janitor:
    """Фоновый поток, раз в interval_sec вызывающий sweep()."""

    def __init__(self, directory: str, interval_sec: float = 600, max_age_sec: float = 1800, extension: str = ".mp3"):
        self.directory = directory
        self.interval_sec = interval_sec
        self.max_age_sec = max_age_sec
        self.extension = extension
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def run_once(self) -> int:
        """Один проход чистки."""
        removed = sweep(self.directory, self.max_age_sec, self.extension)
        if removed:
            app_logger.info("Janitor removed %d stale file(s) from %s", removed, self.directory)
        return removed

    def _loop(self) -> None:
        while not self._stop.wait(self.interval_sec):
            try:
                self.run_once()
            except Exception as e:  # pylint: disable=broad-except
                app_logger.error("Janitor sweep failed: %s", e)

    def start(self) -> None:
        """Запускает поток (повторный вызов при живом потоке ничего не делает)."""
        if self._thread and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="tmp-janitor", daemon=True)
        self._thread.start()
        app_logger.info(
            "Janitor started (dir=%s, interval=%ss, max_age=%ss)", self.directory, self.interval_sec, self.max_age_sec
        )

    def stop(self, timeout: float | None = 5) -> None:
        """Останавливает поток и ждёт его завершения."""
        self._stop.set()
        if self._thread:
            self._thread.join(timeout)
            self._thread = None

    @property
    def running(self) -> bool:
        return bool(self._thread and self._thread.is_alive())
