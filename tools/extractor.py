"""Вызов внешнего yt-dlp: получение прямой ссылки на медиа и извлечение аудио в MP3.

yt-dlp для нас чёрный ящик: передаём URL и опции, забираем stdout или готовый файл.
Транскодирование делает ffmpeg, который yt-dlp вызывает сам.
"""

from __future__ import annotations

import os
import re
import signal
import subprocess
from typing import Protocol

from mutagen.mp3 import MP3

from logger.logger import app_logger

DIRECT_URL_RE = re.compile(r"^https?://", re.IGNORECASE)


class ExtractionError(RuntimeError):
    """yt-dlp упал, не найден или не уложился в таймаут."""


class MediaExtractor(Protocol):
    """Что нужно эндпоинту от экстрактора. В тестах подменяется фейком."""

    def resolve_direct_url(self, url: str, quality: str) -> str | None: ...

    def extract_audio(self, url: str, out_file: str) -> None: ...


def quality_selector(quality: str) -> str:
    """
    Селектор формата для `-f`.
    "highest" и любое другое значение сводятся к "best": отдельных уровней качества нет.
    """
    return "best" if quality == "highest" else "best"


def _kill_group(proc: subprocess.Popen) -> None:
    """SIGKILL всей группе процесса; если группы уже нет или killpg недоступен, убиваем сам процесс."""
    try:
        os.killpg(proc.pid, signal.SIGKILL)
    except (AttributeError, OSError):
        proc.kill()


def first_direct_url(output: str) -> str | None:
    """Первая строка вывода, похожая на http(s)-ссылку, или None."""
    for line in (output or "").splitlines():
        line = line.strip()
        if line and DIRECT_URL_RE.match(line):
            return line
    return None


def output_ok(path: str) -> bool:
    """Файл существует и не пустой."""
    try:
        return os.path.getsize(path) > 0
    except OSError:
        return False


def audio_info(path: str) -> dict | None:
    """
    Параметры MP3 (длительность, битрейт), только для логов.
    Если файл не читается mutagen'ом, возвращаем None.
    """
    try:
        info = MP3(path).info
        return {"duration_sec": round(getattr(info, "length", 0.0), 2), "bitrate": getattr(info, "bitrate", None)}
    except Exception as e:  # pylint: disable=broad-except
        app_logger.debug("Cannot read MP3 info for %s: %s", path, e)
        return None


class YtDlpExtractor:
    """Адаптер над бинарником yt-dlp (subprocess)."""

    def __init__(self, binary: str = "yt-dlp", ffmpeg_location: str | None = None, timeout: float | None = None):
        """
        :param binary: Путь или имя исполняемого файла yt-dlp.
        :param ffmpeg_location: Передаётся как --ffmpeg-location, если задан.
        :param timeout: Лимит на один вызов в секундах; None или 0 — без ограничения.
        """
        self.binary = binary
        self.ffmpeg_location = ffmpeg_location
        self.timeout = timeout or None

    def _run(self, args: list[str]) -> subprocess.CompletedProcess:
        """
        Запускает yt-dlp в отдельной сессии: по таймауту убиваем всю группу процессов,
        включая ffmpeg, запущенный самим yt-dlp.
        """
        command = [self.binary, *args]
        app_logger.debug("Running: %s", " ".join(command))
        try:
            proc = subprocess.Popen(  # pylint: disable=consider-using-with
                command, stdout=subprocess.PIPE, stderr=subprocess.PIPE, text=True, start_new_session=True
            )
        except FileNotFoundError as e:
            raise ExtractionError(f"{self.binary} is not available: {e}") from e

        try:
            stdout, stderr = proc.communicate(timeout=self.timeout)
        except subprocess.TimeoutExpired as e:
            _kill_group(proc)
            proc.communicate()
            raise ExtractionError(f"Extraction timed out after {self.timeout}s") from e

        result = subprocess.CompletedProcess(command, proc.returncode, stdout, stderr)
        if result.returncode != 0:
            app_logger.error("[yt-dlp] exit code %d: %s", result.returncode, result.stderr)
            msg = (result.stderr or "").strip() or (result.stdout or "").strip()
            raise ExtractionError(msg or f"{self.binary} exited with code {result.returncode}")
        return result

    def resolve_direct_url(self, url: str, quality: str) -> str | None:
        """Просит yt-dlp напечатать прямые ссылки (-g) и берёт первую http(s)."""
        result = self._run(["-f", quality_selector(quality), "-g", "--", url])
        return first_direct_url(result.stdout)

    def extract_audio(self, url: str, out_file: str) -> None:
        """Извлекает лучшее аудио, перекодирует в MP3 и пишет ровно в out_file."""
        args = [
            "--extract-audio",
            "--audio-format",
            "mp3",
            "--audio-quality",
            "0",
            "--output",
            out_file,
            "--restrict-filenames",
            "--no-playlist",
        ]
        if self.ffmpeg_location:
            args += ["--ffmpeg-location", self.ffmpeg_location]
        self._run([*args, "--", url])
