"""System utilities: проверка доступности внешних утилит (yt-dlp, ffmpeg)."""

import subprocess

from logger.logger import app_logger


def tool_ok(command: list[str]) -> bool:
    """
    Запускает команду вида `<tool> --version` и проверяет код возврата.
    :return: True, если утилита установлена и возвращает код 0.
    """
    try:
        res = subprocess.run(command, capture_output=True, check=False, timeout=15)
        return res.returncode == 0
    except Exception as e:  # pylint: disable=broad-except
        app_logger.error("%s check failed: %s", command[0], e)
        return False


def ffmpeg_ok(binary: str = "ffmpeg") -> bool:
    """Доступен ли ffmpeg (нужен yt-dlp для перекодирования в MP3)."""
    return tool_ok([binary, "-version"])


def ytdlp_ok(binary: str = "yt-dlp") -> bool:
    """Доступен ли yt-dlp."""
    return tool_ok([binary, "--version"])
