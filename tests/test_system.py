"""Тесты для tools.system: ffmpeg_ok / ytdlp_ok.

Проверяем:
- успешный запуск (returncode == 0);
- неуспешный запуск (returncode != 0);
- обработку исключения при вызове subprocess.run.
"""

from types import SimpleNamespace

from tools import system


def test_ffmpeg_ok_success(monkeypatch):
    """Если subprocess.run возвращает returncode=0 — ffmpeg_ok() -> True."""
    seen = []

    def fake_run(cmd, **__):
        seen.append(cmd)
        return SimpleNamespace(returncode=0)

    monkeypatch.setattr(system.subprocess, "run", fake_run)
    assert system.ffmpeg_ok() is True
    assert seen == [["ffmpeg", "-version"]]


def test_ytdlp_ok_custom_binary(monkeypatch):
    seen = []

    def fake_run(cmd, **__):
        seen.append(cmd)
        return SimpleNamespace(returncode=0)

    monkeypatch.setattr(system.subprocess, "run", fake_run)
    assert system.ytdlp_ok("/usr/local/bin/yt-dlp") is True
    assert seen == [["/usr/local/bin/yt-dlp", "--version"]]


def test_tool_nonzero(monkeypatch):
    """returncode!=0 → False."""
    monkeypatch.setattr(system.subprocess, "run", lambda *_, **__: SimpleNamespace(returncode=1))
    assert system.ffmpeg_ok() is False
    assert system.ytdlp_ok() is False


def test_tool_exception(monkeypatch):
    """Исключение из subprocess.run (нет бинарника) → False."""

    def fake_run(*_, **__):
        raise FileNotFoundError("yt-dlp")

    monkeypatch.setattr(system.subprocess, "run", fake_run)
    assert system.ytdlp_ok() is False
