"""Фикстуры и утилиты для тестов веб-приложения."""

from __future__ import annotations

import tempfile
from os import path, environ

import pytest

# ВАЖНО: эти переменные должны быть установлены до импорта приложения.
_TEST_ROOT = tempfile.mkdtemp(prefix="media_backend_test_")
environ.setdefault("JANITOR_ENABLED", "false")
environ.setdefault("TMP_DIR", path.join(_TEST_ROOT, "files"))
environ.setdefault("LOG_DIR", path.join(_TEST_ROOT, "logs"))

import app as app_module  # pylint: disable=wrong-import-position

from tools.storage import TempFileStore  # pylint: disable=wrong-import-position


class FakeExtractor:
    """
    Подмена YtDlpExtractor без внешнего процесса.

    :param direct_url: Что вернёт resolve_direct_url (None — «ничего не нашли»).
    :param audio: Байты, которые extract_audio запишет в out_file (None — файл не создаётся).
    :param error: Исключение, которое будет брошено из обоих методов.

    Атрибут leftovers: суффиксы файлов, которые extract_audio оставит рядом с out_file (".part" и т.п.).
    """

    def __init__(
        self, direct_url: str | None = "https://cdn.example.com/v.mp4", audio: bytes | None = b"ID3", error=None
    ):
        self.direct_url = direct_url
        self.audio = audio
        self.error = error
        self.leftovers: list[str] = []
        self.calls: list[tuple] = []

    def resolve_direct_url(self, url, quality):
        self.calls.append(("resolve", url, quality))
        if self.error:
            raise self.error
        return self.direct_url

    def extract_audio(self, url, out_file):
        self.calls.append(("extract", url, out_file))
        for suffix in self.leftovers:
            with open(out_file + suffix, "wb") as f:
                f.write(b"partial")
        if self.error:
            raise self.error
        if self.audio is not None:
            with open(out_file, "wb") as f:
                f.write(self.audio)


@pytest.fixture(scope="session")
def flask_app():
    """Готовит Flask app для тестов."""
    app_module.app.testing = True
    return app_module.app


@pytest.fixture(autouse=True)
def fresh_state(monkeypatch, tmp_path):
    """Каждый тест: пустой лимитер и своя временная директория под MP3."""
    app_module.limiter.bucket.clear()
    store_dir = tmp_path / "store"
    monkeypatch.setattr(app_module, "STORE", TempFileStore(str(store_dir)))
    return store_dir


@pytest.fixture()
def fake_extractor(monkeypatch):
    """Подменяет EXTRACTOR приложения на FakeExtractor и возвращает его."""
    fake = FakeExtractor()
    monkeypatch.setattr(app_module, "EXTRACTOR", fake)
    return fake


@pytest.fixture()
def client(flask_app):  # pylint: disable=redefined-outer-name
    """Возвращает тестовый клиент Flask для каждого теста."""
    return flask_app.test_client()
