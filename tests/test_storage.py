"""Тесты для tools.storage: очистка id, путь, одноразовая отдача и удаление."""

import os

import pytest

from tools.storage import TempFileStore, remove_quietly, sanitize_id


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("abcDEF123_-", "abcDEF123_-"),
        ("../../etc/passwd", "etcpasswd"),
        ("..\\..\\win.ini", "winini"),
        ("a b/c.d", "abcd"),
        ("id%00null", "id00null"),
        ("", ""),
        (None, ""),
        ("привет", ""),
    ],
)
def test_sanitize_id(raw, expected):
    """Остаются только [A-Za-z0-9_-]."""
    assert sanitize_id(raw) == expected


def test_new_id_shape():
    """10 символов, алфавит переживает очистку, повторов нет."""
    ids = {TempFileStore.new_id() for _ in range(200)}
    assert len(ids) == 200
    for i in ids:
        assert len(i) == 10
        assert sanitize_id(i) == i


def test_path_for_stays_in_directory(tmp_path):
    """Путь всегда внутри директории хранилища; директория создаётся."""
    store = TempFileStore(str(tmp_path / "files"))
    p = store.path_for("../../etc/passwd")
    assert os.path.dirname(p) == str(tmp_path / "files")
    assert os.path.basename(p) == "etcpasswd.mp3"
    assert (tmp_path / "files").is_dir()


def test_serve_missing_404(tmp_path):
    resp = TempFileStore(str(tmp_path)).serve("nope")
    assert resp.status_code == 404
    assert resp.get_data(as_text=True) == "File not found"


def test_serve_empty_id_404(tmp_path):
    """id, очищенный до пустой строки, не превращается в '.mp3'."""
    (tmp_path / ".mp3").write_bytes(b"x")
    resp = TempFileStore(str(tmp_path)).serve("../")
    assert resp.status_code == 404


def test_serve_streams_then_deletes(tmp_path):
    """Отдача: заголовки, содержимое; после потока файл удалён."""
    store = TempFileStore(str(tmp_path))
    path = store.path_for("abc123")
    payload = os.urandom(200 * 1024)
    with open(path, "wb") as f:
        f.write(payload)

    resp = store.serve("abc123")
    assert resp.status_code == 200
    assert resp.mimetype == "audio/mpeg"
    assert resp.headers["Content-Disposition"] == 'attachment; filename="abc123.mp3"'
    assert resp.headers["Content-Length"] == str(len(payload))
    assert os.path.exists(path)

    assert b"".join(resp.response) == payload
    assert not os.path.exists(path)
    assert store.serve("abc123").status_code == 404


def test_serve_close_without_reading_deletes(tmp_path):
    """Обрыв до чтения (close) тоже удаляет файл."""
    store = TempFileStore(str(tmp_path))
    path = store.path_for("gone")
    with open(path, "wb") as f:
        f.write(b"data")
    resp = store.serve("gone")
    resp.close()
    assert not os.path.exists(path)


def test_serve_tolerates_concurrent_delete(tmp_path):
    """Файл удалили параллельно (janitor) — отдача всё равно завершается."""
    store = TempFileStore(str(tmp_path))
    path = store.path_for("race")
    with open(path, "wb") as f:
        f.write(b"data")
    resp = store.serve("race")
    os.remove(path)
    assert b"".join(resp.response) == b"data"


def test_remove_quietly(tmp_path):
    p = tmp_path / "x.mp3"
    p.write_bytes(b"1")
    assert remove_quietly(str(p)) is True
    assert remove_quietly(str(p)) is False
    assert remove_quietly(str(tmp_path / "never.mp3")) is False


def test_remove_all_clears_id_prefixed_files(tmp_path):
    """remove_all убирает `<id>*` (MP3, .part, промежуточный .webm), соседей не трогает."""
    store = TempFileStore(str(tmp_path))
    for name in ("abc123.mp3", "abc123.mp3.part", "abc123.webm", "other1.mp3"):
        (tmp_path / name).write_bytes(b"x")

    assert store.remove_all("abc123") == 3
    assert sorted(p.name for p in tmp_path.iterdir()) == ["other1.mp3"]


def test_remove_all_ignores_unsafe_or_empty_id(tmp_path):
    """Пустой после очистки id не превращается в маску `*`."""
    (tmp_path / "keep.mp3").write_bytes(b"x")
    store = TempFileStore(str(tmp_path))
    assert store.remove_all("../*") == 0
    assert store.remove_all("") == 0
    assert (tmp_path / "keep.mp3").exists()
