"""Временное хранилище извлечённых MP3: путь по id, одноразовая отдача и удаление после отправки."""

from __future__ import annotations

import os
import re
import glob

from nanoid import generate
from flask import Response

from logger.logger import app_logger

ID_SIZE = 10
CHUNK_SIZE = 64 * 1024
_UNSAFE_ID_CHARS = re.compile(r"[^a-zA-Z0-9_-]")


def sanitize_id(raw) -> str:
    """Оставляет в id только буквы, цифры, '-' и '_' (никаких '/', '.', и т.п.)."""
    return _UNSAFE_ID_CHARS.sub("", str(raw or ""))


def remove_quietly(path: str) -> bool:
    """
    Удаляет файл, если он есть. Отсутствующий файл не считается ошибкой.
    :return: True, если файл был удалён этим вызовом.
    """
    try:
        os.remove(path)
        return True
    except FileNotFoundError:
        return False
    except OSError as e:
        app_logger.debug("Cannot remove %s: %s", path, e)
        return False


class _OneShotFile:
    """WSGI-итерабельный поток файла; по завершении (или обрыве) файл удаляется."""

    def __init__(self, fh, path: str, chunk_size: int = CHUNK_SIZE) -> None:
        self._fh = fh
        self._path = path
        self._chunk_size = chunk_size
        self._closed = False

    def __iter__(self):
        try:
            while True:
                chunk = self._fh.read(self._chunk_size)
                if not chunk:
                    break
                yield chunk
        finally:
            self.close()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._fh.close()
        if remove_quietly(self._path):
            app_logger.info("Served and removed %s", os.path.basename(self._path))


class TempFileStore:
    """Файлы `<directory>/<id><extension>`, адресуемые только по очищенному id."""

    def __init__(self, directory: str, extension: str = ".mp3", mimetype: str = "audio/mpeg") -> None:
        self.directory = directory
        self.extension = extension
        self.mimetype = mimetype

    @staticmethod
    def new_id() -> str:
        """Случайный 10-символьный id (nanoid, алфавит A-Za-z0-9_-)."""
        return generate(size=ID_SIZE)

    def path_for(self, file_id: str) -> str:
        """Детерминированный путь по id. Директория создаётся при необходимости."""
        os.makedirs(self.directory, exist_ok=True)
        return os.path.join(self.directory, f"{sanitize_id(file_id)}{self.extension}")

    def remove_all(self, file_id: str) -> int:
        """
        Удаляет все файлы `<id>*` (сам MP3 и хвосты yt-dlp вроде `.part`, `.webm`).
        :return: Сколько файлов удалено.
        """
        file_id = sanitize_id(file_id)
        if not file_id:
            return 0
        pattern = os.path.join(glob.escape(self.directory), f"{file_id}*")
        return sum(remove_quietly(p) for p in glob.glob(pattern))

    def serve(self, raw_id) -> Response:
        """
        Отдаёт файл один раз: Content-Type audio/mpeg, attachment `<id>.mp3`.
        После отправки файл удаляется; если файла нет — 404 'File not found'.
        """
        file_id = sanitize_id(raw_id)
        if not file_id:
            return Response("File not found", status=404, mimetype="text/plain")

        path = os.path.join(self.directory, f"{file_id}{self.extension}")
        try:
            fh = open(path, "rb")  # pylint: disable=consider-using-with
        except OSError:
            return Response("File not found", status=404, mimetype="text/plain")

        size = os.fstat(fh.fileno()).st_size
        resp = Response(_OneShotFile(fh, path), status=200, mimetype=self.mimetype)
        resp.headers["Content-Disposition"] = f'attachment; filename="{file_id}{self.extension}"'
        resp.headers["Content-Length"] = str(size)
        resp.headers["Cache-Control"] = "no-store"
        return resp
