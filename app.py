"""Flask-приложение: прямые ссылки на медиа и временные MP3 через yt-dlp, отдача и чистка временных файлов."""

import os
import time
import atexit
import tempfile

from flask_cors import CORS
from flask_compress import Compress
from werkzeug.middleware.proxy_fix import ProxyFix
from flask import Flask, Request, Response, g, jsonify, request

from app_version import __version__

from logger.logger import app_logger, user_logger

from tools.janitor import Janitor
from tools.limits import RateLimiter
from tools.storage import TempFileStore
from tools.system import ffmpeg_ok, ytdlp_ok
from tools.extractor import MediaExtractor, YtDlpExtractor, audio_info, output_ok
from tools.validation import parse_download_request, validate_download_request
from tools.http import ok, handle_413, server_error, soft_failure, too_many_requests

app = Flask(__name__)
CORS(app)
Compress(app)


def _bool(env: str, default: bool) -> bool:
    """Читает булеву переменную окружения: '1,true,yes,y,on' → True, иначе False."""
    v = os.getenv(env, str(default)).strip().lower()
    return v in ("1", "true", "yes", "y", "on")


# ---- Config / constants ----
PORT = int(os.getenv("PORT", "3000"))
TMP_DIR = os.getenv("TMP_DIR") or tempfile.gettempdir()
MAX_CONTENT_LENGTH = int(os.getenv("MAX_CONTENT_LENGTH", str(1024 * 1024)))
app.config["MAX_CONTENT_LENGTH"] = MAX_CONTENT_LENGTH

RATE_LIMIT_WINDOW_SEC = int(os.getenv("RATE_LIMIT_WINDOW_SEC", "60"))
RATE_LIMIT_MAX_REQUESTS = int(os.getenv("RATE_LIMIT_MAX_REQUESTS", "15"))
# Сколько доверенных прокси перед приложением; 0: ключ лимита = адрес сокета
PROXY_FIX_X_FOR = int(os.getenv("PROXY_FIX_X_FOR", "0"))
if PROXY_FIX_X_FOR > 0:
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=PROXY_FIX_X_FOR)

YTDLP_BIN = os.getenv("YTDLP_BIN", "yt-dlp")
FFMPEG_LOCATION = os.getenv("FFMPEG_LOCATION") or None
EXTRACT_TIMEOUT_SEC = float(os.getenv("EXTRACT_TIMEOUT_SEC", "600"))

JANITOR_ENABLED = _bool("JANITOR_ENABLED", True)
JANITOR_INTERVAL_SEC = float(os.getenv("JANITOR_INTERVAL_SEC", str(10 * 60)))
FILE_MAX_AGE_SEC = float(os.getenv("FILE_MAX_AGE_SEC", str(30 * 60)))

# ---- Extensions / helpers ----
limiter = RateLimiter(RATE_LIMIT_WINDOW_SEC, RATE_LIMIT_MAX_REQUESTS)
STORE = TempFileStore(TMP_DIR)
EXTRACTOR: MediaExtractor = YtDlpExtractor(YTDLP_BIN, ffmpeg_location=FFMPEG_LOCATION, timeout=EXTRACT_TIMEOUT_SEC)
janitor = Janitor(TMP_DIR, interval_sec=JANITOR_INTERVAL_SEC, max_age_sec=FILE_MAX_AGE_SEC)

_ffmpeg_bin = FFMPEG_LOCATION or "ffmpeg"
if os.path.isdir(_ffmpeg_bin):
    _ffmpeg_bin = os.path.join(_ffmpeg_bin, "ffmpeg")
YTDLP_AVAILABLE = ytdlp_ok(YTDLP_BIN)
FFMPEG_AVAILABLE = ffmpeg_ok(_ffmpeg_bin)
if not YTDLP_AVAILABLE:
    app_logger.warning("yt-dlp not found (%s): extraction requests will fail", YTDLP_BIN)

if JANITOR_ENABLED:
    janitor.start()
    atexit.register(janitor.stop)

# ---- Errors ----
app.register_error_handler(413, handle_413(MAX_CONTENT_LENGTH))


@app.before_request
def apply_rate_limit():
    """Глобальный лимит запросов, до любого маршрута. CORS preflight (OPTIONS) не считается."""
    if request.method == "OPTIONS":
        return None
    g.rate_limit = limiter.hit()
    if not g.rate_limit.allowed:
        app_logger.warning("Rate limit exceeded for %s", request.remote_addr)
        return too_many_requests(g.rate_limit.reset_sec)
    return None


@app.after_request
def add_rate_limit_headers(response: Response):
    """RateLimit-* на каждом ответе."""
    state = g.get("rate_limit")
    if state is not None:
        limiter.apply_headers(response, state)
    return response


def public_base(req: Request) -> str:
    """
    Origin для абсолютных ссылок: X-Forwarded-Proto (или https) + X-Forwarded-Host (или Host).
    """
    proto = req.headers.get("X-Forwarded-Proto") or "https"
    host = req.headers.get("X-Forwarded-Host") or req.headers.get("Host") or ""
    return f"{proto.split(',')[0].strip()}://{host.split(',')[0].strip()}"


def _log_event(message: str, level: str = "info", **fields) -> None:
    """Пишет событие скачивания в user_logger, если он включён."""
    if user_logger:
        getattr(user_logger, level)(message, extra={"extra": {"ip": request.remote_addr or "unknown", **fields}})


# ---- Routes ----
@app.route("/", methods=["GET"])
def index():
    """Healthcheck для балансировщика: всегда 200."""
    return Response("Backend OK", status=200, mimetype="text/html")


@app.route("/healthz", methods=["GET"])
def healthz():
    """Подробный healthcheck: внешние утилиты, лимиты, версия."""
    return (
        jsonify(
            {
                "status": "ok",
                "yt_dlp": YTDLP_AVAILABLE,
                "ffmpeg": FFMPEG_AVAILABLE,
                "rate_limit": {"window_sec": RATE_LIMIT_WINDOW_SEC, "max_requests": RATE_LIMIT_MAX_REQUESTS},
                "file_max_age_sec": FILE_MAX_AGE_SEC,
                "janitor": janitor.running,
                "version": __version__,
            }
        ),
        200,
    )


@app.route("/api/download", methods=["POST"])
def download():
    """POST /api/download: mp4 → прямая ссылка, mp3 → извлечение аудио и ссылка /file/<id>."""
    start_time = time.time()
    dl_req, error_resp, error_code = validate_download_request(parse_download_request(request.get_json(silent=True)))
    if error_resp is not None:
        _log_event("Download rejected", level="warning", status="rejected", code=error_code)
        return error_resp, error_code

    fields = {"platform": dl_req.platform, "format": dl_req.format}
    file_id = None
    try:
        if dl_req.format != "mp3":
            direct = EXTRACTOR.resolve_direct_url(dl_req.url, dl_req.quality)
            if not direct:
                _log_event("Direct URL not resolved", status="no_result", **fields)
                return soft_failure("Could not resolve media URL.")
            duration = round(time.time() - start_time, 3)
            _log_event("Direct URL resolved", status="success", duration_sec=duration, **fields)
            return ok(direct)

        file_id = STORE.new_id()
        out_file = STORE.path_for(file_id)
        EXTRACTOR.extract_audio(dl_req.url, out_file)

        if not output_ok(out_file):
            STORE.remove_all(file_id)
            _log_event("MP3 conversion failed", status="no_result", **fields)
            return soft_failure("MP3 conversion failed.")

        duration = round(time.time() - start_time, 3)
        app_logger.info("Extracted %s in %ss (%s)", os.path.basename(out_file), duration, audio_info(out_file))
        _log_event("MP3 extracted", status="success", duration_sec=duration, **fields)
        return ok(f"{public_base(request)}/file/{file_id}")

    except Exception as err:  # pylint: disable=broad-except
        app_logger.error("Error during download request: %s", err)
        if file_id:
            STORE.remove_all(file_id)
        _log_event("Download failed", level="error", status="fail", reason=str(err)[:400], **fields)
        return server_error(str(err))


@app.route("/file/<path:file_id>", methods=["GET"])
def serve_file(file_id):
    """GET /file/<id>: одноразовая отдача MP3, затем удаление."""
    return STORE.serve(file_id)


if __name__ == "__main__":
    app_logger.info("Starting media backend %s on port %d", __version__, PORT)
    app.run(host="0.0.0.0", port=PORT, threaded=True)
