"""Flask app: buffered and streaming chat endpoints, health probe, browser page and uploads."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from flask import (
    Blueprint,
    Flask,
    Response,
    current_app,
    jsonify,
    request,
    send_from_directory,
    url_for,
)
from werkzeug.exceptions import RequestEntityTooLarge

from chat_relay.core.errors import RelayError
from chat_relay.core.records import NDJSON_MEDIA_TYPE
from chat_relay.models.completion import OpenAICompletionSource
from chat_relay.relay.endpoint import STREAM_HEADERS, Attachment, ChatRelay
from chat_relay.web.page import INDEX_HTML
from chat_relay.web.uploads import UploadStore

if TYPE_CHECKING:
    from chat_relay.config.loader import Config
    from chat_relay.models.streaming import CompletionSource


bp = Blueprint("chat", __name__)

RELAY_EXTENSION = "chat_relay"
UPLOADS_EXTENSION = "chat_relay.uploads"


def create_app(config: Config, source: Optional[CompletionSource] = None) -> Flask:
    """Build the app from an explicit config. ``source`` defaults to the OpenAI-compatible API."""
    app = Flask(__name__)
    app.config["MAX_CONTENT_LENGTH"] = config.server.max_upload_mb * 1024 * 1024
    if source is None:
        source = OpenAICompletionSource.from_settings(config.model)
    uploads = UploadStore(config.uploads_path)
    uploads.ensure()
    app.extensions[RELAY_EXTENSION] = ChatRelay(source, config.model.system_prompt)
    app.extensions[UPLOADS_EXTENSION] = uploads
    app.register_blueprint(bp)
    app.register_error_handler(RelayError, _relay_error)
    app.register_error_handler(RequestEntityTooLarge, _too_large)

    allow_origin = config.server.cors_allow_origin

    @app.after_request
    def _cors(response: Response) -> Response:
        if allow_origin:
            response.headers["Access-Control-Allow-Origin"] = allow_origin
            response.headers["Access-Control-Allow-Headers"] = "Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET, POST, OPTIONS"
        return response

    return app


def _relay() -> ChatRelay:
    return current_app.extensions[RELAY_EXTENSION]


def _uploads() -> UploadStore:
    return current_app.extensions[UPLOADS_EXTENSION]


def _relay_error(e: RelayError):
    return jsonify({"error": e.message}), e.status_code


def _too_large(e: RequestEntityTooLarge):
    return jsonify({"error": "File too large"}), 413


@bp.route("/", methods=["GET"])
def index():
    return Response(INDEX_HTML, mimetype="text/html")


@bp.route("/health", methods=["GET"])
def health():
    return jsonify({"ok": True})


@bp.route("/chat", methods=["POST"])
def chat():
    """Buffered completion; multipart ``message`` and optional ``file``."""
    message = request.form.get("message") or None
    attachment = None
    file = request.files.get("file")
    if file and file.filename:
        uploaded = _uploads().save(file)
        attachment = Attachment(
            original_name=uploaded.original_name,
            mime_type=uploaded.mime_type,
            size=uploaded.size,
            download_url=url_for("chat.uploaded_file", name=uploaded.stored_name, _external=True),
        )
    reply = _relay().reply(message, attachment)
    return jsonify({"reply": reply})


@bp.route("/chat/stream", methods=["POST"])
def chat_stream():
    """NDJSON token stream. Errors before this returns are JSON bodies; later ones are in-band."""
    body = _relay().open_stream(request.get_json(silent=True))
    return Response(
        body,
        content_type=f"{NDJSON_MEDIA_TYPE}; charset=utf-8",
        headers=STREAM_HEADERS,
    )


@bp.route("/uploads/<path:name>", methods=["GET"])
def uploaded_file(name: str):
    return send_from_directory(_uploads().root, name)
