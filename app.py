"""
Smart Visual Inspection: main application
Flask web application for the session recording station.

Architecture: camera capture and MediaRecorder run client-side. The
server proxies Google Drive, fronts the records backend and stores local
videos; every request is handled independently.
"""
import logging
import os

import requests
from flask import (
    Blueprint, Flask, current_app, jsonify, make_response, render_template,
    request, send_from_directory, Response,
)
from werkzeug.exceptions import HTTPException

import config
from modules.drive import DriveClient
from modules.entries import require_records
from modules.errors import SviError, Unauthenticated, ValidationError
from modules.i18n import COOKIE_MAX_AGE, LOCALES, resolve_locale, translator
from modules.i18n import COOKIE_NAME as LOCALE_COOKIE
from modules.logging_utils import setup_logging
from modules.models import db
from modules.records import create_store, delete_session
from modules.reports import flat_rows, grouped_rows, player_view
from modules.storage import LocalVideoStore
from modules import token_store

logger = logging.getLogger("svi.app")

bp = Blueprint("svi", __name__)


class Services:
    """Per-app collaborators, kept in app.extensions["svi"]."""

    def __init__(self, records, videos, http):
        self.records = records
        self.videos = videos
        self.http = http


def services() -> Services:
    return current_app.extensions["svi"]


def drive_client() -> DriveClient:
    return DriveClient(
        token_store.credential_from(request),
        http=services().http,
        api_url=current_app.config["DRIVE_API_URL"],
        upload_url=current_app.config["DRIVE_UPLOAD_URL"],
    )


@bp.app_context_processor
def inject_locale():
    locale = resolve_locale(request.cookies.get(LOCALE_COOKIE))
    return {"locale": locale, "t": translator(locale)}


# ── Pages ──

@bp.route("/")
def index():
    """Home: entry points and a short summary."""
    records = services().records.get_all()
    items = sum(len(e.get("items") or []) for e in records.values())
    return render_template(
        "index.html",
        stats={"sessions": len(records), "items": items},
        active_page="home",
    )


@bp.route("/record")
def record_page():
    return render_template(
        "record.html",
        google_client_id=current_app.config["GOOGLE_CLIENT_ID"],
        drive_scopes=" ".join(current_app.config["DRIVE_SCOPES"]),
        active_page="record",
    )


@bp.route("/report")
def report_page():
    """Single-session player with remark seek."""
    records = services().records.get_all()
    view = player_view(records, request.args.get("key"))
    return render_template("report.html", view=view, active_page="report")


@bp.route("/report-table")
def report_table_page():
    records = services().records.get_all()
    grouped = request.args.get("view") == "grouped"
    return render_template(
        "report_table.html",
        grouped=grouped,
        rows=flat_rows(records),
        groups=grouped_rows(records) if grouped else [],
        active_page="report-table",
    )


@bp.route("/report/rows")
def report_rows():
    records = services().records.get_all()
    if request.args.get("view") == "grouped":
        return jsonify(grouped_rows(records))
    return jsonify(flat_rows(records))


# ── Drive API ──

@bp.route("/drive/token", methods=["POST"])
def drive_token():
    data = request.get_json(silent=True) or {}
    access_token = data.get("accessToken")
    if not access_token:
        raise ValidationError("Missing accessToken")
    max_age = token_store.max_age_from(data.get("expiresInSec"))
    resp = make_response(jsonify({"ok": True}))
    return token_store.set_token(resp, access_token, max_age,
                                 secure=current_app.config["COOKIE_SECURE"])


@bp.route("/drive/logout", methods=["POST"])
def drive_logout():
    resp = make_response(jsonify({"ok": True}))
    return token_store.clear_token(resp, secure=current_app.config["COOKIE_SECURE"])


@bp.route("/drive/status")
def drive_status():
    return jsonify({"authed": bool(token_store.get_token(request))})


@bp.route("/drive/me")
def drive_me():
    client = drive_client()
    if not client.credential:
        return jsonify({"authed": False})
    return jsonify(client.whoami())


@bp.route("/drive/list")
def drive_list():
    folders = drive_client().list_folders(request.args.get("parentId") or None)
    return jsonify({"folders": folders})


@bp.route("/drive/stream")
def drive_stream():
    """Proxy Drive media; the Range header is forwarded so the player can seek."""
    file_id = request.args.get("fileId")
    if not file_id:
        raise ValidationError("Missing fileId")
    stream = drive_client().stream(file_id, request.headers.get("Range"))
    resp = Response(stream.chunks, status=stream.status, headers=stream.headers)
    resp.call_on_close(stream.close)
    return resp


@bp.route("/drive/upload", methods=["POST"])
def drive_upload():
    client = drive_client()
    if not client.credential:
        raise Unauthenticated()
    name = request.args.get("name")
    if not name:
        raise ValidationError("Missing name")
    uploaded = client.upload(
        name,
        request.get_data(),
        request.content_type or "application/octet-stream",
        request.args.get("parentId") or None,
    )
    return jsonify(uploaded)


# ── Records API ──

@bp.route("/records", methods=["GET"])
def records_get():
    return jsonify(services().records.get_all())


@bp.route("/records", methods=["PUT"])
def records_put():
    body = request.get_json(silent=True)
    if body is None:
        raise ValidationError("Body must be a JSON records map")
    entries = require_records(body)
    return jsonify(services().records.upsert_many(entries))


@bp.route("/records", methods=["DELETE"])
def records_delete():
    key = request.args.get("id")
    if not key:
        raise ValidationError("Missing id")
    result = delete_session(services().records, key, drive_client(), services().videos)
    return jsonify(result.to_dict())


# ── Local video ──

@bp.route("/upload", methods=["POST"])
def upload_video():
    """Save the raw request body as <name>.<ext> in the video directory."""
    name = request.args.get("name")
    if not name:
        raise ValidationError("Missing name")
    path = services().videos.save(name, request.args.get("ext", "webm"), request.get_data())
    return jsonify({"ok": True, "path": path})


@bp.route("/videos/<path:filename>")
def serve_video(filename):
    return send_from_directory(services().videos.root, filename, conditional=True)


# ── Locale ──

@bp.route("/locale", methods=["GET", "POST"])
def set_locale():
    if request.method != "POST":
        return jsonify({"error": "Method not allowed"}), 405
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"error": "Bad request"}), 400
    locale = data.get("locale")
    if locale not in LOCALES:
        return jsonify({"error": "Invalid locale"}), 400
    resp = make_response(jsonify({"ok": True}))
    resp.set_cookie(LOCALE_COOKIE, locale, max_age=COOKIE_MAX_AGE, path="/",
                    httponly=False, samesite="Lax")
    return resp


# ── Errors ──

def handle_svi_error(e: SviError):
    if e.status >= 500:
        logger.error("%s: %s", type(e).__name__, e.message)
    return jsonify(e.to_dict()), e.status


def handle_unexpected(e: Exception):
    if isinstance(e, HTTPException):
        return jsonify({"error": e.description}), e.code
    logger.exception("Unhandled error on %s %s", request.method, request.path)
    return jsonify({"error": str(e) or "Internal server error"}), 500


# ── App factory ──

def create_app(overrides: dict = None, http=None) -> Flask:
    app = Flask(__name__)
    app.config.from_object(config)
    if overrides:
        app.config.update(overrides)
    app.json.sort_keys = False

    for d in [app.config["DATA_DIR"], app.config["VIDEOS_DIR"]]:
        os.makedirs(d, exist_ok=True)
    setup_logging(app.config["LOG_DIR"], app.config["LOG_LEVEL"])

    http = http if http is not None else requests.Session()
    db.init_app(app)
    if app.config["RECORDS_BACKEND"] == "sql":
        with app.app_context():
            db.create_all()

    app.extensions["svi"] = Services(
        records=create_store(app.config, http=http),
        videos=LocalVideoStore(app.config["VIDEOS_DIR"]),
        http=http,
    )
    app.register_blueprint(bp)
    app.register_error_handler(SviError, handle_svi_error)
    app.register_error_handler(Exception, handle_unexpected)
    logger.info("SVI started (records backend: %s)", app.config["RECORDS_BACKEND"])
    return app


# ── Startup ──

if __name__ == "__main__":
    app = create_app()
    print("=" * 50)
    print("  Smart Visual Inspection - recording station")
    print("=" * 50)
    print(f"  Videos: {app.config['VIDEOS_DIR']}")
    print(f"  Records backend: {app.config['RECORDS_BACKEND']}")
    print(f"  Server: http://localhost:{app.config['FLASK_PORT']}")
    print("  Camera is controlled in the browser (getUserMedia)")
    print("=" * 50)

    app.run(
        host=app.config["FLASK_HOST"],
        port=app.config["FLASK_PORT"],
        debug=app.config["FLASK_DEBUG"],
        threaded=True,
    )
