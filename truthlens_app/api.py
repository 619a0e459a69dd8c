"""JSON endpoints mirroring the three page flows.

They are stateless: every request carries its own image, nothing is kept in
the session store.
"""

from __future__ import annotations

import io
import logging

from flask import Blueprint, current_app, request, send_file

from .detect import detection_service
from .errors import EmptyTextError, TruthLensError
from .media import read_upload
from .reports import build_report, report_service
from .watermark import compose_watermark, download_name

logger = logging.getLogger(__name__)

bp = Blueprint("api", __name__, url_prefix="/api")


@bp.errorhandler(TruthLensError)
def handle_truthlens_error(exc: TruthLensError):
    logger.warning("api error %s: %s", exc.code, exc)
    return exc.as_dict(), exc.status


def _upload():
    return read_upload(request.files.get("image"), max_bytes=current_app.config["MAX_UPLOAD_BYTES"])


@bp.post("/detect")
def api_detect():
    result = detection_service().analyze(_upload())
    return result.as_dict()


@bp.post("/watermark")
def api_watermark():
    text = request.form.get("text")
    if text is None:
        text = current_app.config["DEFAULT_WATERMARK_TEXT"]
    if not text.strip():
        raise EmptyTextError()

    result = compose_watermark(_upload(), text, font_path=current_app.config.get("FONT_PATH"))
    response = send_file(
        io.BytesIO(result.data),
        mimetype=result.content_type,
        as_attachment=True,
        download_name=download_name(),
    )
    response.headers["X-Watermark-Font-Size"] = f"{result.font_size:g}"
    return response


@bp.post("/reports")
def api_reports():
    file = request.files.get("image")
    image = _upload() if file is not None and file.filename else None
    report = build_report(request.form.get("email") or "", request.form.get("description") or "", image)
    ack = report_service().submit(report)
    return ack.as_dict(), 201
