from __future__ import annotations

import io
import logging

from flask import Blueprint, current_app, flash, redirect, request, send_file, url_for

from .errors import DownloadError, TruthLensError
from .media import accept_upload
from .state import current_state
from .watermark import compose_watermark, download_name

logger = logging.getLogger(__name__)

bp = Blueprint("images", __name__, url_prefix="/watermark")


def _back():
    return redirect(url_for("index", tab="watermark"))


@bp.post("/upload")
def upload():
    state = current_state()
    state.select_tab("watermark")
    flow = state.watermark

    try:
        accept_upload(
            request.files.get("image"),
            flow.set_image,
            clear_results=flow.clear_result,
            max_bytes=current_app.config["MAX_UPLOAD_BYTES"],
        )
    except TruthLensError as exc:
        logger.warning("watermark upload rejected: %s", exc)
        flash(exc.message, "danger")
    return _back()


@bp.post("/apply")
def apply():
    state = current_state()
    state.select_tab("watermark")
    flow = state.watermark

    if "text" in request.form:
        flow.text = request.form["text"]

    if flow.image is None:
        flash("Upload an image to watermark first.", "warning")
        return _back()
    if not flow.text.strip():
        flash("Enter some watermark text first.", "warning")
        return _back()

    flow.loading = True
    try:
        flow.result = compose_watermark(flow.image, flow.text, font_path=current_app.config.get("FONT_PATH"))
    except TruthLensError as exc:
        logger.warning("watermarking failed: %s", exc)
        flow.result = None
        flash(exc.message, "danger")
    finally:
        flow.loading = False
    return _back()


@bp.get("/download")
def download():
    state = current_state(create=False)
    try:
        result = state.watermark.result if state else None
        if result is None:
            raise DownloadError("There is no watermarked image to download yet.")
        return send_file(
            io.BytesIO(result.data),
            mimetype=result.content_type,
            as_attachment=True,
            download_name=download_name(),
        )
    except TruthLensError as exc:
        logger.warning("download failed: %s", exc)
        flash(exc.message, "danger")
        return _back()


@bp.post("/clear")
def clear():
    state = current_state()
    state.select_tab("watermark")
    state.watermark.clear()
    return _back()
