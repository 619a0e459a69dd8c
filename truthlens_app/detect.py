from __future__ import annotations

import logging

from flask import Blueprint, current_app, flash, redirect, request, url_for

from .errors import TruthLensError
from .media import accept_upload
from .services import DetectionService
from .state import current_state

logger = logging.getLogger(__name__)

bp = Blueprint("detect", __name__, url_prefix="/detect")


def detection_service() -> DetectionService:
    return current_app.extensions["truthlens.detection"]


def _back():
    return redirect(url_for("index", tab="detect"))


@bp.post("/upload")
def upload():
    state = current_state()
    state.select_tab("detect")
    flow = state.detect

    try:
        accept_upload(
            request.files.get("image"),
            flow.set_image,
            clear_results=flow.clear_result,
            max_bytes=current_app.config["MAX_UPLOAD_BYTES"],
        )
    except TruthLensError as exc:
        logger.warning("detect upload rejected: %s", exc)
        flash(exc.message, "danger")
    return _back()


@bp.post("/analyze")
def analyze():
    state = current_state()
    state.select_tab("detect")
    flow = state.detect

    if flow.image is None:
        flash("Upload an image to analyze first.", "warning")
        return _back()
    if flow.loading:
        flash("Analysis already in progress.", "info")
        return _back()

    flow.loading = True
    try:
        flow.result = detection_service().analyze(flow.image)
    finally:
        flow.loading = False
    return _back()


@bp.post("/clear")
def clear():
    state = current_state()
    state.select_tab("detect")
    state.detect.clear()
    return _back()
