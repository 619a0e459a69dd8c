from __future__ import annotations

import logging

from flask import Blueprint, current_app, flash, redirect, request, url_for

from .errors import ReportFormError, TruthLensError
from .media import ImageHandle, read_upload
from .security import validate_email
from .services import Report, ReportService
from .state import current_state

logger = logging.getLogger(__name__)

bp = Blueprint("reports", __name__, url_prefix="/report")


def report_service() -> ReportService:
    return current_app.extensions["truthlens.reports"]


def build_report(email: str, description: str, image: ImageHandle | None) -> Report:
    email = email.strip()
    description = description.strip()
    if not validate_email(email):
        raise ReportFormError("Enter a valid email address.")
    if not description:
        raise ReportFormError("Describe what you are reporting.")
    if image is None:
        raise ReportFormError("Attach the image you are reporting.")
    return Report(email=email, description=description, image=image)


def _back():
    return redirect(url_for("index", tab="report"))


@bp.post("/submit")
def submit():
    state = current_state()
    state.select_tab("report")
    flow = state.report

    if flow.submitted:
        flash("This report was already submitted. Start a new one to report again.", "info")
        return _back()

    flow.email = (request.form.get("email") or "").strip()
    flow.description = (request.form.get("description") or "").strip()

    try:
        file = request.files.get("image")
        if file is not None and file.filename:
            flow.set_image(read_upload(file, max_bytes=current_app.config["MAX_UPLOAD_BYTES"]))
        report = build_report(flow.email, flow.description, flow.image)
    except TruthLensError as exc:
        logger.warning("report rejected: %s", exc)
        flash(exc.message, "danger")
        return _back()

    flow.loading = True
    try:
        flow.ack = report_service().submit(report)
        flow.submitted = True
    finally:
        flow.loading = False
    flash("Thank you. Your report has been submitted.", "success")
    return _back()


@bp.post("/reset")
def reset():
    state = current_state()
    state.select_tab("report")
    state.report.reset()
    return _back()
