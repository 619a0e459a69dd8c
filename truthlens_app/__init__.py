from __future__ import annotations

import logging
from datetime import timedelta

from dotenv import load_dotenv
from flask import Flask, flash, redirect, render_template, request, url_for
from werkzeug.exceptions import RequestEntityTooLarge

from .config import AppConfig
from .media import size_limit_error
from .security import csrf_token, require_csrf
from .services import DetectionService, MockDetectionService, MockReportService, ReportService
from .state import STATE_EXTENSION, TABS, SessionStateStore, current_state
from .watermark import describe_font

logger = logging.getLogger(__name__)

# page blueprint -> the tab it redirects back to
BLUEPRINT_TABS = {"detect": "detect", "images": "watermark", "reports": "report"}


def create_app(
    cfg: AppConfig | None = None,
    *,
    detection_service: DetectionService | None = None,
    report_service: ReportService | None = None,
) -> Flask:
    if cfg is None:
        load_dotenv()
        cfg = AppConfig.load()

    app = Flask(__name__)
    app.config.from_mapping(cfg.as_flask_config())
    app.permanent_session_lifetime = timedelta(minutes=cfg.session_minutes)

    store = SessionStateStore(
        max_sessions=cfg.max_sessions,
        default_text=cfg.default_watermark_text,
    )
    app.extensions[STATE_EXTENSION] = store
    app.extensions["truthlens.detection"] = detection_service or MockDetectionService(delay=cfg.detection_delay)
    app.extensions["truthlens.reports"] = report_service or MockReportService(delay=cfg.report_delay)

    app.before_request(require_csrf)
    app.jinja_env.globals["csrf_token"] = csrf_token

    from .api import bp as api_bp
    from .detect import bp as detect_bp
    from .images import bp as images_bp
    from .reports import bp as reports_bp

    app.register_blueprint(detect_bp)
    app.register_blueprint(images_bp)
    app.register_blueprint(reports_bp)
    app.register_blueprint(api_bp)

    @app.errorhandler(RequestEntityTooLarge)
    def request_too_large(_exc: RequestEntityTooLarge):
        err = size_limit_error(cfg.max_upload_bytes)
        logger.warning("request body over MAX_CONTENT_LENGTH on %s", request.path)
        if request.blueprint == "api":
            return err.as_dict(), err.status
        flash(err.message, "danger")
        return redirect(url_for("index", tab=BLUEPRINT_TABS.get(request.blueprint)))

    @app.get("/")
    def index():
        # visitors get a throwaway state until they first post something
        state = current_state(create=False) or store.new_state()
        state.select_tab(request.args.get("tab"))
        return render_template(
            "index.html",
            state=state,
            tabs=TABS,
            max_upload_mb=cfg.max_upload_bytes / (1024 * 1024),
        )

    @app.get("/api/health")
    def api_health():
        return {
            "ok": True,
            "time": cfg.now_iso(),
            "sessions": len(app.extensions[STATE_EXTENSION]),
            "font": describe_font(cfg.font_path),
        }

    return app
