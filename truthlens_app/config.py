from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone

from .media import MAX_UPLOAD_BYTES

DEFAULT_WATERMARK_TEXT = "© 2024 Protected Content"
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def _env_float(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    try:
        return max(0.0, float(raw))
    except ValueError:
        return default


@dataclass(frozen=True)
class AppConfig:
    secret_key: str
    session_minutes: int
    max_upload_bytes: int = MAX_UPLOAD_BYTES
    default_watermark_text: str = DEFAULT_WATERMARK_TEXT
    font_path: str | None = None
    detection_delay: float = 0.0
    report_delay: float = 0.0
    # each session may pin ~3 uploads plus a PNG result in memory, see SessionStateStore
    max_sessions: int = 64
    log_level: str = "INFO"

    @staticmethod
    def load() -> "AppConfig":
        secret_key = os.getenv("SECRET_KEY", "dev-only-secret-key-change-me")
        session_minutes = int(os.getenv("SESSION_MINUTES", "60"))
        max_upload_bytes = int(os.getenv("MAX_UPLOAD_BYTES", str(MAX_UPLOAD_BYTES)))
        default_text = os.getenv("DEFAULT_WATERMARK_TEXT") or DEFAULT_WATERMARK_TEXT
        font_path = os.getenv("FONT_PATH") or None
        max_sessions = int(os.getenv("MAX_SESSIONS", "64"))
        log_level = os.getenv("LOG_LEVEL", "INFO").upper()

        return AppConfig(
            secret_key=secret_key,
            session_minutes=session_minutes,
            max_upload_bytes=max_upload_bytes,
            default_watermark_text=default_text,
            font_path=font_path,
            detection_delay=_env_float("DETECTION_DELAY_SECONDS", 1.5),
            report_delay=_env_float("REPORT_DELAY_SECONDS", 1.0),
            max_sessions=max(1, max_sessions),
            log_level=log_level,
        )

    def as_flask_config(self) -> dict:
        return {
            "SECRET_KEY": self.secret_key,
            "SESSION_MINUTES": self.session_minutes,
            "MAX_UPLOAD_BYTES": self.max_upload_bytes,
            # leave headroom so the upload validator decides the size boundary
            "MAX_CONTENT_LENGTH": self.max_upload_bytes * 2 + 1024 * 1024,
            "DEFAULT_WATERMARK_TEXT": self.default_watermark_text,
            "FONT_PATH": self.font_path,
        }

    @staticmethod
    def now_iso() -> str:
        return datetime.now(timezone.utc).astimezone().isoformat(timespec="seconds")


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)
