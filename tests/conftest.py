from __future__ import annotations

import io
import random

import pytest
from PIL import Image

from truthlens_app import create_app
from truthlens_app.config import AppConfig
from truthlens_app.media import ImageHandle, decode_image
from truthlens_app.services import MockDetectionService, MockReportService
from truthlens_app.state import STATE_EXTENSION

CSRF = "test-csrf-token"


def make_image_bytes(width: int = 400, height: int = 300, fmt: str = "PNG", color=(40, 90, 160)) -> bytes:
    mode = "RGBA" if fmt == "PNG" and len(color) == 4 else "RGB"
    im = Image.new(mode, (width, height), color)
    # a gradient band so the image is not flat
    for x in range(width):
        im.putpixel((x, 0), (x % 256, 30, 200) + ((255,) if mode == "RGBA" else ()))
    buf = io.BytesIO()
    im.save(buf, format=fmt)
    return buf.getvalue()


def make_handle(width: int = 400, height: int = 300, fmt: str = "PNG") -> ImageHandle:
    content_type = "image/png" if fmt == "PNG" else "image/jpeg"
    return decode_image(make_image_bytes(width, height, fmt), content_type, f"sample.{fmt.lower()}")


@pytest.fixture
def cfg() -> AppConfig:
    return AppConfig(
        secret_key="test-secret",
        session_minutes=5,
        default_watermark_text="© Test Notice",
        max_sessions=8,
    )


@pytest.fixture
def detector() -> MockDetectionService:
    return MockDetectionService(rng=random.Random(1234))


@pytest.fixture
def reporter() -> MockReportService:
    return MockReportService()


@pytest.fixture
def app(cfg, detector, reporter):
    app = create_app(cfg, detection_service=detector, report_service=reporter)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    client = app.test_client()
    with client.session_transaction() as sess:
        sess["_csrf_token"] = CSRF
    return client


@pytest.fixture
def state_of(app):
    def _state(client):
        with client.session_transaction() as sess:
            sid = sess.get("sid")
        assert sid, "no session id issued yet"
        return app.extensions[STATE_EXTENSION].get(sid)

    return _state


def upload_data(data: bytes | None = None, *, filename="photo.png", content_type="image/png", **fields) -> dict:
    payload = {"csrf_token": CSRF, **fields}
    if data is not None:
        payload["image"] = (io.BytesIO(data), filename, content_type)
    return payload
