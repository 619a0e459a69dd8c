from __future__ import annotations

import io

from PIL import Image

from conftest import make_image_bytes, upload_data


def test_detect(client):
    resp = client.post("/api/detect", data=upload_data(make_image_bytes(32, 32)))
    assert resp.status_code == 200
    data = resp.get_json()
    assert set(data) == {"isManipulated", "confidence", "details"}
    assert isinstance(data["isManipulated"], bool)
    assert 70 <= data["confidence"] <= 99


def test_detect_rejects_text_file(client):
    resp = client.post("/api/detect", data=upload_data(b"hi", filename="a.txt", content_type="text/plain"))
    assert resp.status_code == 400
    assert resp.get_json()["error"]["code"] == "INVALID_TYPE"


def test_detect_requires_file(client):
    resp = client.post("/api/detect", data=upload_data())
    assert resp.status_code == 400
    assert resp.get_json()["error"]["code"] == "MISSING_FILE"


def test_detect_works_without_a_session(app):
    fresh = app.test_client()
    resp = fresh.post("/api/detect", data={"image": (io.BytesIO(make_image_bytes(8, 8)), "a.png", "image/png")})
    assert resp.status_code == 200
    assert set(resp.get_json()) == {"isManipulated", "confidence", "details"}


def test_watermark_works_without_a_session(app):
    fresh = app.test_client()
    resp = fresh.post(
        "/api/watermark",
        data={"text": "TEST", "image": (io.BytesIO(make_image_bytes(400, 300)), "a.png", "image/png")},
    )
    assert resp.status_code == 200
    assert resp.mimetype == "image/png"


def test_errors_without_a_session_are_json(app):
    resp = app.test_client().post("/api/reports", data={"email": "bad"})
    assert resp.status_code == 400
    assert resp.get_json()["error"]["code"] == "INVALID_REPORT"


def test_watermark(client):
    resp = client.post("/api/watermark", data=upload_data(make_image_bytes(400, 300), text="TEST"))
    assert resp.status_code == 200
    assert resp.mimetype == "image/png"
    assert resp.headers["X-Watermark-Font-Size"] == "40"
    assert "watermarked-" in resp.headers["Content-Disposition"]
    assert Image.open(io.BytesIO(resp.data)).size == (400, 300)


def test_watermark_uses_default_text(client):
    resp = client.post("/api/watermark", data=upload_data(make_image_bytes(100, 100)))
    assert resp.status_code == 200
    assert resp.headers["X-Watermark-Font-Size"] == "30"


def test_watermark_empty_text(client):
    resp = client.post("/api/watermark", data=upload_data(make_image_bytes(100, 100), text=""))
    assert resp.status_code == 400
    assert resp.get_json()["error"]["code"] == "EMPTY_TEXT"


def test_watermark_oversized(client):
    resp = client.post("/api/watermark", data=upload_data(b"\0" * 5_242_881, text="x"))
    assert resp.status_code == 400
    assert resp.get_json()["error"]["code"] == "TOO_LARGE"


def test_watermark_decode_error(client):
    resp = client.post("/api/watermark", data=upload_data(b"\0" * 100, text="x"))
    assert resp.status_code == 422
    assert resp.get_json()["error"]["code"] == "DECODE_ERROR"


def test_reports(client, reporter):
    resp = client.post(
        "/api/reports",
        data=upload_data(make_image_bytes(16, 16), email="me@example.com", description="fake"),
    )
    assert resp.status_code == 201
    data = resp.get_json()
    assert data["submitted"] is True and data["reference"]
    assert len(reporter.submitted) == 1


def test_reports_validation(client, reporter):
    resp = client.post("/api/reports", data=upload_data(email="me@example.com", description="fake"))
    assert resp.status_code == 400
    assert resp.get_json()["error"]["code"] == "INVALID_REPORT"
    assert reporter.submitted == []


def test_api_is_stateless(client):
    client.post("/api/detect", data=upload_data(make_image_bytes(8, 8)))
    with client.session_transaction() as sess:
        assert "sid" not in sess
