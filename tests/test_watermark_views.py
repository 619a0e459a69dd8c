from __future__ import annotations

import io
import re

from PIL import Image

from conftest import make_image_bytes, upload_data
from truthlens_app.state import STATE_EXTENSION


def _upload(client, width=400, height=300, **kwargs):
    return client.post("/watermark/upload", data=upload_data(make_image_bytes(width, height), **kwargs), follow_redirects=True)


def test_default_text_is_prefilled(client):
    _upload(client)
    html = client.get("/?tab=watermark").get_data(as_text=True)
    assert 'value="© Test Notice"' in html


def test_upload_apply_download(client, state_of):
    _upload(client)
    resp = client.post("/watermark/apply", data=upload_data(text="TEST"), follow_redirects=True)
    html = resp.get_data(as_text=True)

    flow = state_of(client).watermark
    assert flow.text == "TEST"
    assert flow.result is not None
    assert flow.result.font_size == 40
    assert (flow.result.width, flow.result.height) == (400, 300)
    assert flow.result.data_uri() in html
    assert "Download PNG" in html

    resp = client.get("/watermark/download")
    assert resp.status_code == 200
    assert resp.mimetype == "image/png"
    disposition = resp.headers["Content-Disposition"]
    assert disposition.startswith("attachment")
    assert re.search(r'filename="?watermarked-\d{13}\.png', disposition)
    assert Image.open(io.BytesIO(resp.data)).size == (400, 300)
    assert resp.data == flow.result.data


def test_apply_with_empty_text_is_a_no_op(client, state_of):
    _upload(client)
    html = client.post("/watermark/apply", data=upload_data(text="   "), follow_redirects=True).get_data(as_text=True)
    assert "Enter some watermark text first." in html
    assert state_of(client).watermark.result is None


def test_apply_without_image(client, state_of):
    html = client.post("/watermark/apply", data=upload_data(text="hi"), follow_redirects=True).get_data(as_text=True)
    assert "Upload an image to watermark first." in html
    assert state_of(client).watermark.result is None


def test_download_without_result(client):
    resp = client.get("/watermark/download", follow_redirects=True)
    assert resp.status_code == 200
    assert "There is no watermarked image to download yet." in resp.get_data(as_text=True)


def test_reupload_discards_result(client, state_of):
    _upload(client)
    client.post("/watermark/apply", data=upload_data(text="first"))
    assert state_of(client).watermark.result is not None

    _upload(client, 200, 100)
    flow = state_of(client).watermark
    assert flow.result is None
    assert flow.image.size == (200, 100)
    assert flow.text == "first"


def test_rejects_non_image(client, state_of):
    resp = client.post(
        "/watermark/upload",
        data=upload_data(b"plain text", filename="a.txt", content_type="text/plain"),
        follow_redirects=True,
    )
    assert "Only image files are accepted" in resp.get_data(as_text=True)
    assert state_of(client).watermark.image is None


def test_rejects_oversized_upload(client, state_of):
    resp = client.post(
        "/watermark/upload",
        data=upload_data(b"\0" * 5_242_881, filename="big.png"),
        follow_redirects=True,
    )
    assert "larger than the 5 MB limit" in resp.get_data(as_text=True)
    assert state_of(client).watermark.image is None


def test_undecodable_upload(client, state_of):
    resp = client.post("/watermark/upload", data=upload_data(b"\0" * 64, filename="x.png"), follow_redirects=True)
    assert "could not be decoded" in resp.get_data(as_text=True)
    assert state_of(client).watermark.image is None


def test_clear(client, state_of):
    _upload(client)
    client.post("/watermark/apply", data=upload_data(text="x"))
    client.post("/watermark/clear", data=upload_data())
    flow = state_of(client).watermark
    assert flow.image is None and flow.result is None


def test_download_without_session_allocates_no_state(app):
    visitor = app.test_client()
    resp = visitor.get("/watermark/download")
    assert resp.status_code == 302
    assert len(app.extensions[STATE_EXTENSION]) == 0
