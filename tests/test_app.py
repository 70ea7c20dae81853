from __future__ import annotations

import re
from io import BytesIO

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from thumb_architect.api import app as app_module
from thumb_architect.api.app import MISSING_INPUT_NOTICE, app
from thumb_architect.config import settings
from thumb_architect.editor import EXPORT_MESSAGE
from thumb_architect.models import AppStep
from thumb_architect.providers.base import GatewayError
from thumb_architect.sessions import SessionStore
from thumb_architect.workflow import ANALYSIS_FAILED_NOTICE

TOPIC = "How I learned to code in 30 days"


def _generate_enabled(html: str) -> bool:
    button = re.search(r'<button id="generate"[^>]*>', html)
    assert button is not None
    return "disabled" not in button.group(0)


def _card_ids(html: str) -> list[str]:
    return re.findall(r'data-template-id="([^"]+)"', html)


def _photo(jpeg_bytes: bytes) -> dict:
    return {"file": ("me.jpg", jpeg_bytes, "image/jpeg")}


def _analyze(client: TestClient, jpeg_bytes: bytes):
    return client.post("/analyze", data={"topic": TOPIC}, files=_photo(jpeg_bytes))


def _enter_editor(client: TestClient, jpeg_bytes: bytes, template_id: str = "tpl-split"):
    _analyze(client, jpeg_bytes)
    return client.post(f"/templates/{template_id}/select")


def test_first_visit_sets_session_cookie(client):
    r = client.get("/")
    assert r.status_code == 200
    assert settings.session_cookie in r.cookies


def test_generate_disabled_until_topic_and_photo(client, jpeg_bytes):
    assert _generate_enabled(client.get("/").text) is False

    r = client.post("/upload", data={"topic": TOPIC})
    assert _generate_enabled(r.text) is False

    r = client.post("/upload", data={"topic": ""}, files=_photo(jpeg_bytes))
    assert _generate_enabled(r.text) is False
    assert 'src="/subject"' in r.text

    r = client.post("/upload", data={"topic": TOPIC})
    assert _generate_enabled(r.text) is True
    assert client.get("/subject").content == jpeg_bytes


def test_unreadable_photo_is_rejected_with_notice(client):
    r = client.post("/upload", data={"topic": TOPIC}, files={"file": ("me.jpg", b"not an image", "image/jpeg")})
    assert "Could not read that photo" in r.text
    assert _generate_enabled(r.text) is False
    assert client.get("/subject").status_code == 404


def test_analyze_without_inputs_stays_on_upload(client, gateway):
    r = client.post("/analyze", data={"topic": TOPIC})
    assert r.url.path == "/"
    assert MISSING_INPUT_NOTICE in r.text
    assert gateway.analyze_calls == []


def test_analysis_lists_templates_in_order(client, gateway, jpeg_bytes):
    r = _analyze(client, jpeg_bytes)
    assert r.url.path == "/templates"
    assert _card_ids(r.text) == ["tpl-face", "tpl-split", "tpl-minimal", "tpl-grid"]
    assert "Great lighting, but crop tighter on the face." in r.text
    assert "Studio grid" in r.text
    assert gateway.analyze_calls[0][1] == TOPIC


def test_analysis_failure_returns_to_upload_with_inputs_kept(client, gateway, jpeg_bytes):
    gateway.analyze_error = GatewayError("model unavailable")
    r = _analyze(client, jpeg_bytes)

    assert r.url.path == "/"
    assert ANALYSIS_FAILED_NOTICE in r.text
    assert f'value="{TOPIC}"' in r.text
    assert _generate_enabled(r.text) is True

    # Notice is shown once.
    assert ANALYSIS_FAILED_NOTICE not in client.get("/").text

    gateway.analyze_error = None
    r = client.post("/analyze", data={"topic": TOPIC})
    assert r.url.path == "/templates"


def test_select_opens_editor_with_template_copy(client, gateway, jpeg_bytes):
    r = _enter_editor(client, jpeg_bytes)
    assert r.url.path == "/editor"
    assert "Before / After" in r.text
    assert "16:9 (1280x720)" in r.text
    assert "3 Tone High-Contrast" in r.text

    state = client.get("/editor/state").json()
    assert state["template_id"] == "tpl-split"
    assert state["headline"] == "How I Learned X"
    assert state["headline_parts"] == {"prefix": "How I ", "highlight": "Learned", "suffix": " X"}
    assert state["background_removed"] is True
    assert state["transform"] == {"x": 0.0, "y": 0.0, "scale": 1.0}
    assert state["is_generating_background"] is False
    assert state["has_background"] is True
    assert gateway.background_prompts == ["split desk scene"]


def test_split_subject_bleeds_past_right_edge(client, jpeg_bytes):
    _enter_editor(client, jpeg_bytes, "tpl-split")
    left, top, right, bottom = client.get("/editor/state").json()["subject_box"]
    assert right >= 800
    assert left == pytest.approx(400)
    assert bottom == pytest.approx(450)


def test_text_edits_do_not_touch_template(client, jpeg_bytes):
    _enter_editor(client, jpeg_bytes)
    state = client.post("/editor/text", json={"headline": "Zero To Hero", "highlight_word": "Hero"}).json()
    assert state["headline_parts"] == {"prefix": "Zero To ", "highlight": "Hero", "suffix": ""}

    state = client.post("/editor/text", json={"highlight_word": "Villain"}).json()
    assert state["headline_parts"] == {"prefix": "Zero To Hero", "highlight": "", "suffix": ""}

    r = client.post("/editor/back")
    assert r.url.path == "/templates"
    assert "Zero To Hero" not in r.text
    assert "How I " in r.text
    assert "Return to editor" in r.text

    r = client.get("/editor")
    assert r.url.path == "/editor"
    assert client.get("/editor/state").json()["headline"] == "How I Learned X"


def test_drag_and_scale(client, jpeg_bytes):
    _enter_editor(client, jpeg_bytes)

    assert client.post("/editor/drag/move", json={"x": 10, "y": 10}).json()["transform"]["x"] == 0.0

    state = client.post("/editor/drag/start", json={"x": 100, "y": 100}).json()
    assert state["dragging"] is True
    state = client.post("/editor/drag/move", json={"x": 150, "y": 120}).json()
    assert state["transform"]["x"] == 50.0
    assert state["transform"]["y"] == 20.0

    state = client.post("/editor/drag/end").json()
    assert state["dragging"] is False
    state = client.post("/editor/drag/move", json={"x": 300, "y": 300}).json()
    assert state["transform"]["x"] == 50.0

    state = client.post("/editor/subject", json={"scale": 5, "background_removed": False}).json()
    assert state["transform"]["scale"] == 2.0
    assert state["background_removed"] is False


def test_preview_png_scales_to_container(client, jpeg_bytes):
    _enter_editor(client, jpeg_bytes)

    r = client.get("/editor/preview.png")
    assert r.headers["content-type"] == "image/png"
    assert Image.open(BytesIO(r.content)).size == (800, 450)

    r = client.get("/editor/preview.png", params={"width": 400})
    assert Image.open(BytesIO(r.content)).size == (400, 225)

    r = client.get("/editor/preview.png", params={"width": 2000})
    assert Image.open(BytesIO(r.content)).size == (800, 450)


def test_background_failure_still_opens_editor(client, gateway, jpeg_bytes):
    gateway.background_error = GatewayError("quota exceeded")
    r = _enter_editor(client, jpeg_bytes, "tpl-face")
    assert r.url.path == "/editor"

    state = client.get("/editor/state").json()
    assert state["template_id"] == "tpl-face"
    assert state["has_background"] is False
    assert state["is_generating_background"] is False
    assert client.get("/editor/preview.png").status_code == 200


def test_export_returns_message(client, jpeg_bytes):
    _enter_editor(client, jpeg_bytes)
    r = client.post("/editor/export")
    assert r.json() == {"message": EXPORT_MESSAGE}


def test_unknown_template_is_404(client, jpeg_bytes):
    _analyze(client, jpeg_bytes)
    r = client.post("/templates/nope/select", follow_redirects=False)
    assert r.status_code == 404


@pytest.mark.parametrize(
    "method, path",
    [("get", "/editor/state"), ("post", "/editor/export"), ("get", "/editor/preview.png")],
)
def test_editor_endpoints_outside_editor(client, method, path):
    r = getattr(client, method)(path)
    assert r.status_code == 409
    assert r.json()["step"] == AppStep.UPLOAD.value


def test_pages_redirect_to_current_step(client, jpeg_bytes):
    r = client.get("/templates", follow_redirects=False)
    assert r.status_code == 303
    assert r.headers["location"] == "/"

    _enter_editor(client, jpeg_bytes)
    r = client.get("/", follow_redirects=False)
    assert r.headers["location"] == "/editor"


def test_start_over_keeps_inputs(client, jpeg_bytes):
    _enter_editor(client, jpeg_bytes)
    client.post("/editor/back")
    r = client.post("/start-over")
    assert r.url.path == "/"
    assert f'value="{TOPIC}"' in r.text
    assert _generate_enabled(r.text) is True
    assert client.get("/templates", follow_redirects=False).headers["location"] == "/"


def test_sessions_are_isolated(client, jpeg_bytes):
    _enter_editor(client, jpeg_bytes)
    with TestClient(app) as other:
        r = other.get("/editor/state")
        assert r.status_code == 409


def test_startup_warns_without_api_key(monkeypatch, caplog):
    monkeypatch.setattr(app_module, "store", SessionStore())
    monkeypatch.setattr(settings, "gemini_api_key", None)
    monkeypatch.setattr(settings, "demo_mode", False)
    with caplog.at_level("WARNING", logger="thumb_architect.api.app"):
        with TestClient(app):
            pass
    assert "GEMINI_API_KEY is not set" in caplog.text
