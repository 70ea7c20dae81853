from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from fakes import FakeGateway, image_bytes, sample_analysis, sample_background
from thumb_architect.api import app as app_module
from thumb_architect.api.app import app, get_gateway
from thumb_architect.sessions import SessionStore


@pytest.fixture()
def jpeg_bytes() -> bytes:
    return image_bytes("JPEG")


@pytest.fixture()
def gateway() -> FakeGateway:
    return FakeGateway(analysis=sample_analysis(), background=sample_background("generated"))


@pytest.fixture()
def client(gateway, monkeypatch):
    monkeypatch.setattr(app_module, "store", SessionStore())
    app.dependency_overrides[get_gateway] = lambda: gateway
    try:
        with TestClient(app) as c:
            yield c
    finally:
        app.dependency_overrides.clear()
