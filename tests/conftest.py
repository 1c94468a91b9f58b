# tests/conftest.py
from __future__ import annotations

import json
from typing import Any, Dict, List, Optional
from unittest.mock import Mock, patch

import pytest
from fastapi.testclient import TestClient

from gemini_proxy.app import create_app
from gemini_proxy.core.config import Settings

POST_TARGET = "gemini_proxy.adapters.gemini._post"

TEST_KEY = "test-gemini-key-XYZ"

CATEGORIES = [
    "Research & Strategy",
    "Design & Prototyping",
    "Development & Engineering",
]


def gemini_body(text: str) -> Dict[str, Any]:
    """Minimal generateContent response with one candidate."""
    return {
        "candidates": [
            {
                "content": {"role": "model", "parts": [{"text": text}]},
                "finishReason": "STOP",
            }
        ]
    }


def fake_response(status_code: int = 200, data: Optional[dict] = None, text: str = "") -> Mock:
    mock_resp = Mock()
    mock_resp.status_code = status_code
    mock_resp.ok = status_code < 300
    if data is not None:
        mock_resp.json.return_value = data
        mock_resp.text = json.dumps(data)
    else:
        mock_resp.json.side_effect = ValueError("No JSON object could be decoded")
        mock_resp.text = text
    return mock_resp


# ---------- Fixtures ----------
@pytest.fixture
def settings() -> Settings:
    return Settings(
        gemini_api_key=TEST_KEY,
        model="gemini-1.5-flash",
        timeout_s=5.0,
        categories=CATEGORIES,
    )


@pytest.fixture
def keyless_settings(settings: Settings) -> Settings:
    return settings.model_copy(update={"gemini_api_key": None})


@pytest.fixture
def gemini_reply():
    """
    Patch the outbound POST. Call it with the text the model should answer,
    or with status_code/error_text for an upstream failure. Returns the mock
    so tests can check how often (and with what) Gemini was called.
    """
    patchers: List[Any] = []

    def _install(text: Optional[str] = None, *, status_code: int = 200,
                 error_text: str = "", data: Optional[dict] = None) -> Mock:
        if data is None and text is not None:
            data = gemini_body(text)
        p = patch(POST_TARGET, return_value=fake_response(status_code, data, error_text))
        patchers.append(p)
        return p.start()

    yield _install
    for p in reversed(patchers):
        p.stop()


@pytest.fixture
def post_spy():
    """Outbound POST that must not be reached."""
    with patch(POST_TARGET) as spy:
        yield spy


@pytest.fixture
def client(settings: Settings) -> TestClient:
    return TestClient(create_app(settings))


@pytest.fixture
def keyless_client(keyless_settings: Settings) -> TestClient:
    return TestClient(create_app(keyless_settings))
