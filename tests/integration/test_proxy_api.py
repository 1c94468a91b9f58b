import logging

import pytest

URL = "/api/gemini"

PRODUCTS = [
    {"id": 1, "name": "Chair", "description": "Ergonomic chair"},
    {"id": 3, "name": "Lamp", "description": "Desk lamp"},
]


def test_healthz(client):
    r = client.get("/healthz")
    assert r.status_code == 200
    assert r.json() == {"status": "ok", "model": "gemini-1.5-flash"}


@pytest.mark.parametrize("method", ["get", "put", "patch", "delete", "options"])
def test_non_post_is_405(client, post_spy, method):
    r = client.request(method.upper(), URL)
    assert r.status_code == 405
    assert r.json() == {"error": "Method Not Allowed"}
    post_spy.assert_not_called()


def test_missing_key_is_500(keyless_client, post_spy):
    r = keyless_client.post(URL, json={"action": "summarize", "payload": {"prompt": "p"}})
    assert r.status_code == 500
    assert r.json() == {"error": "GEMINI_API_KEY is not configured on the server."}
    post_spy.assert_not_called()


def test_bogus_action_is_400(client, post_spy):
    r = client.post(URL, json={"action": "bogus", "payload": {}})
    assert r.status_code == 400
    post_spy.assert_not_called()


def test_invalid_json_body_is_500(client, post_spy):
    r = client.post(URL, content=b"{not json", headers={"Content-Type": "application/json"})
    assert r.status_code == 500
    assert r.json()["error"] == "An internal server error occurred."
    assert "details" in r.json()
    post_spy.assert_not_called()


def test_summarize(client, gemini_reply):
    post = gemini_reply("A one-sentence summary.")
    r = client.post(URL, json={
        "action": "summarize",
        "payload": {"product": {"name": "X", "description": "Y", "specs": "Z"}},
    })
    assert r.status_code == 200, r.text
    assert r.json() == {"summary": "A one-sentence summary."}
    assert post.call_count == 1


def test_suggest_match_and_miss(client, gemini_reply):
    gemini_reply('{"recommendedId": 3}')
    r = client.post(URL, json={"action": "suggest", "payload": {"userInput": "light", "products": PRODUCTS}})
    assert r.status_code == 200, r.text
    assert r.json()["product"] == PRODUCTS[1]

    gemini_reply('{"recommendedId": 99}')
    r = client.post(URL, json={"action": "suggest", "payload": {"userInput": "light", "products": PRODUCTS}})
    assert r.status_code == 200, r.text
    assert r.json()["product"] is None


def test_filter(client, gemini_reply):
    gemini_reply('{"category":"Research & Strategy","keywords":["ergonomics","budget"]}')
    r = client.post(URL, json={
        "action": "filter",
        "payload": {
            "chatHistory": [{"role": "user", "parts": [{"text": "I want a cheap ergonomic setup"}]}],
        },
    })
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["aiResponseObject"] == {"category": "Research & Strategy", "keywords": ["ergonomics", "budget"]}
    assert "Research & Strategy" in body["modelChatMessage"]
    assert "ergonomics, budget" in body["modelChatMessage"]


def test_upstream_error_text_is_not_forwarded(client, gemini_reply, caplog):
    caplog.set_level(logging.DEBUG)
    raw = "API key not valid. Please pass a valid API key. [internal-trace-1234]"
    post = gemini_reply(status_code=400, error_text=raw)

    r = client.post(URL, json={"action": "summarize", "payload": {"prompt": "p"}})

    assert r.status_code == 500
    assert r.json() == {"error": "Upstream request failed."}
    assert "internal-trace-1234" not in r.text
    assert "internal-trace-1234" in caplog.text  # kept server-side
    assert post.call_count == 1


def test_key_never_appears_in_responses_or_logs(client, settings, gemini_reply, caplog, monkeypatch):
    caplog.set_level(logging.DEBUG)
    monkeypatch.setenv("PROXY_TRACE", "true")
    gemini_reply(status_code=503, error_text="overloaded")

    r = client.post(URL, json={"action": "summarize", "payload": {"prompt": "p"}})

    assert r.status_code == 500
    assert settings.gemini_api_key not in r.text
    assert settings.gemini_api_key not in caplog.text
    assert "dispatch.done" in caplog.text


def test_filter_without_user_turn_makes_no_call(client, post_spy):
    r = client.post(URL, json={"action": "filter"})
    assert r.status_code == 500
    assert "details" in r.json()
    post_spy.assert_not_called()


def test_suggest_echoes_callers_product(client, gemini_reply):
    products = [{"id": "1", "name": "A"}, {"id": "3", "name": "B", "extra": {"nested": [1, 2]}}]
    gemini_reply('{"recommendedId": 3}')
    r = client.post(URL, json={"action": "suggest", "payload": {"userInput": "b", "products": products}})
    assert r.status_code == 200, r.text
    assert r.json() == {"product": {"id": "3", "name": "B", "extra": {"nested": [1, 2]}}}


# ---------- CORS (shipped proxy.yml enables it) ----------

ORIGIN = "http://localhost:5173"


@pytest.fixture
def cors_client(settings):
    from fastapi.testclient import TestClient
    from gemini_proxy.app import create_app

    return TestClient(create_app(settings.model_copy(update={"cors_origins": [ORIGIN]})))


def test_preflight_is_answered_by_cors_middleware(cors_client, post_spy):
    r = cors_client.options(URL, headers={
        "Origin": ORIGIN,
        "Access-Control-Request-Method": "POST",
        "Access-Control-Request-Headers": "content-type",
    })
    assert r.status_code == 200
    assert r.headers["access-control-allow-origin"] == ORIGIN
    post_spy.assert_not_called()


def test_preflight_from_unknown_origin_is_400(cors_client, post_spy):
    r = cors_client.options(URL, headers={
        "Origin": "http://evil.example",
        "Access-Control-Request-Method": "POST",
    })
    assert r.status_code == 400
    post_spy.assert_not_called()


def test_plain_options_still_405_with_cors(cors_client, post_spy):
    r = cors_client.options(URL)
    assert r.status_code == 405
    assert r.json() == {"error": "Method Not Allowed"}
    post_spy.assert_not_called()


def test_cors_post_carries_allow_origin(cors_client, gemini_reply):
    gemini_reply("ok")
    r = cors_client.post(URL, json={"action": "summarize", "payload": {"prompt": "p"}},
                         headers={"Origin": ORIGIN})
    assert r.status_code == 200
    assert r.headers["access-control-allow-origin"] == ORIGIN
