import logging
from typing import Any, Dict

import requests

from gemini_proxy.core.config import Settings
from gemini_proxy.core.errors import InternalError, UpstreamRequestFailed

log = logging.getLogger(__name__)


def build_url(settings: Settings) -> str:
    # Normalize model name in case it came as "models/gemini-1.5-flash"
    model = settings.model
    if model.startswith("models/"):
        model = model.split("/", 1)[1]
    return f"{settings.base_url}/models/{model}:generateContent"


def _post(url: str, payload: dict, api_key: str, timeout: float) -> requests.Response:
    """
    Single POST, key as ?key= query param. Never retried, never logged.
    """
    return requests.post(
        url,
        params={"key": api_key},
        json=payload,
        headers={"Content-Type": "application/json"},
        timeout=timeout,
    )


def extract_text(data: Dict[str, Any]) -> str:
    """First candidate, first text part. Everything else is ignored."""
    candidates = data.get("candidates") or []
    if not candidates:
        reason = (data.get("promptFeedback") or {}).get("blockReason")
        if reason:
            raise InternalError(f"Gemini returned no candidates (blockReason={reason})")
        raise InternalError("Gemini returned no candidates")

    parts = (candidates[0].get("content") or {}).get("parts") or []
    for part in parts:
        if isinstance(part, dict) and "text" in part:
            return part["text"]

    finish = candidates[0].get("finishReason")
    raise InternalError(f"Gemini candidate has no text part (finishReason={finish})")


def generate(settings: Settings, body: Dict[str, Any]) -> str:
    url = build_url(settings)

    try:
        r = _post(url, body, settings.gemini_api_key or "", settings.timeout_s)
    except requests.Timeout:
        log.error("Gemini API timeout after %.1fs", settings.timeout_s)
        raise UpstreamRequestFailed("timeout")
    except requests.RequestException as ex:
        # requests puts the full URL (incl. ?key=) into the message; keep only the type
        raise InternalError(type(ex).__name__) from None

    # HTTP-level error: log provider text here, never hand it to the caller
    if r.status_code >= 300:
        log.error("Gemini API error %s: %s", r.status_code, r.text[:400])
        raise UpstreamRequestFailed(f"status {r.status_code}")

    try:
        data = r.json()
    except ValueError:
        raise InternalError("Gemini response was not JSON") from None

    return extract_text(data)
