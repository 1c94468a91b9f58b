# src/gemini_proxy/core/errors.py
from __future__ import annotations

from typing import Any, Dict, Optional


class ProxyError(Exception):
    """Base for every failure the dispatcher turns into an HTTP status."""

    status_code: int = 500
    message: str = "An internal server error occurred."

    def __init__(self, detail: Optional[str] = None):
        super().__init__(detail or self.message)
        self.detail = detail

    def to_body(self) -> Dict[str, Any]:
        return {"error": self.message}


class MethodNotAllowed(ProxyError):
    status_code = 405
    message = "Method Not Allowed"


class MissingCredential(ProxyError):
    status_code = 500
    message = "GEMINI_API_KEY is not configured on the server."


class InvalidAction(ProxyError):
    status_code = 400
    message = "Invalid action specified."


class UpstreamRequestFailed(ProxyError):
    """Non-2xx (or timeout) from Gemini. Provider text stays server-side."""

    status_code = 500
    message = "Upstream request failed."


class InternalError(ProxyError):
    status_code = 500
    message = "An internal server error occurred."

    def to_body(self) -> Dict[str, Any]:
        body = super().to_body()
        body["details"] = self.detail or "unexpected error"
        return body
