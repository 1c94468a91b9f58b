# src/gemini_proxy/core/trace.py
from __future__ import annotations
import logging
import os
import time
from typing import Any, Mapping, Optional

from .logging import setup_logging

setup_logging()

_log = logging.getLogger("gemini_proxy.trace")

# action comes straight from the caller's body; never echo more than this
_MAX_LABEL = 32


def trace_enabled() -> bool:
    return (os.getenv("PROXY_TRACE", "")).lower() in ("1", "true", "yes", "on")


def _fmt_kv(d: Mapping[str, Any]) -> str:
    return " ".join(f"{k}={d[k]}" for k in d)


def action_label(body: Any) -> str:
    """Loggable name for the requested action (`action`, else `type`)."""
    if not isinstance(body, dict):
        return "-"
    action = body.get("action")
    if action is None:
        action = body.get("type")
    if action is None:
        return "-"
    if not isinstance(action, str):
        return f"<{type(action).__name__}>"
    label = action.replace(" ", "_") or "''"
    return label[:_MAX_LABEL]


def proxy_trace(event: str, **kv: Any) -> None:
    """
    Emit a single-line structured log ONLY when PROXY_TRACE=true.
    Callers must never pass the API key.
    """
    if not trace_enabled():
        return
    kv2 = {"ts": int(time.time()), **kv}
    _log.info("[proxy] %s %s", event, _fmt_kv(kv2))


class RequestTrace:
    """
    Times one dispatcher call and emits its summary record on exit:
      [proxy] dispatch.done ts=... method=POST action=suggest status=200 latency_ms=812
    `status` is set by the caller; it stays 500 if the block raised.
    """

    def __init__(self, method: str, body: Any):
        self.method = (method or "").upper() or "-"
        self.action = action_label(body)
        self.status: Optional[int] = None
        self._t0 = 0.0
        self.latency_ms = 0

    def __enter__(self) -> "RequestTrace":
        self._t0 = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.latency_ms = int((time.perf_counter() - self._t0) * 1000)
        if exc_type is not None or self.status is None:
            self.status = 500
        proxy_trace(
            "dispatch.done",
            method=self.method,
            action=self.action,
            status=self.status,
            latency_ms=self.latency_ms,
        )
        return False
