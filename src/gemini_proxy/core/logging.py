# src/gemini_proxy/core/logging.py
from __future__ import annotations
import logging
import os
import re

_LEVELS = {
    "CRITICAL": logging.CRITICAL,
    "ERROR":    logging.ERROR,
    "WARNING":  logging.WARNING,
    "INFO":     logging.INFO,
    "DEBUG":    logging.DEBUG,
    "NOTSET":   logging.NOTSET,
}

# urllib3 logs full request lines at DEBUG, including ?key=<secret>
_KEY_PARAM = re.compile(r"([?&]key=)[^&\s\"']+")


def redact(text: str) -> str:
    return _KEY_PARAM.sub(r"\1***", text)


class RedactKeyFilter(logging.Filter):
    """Rewrites any `key=` query value in a record before it is emitted."""

    def filter(self, record: logging.LogRecord) -> bool:
        try:
            msg = record.getMessage()
        except (TypeError, ValueError):
            # bad args; Handler.emit hits the same error and reports it via handleError
            return True
        clean = redact(msg)
        if clean != msg:
            record.msg = clean
            record.args = None
        return True


def _level_from_env(var: str, default: str = "INFO") -> int:
    val = (os.getenv(var, default) or "").strip().upper()
    return _LEVELS.get(val, _LEVELS[default])


def setup_logging() -> None:
    """
    Configure root logging once. Idempotent.
    LOG_LEVEL controls verbosity (default INFO). Every root handler gets
    the key redaction filter, including ones uvicorn/pytest installed.
    """
    root = logging.getLogger()
    level = _level_from_env("LOG_LEVEL", "INFO")

    if not root.handlers:
        fmt = "%(asctime)s.%(msecs)03d %(levelname)-8s %(name)s %(message)s"
        datefmt = "%Y-%m-%dT%H:%M:%S"

        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(fmt=fmt, datefmt=datefmt))
        root.addHandler(handler)

    root.setLevel(level)
    for handler in root.handlers:
        if not any(isinstance(f, RedactKeyFilter) for f in handler.filters):
            handler.addFilter(RedactKeyFilter())

    # request lines carry the key; keep urllib3 quiet unless explicitly asked
    if level > logging.DEBUG:
        logging.getLogger("urllib3").setLevel(logging.WARNING)
