from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict


# --- Defaults: proxy.yml ships inside the package ---------------------------

# This file lives at: src/gemini_proxy/core/config.py
PKG_DIR = Path(__file__).resolve().parents[1]
CFG_PATH = PKG_DIR / "proxy.yml"

# Load .env from the working directory (repo root in dev) before reading env
load_dotenv()


class Settings(BaseModel):
    """
    Everything the dispatcher needs, resolved once and injected.
    A missing key is allowed here; the dispatcher rejects requests instead.
    """

    model_config = ConfigDict(frozen=True)

    gemini_api_key: Optional[str] = None
    base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    model: str = "gemini-1.5-flash"
    timeout_s: float = 30.0
    categories: List[str] = []
    cors_origins: List[str] = []

    def __repr__(self) -> str:
        # keep the key out of tracebacks and debug prints
        key = "set" if self.gemini_api_key else "<none>"
        return f"Settings(model={self.model!r}, timeout_s={self.timeout_s}, gemini_api_key={key})"

    __str__ = __repr__


def load_yaml(path: Path | str | None = None) -> Dict[str, Any]:
    path = Path(path or os.getenv("PROXY_CONFIG") or CFG_PATH)
    with path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def load_settings(path: Path | str | None = None) -> Settings:
    """
    Merge proxy.yml with the environment:
      - GEMINI_API_KEY   (required per request, never in YAML)
      - GEMINI_MODEL     overrides gemini.model
      - GEMINI_TIMEOUT_S overrides gemini.timeout_s
    """
    cfg = load_yaml(path)
    gcfg = cfg.get("gemini", {}) or {}
    fcfg = cfg.get("filter", {}) or {}
    ccfg = cfg.get("cors", {}) or {}

    api_key = (os.getenv("GEMINI_API_KEY") or "").strip() or None
    model = (os.getenv("GEMINI_MODEL") or gcfg.get("model") or Settings.model_fields["model"].default).strip()
    timeout_s = float(os.getenv("GEMINI_TIMEOUT_S") or gcfg.get("timeout_s", 30))

    return Settings(
        gemini_api_key=api_key,
        base_url=gcfg.get("base_url", Settings.model_fields["base_url"].default).rstrip("/"),
        model=model,
        timeout_s=timeout_s,
        categories=list(fcfg.get("categories") or []),
        cors_origins=list(ccfg.get("allow_origins") or []),
    )
