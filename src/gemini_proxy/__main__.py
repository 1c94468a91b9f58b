# src/gemini_proxy/__main__.py
"""
Dev server:  python -m gemini_proxy   (or the `gemini-proxy` script)
PROXY_HOST / PROXY_PORT override the bind address.
"""
import os

import uvicorn


def main() -> None:
    uvicorn.run(
        "gemini_proxy.app:app",
        host=os.getenv("PROXY_HOST", "127.0.0.1"),
        port=int(os.getenv("PROXY_PORT", "8000")),
        reload=(os.getenv("PROXY_RELOAD", "")).lower() in ("1", "true", "yes", "on"),
    )


if __name__ == "__main__":
    main()
