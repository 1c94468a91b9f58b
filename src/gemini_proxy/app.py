import json
import logging
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from fastapi.concurrency import run_in_threadpool

from gemini_proxy.core.config import Settings, load_settings
from gemini_proxy.core.dispatch import Dispatcher
from gemini_proxy.core.logging import setup_logging

setup_logging()
log = logging.getLogger(__name__)

# Everything goes to the dispatcher so it can answer 405 itself
ALL_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "HEAD"]


def create_app(settings: Optional[Settings] = None, dispatcher: Optional[Dispatcher] = None) -> FastAPI:
    if settings is None:
        settings = load_settings()
    if dispatcher is None:
        dispatcher = Dispatcher(settings)
    log.info("Gemini proxy configured: %s", settings)

    app = FastAPI(title="Gemini Proxy", version="0.1.0")
    app.state.settings = settings
    app.state.dispatcher = dispatcher

    # CORS so the proxy can be called from the Vite dev server (5173)
    if settings.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.get("/healthz")
    def health():
        return {"status": "ok", "model": settings.model}

    @app.api_route("/api/gemini", methods=ALL_METHODS)
    async def gemini_proxy(request: Request):
        body: Any = None
        if request.method == "POST":
            raw = await request.body()
            try:
                body = json.loads(raw) if raw else None
            except ValueError:
                # dispatcher reports non-object bodies as an internal error
                body = raw

        # blocking requests call: keep it off the event loop
        resp = await run_in_threadpool(dispatcher.handle, request.method, body)
        return JSONResponse(status_code=resp.status_code, content=resp.body)

    return app


app = create_app()
