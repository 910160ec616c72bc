"""Relay Hub — standalone server.

Exposes:
  GET  /            — landing page
  GET  /health      — liveness check with registry counts
  WS   /ws          — relay channel for devices and controllers

Start with::

    python -m relayhub.server
    # or
    uvicorn relayhub.server:app --host 0.0.0.0 --port 8080
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse

from relayhub import __version__
from relayhub.config import HubSettings
from relayhub.registry import EndpointRegistry
from relayhub.relay import RelayEngine
from relayhub.websocket import relay_ws_handler

logger = logging.getLogger(__name__)

_INDEX_HTML = (
    "<h1>Remote Control Relay Hub is Running</h1>"
    "<p>Connect via WebSocket</p>"
)


def create_app(settings: HubSettings | None = None) -> FastAPI:
    """Build a hub application with its own registry."""
    settings = settings or HubSettings()

    app = FastAPI(title="Relay Hub", version=__version__)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST"],
    )

    app.state.settings = settings
    app.state.engine = RelayEngine(EndpointRegistry(settings.default_display_name))
    app.state.connections = {}

    app.add_api_route("/", index, methods=["GET"], response_class=HTMLResponse)
    app.add_api_route("/health", health, methods=["GET"])
    app.add_api_websocket_route(settings.ws_path, relay_ws_handler)
    return app


# ──────────────────────────────────────────────────────────────────
# Endpoints
# ──────────────────────────────────────────────────────────────────

async def index() -> str:
    return _INDEX_HTML


async def health(request: Request):
    state = request.app.state
    return {
        "status": "ok",
        "connections": len(state.connections),
        **state.engine.registry.stats(),
    }


app = create_app(HubSettings.from_env())


# ──────────────────────────────────────────────────────────────────
# Entry point
# ──────────────────────────────────────────────────────────────────

def main():
    import uvicorn
    settings = HubSettings.from_env()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("Starting Relay Hub on %s:%d (ws path %s)", settings.host, settings.port, settings.ws_path)
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
