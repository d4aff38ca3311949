"""HTTP surface for the live-session collector.

Endpoints:
- GET /
- GET /health
- GET /api/items-count/{session_id}
- GET /api/products/{session_id}
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ..core.errors import BroadcastEndedError, InvalidSessionIdError, LiveCartError

# client-side failures; every other LiveCartError is a server-side one
CLIENT_ERRORS = (InvalidSessionIdError, BroadcastEndedError)


def status_for(exc: LiveCartError) -> int:
    return 400 if isinstance(exc, CLIENT_ERRORS) else 500


def create_app(service: Any) -> FastAPI:
    app = FastAPI(title="LiveCart", version="1.0.0")

    @app.exception_handler(LiveCartError)
    async def _livecart_error(_: Request, exc: LiveCartError) -> JSONResponse:
        return JSONResponse(
            {"success": False, "error": str(exc), "kind": exc.kind},
            status_code=status_for(exc),
        )

    @app.get("/")
    def index() -> Dict[str, Any]:
        return {
            "message": "Shopee Live Item Count API",
            "usage": ["GET /api/items-count/:sessionId", "GET /api/products/:sessionId"],
            "example": "/api/items-count/176778196",
        }

    @app.get("/health")
    def health() -> Dict[str, Any]:
        return {"status": "ok"}

    @app.get("/api/items-count/{session_id}")
    async def items_count(session_id: str) -> Dict[str, Any]:
        return await service.collect_count(session_id)

    @app.get("/api/products/{session_id}")
    async def products(session_id: str) -> Dict[str, Any]:
        return await service.collect_products(session_id)

    return app
