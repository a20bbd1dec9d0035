"""
FastAPI application entry point for the NeighborLink API.
"""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from neighborlink.config import get_settings
from neighborlink.errors import NeighborLinkError, report_error
from neighborlink.routes import router


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(title="NeighborLink API", version="0.1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=[
            "authorization",
            "x-client-info",
            "apikey",
            "content-type",
            "x-webhook-signature",
            "x-api-key",
        ],
    )

    @app.exception_handler(NeighborLinkError)
    async def handle_service_error(request: Request, exc: NeighborLinkError):
        report_error(exc, route=request.url.path)
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.message, "status": exc.status},
        )

    app.include_router(router, prefix=settings.api_prefix)
    return app


app = create_app()
