"""FastAPI application factory for kubegate.

Usage::

    from kubegate.api.app import create_app

    app = create_app(registry=registry)

The HTTP API is an optional second surface over the same ToolRegistry the
MCP server uses; tool results are identical on both.
"""

from __future__ import annotations

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from kubegate.api.routes import router
from kubegate.api.schemas import ErrorResponse
from kubegate.mcp.tools import ToolRegistry

_log = structlog.get_logger(component="api.app")

_API_PREFIX = "/api/v1"


def create_app(registry: ToolRegistry) -> FastAPI:
    """Create and configure the kubegate FastAPI application.

    Args:
        registry: ToolRegistry built by build_tool_registry().

    Returns:
        Configured FastAPI application, ready to be served by uvicorn.
    """
    from kubegate import __version__

    app = FastAPI(
        title="kubegate",
        summary="Guarded Kubernetes cluster-management tools",
        version=__version__,
        docs_url="/api/v1/docs",
        redoc_url="/api/v1/redoc",
        openapi_url="/api/v1/openapi.json",
    )

    app.state.registry = registry
    app.include_router(router, prefix=_API_PREFIX)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        _request: Request,
        exc: RequestValidationError,
    ) -> JSONResponse:
        """Map request-body errors (non-object JSON) to our error envelope."""
        errors = exc.errors()
        detail = str(errors[0].get("msg", "")) if errors else "Invalid request"
        return JSONResponse(
            status_code=400,
            content=ErrorResponse(error="INVALID_ARGUMENTS", detail=detail).model_dump(),
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(
        request: Request,
        exc: Exception,
    ) -> JSONResponse:
        """Catch-all for unhandled exceptions; never expose stack traces."""
        _log.error(
            "unhandled_exception",
            path=str(request.url.path),
            method=request.method,
            error=str(exc),
        )
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(
                error="INTERNAL_ERROR",
                detail="An unexpected error occurred.",
            ).model_dump(),
        )

    return app
