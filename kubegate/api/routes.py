"""HTTP routes mirroring the MCP tool surface."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Request
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from kubegate.api.schemas import ErrorResponse, HealthResponse, ToolCallResponse, ToolInfo
from kubegate.mcp.tools import ToolRegistry

router = APIRouter()


def _registry(request: Request) -> ToolRegistry:
    return request.app.state.registry  # type: ignore[no-any-return]


@router.get("/health", response_model=HealthResponse)
async def health(request: Request) -> HealthResponse:
    from kubegate import __version__

    return HealthResponse(version=__version__, tools=len(_registry(request).specs()))


@router.get("/tools")
async def list_tools(request: Request) -> list[dict[str, Any]]:
    return [
        ToolInfo(
            name=spec.name,
            description=spec.description,
            mutating=spec.mutating,
            input_schema=spec.input_schema(),
        ).model_dump(by_alias=True)
        for spec in _registry(request).specs()
    ]


@router.post("/tools/{tool_name}")
async def call_tool(
    request: Request,
    tool_name: str,
    arguments: dict[str, Any] | None = Body(default=None),
) -> JSONResponse:
    registry = _registry(request)
    if tool_name not in registry:
        return JSONResponse(
            status_code=404,
            content=ErrorResponse(error="UNKNOWN_TOOL", detail=f"Unknown tool: {tool_name}").model_dump(),
        )
    result = await registry.invoke(tool_name, arguments)
    body = ToolCallResponse(is_error=result.is_error, result=result.payload)
    return JSONResponse(content=body.model_dump(by_alias=True, mode="json"))


@router.get("/metrics")
async def metrics() -> Response:
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
