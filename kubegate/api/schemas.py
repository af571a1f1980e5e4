"""Response envelopes for the HTTP API."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ErrorResponse(BaseModel):
    error: str
    detail: str


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str
    tools: int


class ToolInfo(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    description: str
    mutating: bool
    input_schema: dict[str, Any] = Field(serialization_alias="inputSchema")


class ToolCallResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    is_error: bool = Field(serialization_alias="isError")
    result: dict[str, Any]
