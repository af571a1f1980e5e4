"""Pydantic parameter models for every tool.

Field names are snake_case in Python and camelCase on the wire; unknown
fields are rejected.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from kubegate.dispatch.resources import DEFAULT_FIELD_MANAGER


class ToolParams(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


class NoParams(ToolParams):
    pass


# Cluster / namespaces


class ListNamespacesParams(ToolParams):
    limit: int | None = Field(default=None, gt=0)


class SetContextParams(ToolParams):
    context: str = Field(min_length=1)


# Pods


class ListPodsParams(ToolParams):
    namespace: str | None = None
    label_selector: str | None = None
    field_selector: str | None = None
    limit: int | None = Field(default=None, gt=0)


class GetPodParams(ToolParams):
    namespace: str = Field(min_length=1)
    name: str = Field(min_length=1)


class LogsParams(ToolParams):
    namespace: str = Field(min_length=1)
    name: str = Field(min_length=1)
    container: str | None = None
    tail_lines: int = Field(default=200, gt=0, le=5000)
    since_seconds: int | None = Field(default=None, gt=0)
    timestamps: bool | None = None


class ExecParams(ToolParams):
    namespace: str = Field(min_length=1)
    name: str = Field(min_length=1)
    container: str | None = None
    command: list[str] = Field(min_length=1)
    timeout_seconds: int | None = Field(default=None, gt=0, le=3600)
    dry_run: bool = True


# Resources


class GetResourceParams(ToolParams):
    group: str | None = None
    version: str = Field(min_length=1)
    kind: str = Field(min_length=1)
    name: str | None = None
    namespace: str | None = None
    label_selector: str | None = None
    field_selector: str | None = None
    limit: int | None = Field(default=None, gt=0)


class ApplyResourceParams(ToolParams):
    manifest_yaml: str = Field(alias="manifestYAML", min_length=1)
    server_side_apply: bool = True
    field_manager: str = DEFAULT_FIELD_MANAGER
    dry_run: bool = True


class DeleteResourceParams(ToolParams):
    group: str | None = None
    version: str = Field(min_length=1)
    kind: str = Field(min_length=1)
    name: str = Field(min_length=1)
    namespace: str | None = None
    propagation_policy: Literal["Foreground", "Background", "Orphan"] | None = None
    grace_period_seconds: int | None = Field(default=None, ge=0)
    dry_run: bool = True


# Secrets


class GetSecretParams(ToolParams):
    namespace: str = Field(min_length=1)
    name: str = Field(min_length=1)
    keys: list[str] | None = None
    show_values: bool | None = None


class SetSecretParams(ToolParams):
    namespace: str = Field(min_length=1)
    name: str = Field(min_length=1)
    data: dict[str, str]
    type: str = "Opaque"
    base64_encoded: bool = False
    create_if_missing: bool = True
    dry_run: bool = True

    @field_validator("data")
    @classmethod
    def _data_not_empty(cls, value: dict[str, str]) -> dict[str, str]:
        if not value:
            raise ValueError("data must have at least one key")
        return value
