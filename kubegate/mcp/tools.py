"""Tool registry shared by the MCP server and the HTTP API.

A tool is a name, a description, a pydantic parameter model and an async
handler.  ``ToolRegistry.invoke`` is the single place where caller input is
validated and where every kubegate error is turned into a structured error
result, so no transport ever sees a raw exception.
"""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

import pydantic

from kubegate.dispatch.cluster import ClusterDispatcher
from kubegate.dispatch.resources import ResourceDispatcher
from kubegate.dispatch.secrets import SecretDispatcher
from kubegate.dispatch.workloads import WorkloadDispatcher
from kubegate.errors import GuardViolation, KubeGateError, UpstreamError
from kubegate.mcp import schemas
from kubegate.observability.logging import get_logger, invocation_context
from kubegate.observability.metrics import tool_calls_total, tool_duration_seconds

_log = get_logger("mcp.tools")

Handler = Callable[[Any], Awaitable[dict[str, Any]]]


@dataclass(frozen=True)
class ToolSpec:
    name: str
    description: str
    params: type[schemas.ToolParams]
    handler: Handler
    mutating: bool = False

    def input_schema(self) -> dict[str, Any]:
        return self.params.model_json_schema(by_alias=True)


@dataclass(frozen=True)
class ToolResult:
    """Outcome of one invocation; ``payload`` is JSON-serialisable."""

    payload: dict[str, Any] = field(default_factory=dict)
    is_error: bool = False


def _format_validation_error(exc: pydantic.ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err.get("loc", ())) or "arguments"
        parts.append(f"{loc}: {err.get('msg', 'invalid')}")
    return "; ".join(parts)


class ToolRegistry:
    """Holds ToolSpecs by name and invokes them."""

    def __init__(self) -> None:
        self._tools: dict[str, ToolSpec] = {}

    def register(self, spec: ToolSpec) -> None:
        if spec.name in self._tools:
            raise ValueError(f"Tool {spec.name!r} is already registered")
        self._tools[spec.name] = spec

    def get(self, name: str) -> ToolSpec | None:
        return self._tools.get(name)

    def specs(self) -> list[ToolSpec]:
        return list(self._tools.values())

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    async def invoke(self, name: str, arguments: dict[str, Any] | None) -> ToolResult:
        spec = self._tools.get(name)
        if spec is None:
            tool_calls_total.labels(tool="unknown", outcome="unknown_tool").inc()
            return ToolResult({"error": "UNKNOWN_TOOL", "message": f"Unknown tool: {name}"}, is_error=True)

        try:
            params = spec.params.model_validate(arguments or {})
        except pydantic.ValidationError as exc:
            tool_calls_total.labels(tool=name, outcome="invalid_arguments").inc()
            return ToolResult(
                {"error": "INVALID_ARGUMENTS", "message": _format_validation_error(exc)},
                is_error=True,
            )

        with invocation_context(name):
            return await self._run(spec, params)

    async def _run(self, spec: ToolSpec, params: schemas.ToolParams) -> ToolResult:
        start = time.monotonic()
        outcome = "ok"
        try:
            payload = await spec.handler(params)
            return ToolResult(payload)
        except GuardViolation as exc:
            outcome = "denied"
            return ToolResult(exc.to_payload(), is_error=True)
        except UpstreamError as exc:
            outcome = "upstream_error"
            return ToolResult(exc.to_payload(), is_error=True)
        except KubeGateError as exc:
            outcome = "invalid"
            return ToolResult(exc.to_payload(), is_error=True)
        except Exception as exc:  # noqa: BLE001
            outcome = "internal_error"
            _log.error("tool_unhandled_exception", error=str(exc), exc_info=True)
            return ToolResult(
                {"error": "INTERNAL_ERROR", "message": "An unexpected error occurred."},
                is_error=True,
            )
        finally:
            elapsed = time.monotonic() - start
            tool_duration_seconds.labels(tool=spec.name).observe(elapsed)
            tool_calls_total.labels(tool=spec.name, outcome=outcome).inc()
            _log.info("tool_invoked", outcome=outcome, duration_ms=int(elapsed * 1000))


def build_tool_registry(
    resources: ResourceDispatcher,
    secrets: SecretDispatcher,
    workloads: WorkloadDispatcher,
    cluster: ClusterDispatcher,
) -> ToolRegistry:
    """Register every kubegate tool against the given dispatchers."""
    registry = ToolRegistry()

    async def cluster_health(_p: schemas.NoParams) -> dict[str, Any]:
        return await cluster.health()

    async def cluster_list_contexts(_p: schemas.NoParams) -> dict[str, Any]:
        return await cluster.list_contexts()

    async def cluster_set_context(p: schemas.SetContextParams) -> dict[str, Any]:
        return await cluster.set_context(p.context)

    async def ns_list_namespaces(p: schemas.ListNamespacesParams) -> dict[str, Any]:
        return await cluster.list_namespaces(limit=p.limit)

    async def pods_list(p: schemas.ListPodsParams) -> dict[str, Any]:
        return await workloads.list_pods(
            namespace=p.namespace,
            label_selector=p.label_selector,
            field_selector=p.field_selector,
            limit=p.limit,
        )

    async def pods_get(p: schemas.GetPodParams) -> dict[str, Any]:
        return await workloads.get_pod(p.namespace, p.name)

    async def pods_logs(p: schemas.LogsParams) -> dict[str, Any]:
        return await workloads.logs(
            p.namespace,
            p.name,
            container=p.container,
            tail_lines=p.tail_lines,
            since_seconds=p.since_seconds,
            timestamps=p.timestamps,
        )

    async def pods_exec(p: schemas.ExecParams) -> dict[str, Any]:
        return await workloads.exec(
            p.namespace,
            p.name,
            p.command,
            container=p.container,
            timeout_seconds=p.timeout_seconds,
            dry_run=p.dry_run,
        )

    async def resources_get(p: schemas.GetResourceParams) -> dict[str, Any]:
        return await resources.get_or_list(
            version=p.version,
            kind=p.kind,
            group=p.group,
            name=p.name,
            namespace=p.namespace,
            label_selector=p.label_selector,
            field_selector=p.field_selector,
            limit=p.limit,
        )

    async def resources_apply(p: schemas.ApplyResourceParams) -> dict[str, Any]:
        return await resources.apply(
            p.manifest_yaml,
            field_manager=p.field_manager,
            dry_run=p.dry_run,
            server_side_apply=p.server_side_apply,
        )

    async def resources_delete(p: schemas.DeleteResourceParams) -> dict[str, Any]:
        return await resources.delete(
            version=p.version,
            kind=p.kind,
            name=p.name,
            group=p.group,
            namespace=p.namespace,
            propagation_policy=p.propagation_policy,
            grace_period_seconds=p.grace_period_seconds,
            dry_run=p.dry_run,
        )

    async def secrets_get(p: schemas.GetSecretParams) -> dict[str, Any]:
        return await secrets.get(p.namespace, p.name, keys=p.keys, show_values=p.show_values)

    async def secrets_set(p: schemas.SetSecretParams) -> dict[str, Any]:
        return await secrets.set(
            p.namespace,
            p.name,
            p.data,
            type=p.type,
            base64_encoded=p.base64_encoded,
            create_if_missing=p.create_if_missing,
            dry_run=p.dry_run,
        )

    for spec in (
        ToolSpec("cluster.health", "Get basic cluster health and version", schemas.NoParams, cluster_health),
        ToolSpec(
            "cluster.listContexts",
            "List kubeconfig contexts and current selection",
            schemas.NoParams,
            cluster_list_contexts,
        ),
        ToolSpec("cluster.setContext", "Set current kube context", schemas.SetContextParams, cluster_set_context),
        ToolSpec("ns.listNamespaces", "List namespaces", schemas.ListNamespacesParams, ns_list_namespaces),
        ToolSpec("pods.listPods", "List pods with optional selectors", schemas.ListPodsParams, pods_list),
        ToolSpec("pods.get", "Get a pod summary including containers and events", schemas.GetPodParams, pods_get),
        ToolSpec("pods.logs", "Get pod logs (tail by default)", schemas.LogsParams, pods_logs),
        ToolSpec(
            "pods.exec",
            "Execute a command in a pod (dry-run unless dryRun=false)",
            schemas.ExecParams,
            pods_exec,
            mutating=True,
        ),
        ToolSpec(
            "resources.get",
            "Get or list arbitrary resources by GVK",
            schemas.GetResourceParams,
            resources_get,
        ),
        ToolSpec(
            "resources.apply",
            "Apply manifest YAML (server-side apply by default)",
            schemas.ApplyResourceParams,
            resources_apply,
            mutating=True,
        ),
        ToolSpec(
            "resources.delete",
            "Delete a resource by GVK/name",
            schemas.DeleteResourceParams,
            resources_delete,
            mutating=True,
        ),
        ToolSpec("secrets.get", "Get a secret (redacted by default)", schemas.GetSecretParams, secrets_get),
        ToolSpec(
            "secrets.set",
            "Create/update a secret with provided keys (values never logged)",
            schemas.SetSecretParams,
            secrets_set,
            mutating=True,
        ),
    ):
        registry.register(spec)

    return registry
