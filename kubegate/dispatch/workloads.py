"""Pod tools: list, get, logs and exec."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

from kubegate.config import load_guard_config
from kubegate.dispatch.resources import dry_run_param
from kubegate.errors import UpstreamError, ValidationError
from kubegate.guard.engine import GuardEngine
from kubegate.guard.ratelimit import RateLimiter
from kubegate.kube.client import ControlPlane
from kubegate.models.config import GuardConfig
from kubegate.models.operations import OperationContext
from kubegate.observability.logging import get_logger

_log = get_logger("dispatch.workloads")

_MAX_LOG_LINES = 1000
_MAX_EVENTS = 10
_MAX_CONDITIONS = 5


def summarize_pod(pod: dict[str, Any]) -> dict[str, Any]:
    metadata = pod.get("metadata") or {}
    status = pod.get("status") or {}
    spec = pod.get("spec") or {}
    restarts = sum(int(cs.get("restartCount") or 0) for cs in status.get("containerStatuses") or [])
    return {
        "name": metadata.get("name", ""),
        "namespace": metadata.get("namespace", ""),
        "phase": status.get("phase") or "Unknown",
        "node": spec.get("nodeName", ""),
        "restarts": restarts,
        "age": metadata.get("creationTimestamp"),
    }


def _containers(specs: list[dict[str, Any]] | None) -> list[dict[str, Any]]:
    return [{"name": c.get("name"), "image": c.get("image")} for c in specs or []]


class WorkloadDispatcher:
    """Implements pods.listPods, pods.get, pods.logs and pods.exec."""

    def __init__(
        self,
        client: ControlPlane,
        guard: GuardEngine,
        limiter: RateLimiter,
        settings: Callable[[], GuardConfig] = load_guard_config,
    ) -> None:
        self._client = client
        self._guard = guard
        self._limiter = limiter
        self._settings = settings

    async def list_pods(
        self,
        namespace: str | None = None,
        label_selector: str | None = None,
        field_selector: str | None = None,
        limit: int | None = None,
    ) -> dict[str, Any]:
        self._limiter.acquire("pods.listPods")
        ns = namespace or self._settings().default_namespace
        pods = await self._client.list_pods(
            ns,
            label_selector=label_selector,
            field_selector=field_selector,
            limit=limit,
        )
        rows = [summarize_pod(pod) for pod in pods]
        if limit is not None:
            rows = rows[:limit]
        return {"pods": rows}

    async def get_pod(self, namespace: str, name: str) -> dict[str, Any]:
        self._limiter.acquire("pods.get")
        pod = await self._client.read_pod(namespace, name)
        metadata = pod.get("metadata") or {}
        status = pod.get("status") or {}
        spec = pod.get("spec") or {}

        # Events are best-effort; the pod itself is the answer.
        events: list[dict[str, Any]] = []
        try:
            raw_events = await self._client.list_events(namespace, field_selector=f"involvedObject.name={name}")
        except UpstreamError as exc:
            _log.warning("pod_events_unavailable", namespace=namespace, name=name, error=exc.message)
        else:
            events = [
                {
                    "type": ev.get("type"),
                    "reason": ev.get("reason"),
                    "message": ev.get("message"),
                    "age": ev.get("eventTime") or ev.get("lastTimestamp") or ev.get("firstTimestamp"),
                }
                for ev in raw_events[-_MAX_EVENTS:]
            ]

        return {
            "metadata": {
                "name": metadata.get("name"),
                "namespace": metadata.get("namespace"),
                "uid": metadata.get("uid"),
                "creationTimestamp": metadata.get("creationTimestamp"),
                "labels": metadata.get("labels"),
            },
            "status": {
                "phase": status.get("phase"),
                "podIP": status.get("podIP"),
                "hostIP": status.get("hostIP"),
                "conditions": (status.get("conditions") or [])[-_MAX_CONDITIONS:],
            },
            "containers": _containers(spec.get("containers")),
            "initContainers": _containers(spec.get("initContainers")),
            "events": events,
        }

    async def logs(
        self,
        namespace: str,
        name: str,
        container: str | None = None,
        tail_lines: int | None = 200,
        since_seconds: int | None = None,
        timestamps: bool | None = None,
    ) -> dict[str, Any]:
        self._limiter.acquire("pods.logs")
        text = await self._client.read_pod_log(
            namespace,
            name,
            container=container,
            tail_lines=tail_lines if tail_lines is not None else 200,
            since_seconds=since_seconds,
            timestamps=timestamps,
        )
        lines = text.split("\n") if text else []
        if lines and lines[-1] == "":
            lines.pop()
        return {"lines": lines[-_MAX_LOG_LINES:]}

    async def exec(
        self,
        namespace: str,
        name: str,
        command: list[str],
        container: str | None = None,
        timeout_seconds: int | None = None,
        dry_run: bool | None = None,
    ) -> dict[str, Any]:
        """Run *command* in a pod container.

        Dry-run is the default: the guard still runs, but the command is only
        echoed back.  Pass ``dry_run=False`` to execute.
        """
        self._limiter.acquire("pods.exec")
        if not command:
            raise ValidationError("command must not be empty", code="INVALID_ARGUMENTS")
        dry = dry_run_param(dry_run) is not None
        self._guard.enforce(OperationContext(operation="pods.exec", namespace=namespace, kind="Pod", dry_run=dry))
        if dry:
            return {"dryRun": True, "command": list(command)}

        _log.info("pod_exec", namespace=namespace, name=name, container=container, argv0=command[0])
        try:
            output = await asyncio.wait_for(
                self._client.exec_in_pod(namespace, name, list(command), container=container),
                timeout=timeout_seconds,
            )
        except TimeoutError as exc:
            raise UpstreamError(f"exec timed out after {timeout_seconds}s", reason="Timeout") from exc
        return {"output": output}
