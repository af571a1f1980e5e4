"""Shared fixtures for kubegate integration tests.

Provides a FakeControlPlane that records every call and serves canned
objects, plus dispatchers and a ToolRegistry wired to it, so tests can drive
full tool invocations without touching a real cluster.
"""

from __future__ import annotations

import asyncio
import copy
from typing import Any

import pytest

from kubegate.dispatch import ClusterDispatcher, ResourceDispatcher, SecretDispatcher, WorkloadDispatcher
from kubegate.errors import UpstreamError
from kubegate.guard import GuardEngine, RateLimiter
from kubegate.mcp import ToolRegistry, build_tool_registry
from kubegate.models.config import GuardConfig
from kubegate.models.resources import ResourceIdentifier

# ---------------------------------------------------------------------------
# Fake control plane
# ---------------------------------------------------------------------------


class FakeControlPlane:
    """In-memory ControlPlane double.

    ``calls`` holds ``(method, kwargs)`` tuples in call order.  Secrets live in
    ``secrets`` keyed by (namespace, name); generic objects in ``objects``
    keyed by (apiVersion, kind, namespace, name).
    """

    def __init__(self) -> None:
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.objects: dict[tuple[str, str, str | None, str], dict[str, Any]] = {}
        self.secrets: dict[tuple[str, str], dict[str, Any]] = {}
        self.pods: dict[str, list[dict[str, Any]]] = {}
        self.events: dict[str, list[dict[str, Any]]] = {}
        self.logs: str = ""
        self.exec_output: str = "ok\n"
        self.exec_delay: float = 0.0
        self.namespaces: list[dict[str, Any]] = []
        self.contexts: list[dict[str, str]] = [
            {"name": "kind-dev", "cluster": "kind-dev", "user": "kind-dev"},
            {"name": "prod", "cluster": "prod", "user": "admin"},
        ]
        self.current_context = "kind-dev"
        self.delete_response: dict[str, Any] = {"kind": "Status", "apiVersion": "v1", "status": "Success"}
        self.fail_on: dict[str, UpstreamError] = {}
        self.cluster_scoped_kinds = {
            "Namespace",
            "Node",
            "ClusterRole",
            "ClusterRoleBinding",
            "CustomResourceDefinition",
        }

    def _record(self, method: str, **kwargs: Any) -> None:
        self.calls.append((method, kwargs))
        if method in self.fail_on:
            raise self.fail_on[method]

    def calls_to(self, method: str) -> list[dict[str, Any]]:
        return [kwargs for name, kwargs in self.calls if name == method]

    def add_object(self, obj: dict[str, Any]) -> None:
        metadata = obj.get("metadata") or {}
        key = (obj["apiVersion"], obj["kind"], metadata.get("namespace"), metadata["name"])
        self.objects[key] = obj

    # Generic GVK operations

    async def is_namespaced(self, ident: ResourceIdentifier) -> bool:
        # Discovery only; not recorded in calls.
        return ident.kind not in self.cluster_scoped_kinds

    async def get_resource(self, ident: ResourceIdentifier) -> dict[str, Any]:
        self._record("get_resource", ident=ident)
        key = (ident.api_version, ident.kind, ident.namespace, ident.name or "")
        if key not in self.objects:
            raise UpstreamError(f"get failed: {ident.kind} {ident.name} not found", status=404, reason="NotFound")
        return copy.deepcopy(self.objects[key])

    async def list_resources(
        self,
        ident: ResourceIdentifier,
        label_selector: str | None = None,
        field_selector: str | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        self._record(
            "list_resources",
            ident=ident,
            label_selector=label_selector,
            field_selector=field_selector,
            limit=limit,
        )
        items = [
            copy.deepcopy(obj)
            for (api_version, kind, namespace, _), obj in self.objects.items()
            if api_version == ident.api_version and kind == ident.kind and namespace == ident.namespace
        ]
        return items[:limit] if limit else items

    async def apply_resource(
        self,
        ident: ResourceIdentifier,
        body: dict[str, Any],
        field_manager: str,
        dry_run: str | None,
        server_side: bool = True,
    ) -> dict[str, Any]:
        self._record(
            "apply_resource",
            ident=ident,
            body=body,
            field_manager=field_manager,
            dry_run=dry_run,
            server_side=server_side,
        )
        applied = copy.deepcopy(body)
        namespace = None if ident.kind in self.cluster_scoped_kinds else ident.namespace
        applied.setdefault("metadata", {})["namespace"] = namespace
        if dry_run is None:
            self.add_object(applied)
        return applied

    async def delete_resource(
        self,
        ident: ResourceIdentifier,
        dry_run: str | None,
        grace_period_seconds: int | None = None,
        propagation_policy: str | None = None,
    ) -> dict[str, Any]:
        self._record(
            "delete_resource",
            ident=ident,
            dry_run=dry_run,
            grace_period_seconds=grace_period_seconds,
            propagation_policy=propagation_policy,
        )
        return dict(self.delete_response)

    # Secrets

    async def read_secret(self, namespace: str, name: str) -> dict[str, Any] | None:
        self._record("read_secret", namespace=namespace, name=name)
        secret = self.secrets.get((namespace, name))
        return copy.deepcopy(secret) if secret is not None else None

    async def create_secret(self, namespace: str, body: dict[str, Any], dry_run: str | None) -> dict[str, Any]:
        self._record("create_secret", namespace=namespace, body=body, dry_run=dry_run)
        if dry_run is None:
            self.secrets[(namespace, body["metadata"]["name"])] = copy.deepcopy(body)
        return copy.deepcopy(body)

    async def replace_secret(
        self, namespace: str, name: str, body: dict[str, Any], dry_run: str | None
    ) -> dict[str, Any]:
        self._record("replace_secret", namespace=namespace, name=name, body=body, dry_run=dry_run)
        if dry_run is None:
            self.secrets[(namespace, name)] = copy.deepcopy(body)
        return copy.deepcopy(body)

    # Pods

    async def list_pods(
        self,
        namespace: str,
        label_selector: str | None = None,
        field_selector: str | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        self._record(
            "list_pods",
            namespace=namespace,
            label_selector=label_selector,
            field_selector=field_selector,
            limit=limit,
        )
        return copy.deepcopy(self.pods.get(namespace, []))

    async def read_pod(self, namespace: str, name: str) -> dict[str, Any]:
        self._record("read_pod", namespace=namespace, name=name)
        for pod in self.pods.get(namespace, []):
            if pod["metadata"]["name"] == name:
                return copy.deepcopy(pod)
        raise UpstreamError(f"read pod failed: {name} not found", status=404, reason="NotFound")

    async def list_events(self, namespace: str, field_selector: str | None = None) -> list[dict[str, Any]]:
        self._record("list_events", namespace=namespace, field_selector=field_selector)
        return copy.deepcopy(self.events.get(namespace, []))

    async def read_pod_log(
        self,
        namespace: str,
        name: str,
        container: str | None = None,
        tail_lines: int | None = None,
        since_seconds: int | None = None,
        timestamps: bool | None = None,
    ) -> str:
        self._record(
            "read_pod_log",
            namespace=namespace,
            name=name,
            container=container,
            tail_lines=tail_lines,
            since_seconds=since_seconds,
            timestamps=timestamps,
        )
        return self.logs

    async def exec_in_pod(self, namespace: str, name: str, command: list[str], container: str | None = None) -> str:
        self._record("exec_in_pod", namespace=namespace, name=name, command=command, container=container)
        if self.exec_delay:
            await asyncio.sleep(self.exec_delay)
        return self.exec_output

    # Cluster

    async def server_version(self) -> str:
        self._record("server_version")
        return "v1.30.2"

    def server_address(self) -> str:
        return "https://127.0.0.1:6443"

    def list_contexts(self) -> tuple[list[dict[str, str]], str]:
        return list(self.contexts), self.current_context

    async def use_context(self, context: str) -> None:
        self._record("use_context", context=context)
        self.current_context = context

    async def list_namespaces(self, limit: int | None = None) -> list[dict[str, Any]]:
        self._record("list_namespaces", limit=limit)
        return copy.deepcopy(self.namespaces)

    async def close(self) -> None:
        self._record("close")


# ---------------------------------------------------------------------------
# Guard settings holder
# ---------------------------------------------------------------------------


class GuardSettings:
    """Mutable guard configuration; tests flip fields between calls."""

    def __init__(self) -> None:
        self.read_only = False
        self.namespace_allowlist: tuple[str, ...] = ()
        self.kind_allowlist: tuple[str, ...] = ()
        self.default_namespace = "default"

    def __call__(self) -> GuardConfig:
        return GuardConfig(
            read_only=self.read_only,
            namespace_allowlist=self.namespace_allowlist,
            kind_allowlist=self.kind_allowlist,
            default_namespace=self.default_namespace,
        )


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def control_plane() -> FakeControlPlane:
    return FakeControlPlane()


@pytest.fixture()
def guard_settings() -> GuardSettings:
    return GuardSettings()


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def guard(guard_settings: GuardSettings) -> GuardEngine:
    return GuardEngine(settings=guard_settings)


@pytest.fixture()
def limiter(clock: FakeClock) -> RateLimiter:
    return RateLimiter(capacity=10, refill_rate=5.0, now=clock)


@pytest.fixture()
def resources(
    control_plane: FakeControlPlane,
    guard: GuardEngine,
    limiter: RateLimiter,
    guard_settings: GuardSettings,
) -> ResourceDispatcher:
    return ResourceDispatcher(control_plane, guard, limiter, settings=guard_settings)


@pytest.fixture()
def secrets(
    control_plane: FakeControlPlane,
    guard: GuardEngine,
    limiter: RateLimiter,
    guard_settings: GuardSettings,
) -> SecretDispatcher:
    return SecretDispatcher(control_plane, guard, limiter, settings=guard_settings)


@pytest.fixture()
def workloads(
    control_plane: FakeControlPlane,
    guard: GuardEngine,
    limiter: RateLimiter,
    guard_settings: GuardSettings,
) -> WorkloadDispatcher:
    return WorkloadDispatcher(control_plane, guard, limiter, settings=guard_settings)


@pytest.fixture()
def cluster(control_plane: FakeControlPlane, limiter: RateLimiter) -> ClusterDispatcher:
    return ClusterDispatcher(control_plane, limiter)


@pytest.fixture()
def registry(
    resources: ResourceDispatcher,
    secrets: SecretDispatcher,
    workloads: WorkloadDispatcher,
    cluster: ClusterDispatcher,
) -> ToolRegistry:
    return build_tool_registry(resources=resources, secrets=secrets, workloads=workloads, cluster=cluster)


# ---------------------------------------------------------------------------
# Object factories
# ---------------------------------------------------------------------------


def make_deployment(name: str = "web", namespace: str = "default", uid: str = "uid-web") -> dict[str, Any]:
    return {
        "apiVersion": "apps/v1",
        "kind": "Deployment",
        "metadata": {
            "name": name,
            "namespace": namespace,
            "uid": uid,
            "creationTimestamp": "2026-01-10T09:00:00Z",
            "labels": {"app": name},
        },
        "spec": {"replicas": 2, "template": {"spec": {"containers": [{"name": name, "image": "nginx:1.27"}]}}},
        "status": {"availableReplicas": 2},
    }


def make_pod(
    name: str = "web-7b4f8c6d-x2kj",
    namespace: str = "default",
    phase: str = "Running",
    restarts: tuple[int, ...] = (0,),
) -> dict[str, Any]:
    return {
        "apiVersion": "v1",
        "kind": "Pod",
        "metadata": {
            "name": name,
            "namespace": namespace,
            "uid": f"uid-{name}",
            "creationTimestamp": "2026-01-10T09:05:00Z",
            "labels": {"app": "web"},
        },
        "spec": {
            "nodeName": "node-a",
            "containers": [{"name": "web", "image": "nginx:1.27"}],
            "initContainers": [{"name": "init", "image": "busybox:1.36"}],
        },
        "status": {
            "phase": phase,
            "podIP": "10.0.0.12",
            "hostIP": "192.168.1.10",
            "conditions": [{"type": f"C{i}", "status": "True"} for i in range(7)],
            "containerStatuses": [{"name": f"c{i}", "restartCount": n} for i, n in enumerate(restarts)],
        },
    }


@pytest.fixture()
def deployment_factory():
    return make_deployment


@pytest.fixture()
def pod_factory():
    return make_pod
