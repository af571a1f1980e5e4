"""Control-plane client used by every dispatcher.

ControlPlane is the seam between kubegate's guard-and-dispatch layer and the
Kubernetes API.  KubernetesControlPlane implements it on kubernetes-asyncio:
the dynamic client for GVK-addressed operations, CoreV1Api for secrets, pods
and namespaces, and the websocket client for exec.

All responses are plain JSON-shaped dicts (camelCase keys, as the API server
returns them).  Every kubernetes-asyncio failure is translated into
UpstreamError; nothing is retried here.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any, Protocol

from kubegate.errors import UpstreamError
from kubegate.models.resources import ResourceIdentifier
from kubegate.observability.logging import get_logger

_log = get_logger("kube.client")

DRY_RUN_ALL = "All"


class ControlPlane(Protocol):
    """Operations kubegate needs from the Kubernetes API."""

    async def is_namespaced(self, ident: ResourceIdentifier) -> bool: ...

    async def get_resource(self, ident: ResourceIdentifier) -> dict[str, Any]: ...

    async def list_resources(
        self,
        ident: ResourceIdentifier,
        label_selector: str | None = None,
        field_selector: str | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]: ...

    async def apply_resource(
        self,
        ident: ResourceIdentifier,
        body: dict[str, Any],
        field_manager: str,
        dry_run: str | None,
        server_side: bool = True,
    ) -> dict[str, Any]: ...

    async def delete_resource(
        self,
        ident: ResourceIdentifier,
        dry_run: str | None,
        grace_period_seconds: int | None = None,
        propagation_policy: str | None = None,
    ) -> dict[str, Any]: ...

    async def read_secret(self, namespace: str, name: str) -> dict[str, Any] | None: ...

    async def create_secret(self, namespace: str, body: dict[str, Any], dry_run: str | None) -> dict[str, Any]: ...

    async def replace_secret(
        self, namespace: str, name: str, body: dict[str, Any], dry_run: str | None
    ) -> dict[str, Any]: ...

    async def list_pods(
        self,
        namespace: str,
        label_selector: str | None = None,
        field_selector: str | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]: ...

    async def read_pod(self, namespace: str, name: str) -> dict[str, Any]: ...

    async def list_events(self, namespace: str, field_selector: str | None = None) -> list[dict[str, Any]]: ...

    async def read_pod_log(
        self,
        namespace: str,
        name: str,
        container: str | None = None,
        tail_lines: int | None = None,
        since_seconds: int | None = None,
        timestamps: bool | None = None,
    ) -> str: ...

    async def exec_in_pod(self, namespace: str, name: str, command: list[str], container: str | None = None) -> str: ...

    async def server_version(self) -> str: ...

    def server_address(self) -> str: ...

    def list_contexts(self) -> tuple[list[dict[str, str]], str]: ...

    async def use_context(self, context: str) -> None: ...

    async def list_namespaces(self, limit: int | None = None) -> list[dict[str, Any]]: ...

    async def close(self) -> None: ...


@asynccontextmanager
async def _upstream(action: str, **context: Any) -> AsyncIterator[None]:
    """Translate kubernetes-asyncio failures raised inside the block."""
    from kubernetes_asyncio.client.rest import ApiException  # type: ignore[import-untyped]
    from kubernetes_asyncio.dynamic.exceptions import ResourceNotFoundError  # type: ignore[import-untyped]

    try:
        yield
    except ApiException as exc:
        _log.warning("upstream_api_error", action=action, status=exc.status, reason=exc.reason, **context)
        raise UpstreamError(
            f"{action} failed: {exc.reason or 'API error'}",
            status=exc.status,
            reason=str(exc.reason or ""),
        ) from exc
    except ResourceNotFoundError as exc:
        _log.warning("upstream_unknown_resource_type", action=action, error=str(exc), **context)
        raise UpstreamError(f"{action} failed: {exc}", status=404, reason="NotFound") from exc
    except OSError as exc:
        _log.warning("upstream_connection_error", action=action, error=str(exc), **context)
        raise UpstreamError(f"{action} failed: {exc}") from exc


class KubernetesControlPlane:
    """kubernetes-asyncio backed ControlPlane.

    Build with ``await KubernetesControlPlane.connect(...)``; call
    ``close()`` on shutdown to release the connection pool.
    """

    def __init__(
        self,
        api_client: Any,
        dynamic: Any,
        in_cluster: bool = False,
        context: str = "",
    ) -> None:
        from kubernetes_asyncio import client as k8s_client  # type: ignore[import-untyped]

        self._api_client = api_client
        self._dynamic = dynamic
        self._core = k8s_client.CoreV1Api(api_client)
        self._in_cluster = in_cluster
        self._context = context

    @classmethod
    async def connect(cls, context: str = "") -> KubernetesControlPlane:
        """Load credentials and build the clients.

        An explicit context or KUBECONFIG selects kubeconfig loading; otherwise
        the in-cluster service account is tried first.
        """
        import os

        import kubernetes_asyncio.config as k8s_config  # type: ignore[import-untyped]
        from kubernetes_asyncio import client as k8s_client  # type: ignore[import-untyped]

        configuration = k8s_client.Configuration()
        in_cluster = False
        if context or os.environ.get("KUBECONFIG"):
            await k8s_config.load_kube_config(context=context or None, client_configuration=configuration)
        else:
            try:
                k8s_config.load_incluster_config(client_configuration=configuration)
                in_cluster = True
            except k8s_config.ConfigException:
                await k8s_config.load_kube_config(client_configuration=configuration)

        api_client, dynamic = await cls._build_clients(configuration)
        _log.info(
            "kubernetes_clients_initialized",
            in_cluster=in_cluster,
            context=context or None,
        )
        return cls(api_client, dynamic, in_cluster=in_cluster, context=context)

    @staticmethod
    async def _build_clients(configuration: Any) -> tuple[Any, Any]:
        from kubernetes_asyncio import client as k8s_client  # type: ignore[import-untyped]
        from kubernetes_asyncio.dynamic import DynamicClient  # type: ignore[import-untyped]

        api_client = k8s_client.ApiClient(configuration=configuration)
        dynamic = await DynamicClient(api_client)
        return api_client, dynamic

    def _serialize(self, obj: Any) -> Any:
        return self._api_client.sanitize_for_serialization(obj)

    async def _resource_type(self, ident: ResourceIdentifier) -> Any:
        return await self._dynamic.resources.get(api_version=ident.api_version, kind=ident.kind)

    # ------------------------------------------------------------------
    # Generic GVK operations
    # ------------------------------------------------------------------

    async def is_namespaced(self, ident: ResourceIdentifier) -> bool:
        """Whether *ident*'s kind lives in a namespace.

        Kinds discovery does not know are treated as namespaced, so the guard
        still checks the resolved namespace; the operation itself then fails
        upstream.
        """
        from kubernetes_asyncio.dynamic.exceptions import ResourceNotFoundError  # type: ignore[import-untyped]

        async with _upstream("discover", resource=str(ident)):
            try:
                rtype = await self._resource_type(ident)
            except ResourceNotFoundError:
                return True
            return bool(rtype.namespaced)

    async def get_resource(self, ident: ResourceIdentifier) -> dict[str, Any]:
        async with _upstream("get", resource=str(ident)):
            rtype = await self._resource_type(ident)
            namespace = ident.namespace if rtype.namespaced else None
            result = await self._dynamic.get(rtype, name=ident.name, namespace=namespace)
            return result.to_dict()

    async def list_resources(
        self,
        ident: ResourceIdentifier,
        label_selector: str | None = None,
        field_selector: str | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        async with _upstream("list", resource=str(ident)):
            rtype = await self._resource_type(ident)
            namespace = ident.namespace if rtype.namespaced else None
            result = await self._dynamic.get(
                rtype,
                namespace=namespace,
                label_selector=label_selector,
                field_selector=field_selector,
                limit=limit,
            )
            return list(result.to_dict().get("items") or [])

    async def apply_resource(
        self,
        ident: ResourceIdentifier,
        body: dict[str, Any],
        field_manager: str,
        dry_run: str | None,
        server_side: bool = True,
    ) -> dict[str, Any]:
        from kubernetes_asyncio.dynamic.exceptions import NotFoundError  # type: ignore[import-untyped]

        async with _upstream("apply", resource=str(ident)):
            rtype = await self._resource_type(ident)
            namespace = ident.namespace if rtype.namespaced else None
            if server_side:
                result = await self._dynamic.server_side_apply(
                    rtype,
                    body=body,
                    name=ident.name,
                    namespace=namespace,
                    field_manager=field_manager,
                    force_conflicts=True,
                    dry_run=dry_run,
                )
            else:
                try:
                    result = await self._dynamic.patch(
                        rtype,
                        body=body,
                        name=ident.name,
                        namespace=namespace,
                        content_type="application/merge-patch+json",
                        field_manager=field_manager,
                        dry_run=dry_run,
                    )
                except NotFoundError:
                    result = await self._dynamic.create(
                        rtype,
                        body=body,
                        namespace=namespace,
                        field_manager=field_manager,
                        dry_run=dry_run,
                    )
            return result.to_dict()

    async def delete_resource(
        self,
        ident: ResourceIdentifier,
        dry_run: str | None,
        grace_period_seconds: int | None = None,
        propagation_policy: str | None = None,
    ) -> dict[str, Any]:
        async with _upstream("delete", resource=str(ident)):
            rtype = await self._resource_type(ident)
            namespace = ident.namespace if rtype.namespaced else None
            result = await self._dynamic.delete(
                rtype,
                name=ident.name,
                namespace=namespace,
                dry_run=dry_run,
                grace_period_seconds=grace_period_seconds,
                propagation_policy=propagation_policy,
            )
            return result.to_dict() if result is not None else {}

    # ------------------------------------------------------------------
    # Secrets
    # ------------------------------------------------------------------

    async def read_secret(self, namespace: str, name: str) -> dict[str, Any] | None:
        from kubernetes_asyncio.client.rest import ApiException  # type: ignore[import-untyped]

        async with _upstream("read secret", namespace=namespace, name=name):
            try:
                secret = await self._core.read_namespaced_secret(name, namespace)
            except ApiException as exc:
                if exc.status == 404:
                    return None
                raise
            return self._serialize(secret)

    async def create_secret(self, namespace: str, body: dict[str, Any], dry_run: str | None) -> dict[str, Any]:
        async with _upstream("create secret", namespace=namespace):
            secret = await self._core.create_namespaced_secret(namespace, body, dry_run=dry_run)
            return self._serialize(secret)

    async def replace_secret(
        self, namespace: str, name: str, body: dict[str, Any], dry_run: str | None
    ) -> dict[str, Any]:
        async with _upstream("replace secret", namespace=namespace, name=name):
            secret = await self._core.replace_namespaced_secret(name, namespace, body, dry_run=dry_run)
            return self._serialize(secret)

    # ------------------------------------------------------------------
    # Pods
    # ------------------------------------------------------------------

    async def list_pods(
        self,
        namespace: str,
        label_selector: str | None = None,
        field_selector: str | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        async with _upstream("list pods", namespace=namespace):
            pods = await self._core.list_namespaced_pod(
                namespace,
                label_selector=label_selector,
                field_selector=field_selector,
                limit=limit,
            )
            return list(self._serialize(pods).get("items") or [])

    async def read_pod(self, namespace: str, name: str) -> dict[str, Any]:
        async with _upstream("read pod", namespace=namespace, name=name):
            return self._serialize(await self._core.read_namespaced_pod(name, namespace))

    async def list_events(self, namespace: str, field_selector: str | None = None) -> list[dict[str, Any]]:
        async with _upstream("list events", namespace=namespace):
            events = await self._core.list_namespaced_event(namespace, field_selector=field_selector)
            return list(self._serialize(events).get("items") or [])

    async def read_pod_log(
        self,
        namespace: str,
        name: str,
        container: str | None = None,
        tail_lines: int | None = None,
        since_seconds: int | None = None,
        timestamps: bool | None = None,
    ) -> str:
        async with _upstream("read pod log", namespace=namespace, name=name):
            text = await self._core.read_namespaced_pod_log(
                name,
                namespace,
                container=container,
                tail_lines=tail_lines,
                since_seconds=since_seconds,
                timestamps=timestamps,
            )
            return text or ""

    async def exec_in_pod(self, namespace: str, name: str, command: list[str], container: str | None = None) -> str:
        from kubernetes_asyncio import client as k8s_client  # type: ignore[import-untyped]
        from kubernetes_asyncio.stream import WsApiClient  # type: ignore[import-untyped]

        async with _upstream("exec", namespace=namespace, name=name):
            async with WsApiClient(configuration=self._api_client.configuration) as ws_api:
                core = k8s_client.CoreV1Api(api_client=ws_api)
                output = await core.connect_get_namespaced_pod_exec(
                    name,
                    namespace,
                    command=command,
                    container=container,
                    stderr=True,
                    stdin=False,
                    stdout=True,
                    tty=False,
                )
            return output or ""

    # ------------------------------------------------------------------
    # Cluster
    # ------------------------------------------------------------------

    async def server_version(self) -> str:
        from kubernetes_asyncio import client as k8s_client  # type: ignore[import-untyped]

        async with _upstream("version"):
            info = await k8s_client.VersionApi(self._api_client).get_code()
            return str(info.git_version)

    def server_address(self) -> str:
        return str(self._api_client.configuration.host)

    def list_contexts(self) -> tuple[list[dict[str, str]], str]:
        """Return (contexts, current context name); empty when running in-cluster."""
        import kubernetes_asyncio.config as k8s_config  # type: ignore[import-untyped]

        if self._in_cluster:
            return [], ""
        contexts, active = k8s_config.list_kube_config_contexts()
        rows = [
            {
                "name": str(ctx.get("name", "")),
                "cluster": str((ctx.get("context") or {}).get("cluster", "")),
                "user": str((ctx.get("context") or {}).get("user", "")),
            }
            for ctx in contexts or []
        ]
        current = self._context or str((active or {}).get("name", ""))
        return rows, current

    async def use_context(self, context: str) -> None:
        """Rebuild every client against *context* from the kubeconfig."""
        import kubernetes_asyncio.config as k8s_config  # type: ignore[import-untyped]
        from kubernetes_asyncio import client as k8s_client  # type: ignore[import-untyped]

        configuration = k8s_client.Configuration()
        try:
            await k8s_config.load_kube_config(context=context, client_configuration=configuration)
        except k8s_config.ConfigException as exc:
            raise UpstreamError(f"switch context failed: {exc}", reason="ConfigError") from exc
        api_client, dynamic = await self._build_clients(configuration)
        old = self._api_client
        self._api_client = api_client
        self._dynamic = dynamic
        self._core = k8s_client.CoreV1Api(api_client)
        self._in_cluster = False
        self._context = context
        await old.close()
        _log.info("kubernetes_context_switched", context=context)

    async def list_namespaces(self, limit: int | None = None) -> list[dict[str, Any]]:
        async with _upstream("list namespaces"):
            namespaces = await self._core.list_namespace(limit=limit)
            return list(self._serialize(namespaces).get("items") or [])

    async def close(self) -> None:
        await self._api_client.close()
