"""Generic GVK-addressed get/list, apply and delete.

Every operation takes one rate-limit token for its tool name on entry.
Mutating operations then run the GuardEngine for each target before the
control plane is asked to change anything.  Cluster-scoped kinds are guarded
without a namespace; namespaced ones against the namespace they resolve to.
Dry-run is on unless the caller passes ``dry_run=False`` explicitly.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from kubegate.config import load_guard_config
from kubegate.dispatch.identifier import identifier_for_document, resolve_identifier
from kubegate.dispatch.manifest import decode
from kubegate.errors import KubeGateError
from kubegate.guard.engine import GuardEngine
from kubegate.guard.ratelimit import RateLimiter
from kubegate.kube.client import DRY_RUN_ALL, ControlPlane
from kubegate.models.config import GuardConfig
from kubegate.models.manifests import InvalidDocument
from kubegate.models.operations import OperationContext
from kubegate.models.resources import ResourceIdentifier, ResourceSummary
from kubegate.observability.logging import get_logger

_log = get_logger("dispatch.resources")

DEFAULT_FIELD_MANAGER = "kubegate"


def dry_run_param(dry_run: bool | None) -> str | None:
    """Map the caller's flag to the dryRun query value; only False disables it."""
    return None if dry_run is False else DRY_RUN_ALL


class ResourceDispatcher:
    """Implements resources.get, resources.apply and resources.delete."""

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

    async def _guard_namespace(self, ident: ResourceIdentifier) -> str | None:
        return ident.namespace if await self._client.is_namespaced(ident) else None

    async def get_or_list(
        self,
        version: str,
        kind: str,
        group: str | None = None,
        name: str | None = None,
        namespace: str | None = None,
        label_selector: str | None = None,
        field_selector: str | None = None,
        limit: int | None = None,
    ) -> dict[str, Any]:
        """Read one object (``{item}``) or list summaries (``{items}``)."""
        self._limiter.acquire("resources.get")
        ident = resolve_identifier(
            version=version,
            kind=kind,
            default_namespace=self._settings().default_namespace,
            group=group,
            name=name,
            namespace=namespace,
        )
        if ident.name:
            item = await self._client.get_resource(ident)
            return {"item": item}

        objects = await self._client.list_resources(
            ident,
            label_selector=label_selector,
            field_selector=field_selector,
            limit=limit,
        )
        summaries = [ResourceSummary.from_object(obj, ident.api_version, ident.kind).to_dict() for obj in objects]
        _log.debug("resources_listed", resource=str(ident), count=len(summaries))
        return {"items": summaries}

    async def apply(
        self,
        manifest_yaml: str,
        field_manager: str = DEFAULT_FIELD_MANAGER,
        dry_run: bool | None = None,
        server_side_apply: bool = True,
    ) -> dict[str, Any]:
        """Apply every document of *manifest_yaml* in order.

        Invalid documents become ``{error}`` entries and processing continues.
        A guard violation or upstream failure stops the batch; documents
        already applied stay applied and are reported in the error details.
        """
        self._limiter.acquire("resources.apply")
        documents = decode(manifest_yaml)
        dry_run_value = dry_run_param(dry_run)
        default_namespace = self._settings().default_namespace
        results: list[dict[str, Any]] = []

        for doc in documents:
            if isinstance(doc, InvalidDocument):
                _log.info("manifest_document_invalid", index=doc.index, reason=doc.reason)
                results.append({"error": doc.reason})
                continue

            ident = identifier_for_document(doc, default_namespace)
            try:
                self._guard.enforce(
                    OperationContext(
                        operation="resources.apply",
                        namespace=await self._guard_namespace(ident),
                        kind=ident.kind,
                        dry_run=dry_run_value is not None,
                    )
                )
                applied = await self._client.apply_resource(
                    ident,
                    doc.body,
                    field_manager=field_manager,
                    dry_run=dry_run_value,
                    server_side=server_side_apply,
                )
            except KubeGateError as exc:
                exc.details.setdefault("results", list(results))
                raise

            metadata = applied.get("metadata") or {}
            results.append(
                {
                    "kind": applied.get("kind", doc.kind),
                    "name": metadata.get("name", doc.name),
                    "namespace": metadata.get("namespace"),
                }
            )
            _log.info(
                "resource_applied",
                resource=str(ident),
                dry_run=dry_run_value is not None,
                field_manager=field_manager,
            )

        return {"results": results}

    async def delete(
        self,
        version: str,
        kind: str,
        name: str,
        group: str | None = None,
        namespace: str | None = None,
        propagation_policy: str | None = None,
        grace_period_seconds: int | None = None,
        dry_run: bool | None = None,
    ) -> dict[str, Any]:
        self._limiter.acquire("resources.delete")
        ident = resolve_identifier(
            version=version,
            kind=kind,
            default_namespace=self._settings().default_namespace,
            group=group,
            name=name,
            namespace=namespace,
        )
        dry_run_value = dry_run_param(dry_run)
        self._guard.enforce(
            OperationContext(
                operation="resources.delete",
                namespace=await self._guard_namespace(ident),
                kind=ident.kind,
                dry_run=dry_run_value is not None,
            )
        )
        response = await self._client.delete_resource(
            ident,
            dry_run=dry_run_value,
            grace_period_seconds=grace_period_seconds,
            propagation_policy=propagation_policy,
        )
        status = response.get("status") if response.get("kind") == "Status" else None
        _log.info("resource_deleted", resource=str(ident), dry_run=dry_run_value is not None)
        return {"status": status if isinstance(status, str) and status else "Success"}
