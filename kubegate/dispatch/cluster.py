"""Cluster-level tools: health, contexts and namespaces."""

from __future__ import annotations

import time
from datetime import UTC, datetime
from typing import Any

from kubegate.errors import ValidationError
from kubegate.guard.ratelimit import RateLimiter
from kubegate.kube.client import ControlPlane
from kubegate.observability.logging import get_logger

_log = get_logger("dispatch.cluster")


class ClusterDispatcher:
    """Implements cluster.health, cluster.listContexts, cluster.setContext and ns.listNamespaces."""

    def __init__(self, client: ControlPlane, limiter: RateLimiter) -> None:
        self._client = client
        self._limiter = limiter

    async def health(self) -> dict[str, Any]:
        self._limiter.acquire("cluster.health")
        start = time.monotonic()
        version = await self._client.server_version()
        _log.info("cluster_health", duration_ms=int((time.monotonic() - start) * 1000))
        return {
            "status": "ok",
            "clusterVersion": version,
            "serverAddress": self._client.server_address(),
            "timestamp": datetime.now(tz=UTC).isoformat(),
        }

    async def list_contexts(self) -> dict[str, Any]:
        self._limiter.acquire("cluster.listContexts")
        contexts, current = self._client.list_contexts()
        return {"current": current, "contexts": contexts}

    async def set_context(self, context: str) -> dict[str, Any]:
        self._limiter.acquire("cluster.setContext")
        contexts, _ = self._client.list_contexts()
        if not any(ctx.get("name") == context for ctx in contexts):
            raise ValidationError(f"Context {context} not found", code="CONTEXT_NOT_FOUND")
        await self._client.use_context(context)
        return {"current": context}

    async def list_namespaces(self, limit: int | None = None) -> dict[str, Any]:
        self._limiter.acquire("ns.listNamespaces")
        items = await self._client.list_namespaces(limit=limit)
        namespaces = [
            {
                "name": (ns.get("metadata") or {}).get("name", ""),
                "status": (ns.get("status") or {}).get("phase") or "Unknown",
                "age": (ns.get("metadata") or {}).get("creationTimestamp"),
            }
            for ns in items
        ]
        if limit is not None:
            namespaces = namespaces[:limit]
        return {"namespaces": namespaces}
