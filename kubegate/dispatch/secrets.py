"""secrets.get and secrets.set.

Secret values never appear in logs.  Reads return the redaction marker for
every key unless disclosure was explicitly requested and read-only mode is
off; writes are guarded like any other mutating operation.
"""

from __future__ import annotations

import base64
from collections.abc import Callable, Mapping
from typing import Any

from kubegate.config import load_guard_config
from kubegate.dispatch.resources import dry_run_param
from kubegate.errors import UpstreamError, ValidationError
from kubegate.guard.engine import GuardEngine
from kubegate.guard.ratelimit import RateLimiter
from kubegate.guard.redaction import may_disclose, shape_secret_data
from kubegate.kube.client import ControlPlane
from kubegate.models.config import GuardConfig
from kubegate.models.operations import OperationContext
from kubegate.models.resources import SecretPayload
from kubegate.observability.logging import get_logger

_log = get_logger("dispatch.secrets")


def _encode_values(data: Mapping[str, str], already_encoded: bool) -> dict[str, str]:
    if already_encoded:
        return dict(data)
    return {key: base64.b64encode(value.encode("utf-8")).decode("ascii") for key, value in data.items()}


class SecretDispatcher:
    """Implements secrets.get and secrets.set."""

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

    async def get(
        self,
        namespace: str,
        name: str,
        keys: list[str] | None = None,
        show_values: bool | None = None,
    ) -> dict[str, Any]:
        self._limiter.acquire("secrets.get")
        secret = await self._client.read_secret(namespace, name)
        if secret is None:
            raise UpstreamError(f"read secret failed: {namespace}/{name} not found", status=404, reason="NotFound")
        disclose = may_disclose(show_values, self._settings().read_only)
        payload = SecretPayload(
            type=str(secret.get("type") or "Opaque"),
            data=shape_secret_data(secret.get("data"), keys, disclose),
        )
        _log.info(
            "secret_read",
            namespace=namespace,
            name=name,
            keys=sorted(payload.data),
            disclosed=disclose,
        )
        return payload.to_dict()

    async def set(
        self,
        namespace: str,
        name: str,
        data: Mapping[str, str],
        type: str = "Opaque",
        base64_encoded: bool = False,
        create_if_missing: bool = True,
        dry_run: bool | None = None,
    ) -> dict[str, Any]:
        """Create or replace a secret with *data*.

        Raises:
            ValidationError: *data* is empty, or the secret does not exist
                             and *create_if_missing* is False.
        """
        self._limiter.acquire("secrets.set")
        if not data:
            raise ValidationError("data must have at least one key", code="INVALID_ARGUMENTS")
        dry_run_value = dry_run_param(dry_run)
        self._guard.enforce(
            OperationContext(
                operation="secrets.set",
                namespace=namespace,
                kind="Secret",
                dry_run=dry_run_value is not None,
            )
        )

        existing = await self._client.read_secret(namespace, name)
        encoded = _encode_values(data, base64_encoded)
        body = {
            "apiVersion": "v1",
            "kind": "Secret",
            "metadata": {"name": name, "namespace": namespace},
            "type": type or "Opaque",
            "data": encoded,
        }
        keys = list(encoded)

        if existing is None:
            if not create_if_missing:
                raise ValidationError(
                    "Secret does not exist and createIfMissing=false",
                    code="SECRET_NOT_FOUND",
                    hint="Pass createIfMissing=true to create it",
                )
            created = await self._client.create_secret(namespace, body, dry_run=dry_run_value)
            _log.info("secret_created", namespace=namespace, name=name, keys=keys, dry_run=dry_run_value is not None)
            return {"created": True, "name": (created.get("metadata") or {}).get("name", name), "keys": keys}

        updated = await self._client.replace_secret(namespace, name, body, dry_run=dry_run_value)
        _log.info("secret_updated", namespace=namespace, name=name, keys=keys, dry_run=dry_run_value is not None)
        return {"updated": True, "name": (updated.get("metadata") or {}).get("name", name), "keys": keys}
