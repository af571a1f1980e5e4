"""Resource addressing and result-shaping data structures."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class ResourceIdentifier:
    """Fully-qualified address of a cluster resource.

    ``group`` is empty for the core API group.  ``namespace`` is always
    resolved (caller value or the configured default); the control-plane
    client drops it for cluster-scoped kinds and the guard ignores it there.
    """

    version: str
    kind: str
    group: str = ""
    namespace: str | None = None
    name: str | None = None

    def __post_init__(self) -> None:
        if not self.version:
            raise ValueError("ResourceIdentifier requires a non-empty version")
        if not self.kind:
            raise ValueError("ResourceIdentifier requires a non-empty kind")

    @property
    def api_version(self) -> str:
        return f"{self.group}/{self.version}" if self.group else self.version

    def __str__(self) -> str:
        scope = f"{self.namespace}/" if self.namespace else ""
        return f"{self.api_version}/{self.kind}/{scope}{self.name or '*'}"


@dataclass(frozen=True)
class ResourceSummary:
    """Size-bounded projection of a listed object."""

    api_version: str
    kind: str
    name: str
    namespace: str | None = None
    uid: str | None = None
    creation_timestamp: str | None = None

    @classmethod
    def from_object(cls, obj: dict[str, Any], api_version: str = "", kind: str = "") -> ResourceSummary:
        # List responses omit apiVersion/kind on items; fall back to the list's GVK.
        metadata = obj.get("metadata") or {}
        created = metadata.get("creationTimestamp")
        return cls(
            api_version=str(obj.get("apiVersion") or api_version),
            kind=str(obj.get("kind") or kind),
            name=str(metadata.get("name", "")),
            namespace=metadata.get("namespace"),
            uid=metadata.get("uid"),
            creation_timestamp=str(created) if created is not None else None,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "apiVersion": self.api_version,
            "kind": self.kind,
            "name": self.name,
            "namespace": self.namespace,
            "uid": self.uid,
            "creationTimestamp": self.creation_timestamp,
        }


@dataclass(frozen=True)
class SecretPayload:
    """Shaped secret returned to callers; values are either real or redacted."""

    type: str
    data: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "data": dict(self.data)}
