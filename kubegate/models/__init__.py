"""Core data structures for kubegate."""

from kubegate.models.config import KubeGateConfig
from kubegate.models.manifests import InvalidDocument, ManifestDocument, ValidDocument
from kubegate.models.operations import GuardDecision, OperationContext, ViolationKind
from kubegate.models.resources import ResourceIdentifier, ResourceSummary, SecretPayload

__all__ = [
    "GuardDecision",
    "InvalidDocument",
    "KubeGateConfig",
    "ManifestDocument",
    "OperationContext",
    "ResourceIdentifier",
    "ResourceSummary",
    "SecretPayload",
    "ValidDocument",
    "ViolationKind",
]
