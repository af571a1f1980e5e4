"""ResourceIdentifier resolution from partial caller input."""

from __future__ import annotations

from kubegate.errors import ValidationError
from kubegate.models.manifests import ValidDocument
from kubegate.models.resources import ResourceIdentifier


def resolve_identifier(
    version: str,
    kind: str,
    default_namespace: str,
    group: str | None = None,
    name: str | None = None,
    namespace: str | None = None,
) -> ResourceIdentifier:
    """Build a fully-qualified identifier.

    ``apiVersion`` is ``group/version`` (or just ``version`` for the core
    group) and the namespace falls back to *default_namespace*.
    """
    if not version:
        raise ValidationError("version must not be empty", hint="Pass the API version, e.g. v1")
    if not kind:
        raise ValidationError("kind must not be empty", hint="Pass the resource kind, e.g. Deployment")
    return ResourceIdentifier(
        group=group or "",
        version=version,
        kind=kind,
        namespace=namespace or default_namespace,
        name=name or None,
    )


def split_api_version(api_version: str) -> tuple[str, str]:
    """Split ``apps/v1`` into ("apps", "v1") and ``v1`` into ("", "v1")."""
    group, _, version = api_version.rpartition("/")
    return group, version


def identifier_for_document(doc: ValidDocument, default_namespace: str) -> ResourceIdentifier:
    group, version = split_api_version(doc.api_version)
    return resolve_identifier(
        version=version,
        kind=doc.kind,
        default_namespace=default_namespace,
        group=group,
        name=doc.name,
        namespace=doc.namespace,
    )
