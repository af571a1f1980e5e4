"""Multi-document manifest decoding.

decode() splits a YAML blob into documents and validates the minimal shape
the control plane needs (apiVersion, kind, metadata.name).  The result is
fully materialised before any dispatch starts, so a bad document late in the
blob never blocks the earlier ones.
"""

from __future__ import annotations

from typing import Any

import yaml

from kubegate.models.manifests import InvalidDocument, ManifestDocument, ValidDocument

MISSING_FIELDS_REASON = "Invalid manifest: missing apiVersion/kind/metadata.name"


def _validate(index: int, obj: dict[str, Any]) -> ManifestDocument:
    api_version = obj.get("apiVersion")
    kind = obj.get("kind")
    metadata = obj.get("metadata")
    name = metadata.get("name") if isinstance(metadata, dict) else None
    if not api_version or not kind or not name:
        return InvalidDocument(index=index, reason=MISSING_FIELDS_REASON)
    namespace = metadata.get("namespace") if isinstance(metadata, dict) else None
    return ValidDocument(
        index=index,
        api_version=str(api_version),
        kind=str(kind),
        name=str(name),
        namespace=str(namespace) if namespace else None,
        body=obj,
    )


def decode(blob: str) -> list[ManifestDocument]:
    """Decode *blob* into ValidDocument / InvalidDocument entries, in order.

    Null and non-mapping documents (stray ``---`` separators, bare scalars)
    are skipped.  A YAML syntax error ends decoding with one InvalidDocument
    describing it; documents decoded before the error are kept.
    """
    documents: list[ManifestDocument] = []
    index = 0
    loader = yaml.safe_load_all(blob)
    while True:
        try:
            obj = next(loader)
        except StopIteration:
            break
        except yaml.YAMLError as exc:
            documents.append(InvalidDocument(index=index, reason=f"Invalid manifest: YAML parse error: {exc}"))
            break
        if not isinstance(obj, dict):
            continue
        documents.append(_validate(index, obj))
        index += 1
    return documents
