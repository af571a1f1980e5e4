"""Decoded manifest documents.

Decoding produces a tagged sequence: every document is either a
ValidDocument (safe to hand to the control plane) or an InvalidDocument
(reported inline, never dispatched).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class ValidDocument:
    """A manifest document with apiVersion, kind and metadata.name present."""

    index: int
    api_version: str
    kind: str
    name: str
    namespace: str | None = None
    body: dict[str, Any] = field(default_factory=dict)

    @property
    def is_valid(self) -> bool:
        return True


@dataclass(frozen=True)
class InvalidDocument:
    """A manifest document that failed minimal shape validation."""

    index: int
    reason: str

    @property
    def is_valid(self) -> bool:
        return False


ManifestDocument = ValidDocument | InvalidDocument
