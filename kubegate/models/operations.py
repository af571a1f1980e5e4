"""Per-invocation operation context and guard decisions."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class ViolationKind(StrEnum):
    """Machine-distinguishable reason a guard refused an operation."""

    READ_ONLY_BLOCKED = "READ_ONLY_BLOCKED"
    NS_NOT_ALLOWED = "NS_NOT_ALLOWED"
    KIND_NOT_ALLOWED = "KIND_NOT_ALLOWED"
    RATE_LIMIT = "RATE_LIMIT"


@dataclass(frozen=True)
class OperationContext:
    """What a caller is about to do.

    Created once per invocation (or per manifest document during apply) and
    consumed by the GuardEngine.  ``namespace`` is None for cluster-scoped
    operations.
    """

    operation: str
    namespace: str | None = None
    kind: str | None = None
    dry_run: bool | None = None


@dataclass(frozen=True)
class GuardDecision:
    """Result of a guard check: either allowed, or denied with a reason."""

    allowed: bool
    kind: ViolationKind | None = None
    message: str = ""
    hint: str = ""

    @classmethod
    def allow(cls) -> GuardDecision:
        return cls(allowed=True)

    @classmethod
    def deny(cls, kind: ViolationKind, message: str, hint: str) -> GuardDecision:
        return cls(allowed=False, kind=kind, message=message, hint=hint)
