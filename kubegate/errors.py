"""Error taxonomy for kubegate.

Every error that may reach a tool caller derives from KubeGateError and
carries a machine-distinguishable ``code``, a human-readable ``message`` and
an optional remediation ``hint``.  The tool registry turns these into
structured error results; none of them is allowed to crash the process.

    GuardViolation   -- mode, allowlist or rate-limit denial.
    ValidationError  -- malformed caller input or manifest document.
    UpstreamError    -- the Kubernetes API (or transport to it) failed.
"""

from __future__ import annotations

from typing import Any

from kubegate.models.operations import GuardDecision, ViolationKind


class KubeGateError(Exception):
    """Base class for every error surfaced to tool callers."""

    default_code = "ERROR"

    def __init__(
        self,
        message: str,
        code: str | None = None,
        hint: str = "",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.hint = hint
        self.details: dict[str, Any] = details or {}

    def to_payload(self) -> dict[str, Any]:
        """Serialise to the error envelope returned to callers."""
        payload: dict[str, Any] = {"error": self.code, "message": self.message}
        if self.hint:
            payload["hint"] = self.hint
        payload.update(self.details)
        return payload


class GuardViolation(KubeGateError):
    """A mutating operation was refused by the guard or the rate limiter."""

    default_code = "GUARD_VIOLATION"

    def __init__(
        self,
        kind: ViolationKind,
        message: str,
        hint: str = "",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code=kind.value, hint=hint, details=details)
        self.kind = kind

    @classmethod
    def from_decision(cls, decision: GuardDecision) -> GuardViolation:
        if decision.allowed or decision.kind is None:
            raise ValueError("cannot build a GuardViolation from an allowed decision")
        return cls(decision.kind, decision.message, hint=decision.hint)


class ValidationError(KubeGateError):
    """Caller input or a manifest document is malformed."""

    default_code = "VALIDATION_ERROR"


class UpstreamError(KubeGateError):
    """The Kubernetes API call failed (network, not found, conflict, ...)."""

    default_code = "UPSTREAM_ERROR"

    def __init__(
        self,
        message: str,
        status: int | None = None,
        reason: str = "",
        details: dict[str, Any] | None = None,
    ) -> None:
        merged = dict(details or {})
        if status is not None:
            merged["status"] = status
        if reason:
            merged["reason"] = reason
        super().__init__(message, details=merged)
        self.status = status
        self.reason = reason
