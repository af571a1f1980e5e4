"""Guard predicates applied before every mutating operation.

Evaluation order, short-circuiting on the first violation:

1. read-only mode          -> READ_ONLY_BLOCKED (unconditional)
2. namespace allowlist     -> NS_NOT_ALLOWED
3. kind allowlist          -> KIND_NOT_ALLOWED

An empty allowlist allows everything; an operation without a namespace
(cluster-scoped) or without a kind passes the corresponding check.
"""

from __future__ import annotations

from collections.abc import Callable

from kubegate.config import load_guard_config
from kubegate.errors import GuardViolation
from kubegate.models.config import GuardConfig
from kubegate.models.operations import GuardDecision, OperationContext, ViolationKind
from kubegate.observability.logging import get_logger
from kubegate.observability.metrics import guard_violations_total

_log = get_logger("guard.engine")


class GuardEngine:
    """Evaluates read-only mode and allowlists against an OperationContext.

    Args:
        settings: Zero-argument callable returning the current GuardConfig.
                  Defaults to reading the environment, so each check sees
                  the latest values.
    """

    def __init__(self, settings: Callable[[], GuardConfig] = load_guard_config) -> None:
        self._settings = settings

    def check(self, context: OperationContext) -> GuardDecision:
        cfg = self._settings()

        if cfg.read_only:
            return GuardDecision.deny(
                ViolationKind.READ_ONLY_BLOCKED,
                f"{context.operation} is blocked in read-only mode",
                "Unset MCP_K8S_READONLY or use dryRun only",
            )

        if context.namespace and cfg.namespace_allowlist and context.namespace not in cfg.namespace_allowlist:
            return GuardDecision.deny(
                ViolationKind.NS_NOT_ALLOWED,
                f"Namespace {context.namespace} is not in allowlist",
                "Add namespace to MCP_K8S_NAMESPACE_ALLOWLIST",
            )

        if context.kind and cfg.kind_allowlist and context.kind not in cfg.kind_allowlist:
            return GuardDecision.deny(
                ViolationKind.KIND_NOT_ALLOWED,
                f"Kind {context.kind} is not in allowlist",
                "Add kind to MCP_K8S_KIND_ALLOWLIST",
            )

        return GuardDecision.allow()

    def enforce(self, context: OperationContext) -> None:
        """Raise GuardViolation when *context* is denied."""
        decision = self.check(context)
        if decision.allowed:
            return
        assert decision.kind is not None
        guard_violations_total.labels(operation=context.operation, kind=decision.kind.value).inc()
        _log.warning(
            "guard_denied",
            operation=context.operation,
            namespace=context.namespace,
            kind=context.kind,
            code=decision.kind.value,
        )
        raise GuardViolation.from_decision(decision)
