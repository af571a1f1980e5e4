"""Configuration loading from environment variables."""

from __future__ import annotations

import os

from kubegate.models.config import (
    APIConfig,
    ClusterConfig,
    GuardConfig,
    KubeGateConfig,
    LogConfig,
    MCPConfig,
    RateLimitConfig,
)

_PREFIX = "MCP_K8S_"


def _env(key: str, default: str = "") -> str:
    return os.environ.get(f"{_PREFIX}{key}", default)


def _env_bool(key: str, default: bool = False) -> bool:
    val = _env(key, str(default).lower())
    return val.strip().lower() in ("true", "1", "yes")


def _env_int(key: str, default: int, min_val: int | None = None, max_val: int | None = None) -> int:
    val = int(_env(key, str(default)))
    if min_val is not None:
        val = max(val, min_val)
    if max_val is not None:
        val = min(val, max_val)
    return val


def _env_float(key: str, default: float) -> float:
    return float(_env(key, str(default)))


def _env_csv(key: str) -> tuple[str, ...]:
    return tuple(part.strip() for part in _env(key).split(",") if part.strip())


def _validate_log_level(value: str) -> str:
    valid = {"debug", "info", "warning", "error"}
    if value.lower() not in valid:
        raise ValueError(f"Invalid log level: {value}. Must be one of {valid}")
    return value.lower()


def _validate_rate(value: float) -> float:
    if value <= 0:
        raise ValueError(f"Invalid rate limit refill rate: {value}. Must be > 0")
    return value


def load_guard_config() -> GuardConfig:
    """Read guard settings and the default namespace from MCP_K8S_* variables.

    Called at every guard check and identifier resolution so operators can
    retarget or tighten a running process.
    """
    return GuardConfig(
        read_only=_env_bool("READONLY", False),
        namespace_allowlist=_env_csv("NAMESPACE_ALLOWLIST"),
        kind_allowlist=_env_csv("KIND_ALLOWLIST"),
        default_namespace=_env("DEFAULT_NAMESPACE", "default").strip() or "default",
    )


def load_config() -> KubeGateConfig:
    """Load process configuration from MCP_K8S_* environment variables."""
    return KubeGateConfig(
        cluster=ClusterConfig(
            context=_env("CONTEXT", ""),
        ),
        rate_limit=RateLimitConfig(
            burst=_env_int("RATE_LIMIT_BURST", 10, min_val=1, max_val=1000),
            refill_per_second=_validate_rate(_env_float("RATE_LIMIT_PER_SECOND", 5.0)),
        ),
        mcp=MCPConfig(
            enabled=_env_bool("MCP_ENABLED", True),
        ),
        api=APIConfig(
            enabled=_env_bool("API_ENABLED", False),
            port=_env_int("API_PORT", 8080, min_val=1024, max_val=65535),
        ),
        log=LogConfig(
            level=_validate_log_level(_env("LOG_LEVEL", "info")),
        ),
    )
