"""Configuration data structures."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class GuardConfig:
    """Per-call settings.  Re-read from the environment at every check."""

    read_only: bool = False
    namespace_allowlist: tuple[str, ...] = ()
    kind_allowlist: tuple[str, ...] = ()
    default_namespace: str = "default"


@dataclass
class ClusterConfig:
    """Kubernetes connection settings."""

    context: str = ""


@dataclass
class RateLimitConfig:
    """Per-operation token bucket defaults."""

    burst: int = 10
    refill_per_second: float = 5.0


@dataclass
class MCPConfig:
    """MCP stdio server configuration."""

    enabled: bool = True
    server_name: str = "kubegate"


@dataclass
class APIConfig:
    """HTTP API configuration."""

    enabled: bool = False
    port: int = 8080


@dataclass
class LogConfig:
    """Logging configuration."""

    level: str = "info"


@dataclass
class KubeGateConfig:
    """Top-level kubegate configuration."""

    cluster: ClusterConfig = field(default_factory=ClusterConfig)
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)
    mcp: MCPConfig = field(default_factory=MCPConfig)
    api: APIConfig = field(default_factory=APIConfig)
    log: LogConfig = field(default_factory=LogConfig)
