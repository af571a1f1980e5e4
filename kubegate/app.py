"""Application bootstrap for kubegate.

Wires all components in dependency order and manages the asyncio lifecycle.
Startup order: config → logging → K8s client → guard + rate limiter
              → dispatchers → tool registry → MCP → REST

Shutdown is fully graceful: components are stopped in reverse startup order.
Each component's stop error is caught and logged independently so that a
single component failure does not prevent the rest from shutting down cleanly.
"""

from __future__ import annotations

import asyncio
import signal
from typing import TYPE_CHECKING

from kubegate.config import load_config
from kubegate.models.config import KubeGateConfig
from kubegate.observability.logging import get_logger, setup_logging

if TYPE_CHECKING:
    import structlog

    from kubegate.guard import GuardEngine, RateLimiter
    from kubegate.kube import ControlPlane
    from kubegate.mcp import ToolRegistry

_SHUTDOWN_GRACE_SECONDS = 15


class _ComponentError(Exception):
    """Raised when a mandatory component fails to start."""

    def __init__(self, component: str, cause: Exception) -> None:
        super().__init__(f"Component '{component}' failed to start: {cause}")
        self.component = component
        self.cause = cause


class KubeGateApp:
    """Application root.  Owns every component and coordinates their lifecycle.

    ``stop()`` is safe to call on an app that was never started (or is
    already stopped).
    """

    def __init__(self, control_plane: ControlPlane | None = None) -> None:
        self.config: KubeGateConfig | None = None

        # An injected control plane skips credential loading (tests, embedding).
        self._control_plane: ControlPlane | None = control_plane
        self._owns_control_plane = control_plane is None
        self._guard: GuardEngine | None = None
        self._limiter: RateLimiter | None = None
        self._registry: ToolRegistry | None = None
        self._mcp_server: object | None = None
        self._rest_server: object | None = None

        self._background_tasks: list[asyncio.Task[None]] = []

        self._running = False
        self._log: structlog.stdlib.BoundLogger | None = None

    @property
    def registry(self) -> ToolRegistry | None:
        return self._registry

    @property
    def running(self) -> bool:
        return self._running

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    async def start(self, config: KubeGateConfig | None = None) -> None:
        """Start all components in dependency order.

        Raises _ComponentError if a mandatory component cannot start.
        """
        # --- 1. Configuration -------------------------------------------
        self.config = config or load_config()

        # --- 2. Logging -------------------------------------------------
        setup_logging(self.config.log.level)
        self._log = get_logger("app")
        self._log.info("kubegate starting", version=_kubegate_version())

        # --- 3. Kubernetes client ----------------------------------------
        await self._start_control_plane()

        # --- 4. Guard and rate limiter -----------------------------------
        self._start_guard()

        # --- 5. Dispatchers and tool registry ----------------------------
        self._start_registry()

        # --- 6. MCP server -----------------------------------------------
        await self._start_mcp()

        # --- 7. REST API -------------------------------------------------
        await self._start_rest()

        self._running = True
        self._log.info(
            "kubegate started",
            mcp=self.config.mcp.enabled,
            api=self.config.api.enabled,
        )

    async def _start_control_plane(self) -> None:
        """Build the kubernetes-asyncio clients from kubeconfig or in-cluster config."""
        assert self._log is not None
        assert self.config is not None
        if self._control_plane is not None:
            self._log.info("using injected control plane")
            return
        self._log.debug("starting k8s client")
        try:
            from kubegate.kube import KubernetesControlPlane

            self._control_plane = await KubernetesControlPlane.connect(
                context=self.config.cluster.context,
            )
        except Exception as exc:
            raise _ComponentError("k8s_client", exc) from exc

    def _start_guard(self) -> None:
        assert self._log is not None
        assert self.config is not None
        from kubegate.guard import GuardEngine, RateLimiter

        self._guard = GuardEngine()
        self._limiter = RateLimiter(
            capacity=self.config.rate_limit.burst,
            refill_rate=self.config.rate_limit.refill_per_second,
        )
        self._log.info(
            "guard started",
            burst=self.config.rate_limit.burst,
            refill_per_second=self.config.rate_limit.refill_per_second,
        )

    def _start_registry(self) -> None:
        assert self._log is not None
        assert self._control_plane is not None
        assert self._guard is not None
        assert self._limiter is not None
        try:
            from kubegate.dispatch import (
                ClusterDispatcher,
                ResourceDispatcher,
                SecretDispatcher,
                WorkloadDispatcher,
            )
            from kubegate.mcp import build_tool_registry

            self._registry = build_tool_registry(
                resources=ResourceDispatcher(self._control_plane, self._guard, self._limiter),
                secrets=SecretDispatcher(self._control_plane, self._guard, self._limiter),
                workloads=WorkloadDispatcher(self._control_plane, self._guard, self._limiter),
                cluster=ClusterDispatcher(self._control_plane, self._limiter),
            )
            self._log.info("tool registry started", tools=len(self._registry.specs()))
        except Exception as exc:
            raise _ComponentError("registry", exc) from exc

    async def _start_mcp(self) -> None:
        """Start the MCP stdio server."""
        assert self._log is not None
        assert self.config is not None
        assert self._registry is not None
        if not self.config.mcp.enabled:
            self._log.info("mcp server disabled (MCP_K8S_MCP_ENABLED=false)")
            return
        self._log.debug("starting mcp server")
        try:
            from kubegate.mcp import MCPServer

            mcp = MCPServer(registry=self._registry, name=self.config.mcp.server_name)
            task = asyncio.create_task(mcp.start(), name="mcp-server")
            task.add_done_callback(self._on_mcp_done)
            self._background_tasks.append(task)
            self._mcp_server = mcp
            self._log.info("mcp server started")
        except Exception as exc:
            raise _ComponentError("mcp", exc) from exc

    def _on_mcp_done(self, task: asyncio.Task[None]) -> None:
        # stdin closing ends the session; without an HTTP API there is nothing left to serve.
        if task.cancelled():
            return
        log = self._log or get_logger("app")
        exc = task.exception()
        if exc is not None:
            log.error("mcp server exited with error", error=str(exc))
        else:
            log.info("mcp session closed")
        if self.config is not None and not self.config.api.enabled:
            self._running = False

    async def _start_rest(self) -> None:
        """Start the uvicorn REST server when enabled."""
        assert self._log is not None
        assert self.config is not None
        assert self._registry is not None
        if not self.config.api.enabled:
            self._log.info("rest api disabled (MCP_K8S_API_ENABLED=false)")
            return
        self._log.debug("starting rest api")
        try:
            import uvicorn  # type: ignore[import-untyped]

            from kubegate.api import create_app

            fastapi_app = create_app(registry=self._registry)
            uv_config = uvicorn.Config(
                app=fastapi_app,
                host="0.0.0.0",
                port=self.config.api.port,
                log_config=None,  # structlog handles all logging
                access_log=False,
            )
            server = uvicorn.Server(uv_config)
            task = asyncio.create_task(server.serve(), name="rest-server")
            self._background_tasks.append(task)
            self._rest_server = server
            self._log.info("rest api started", port=self.config.api.port)
        except Exception as exc:
            raise _ComponentError("rest", exc) from exc

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    async def stop(self) -> None:
        """Gracefully stop all components in reverse startup order."""
        if not self._running and self._log is None:
            return

        log = self._log or get_logger("app")
        log.info("kubegate shutting down")

        self._running = False

        for task in reversed(self._background_tasks):
            if not task.done():
                task.cancel()

        if self._background_tasks:
            await asyncio.gather(*self._background_tasks, return_exceptions=True)
        self._background_tasks.clear()

        await self._stop_component("rest", self._rest_server)
        await self._stop_component("mcp", self._mcp_server)
        self._rest_server = None
        self._mcp_server = None
        self._registry = None
        await self._stop_control_plane()

        log.info("kubegate stopped")
        self._log = None

    async def _stop_component(self, name: str, component: object | None) -> None:
        """Call stop() on a component if it has that method, catching all errors."""
        if component is None:
            return
        log = self._log or get_logger("app")
        stop_fn = getattr(component, "stop", None)
        if stop_fn is None:
            return
        try:
            result = stop_fn()
            if asyncio.iscoroutine(result):
                await asyncio.wait_for(result, timeout=_SHUTDOWN_GRACE_SECONDS)
        except TimeoutError:
            log.warning("component stop timed out", component=name, timeout=_SHUTDOWN_GRACE_SECONDS)
        except Exception as exc:
            log.error("component stop raised an error", component=name, error=str(exc))

    async def _stop_control_plane(self) -> None:
        """Close the kubernetes-asyncio connection pool if this app opened it."""
        if self._control_plane is None or not self._owns_control_plane:
            return
        log = self._log or get_logger("app")
        try:
            await self._control_plane.close()
        except Exception as exc:
            log.debug("k8s client close raised (non-fatal)", error=str(exc))
        self._control_plane = None


def _kubegate_version() -> str:
    from kubegate import __version__

    return __version__


# ---------------------------------------------------------------------------
# Async entrypoint
# ---------------------------------------------------------------------------


async def main() -> None:
    """Create the app, register OS signals, run until shutdown is requested."""
    app = KubeGateApp()
    loop = asyncio.get_running_loop()

    shutdown_triggered = False

    def _request_shutdown() -> None:
        nonlocal shutdown_triggered
        if shutdown_triggered:
            return
        shutdown_triggered = True
        asyncio.create_task(app.stop(), name="shutdown")

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, _request_shutdown)

    try:
        await app.start()
        while app.running:
            await asyncio.sleep(1)
    except _ComponentError as exc:
        log = get_logger("app")
        log.critical(
            "fatal startup error",
            component=exc.component,
            error=str(exc.cause),
        )
        await app.stop()
        raise SystemExit(1) from exc
    finally:
        await app.stop()


def run() -> None:
    """Console-script entry point."""
    asyncio.run(main())
