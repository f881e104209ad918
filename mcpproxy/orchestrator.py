# -*- coding: utf-8 -*-
"""Location: ./mcpproxy/orchestrator.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0
Authors: MCP Proxy Contributors

Gateway Orchestrator.

Drives one gateway run through its lifecycle::

    IDLE -> [CONTAINER_PROVISIONING] -> UPSTREAM_CONNECTING -> GATEWAY_STARTING
         -> RUNNING -> SHUTTING_DOWN -> TERMINATED

A failed start ends in ``FAILED`` after releasing whatever was acquired.
Cleanup is a LIFO hook registry: the HTTP server stops first, then the
upstream session closes, then the container stops. Once running, SIGINT and
SIGTERM are bound to a frozen ``CleanupPlan`` captured at that moment.

Examples:
    >>> GatewayState.RUNNING.value
    'running'
    >>> CleanupPlan(container_id="c1")
    CleanupPlan(container_id='c1')
"""

# Standard
import asyncio
from contextlib import suppress
from dataclasses import dataclass
from enum import Enum
import logging
import secrets
import signal
import time
from typing import Any, Awaitable, Callable, List, Mapping, Optional, Tuple, Union

# First-Party
from mcpproxy.config import settings
from mcpproxy.exceptions import ConnectError, NoUpstreamError, ProxyError
from mcpproxy.runtimes.base import ContainerDriver
from mcpproxy.runtimes.docker_backend import DockerContainerDriver
from mcpproxy.schemas import GatewayConfig, GatewayResult, HttpUpstreamConfig
from mcpproxy.server import ForwardingGateway, MCP_PATH
from mcpproxy.services.upstream_service import connect_upstream, UpstreamSession
from mcpproxy.utils.port import find_free_port, format_http_url
from mcpproxy.utils.shutdown import ShutdownHooks

LOGGER = logging.getLogger(__name__)

WILDCARD_HOSTS = ("", "0.0.0.0", "::")

PortAllocator = Callable[..., int]
Connector = Callable[..., Awaitable[UpstreamSession]]


class GatewayState(str, Enum):
    """Lifecycle states of a gateway run."""

    IDLE = "idle"
    CONTAINER_PROVISIONING = "container_provisioning"
    UPSTREAM_CONNECTING = "upstream_connecting"
    GATEWAY_STARTING = "gateway_starting"
    RUNNING = "running"
    SHUTTING_DOWN = "shutting_down"
    TERMINATED = "terminated"
    FAILED = "failed"


@dataclass(frozen=True)
class CleanupPlan:
    """What an interrupt must release, captured when the gateway reaches RUNNING."""

    container_id: Optional[str] = None


def connect_host(host: str) -> str:
    """Address to dial for a service published on ``host``.

    Args:
        host: Listen host.

    Returns:
        str: Loopback for wildcard hosts, else ``host``.

    Examples:
        >>> connect_host("0.0.0.0")
        '127.0.0.1'
        >>> connect_host("::")
        '::1'
        >>> connect_host("10.0.0.5")
        '10.0.0.5'
    """
    if host == "::":
        return "::1"
    if host in WILDCARD_HOSTS:
        return "127.0.0.1"
    return host


class ProxyGateway:
    """One gateway run: provision, connect, serve, tear down."""

    def __init__(
        self,
        config: Union[GatewayConfig, Mapping[str, Any]],
        logger: Optional[logging.Logger] = None,
        *,
        container_driver: Optional[ContainerDriver] = None,
        port_allocator: PortAllocator = find_free_port,
        connector: Connector = connect_upstream,
        ready_wait: Optional[float] = None,
        handle_signals: bool = True,
    ):
        """Validate the configuration; nothing is started until ``start``.

        Args:
            config: Gateway configuration or a raw mapping.
            logger: Logger injected into every component.
            container_driver: Driver used when a container image is configured.
            port_allocator: ``find_free_port``-compatible allocator.
            connector: ``connect_upstream``-compatible coroutine function.
            ready_wait: Seconds to wait after the container starts; defaults to ``settings.container_ready_wait``.
            handle_signals: Bind SIGINT/SIGTERM to shutdown once running.

        Raises:
            ConfigurationError: If ``config`` is invalid.
        """
        self.config = GatewayConfig.from_input(config)
        self._logger = logger or LOGGER
        self._driver = container_driver
        self._port_allocator = port_allocator
        self._connector = connector
        self._ready_wait = settings.container_ready_wait if ready_wait is None else ready_wait
        self._handle_signals = handle_signals
        self._hooks = ShutdownHooks(logger=self._logger)
        self._closed = asyncio.Event()
        self._signals: List[signal.Signals] = []
        self._shutdown_task: Optional[asyncio.Task] = None
        self._state = GatewayState.IDLE

        self.container_id: Optional[str] = None
        self.upstream: Optional[UpstreamSession] = None
        self.server: Optional[ForwardingGateway] = None
        self.cleanup_plan: Optional[CleanupPlan] = None
        self.result: Optional[GatewayResult] = None

    @property
    def state(self) -> GatewayState:
        """Current lifecycle state."""
        return self._state

    @property
    def driver(self) -> ContainerDriver:
        """Container driver, created on first use."""
        if self._driver is None:
            self._driver = DockerContainerDriver(logger=self._logger)
        return self._driver

    def _set_state(self, state: GatewayState) -> None:
        self._logger.debug(f"Gateway state {self._state.value} -> {state.value}")
        self._state = state

    async def start(self) -> GatewayResult:
        """Bring the gateway to RUNNING.

        Returns:
            GatewayResult: Endpoint URL, port, API key and container id.

        Raises:
            ProxyError: If the gateway was already started.
            NoUpstreamError: If no upstream is configured and no container provisioned.
            LaunchError: If the container fails to start.
            ConnectError: If the upstream session cannot be established.
            BindError: If the listen port cannot be bound.
        """
        if self._state is not GatewayState.IDLE:
            raise ProxyError(f"Gateway cannot start from state {self._state.value}")
        try:
            upstream_cfg = self.config.upstream
            if self.config.wants_container:
                upstream_cfg = await self._provision_container()
            if upstream_cfg is None:
                raise NoUpstreamError()

            self._set_state(GatewayState.UPSTREAM_CONNECTING)
            self.upstream = await self._connector(upstream_cfg, logger=self._logger)
            self._hooks.register("upstream", self.upstream.aclose)

            self._set_state(GatewayState.GATEWAY_STARTING)
            api_key = secrets.token_hex(32)
            listen = self.config.listen
            port = listen.port or self._port_allocator(host=listen.host)
            self.server = ForwardingGateway(self.upstream, api_key, logger=self._logger)
            url = await self.server.start(listen.host, port)
            self._hooks.register("http-server", self.server.stop)
        except (Exception, asyncio.CancelledError) as exc:
            self._logger.error(f"Gateway failed to start: {exc}")
            self._set_state(GatewayState.FAILED)
            await self._hooks.run()
            self._closed.set()
            raise

        self.cleanup_plan = CleanupPlan(container_id=self.container_id)
        self._install_signal_handlers(self.cleanup_plan)
        self._set_state(GatewayState.RUNNING)
        self.result = GatewayResult(url=url, port=self.server.port, api_key=api_key, container_id=self.container_id)
        self._logger.info(f"MCP proxy running at {url}")
        return self.result

    async def _provision_container(self) -> HttpUpstreamConfig:
        """Start the configured container and describe it as an HTTP upstream.

        Returns:
            HttpUpstreamConfig: Upstream pointing at the container's published port.
        """
        self._set_state(GatewayState.CONTAINER_PROVISIONING)
        host = connect_host(self.config.listen.host)
        host_port = self._port_allocator(host=self.config.listen.host)
        image, version = self.config.container_image, self.config.container_version
        self._logger.info(f"Starting container {image}:{version} on port {host_port}")

        container_id = await self.driver.start(image, version, host_port, self.config.container_port)
        self.container_id = container_id
        driver = self.driver

        async def _stop_container() -> None:
            self._logger.info(f"Stopping container {container_id}")
            await driver.stop(container_id)

        self._hooks.register("container", _stop_container)

        url = format_http_url(host, host_port, MCP_PATH)
        self._logger.info(f"Container {container_id} started, upstream {url}")
        if self._ready_wait > 0:
            await asyncio.sleep(self._ready_wait)
        if settings.container_ready_timeout > 0:
            await wait_for_port(host, host_port, settings.container_ready_timeout, settings.container_ready_poll_interval)
        return HttpUpstreamConfig(url=url)

    def _install_signal_handlers(self, plan: CleanupPlan) -> None:
        """Bind SIGINT and SIGTERM to a shutdown over ``plan``.

        Args:
            plan: Snapshot of what the interrupt must release.
        """
        if not self._handle_signals:
            return
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            with suppress(NotImplementedError, RuntimeError):  # Windows lacks add_signal_handler
                loop.add_signal_handler(sig, self._on_signal, sig, plan)
                self._signals.append(sig)

    def _remove_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        while self._signals:
            sig = self._signals.pop()
            with suppress(NotImplementedError, RuntimeError):
                loop.remove_signal_handler(sig)

    def _on_signal(self, sig: signal.Signals, plan: CleanupPlan) -> None:
        """Start the shutdown for an interrupt.

        Args:
            sig: Received signal.
            plan: Cleanup snapshot bound at RUNNING time.
        """
        self._logger.info(f"Received {sig.name}, shutting down (container: {plan.container_id or 'none'})")
        if self._shutdown_task is None:
            self._shutdown_task = asyncio.create_task(self.shutdown())

    async def shutdown(self) -> None:
        """Release everything and mark the gateway TERMINATED. Never raises."""
        if self._state in (GatewayState.SHUTTING_DOWN, GatewayState.TERMINATED, GatewayState.FAILED):
            await self._closed.wait()
            return
        self._set_state(GatewayState.SHUTTING_DOWN)
        self._remove_signal_handlers()
        await self._hooks.run()
        self._set_state(GatewayState.TERMINATED)
        self._closed.set()

    async def wait_closed(self) -> None:
        """Block until the gateway has shut down or failed."""
        await self._closed.wait()


async def wait_for_port(host: str, port: int, timeout: float, interval: float = 0.5) -> None:
    """Poll ``host:port`` with TCP connects until one succeeds.

    Args:
        host: Host to dial.
        port: Port to dial.
        timeout: Overall bound in seconds.
        interval: Delay between attempts.

    Raises:
        ConnectError: If no connection succeeds before ``timeout``.
    """
    deadline = time.monotonic() + timeout
    while True:
        try:
            _, writer = await asyncio.wait_for(asyncio.open_connection(host, port), timeout=interval)
        except (OSError, asyncio.TimeoutError):
            if time.monotonic() >= deadline:
                raise ConnectError(f"{host}:{port} did not accept connections within {timeout}s") from None
            await asyncio.sleep(interval)
            continue
        writer.close()
        with suppress(OSError):
            await writer.wait_closed()
        return


async def start_proxy(config: Union[GatewayConfig, Mapping[str, Any]], **kwargs: Any) -> Tuple[GatewayResult, ProxyGateway]:
    """Build a ``ProxyGateway`` and start it.

    Args:
        config: Gateway configuration or a raw mapping.
        **kwargs: Forwarded to ``ProxyGateway``.

    Returns:
        Tuple[GatewayResult, ProxyGateway]: The startup result and the running gateway.
    """
    gateway = ProxyGateway(config, **kwargs)
    result = await gateway.start()
    return result, gateway
