# -*- coding: utf-8 -*-
"""Location: ./mcpproxy/services/upstream_service.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0
Authors: MCP Proxy Contributors

Upstream Connector.

Opens one MCP client session against the configured upstream server, either
by spawning a subprocess that speaks MCP over stdio or by connecting to a
Streamable HTTP endpoint. The session is shared by every inbound request:
``mcp.ClientSession`` matches responses to requests by JSON-RPC id, so
concurrent callers only await their own result.

The SDK transports are anyio context managers whose cancel scopes must be
entered and exited by the same task. A dedicated runner task therefore owns
the transport for its whole life; ``UpstreamSession.aclose`` only signals it.

Examples:
    >>> from mcpproxy.schemas import StdioUpstreamConfig
    >>> params = stdio_parameters(StdioUpstreamConfig(command="node", args=["server.js"], env={"A": "1"}))
    >>> params.command, params.args, params.env
    ('node', ['server.js'], {'A': '1'})
"""

# Standard
import asyncio
from contextlib import AsyncExitStack, suppress
import logging
from typing import Any, Dict, Optional, Tuple

# Third-Party
from mcp import ClientSession, StdioServerParameters
from mcp import types
from mcp.client.stdio import stdio_client
from mcp.client.streamable_http import streamablehttp_client
from mcp.shared.exceptions import McpError
from pydantic import ValidationError

# First-Party
from mcpproxy import __version__
from mcpproxy.config import settings
from mcpproxy.exceptions import ConnectError, ForwardingError, InvalidUpstreamError, UnsupportedMethodError
from mcpproxy.schemas import HttpUpstreamConfig, StdioUpstreamConfig

LOGGER = logging.getLogger(__name__)

UPSTREAM_CLIENT_NAME = "mcp-proxy-upstream"


def stdio_parameters(cfg: StdioUpstreamConfig) -> StdioServerParameters:
    """Translate a stdio upstream definition into SDK server parameters.

    Args:
        cfg: The stdio upstream definition.

    Returns:
        StdioServerParameters: Parameters for ``stdio_client``. The SDK merges
        ``env`` over its default inherited environment.
    """
    return StdioServerParameters(command=cfg.command, args=list(cfg.args), env=dict(cfg.env) if cfg.env is not None else None)


class UpstreamSession:
    """An initialized MCP client session and the task that keeps its transport open."""

    def __init__(
        self,
        session: ClientSession,
        init_result: types.InitializeResult,
        runner: "asyncio.Task[None]",
        closing: asyncio.Event,
        logger: Optional[logging.Logger] = None,
        request_timeout: Optional[float] = None,
    ):
        """Wrap an initialized session.

        Args:
            session: The initialized client session.
            init_result: What the upstream answered to ``initialize``.
            runner: Task owning the transport.
            closing: Event that tells ``runner`` to tear the transport down.
            logger: Logger for forwarding diagnostics.
            request_timeout: Bound in seconds on each forwarded call.
        """
        self._session = session
        self._init_result = init_result
        self._runner = runner
        self._closing = closing
        self._logger = logger or LOGGER
        self._request_timeout = request_timeout or settings.upstream_request_timeout
        self._closed = False

    @property
    def init_result(self) -> types.InitializeResult:
        """Upstream answer to ``initialize``."""
        return self._init_result

    @property
    def server_capabilities(self) -> Dict[str, Any]:
        """Capabilities advertised by the upstream, as a JSON dictionary."""
        return self._init_result.capabilities.model_dump(by_alias=True, mode="json", exclude_none=True)

    @property
    def server_info(self) -> Dict[str, Any]:
        """Name and version reported by the upstream."""
        return self._init_result.serverInfo.model_dump(by_alias=True, mode="json", exclude_none=True)

    @property
    def instructions(self) -> Optional[str]:
        """Usage instructions the upstream sent, if any."""
        return self._init_result.instructions

    @property
    def closed(self) -> bool:
        """Whether the session was closed or its transport ended."""
        return self._closed or self._runner.done()

    async def request(self, method: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Send one protocol call and return the raw result dictionary.

        Args:
            method: JSON-RPC method name, e.g. ``tools/call``.
            params: Request parameters.

        Returns:
            Dict[str, Any]: The ``result`` member of the upstream response.

        Raises:
            UnsupportedMethodError: If the MCP client protocol has no request named ``method``
                or ``params`` do not fit it.
            ForwardingError: If the upstream does not answer within the request timeout,
                or the session is closed.
            McpError: If the upstream answered with a JSON-RPC error.
        """
        if self.closed:
            raise ForwardingError("Upstream session is closed")
        payload: Dict[str, Any] = {"method": method}
        if params is not None:
            payload["params"] = params
        try:
            message = types.ClientRequest.model_validate(payload)
        except ValidationError as exc:
            raise UnsupportedMethodError(method) from exc

        try:
            result = await asyncio.wait_for(self._session.send_request(message, types.Result), timeout=self._request_timeout)
        except asyncio.TimeoutError as exc:
            raise ForwardingError(f"Upstream did not answer {method} within {self._request_timeout}s") from exc
        except McpError as exc:
            self._logger.debug(f"Upstream returned error for {method}: {exc.error.message}")
            raise
        return result.model_dump(by_alias=True, mode="json", exclude_unset=True)

    async def notify(self, method: str, params: Optional[Dict[str, Any]] = None) -> None:
        """Forward a client notification to the upstream.

        Args:
            method: Notification method, e.g. ``notifications/cancelled``.
            params: Notification parameters.

        Raises:
            UnsupportedMethodError: If the MCP client protocol has no notification named ``method``.
            ForwardingError: If the session is closed.
        """
        if self.closed:
            raise ForwardingError("Upstream session is closed")
        payload: Dict[str, Any] = {"method": method}
        if params is not None:
            payload["params"] = params
        try:
            message = types.ClientNotification.model_validate(payload)
        except ValidationError as exc:
            raise UnsupportedMethodError(method) from exc
        await self._session.send_notification(message)

    async def aclose(self) -> None:
        """Close the session and its transport. Safe to call repeatedly."""
        if self._closed:
            return
        self._closed = True
        self._closing.set()
        try:
            await self._runner
        except asyncio.CancelledError:
            pass
        except Exception as exc:  # noqa: BLE001
            self._logger.debug(f"Upstream transport ended with error: {exc}")


async def connect_upstream(cfg: Any, logger: Optional[logging.Logger] = None, connect_timeout: Optional[float] = None) -> UpstreamSession:
    """Open and initialize an MCP client session to the upstream.

    Args:
        cfg: ``StdioUpstreamConfig`` or ``HttpUpstreamConfig``.
        logger: Logger for connection diagnostics.
        connect_timeout: Bound in seconds on transport start plus ``initialize``.

    Returns:
        UpstreamSession: The ready session.

    Raises:
        InvalidUpstreamError: If ``cfg`` is neither a stdio nor an http upstream.
        ConnectError: If spawning, connecting, or initializing fails.

    Examples:
        >>> asyncio.run(connect_upstream({"type": "ftp"}))
        Traceback (most recent call last):
        ...
        mcpproxy.exceptions.InvalidUpstreamError: Invalid upstream configuration
    """
    log = logger or LOGGER
    timeout = connect_timeout or settings.upstream_connect_timeout
    if not isinstance(cfg, (StdioUpstreamConfig, HttpUpstreamConfig)):
        raise InvalidUpstreamError()

    loop = asyncio.get_running_loop()
    ready: "asyncio.Future[Tuple[ClientSession, types.InitializeResult]]" = loop.create_future()
    closing = asyncio.Event()
    runner = asyncio.create_task(_run_transport(cfg, ready, closing, log), name=f"mcpproxy-upstream:{_describe(cfg)}")

    try:
        session, init_result = await asyncio.wait_for(asyncio.shield(ready), timeout=timeout)
    except asyncio.TimeoutError as exc:
        await _abandon(runner)
        raise ConnectError(f"Timed out after {timeout}s connecting to {_describe(cfg)}") from exc
    except asyncio.CancelledError:
        await _abandon(runner)
        raise
    except Exception as exc:
        await _abandon(runner)
        raise ConnectError(f"Failed to connect to {_describe(cfg)}: {_root_cause(exc)}") from exc

    upstream = UpstreamSession(session, init_result, runner, closing, logger=log)
    info = upstream.server_info
    log.info(f"Connected to upstream {info.get('name')} {info.get('version')} (protocol {init_result.protocolVersion})")
    return upstream


async def _run_transport(
    cfg: Any,
    ready: "asyncio.Future[Tuple[ClientSession, types.InitializeResult]]",
    closing: asyncio.Event,
    log: logging.Logger,
) -> None:
    """Open the transport, run ``initialize``, then hold everything open until ``closing`` is set.

    Args:
        cfg: Validated upstream definition.
        ready: Resolved with ``(session, init_result)`` once initialized, or with the failure.
        closing: Set by the owner to tear the transport down.
        log: Logger.
    """
    try:
        async with AsyncExitStack() as stack:
            if isinstance(cfg, StdioUpstreamConfig):
                log.info(f"Spawning stdio upstream: {_describe(cfg)}")
                read_stream, write_stream = await stack.enter_async_context(stdio_client(stdio_parameters(cfg)))
            else:
                log.info(f"Connecting to Streamable HTTP upstream: {cfg.url}")
                read_stream, write_stream, _ = await stack.enter_async_context(streamablehttp_client(cfg.url, headers=cfg.headers))

            session = await stack.enter_async_context(
                ClientSession(read_stream, write_stream, client_info=types.Implementation(name=UPSTREAM_CLIENT_NAME, version=__version__))
            )
            init_result = await session.initialize()
            if not ready.done():
                ready.set_result((session, init_result))
            await closing.wait()
            log.debug(f"Closing upstream transport: {_describe(cfg)}")
    except asyncio.CancelledError:
        if not ready.done():
            ready.cancel()
        raise
    except Exception as exc:
        if not ready.done():
            ready.set_exception(exc)
            return
        raise


async def _abandon(runner: "asyncio.Task[None]") -> None:
    """Cancel a runner that never became ready and wait for it to unwind.

    Args:
        runner: The transport task.
    """
    runner.cancel()
    with suppress(asyncio.CancelledError, Exception):
        await runner


def _root_cause(exc: BaseException) -> BaseException:
    """Unwrap single-member exception groups raised out of anyio task groups.

    Args:
        exc: Exception raised while connecting.

    Returns:
        BaseException: The innermost lone exception.

    Examples:
        >>> str(_root_cause(ValueError("boom")))
        'boom'
    """
    while isinstance(exc, BaseExceptionGroup) and len(exc.exceptions) == 1:
        exc = exc.exceptions[0]
    return exc


def _describe(cfg: Any) -> str:
    """Short human label of an upstream.

    Args:
        cfg: Upstream definition.

    Returns:
        str: The command line or the URL.

    Examples:
        >>> _describe(HttpUpstreamConfig(url="http://x/mcp"))
        'http://x/mcp'
        >>> _describe(StdioUpstreamConfig(command="uvx", args=["srv"]))
        'uvx srv'
    """
    if isinstance(cfg, StdioUpstreamConfig):
        return " ".join([cfg.command, *cfg.args])
    return cfg.url
