# -*- coding: utf-8 -*-
"""Location: ./mcpproxy/services/forwarding_service.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0
Authors: MCP Proxy Contributors

Request Handler Registry.

Maps JSON-RPC method names to async handlers. Methods without an explicit
handler fall through to the default handler, which relays the call to the
upstream session unchanged. ``initialize`` is answered locally because the
upstream session was already initialized by the gateway itself.

Examples:
    >>> negotiate_protocol_version(None) == types.LATEST_PROTOCOL_VERSION
    True
    >>> negotiate_protocol_version("1999-01-01") == types.LATEST_PROTOCOL_VERSION
    True
"""

# Standard
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

# Third-Party
from mcp import types
from mcp.shared.version import SUPPORTED_PROTOCOL_VERSIONS

# First-Party
from mcpproxy import __version__
from mcpproxy.services.upstream_service import UpstreamSession

LOGGER = logging.getLogger(__name__)

GATEWAY_SERVER_NAME = "mcp-proxy"

# Notifications answered by the gateway and never relayed.
LOCAL_NOTIFICATIONS = frozenset({"notifications/initialized"})

Handler = Callable[[str, Optional[Dict[str, Any]]], Awaitable[Dict[str, Any]]]


def negotiate_protocol_version(requested: Optional[str]) -> str:
    """Echo the client's protocol version when supported, else offer the latest.

    Args:
        requested: ``protocolVersion`` from the client's ``initialize`` params.

    Returns:
        str: Version the gateway answers with.

    Examples:
        >>> negotiate_protocol_version(SUPPORTED_PROTOCOL_VERSIONS[0]) == SUPPORTED_PROTOCOL_VERSIONS[0]
        True
    """
    if requested in SUPPORTED_PROTOCOL_VERSIONS:
        return requested
    return types.LATEST_PROTOCOL_VERSION


class HandlerRegistry:
    """Dispatch table from JSON-RPC method to handler, backed by one upstream session."""

    def __init__(self, upstream: UpstreamSession, logger: Optional[logging.Logger] = None):
        """Create the registry with the gateway's built-in handlers.

        Args:
            upstream: Session every forwarded call goes through.
            logger: Logger for dispatch diagnostics.
        """
        self._upstream = upstream
        self._logger = logger or LOGGER
        self._handlers: Dict[str, Handler] = {}
        self.register("initialize", self._initialize)
        self.register("tools/list", self.forward)

    def register(self, method: str, handler: Handler) -> None:
        """Install ``handler`` for ``method``, replacing any previous one.

        Args:
            method: JSON-RPC method name.
            handler: Coroutine function taking ``(method, params)`` and returning the result dictionary.
        """
        self._handlers[method] = handler

    def handler_for(self, method: str) -> Handler:
        """Return the handler for ``method``, or the forwarding default.

        Args:
            method: JSON-RPC method name.

        Returns:
            Handler: Explicit handler or ``forward``.
        """
        return self._handlers.get(method, self.forward)

    @property
    def methods(self):
        """Explicitly registered method names."""
        return sorted(self._handlers)

    async def dispatch(self, method: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Run the handler for a request and return its result.

        Args:
            method: JSON-RPC method name.
            params: Request parameters.

        Returns:
            Dict[str, Any]: The ``result`` to send back.
        """
        return await self.handler_for(method)(method, params)

    async def dispatch_notification(self, method: str, params: Optional[Dict[str, Any]] = None) -> None:
        """Absorb or relay a client notification.

        Args:
            method: Notification method.
            params: Notification parameters.
        """
        if method in LOCAL_NOTIFICATIONS:
            self._logger.debug(f"Absorbed notification {method}")
            return
        await self._upstream.notify(method, params)

    async def forward(self, method: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Relay the call to the upstream verbatim.

        Args:
            method: JSON-RPC method name.
            params: Request parameters.

        Returns:
            Dict[str, Any]: The upstream's result.
        """
        self._logger.debug(f"Forwarding {method} to upstream")
        return await self._upstream.request(method, params)

    async def _initialize(self, method: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Answer ``initialize`` from the upstream's handshake.

        Args:
            method: Always ``initialize``.
            params: Client initialize params.

        Returns:
            Dict[str, Any]: An ``InitializeResult`` naming this gateway as the server.
        """
        requested = (params or {}).get("protocolVersion")
        result: Dict[str, Any] = {
            "protocolVersion": negotiate_protocol_version(requested),
            "capabilities": self._upstream.server_capabilities,
            "serverInfo": {"name": GATEWAY_SERVER_NAME, "version": __version__},
        }
        if self._upstream.instructions:
            result["instructions"] = self._upstream.instructions
        return result
