# -*- coding: utf-8 -*-
"""Location: ./mcpproxy/exceptions.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0
Authors: MCP Proxy Contributors

MCP Proxy exceptions.

Startup failures (configuration, binding, container launch, upstream connect)
abort the whole gateway start. Per-request failures (authentication,
forwarding) only affect the request that raised them.
"""


class ProxyError(Exception):
    """Base exception for MCP Proxy operations."""


class ConfigurationError(ProxyError):
    """Raised when the gateway configuration is invalid or incomplete."""


class InvalidUpstreamError(ConfigurationError):
    """Raised when the upstream definition is missing its required fields.

    Examples:
        >>> str(InvalidUpstreamError())
        'Invalid upstream configuration'
        >>> str(InvalidUpstreamError("command must not be empty"))
        'Invalid upstream configuration: command must not be empty'
    """

    def __init__(self, detail: str = ""):
        message = "Invalid upstream configuration"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class NoUpstreamError(ConfigurationError):
    """Raised when neither an upstream nor a container was configured."""

    def __init__(self, message: str = "No upstream defined"):
        super().__init__(message)


class InputError(ConfigurationError):
    """Raised when a value from the input source cannot be parsed."""


class BindError(ProxyError):
    """Raised when a TCP port cannot be bound or introspected."""


class LaunchError(ProxyError):
    """Raised when the container engine fails to start a container."""


class ConnectError(ProxyError):
    """Raised when the upstream session cannot be established."""


class AuthError(ProxyError):
    """Raised when an inbound request carries a missing or wrong bearer token."""


class ForwardingError(ProxyError):
    """Raised when a request cannot be relayed to the upstream."""


class ProtocolError(ForwardingError):
    """Raised when an inbound body is not a valid JSON-RPC message."""


class UnsupportedMethodError(ForwardingError):
    """Raised when the upstream protocol has no request of the given name."""

    def __init__(self, method: str):
        self.method = method
        super().__init__(f"Method not found: {method}")


class RequestTooLargeError(ProtocolError):
    """Raised when an inbound body exceeds the configured size limit."""

    def __init__(self, limit: int):
        self.limit = limit
        super().__init__(f"Request body exceeds {limit} bytes")
