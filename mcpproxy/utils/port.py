# -*- coding: utf-8 -*-
"""Location: ./mcpproxy/utils/port.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0
Authors: MCP Proxy Contributors

TCP port helpers.

``find_free_port`` is an allocation oracle, not a reservation: the probe
socket is closed before the port is returned, so another process may grab
the port before the caller binds it. Callers that cannot tolerate the race
should bind with ``bind_socket`` and keep the socket.

Examples:
    >>> port = find_free_port()
    >>> 0 < port < 65536
    True
    >>> format_http_url("127.0.0.1", 8080, "/mcp")
    'http://127.0.0.1:8080/mcp'
    >>> format_http_url("::1", 8080, "/mcp")
    'http://[::1]:8080/mcp'
"""

# Standard
import socket
from typing import Optional

# First-Party
from mcpproxy.exceptions import BindError

DEFAULT_HOST = "127.0.0.1"


def _resolve_family(host: str, port: int) -> int:
    """Pick the address family for ``host``.

    Args:
        host: Host name or IP literal.
        port: Port the socket will bind.

    Returns:
        int: ``socket.AF_INET`` or ``socket.AF_INET6``.

    Raises:
        BindError: If the host cannot be resolved.
    """
    try:
        infos = socket.getaddrinfo(host, port, type=socket.SOCK_STREAM, flags=socket.AI_PASSIVE)
    except socket.gaierror as exc:
        raise BindError(f"Cannot resolve host {host!r}: {exc}") from exc
    return infos[0][0]


def bind_socket(host: str = DEFAULT_HOST, port: int = 0) -> socket.socket:
    """Bind a listening-ready TCP socket on ``host:port``.

    Args:
        host: Interface to bind.
        port: Port to bind, 0 lets the OS choose.

    Returns:
        socket.socket: The bound (not yet listening) socket.

    Raises:
        BindError: If the address cannot be bound.
    """
    family = _resolve_family(host, port)
    sock = socket.socket(family, socket.SOCK_STREAM)
    try:
        sock.bind((host, port))
    except OSError as exc:
        sock.close()
        raise BindError(f"Unable to bind {host}:{port}: {exc.strerror or exc}") from exc
    return sock


def find_free_port(preferred: Optional[int] = None, host: str = DEFAULT_HOST) -> int:
    """Return a TCP port that is currently unbound on ``host``.

    Args:
        preferred: Port to probe; when omitted the OS assigns an ephemeral one.
        host: Interface to probe.

    Returns:
        int: The bound port number.

    Raises:
        BindError: If the port cannot be bound or the bound address is not an IP address.

    Examples:
        >>> busy = bind_socket("127.0.0.1", 0)
        >>> busy.listen()
        >>> try:
        ...     find_free_port(busy.getsockname()[1])
        ... except BindError:
        ...     print("in use")
        in use
        >>> busy.close()
    """
    sock = bind_socket(host, preferred or 0)
    try:
        address = sock.getsockname()
        if not isinstance(address, tuple) or len(address) < 2:
            raise BindError("Unable to get address")
        return int(address[1])
    finally:
        sock.close()


def format_http_url(host: str, port: int, path: str = "") -> str:
    """Build an ``http://`` URL, bracketing IPv6 literals.

    Args:
        host: Host name or IP literal.
        port: TCP port.
        path: Absolute path appended verbatim.

    Returns:
        str: The URL.
    """
    if ":" in host and not host.startswith("["):
        host = f"[{host}]"
    return f"http://{host}:{port}{path}"
