# -*- coding: utf-8 -*-
"""Location: ./mcpproxy/transports/request_transport.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0
Authors: MCP Proxy Contributors

Per-request transport.

Every inbound HTTP request gets its own transport carrying a fresh session
id (16 random bytes, hex encoded). The transport decodes the buffered body
into one JSON-RPC message and encodes the reply; it is closed once the
response is produced or the client goes away. No state survives between
requests.

Examples:
    >>> t = RequestTransport()
    >>> len(t.session_id)
    32
    >>> msg = t.decode(b'{"jsonrpc": "2.0", "id": 1, "method": "tools/list"}')
    >>> (msg.method, msg.id, msg.is_notification)
    ('tools/list', 1, False)
    >>> t.result(msg, {"tools": []})
    {'jsonrpc': '2.0', 'id': 1, 'result': {'tools': []}}
    >>> t.close()
    >>> t.closed
    True
"""

# Standard
from dataclasses import dataclass
import logging
import secrets
from typing import Any, Dict, Optional, Union

# Third-Party
import orjson

# First-Party
from mcpproxy.exceptions import ProtocolError

LOGGER = logging.getLogger(__name__)

JSONRPC_VERSION = "2.0"
SESSION_HEADER = "mcp-session-id"

# JSON-RPC 2.0 error codes
METHOD_NOT_FOUND = -32601

RequestId = Union[str, int]


@dataclass(frozen=True)
class JSONRPCMessage:
    """One decoded inbound JSON-RPC message."""

    method: str
    params: Optional[Dict[str, Any]] = None
    id: Optional[RequestId] = None
    has_id: bool = False

    @property
    def is_notification(self) -> bool:
        """A message without ``id`` expects no response."""
        return not self.has_id


class RequestTransport:
    """Transport scoped to a single HTTP request."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.session_id = secrets.token_hex(16)
        self._logger = logger or LOGGER
        self._closed = False

    @property
    def closed(self) -> bool:
        """Whether ``close`` already ran."""
        return self._closed

    def decode(self, body: bytes) -> JSONRPCMessage:
        """Parse a request body into a JSON-RPC message.

        Args:
            body: Raw HTTP body.

        Returns:
            JSONRPCMessage: The decoded message.

        Raises:
            ProtocolError: If the body is not a JSON object with a string ``method``,
                or ``params``/``id`` have the wrong type.

        Examples:
            >>> RequestTransport().decode(b'[1, 2]')
            Traceback (most recent call last):
            ...
            mcpproxy.exceptions.ProtocolError: JSON-RPC message must be an object
            >>> RequestTransport().decode(b'{"jsonrpc": "2.0", "method": "notifications/initialized"}').is_notification
            True
        """
        try:
            data = orjson.loads(body)
        except orjson.JSONDecodeError as exc:
            raise ProtocolError(f"Invalid JSON body: {exc}") from exc
        if not isinstance(data, dict):
            raise ProtocolError("JSON-RPC message must be an object")
        method = data.get("method")
        if not isinstance(method, str) or not method:
            raise ProtocolError("JSON-RPC message has no method")
        params = data.get("params")
        if params is not None and not isinstance(params, dict):
            raise ProtocolError("JSON-RPC params must be an object")
        has_id = "id" in data
        request_id = data.get("id")
        if request_id is not None and (isinstance(request_id, bool) or not isinstance(request_id, (str, int))):
            raise ProtocolError("JSON-RPC id must be a string or an integer")
        return JSONRPCMessage(method=method, params=params, id=request_id, has_id=has_id)

    def result(self, message: JSONRPCMessage, result: Dict[str, Any]) -> Dict[str, Any]:
        """Build the success response for ``message``.

        Args:
            message: The request being answered.
            result: Result member.

        Returns:
            Dict[str, Any]: JSON-RPC response envelope.
        """
        return {"jsonrpc": JSONRPC_VERSION, "id": message.id, "result": result}

    def error(self, message: JSONRPCMessage, code: int, text: str, data: Any = None) -> Dict[str, Any]:
        """Build the error response for ``message``.

        Args:
            message: The request being answered.
            code: JSON-RPC error code.
            text: Error message.
            data: Optional error data.

        Returns:
            Dict[str, Any]: JSON-RPC error envelope.

        Examples:
            >>> msg = JSONRPCMessage(method="x", id="a", has_id=True)
            >>> RequestTransport().error(msg, METHOD_NOT_FOUND, "Method not found: x")["error"]["code"]
            -32601
        """
        error: Dict[str, Any] = {"code": code, "message": text}
        if data is not None:
            error["data"] = data
        return {"jsonrpc": JSONRPC_VERSION, "id": message.id, "error": error}

    def close(self) -> None:
        """Release the transport. Safe to call repeatedly."""
        if self._closed:
            return
        self._closed = True
        self._logger.debug(f"Closed request transport {self.session_id}")
