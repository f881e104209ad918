# -*- coding: utf-8 -*-
"""Location: ./mcpproxy/server.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0
Authors: MCP Proxy Contributors

Forwarding Gateway Server.

Serves a single authenticated endpoint, ``POST /mcp``, and relays every
JSON-RPC message it receives to the shared upstream session:

- any other method or path answers ``404 Not Found`` (plain text);
- a missing or wrong ``Authorization: Bearer <apiKey>`` answers ``401``;
- requests answer ``200`` with the JSON-RPC response, including errors the
  upstream reported; notifications answer ``202`` with no body;
- malformed bodies and transport failures answer ``500`` with
  ``{"error": "<message>"}`` and the server keeps running.

The HTTP server is uvicorn, embedded in the caller's event loop. It never
installs process signal handlers; the orchestrator owns interrupts.

Examples:
    >>> from unittest.mock import MagicMock
    >>> gateway = ForwardingGateway(MagicMock(), "a" * 64)
    >>> [route.path for route in gateway.app.routes]
    ['/mcp']
    >>> gateway.url is None
    True
"""

# Standard
import asyncio
from contextlib import contextmanager
import logging
import secrets
from typing import Optional

# Third-Party
from mcp.shared.exceptions import McpError
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response
from starlette.routing import Route
import uvicorn

# First-Party
from mcpproxy.config import settings
from mcpproxy.exceptions import AuthError, BindError, RequestTooLargeError, UnsupportedMethodError
from mcpproxy.middleware.client_disconnect import ClientDisconnectMiddleware
from mcpproxy.middleware.request_logging_middleware import RequestLoggingMiddleware
from mcpproxy.services.forwarding_service import HandlerRegistry
from mcpproxy.services.upstream_service import UpstreamSession
from mcpproxy.transports.request_transport import METHOD_NOT_FOUND, RequestTransport, SESSION_HEADER
from mcpproxy.utils.orjson_response import ORJSONResponse
from mcpproxy.utils.port import bind_socket, format_http_url

LOGGER = logging.getLogger(__name__)

MCP_PATH = "/mcp"
# Every verb reaches handle_mcp, which answers non-POST with 404.
ROUTE_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]
STARTUP_POLL_INTERVAL = 0.01


class EmbeddedServer(uvicorn.Server):
    """uvicorn server that leaves process signals to its owner."""

    def install_signal_handlers(self) -> None:
        """Do not install handlers (uvicorn < 0.29)."""

    @contextmanager
    def capture_signals(self):
        """Do not capture signals (uvicorn >= 0.29).

        Yields:
            None
        """
        yield


class ForwardingGateway:
    """Authenticated HTTP front door relaying JSON-RPC to one upstream session."""

    def __init__(
        self,
        upstream: UpstreamSession,
        api_key: str,
        logger: Optional[logging.Logger] = None,
        registry: Optional[HandlerRegistry] = None,
        max_body_bytes: Optional[int] = None,
        log_requests: Optional[bool] = None,
    ):
        """Prepare the gateway; nothing is bound until ``start``.

        Args:
            upstream: Shared upstream session.
            api_key: Bearer token inbound requests must present.
            logger: Logger for request handling.
            registry: Handler registry; built over ``upstream`` when omitted.
            max_body_bytes: Largest accepted request body; defaults to ``settings.max_request_body_bytes``.
            log_requests: Attach request logging; defaults to ``settings.log_requests``.
        """
        self._upstream = upstream
        self._expected_auth = f"Bearer {api_key}".encode("utf-8")
        self._logger = logger or LOGGER
        self.registry = registry or HandlerRegistry(upstream, logger=self._logger)
        self._max_body_bytes = max_body_bytes or settings.max_request_body_bytes
        self._log_requests = settings.log_requests if log_requests is None else log_requests
        self.app = self.build_app()
        self._server: Optional[EmbeddedServer] = None
        self._serve_task: Optional[asyncio.Task] = None
        self.port: Optional[int] = None
        self.url: Optional[str] = None

    def build_app(self) -> Starlette:
        """Create the ASGI application.

        Returns:
            Starlette: App exposing ``/mcp`` only.
        """
        middleware = [Middleware(ClientDisconnectMiddleware, logger=self._logger)]
        if self._log_requests:
            middleware.append(Middleware(RequestLoggingMiddleware, logger=self._logger))
        app = Starlette(routes=[Route(MCP_PATH, self.handle_mcp, methods=ROUTE_METHODS)], middleware=middleware)
        app.router.redirect_slashes = False
        return app

    def authorize(self, header: Optional[str]) -> None:
        """Check the ``Authorization`` header against the API key.

        Args:
            header: Raw header value, if any.

        Raises:
            AuthError: If the header is missing or not exactly ``Bearer <apiKey>``.

        Examples:
            >>> from unittest.mock import MagicMock
            >>> g = ForwardingGateway(MagicMock(), "k")
            >>> g.authorize("Bearer k")
            >>> g.authorize("bearer k")
            Traceback (most recent call last):
            ...
            mcpproxy.exceptions.AuthError: unauthorized
        """
        if header is None or not secrets.compare_digest(header.encode("utf-8"), self._expected_auth):
            raise AuthError("unauthorized")

    async def handle_mcp(self, request: Request) -> Response:
        """Authenticate, decode, dispatch and answer one request.

        Args:
            request: Incoming request on ``/mcp``.

        Returns:
            Response: The HTTP response.
        """
        if request.method != "POST":
            return PlainTextResponse("Not Found", status_code=404)
        try:
            self.authorize(request.headers.get("authorization"))
        except AuthError:
            self._logger.debug(f"Rejected unauthenticated request from {request.client.host if request.client else 'unknown'}")
            return ORJSONResponse({"error": "unauthorized"}, status_code=401)

        transport = RequestTransport(logger=self._logger)
        headers = {SESSION_HEADER: transport.session_id}
        try:
            message = transport.decode(await self._read_body(request))

            if message.is_notification:
                try:
                    await self.registry.dispatch_notification(message.method, message.params)
                except UnsupportedMethodError:
                    self._logger.debug(f"Dropped unknown notification {message.method}")
                return Response(status_code=202, headers=headers)

            try:
                result = await self.registry.dispatch(message.method, message.params)
            except McpError as exc:
                payload = transport.error(message, exc.error.code, exc.error.message, exc.error.data)
            except UnsupportedMethodError as exc:
                payload = transport.error(message, METHOD_NOT_FOUND, str(exc))
            else:
                payload = transport.result(message, result)
            return ORJSONResponse(payload, headers=headers)
        except RequestTooLargeError as exc:
            return ORJSONResponse({"error": str(exc)}, status_code=413, headers=headers)
        except Exception as exc:
            self._logger.error(f"Error handling request: {exc}")
            return ORJSONResponse({"error": str(exc) or exc.__class__.__name__}, status_code=500, headers=headers)
        finally:
            transport.close()

    async def _read_body(self, request: Request) -> bytes:
        """Buffer the request body up to the size limit.

        Args:
            request: Incoming request.

        Returns:
            bytes: The full body.

        Raises:
            RequestTooLargeError: If the body exceeds the limit.
        """
        declared = request.headers.get("content-length")
        if declared and declared.isdigit() and int(declared) > self._max_body_bytes:
            raise RequestTooLargeError(self._max_body_bytes)
        chunks = []
        size = 0
        async for chunk in request.stream():
            size += len(chunk)
            if size > self._max_body_bytes:
                raise RequestTooLargeError(self._max_body_bytes)
            chunks.append(chunk)
        return b"".join(chunks)

    async def start(self, host: str, port: int = 0) -> str:
        """Bind ``host:port`` and serve until ``stop``.

        Args:
            host: Interface to bind.
            port: Port to bind; 0 lets the OS choose.

        Returns:
            str: ``http://<host>:<port>/mcp``.

        Raises:
            BindError: If the address cannot be bound or the server fails to start.
        """
        sock = bind_socket(host, port)
        self.port = sock.getsockname()[1]
        config = uvicorn.Config(
            self.app,
            log_level=settings.server_log_level,
            log_config=None,
            lifespan="off",
            access_log=False,
            timeout_graceful_shutdown=5,
        )
        self._server = EmbeddedServer(config)
        self._serve_task = asyncio.create_task(self._server.serve(sockets=[sock]), name="mcpproxy-http")

        while not self._server.started:
            if self._serve_task.done():
                sock.close()
                exc = self._serve_task.exception() if not self._serve_task.cancelled() else None
                raise BindError(f"HTTP server failed to start on {host}:{self.port}: {exc}")
            await asyncio.sleep(STARTUP_POLL_INTERVAL)

        self.url = format_http_url(host, self.port, MCP_PATH)
        self._logger.info(f"Gateway listening on {self.url}")
        return self.url

    async def stop(self) -> None:
        """Stop accepting connections and wait for the server to exit."""
        if self._server is None or self._serve_task is None:
            return
        self._server.should_exit = True
        try:
            await self._serve_task
        except asyncio.CancelledError:
            pass
        except Exception as exc:  # noqa: BLE001
            self._logger.warning(f"HTTP server exited with error: {exc}")
        self._serve_task = None
        self._logger.info("Gateway HTTP server stopped")
