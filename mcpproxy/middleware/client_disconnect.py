# -*- coding: utf-8 -*-
"""Location: ./mcpproxy/middleware/client_disconnect.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0
Authors: MCP Proxy Contributors

Client Disconnect Middleware.

Pure ASGI middleware that detects when the HTTP client closes the connection
and cancels the in-flight request handler. The handler's ``finally`` blocks
then close the per-request transport, and the upstream call it was awaiting
is abandoned instead of holding the request open until the upstream answers.
"""

# Standard
import asyncio
from contextlib import suppress
import logging
from typing import Optional

# Third-Party
from starlette.types import ASGIApp, Message, Receive, Scope, Send

LOGGER = logging.getLogger(__name__)


class ClientDisconnectMiddleware:
    """Cancel HTTP request processing when the client disconnects.

    Uses a message queue to relay ASGI ``receive`` messages to the app while
    a reader task watches for the ``http.disconnect`` event. When disconnect
    is detected the handler task is cancelled.

    Only applies to ``http`` scope; WebSocket and lifespan scopes are passed
    through unchanged.
    """

    def __init__(self, app: ASGIApp, logger: Optional[logging.Logger] = None) -> None:
        self.app = app
        self._logger = logger or LOGGER

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        path: str = scope.get("path", "")

        disconnected = asyncio.Event()
        response_started = False

        # Queue relays ASGI receive messages from the reader to the app.
        recv_queue: asyncio.Queue[Message] = asyncio.Queue()

        async def _reader() -> None:
            """Read from the raw ASGI receive channel and forward to the queue."""
            try:
                while True:
                    message = await receive()
                    await recv_queue.put(message)
                    if message["type"] == "http.disconnect":
                        disconnected.set()
                        return
            except asyncio.CancelledError:
                return

        async def _receive_wrapper() -> Message:
            """Drop-in replacement for ``receive`` that reads from the queue.

            Returns:
                Message: The next ASGI message, or a disconnect message on cancellation.
            """
            try:
                return await recv_queue.get()
            except asyncio.CancelledError:
                return {"type": "http.disconnect"}

        async def _send_wrapper(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            if disconnected.is_set() and not response_started:
                return
            try:
                await send(message)
            except Exception:
                # Client gone
                disconnected.set()

        reader_task = asyncio.create_task(_reader())
        handler_task = asyncio.create_task(self.app(scope, _receive_wrapper, _send_wrapper))

        async def _cancel_on_disconnect() -> None:
            """Wait for disconnect, then cancel the handler."""
            await disconnected.wait()
            if not handler_task.done():
                handler_task.cancel()

        cancel_task = asyncio.create_task(_cancel_on_disconnect())

        try:
            await handler_task
        except asyncio.CancelledError:
            if disconnected.is_set():
                self._logger.debug(f"Request cancelled: client disconnected ({path})")
            else:
                handler_task.cancel()
                raise
        finally:
            for task in (reader_task, cancel_task):
                task.cancel()
                with suppress(asyncio.CancelledError):
                    await task
