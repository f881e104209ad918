# -*- coding: utf-8 -*-
"""Unit tests for the client disconnect middleware."""

# Standard
import asyncio

# Third-Party
import pytest

# First-Party
from mcpproxy.middleware.client_disconnect import ClientDisconnectMiddleware


def _scope(path="/mcp", scope_type="http"):
    return {"type": scope_type, "method": "POST", "path": path, "headers": []}


@pytest.mark.asyncio
async def test_handler_is_cancelled_when_client_disconnects():
    cancelled = asyncio.Event()
    messages = [{"type": "http.request", "body": b"{}", "more_body": False}, {"type": "http.disconnect"}]
    sent = []

    async def receive():
        if messages:
            msg = messages.pop(0)
            if msg["type"] == "http.disconnect":
                await asyncio.sleep(0.01)
            return msg
        await asyncio.sleep(10)

    async def send(message):
        sent.append(message)

    async def slow_app(scope, receive, send):
        await receive()
        try:
            await asyncio.sleep(10)
        except asyncio.CancelledError:
            cancelled.set()
            raise

    await asyncio.wait_for(ClientDisconnectMiddleware(slow_app)(_scope(), receive, send), timeout=2)
    assert cancelled.is_set()
    assert sent == []


@pytest.mark.asyncio
async def test_completed_request_is_untouched():
    messages = [{"type": "http.request", "body": b"ping", "more_body": False}]

    async def receive():
        if messages:
            return messages.pop(0)
        await asyncio.sleep(10)

    sent = []

    async def send(message):
        sent.append(message)

    async def app(scope, receive, send):
        body = (await receive())["body"]
        await send({"type": "http.response.start", "status": 200, "headers": []})
        await send({"type": "http.response.body", "body": body})

    await ClientDisconnectMiddleware(app)(_scope(), receive, send)
    assert [m["type"] for m in sent] == ["http.response.start", "http.response.body"]
    assert sent[1]["body"] == b"ping"


@pytest.mark.asyncio
async def test_non_http_scope_passes_through():
    calls = []

    async def app(scope, receive, send):
        calls.append(scope["type"])

    middleware = ClientDisconnectMiddleware(app)
    await middleware(_scope(scope_type="lifespan"), None, None)
    await middleware(_scope(scope_type="websocket"), None, None)
    assert calls == ["lifespan", "websocket"]
