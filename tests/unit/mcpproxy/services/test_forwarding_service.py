# -*- coding: utf-8 -*-
"""Unit tests for the request handler registry."""

# Third-Party
from mcp import types
from mcp.shared.version import SUPPORTED_PROTOCOL_VERSIONS
import pytest

# First-Party
from mcpproxy import __version__
from mcpproxy.services.forwarding_service import HandlerRegistry, negotiate_protocol_version


def test_builtin_handlers_are_explicit(fake_upstream):
    registry = HandlerRegistry(fake_upstream)
    assert registry.methods == ["initialize", "tools/list"]
    assert registry.handler_for("tools/list") == registry.forward
    assert registry.handler_for("resources/read") == registry.forward


@pytest.mark.asyncio
async def test_initialize_is_answered_locally(fake_upstream):
    registry = HandlerRegistry(fake_upstream)
    requested = SUPPORTED_PROTOCOL_VERSIONS[0]

    result = await registry.dispatch("initialize", {"protocolVersion": requested, "capabilities": {}, "clientInfo": {"name": "c", "version": "1"}})

    assert result == {
        "protocolVersion": requested,
        "capabilities": {"tools": {"listChanged": False}},
        "serverInfo": {"name": "mcp-proxy", "version": __version__},
    }
    fake_upstream.request.assert_not_awaited()


@pytest.mark.asyncio
async def test_initialize_includes_upstream_instructions(fake_upstream):
    fake_upstream.instructions = "call echo first"
    result = await HandlerRegistry(fake_upstream).dispatch("initialize", {"protocolVersion": "1900-01-01"})
    assert result["instructions"] == "call echo first"
    assert result["protocolVersion"] == types.LATEST_PROTOCOL_VERSION


@pytest.mark.asyncio
async def test_tools_list_is_forwarded(fake_upstream):
    fake_upstream.request.return_value = {"tools": [{"name": "echo"}]}
    result = await HandlerRegistry(fake_upstream).dispatch("tools/list", None)
    assert result == {"tools": [{"name": "echo"}]}
    fake_upstream.request.assert_awaited_once_with("tools/list", None)


@pytest.mark.asyncio
async def test_unregistered_methods_forward_verbatim(fake_upstream):
    fake_upstream.request.return_value = {"content": [{"type": "text", "text": "hi"}]}
    params = {"name": "echo", "arguments": {"text": "hi"}}
    result = await HandlerRegistry(fake_upstream).dispatch("tools/call", params)
    assert result["content"][0]["text"] == "hi"
    fake_upstream.request.assert_awaited_once_with("tools/call", params)


@pytest.mark.asyncio
async def test_registered_handler_overrides_default(fake_upstream):
    registry = HandlerRegistry(fake_upstream)

    async def ping(method, params):
        return {}

    registry.register("ping", ping)
    assert await registry.dispatch("ping") == {}
    fake_upstream.request.assert_not_awaited()


@pytest.mark.asyncio
async def test_initialized_notification_is_absorbed(fake_upstream):
    registry = HandlerRegistry(fake_upstream)
    await registry.dispatch_notification("notifications/initialized")
    fake_upstream.notify.assert_not_awaited()

    await registry.dispatch_notification("notifications/cancelled", {"requestId": 1})
    fake_upstream.notify.assert_awaited_once_with("notifications/cancelled", {"requestId": 1})


def test_negotiate_protocol_version_echoes_supported():
    for version in SUPPORTED_PROTOCOL_VERSIONS:
        assert negotiate_protocol_version(version) == version
