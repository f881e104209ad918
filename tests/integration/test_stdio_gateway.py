# -*- coding: utf-8 -*-
"""Location: ./tests/integration/test_stdio_gateway.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0
Authors: MCP Proxy Contributors

End-to-end tests: a real stdio MCP server behind a running gateway.

The upstream is ``tests/fixtures/echo_stdio_server.py`` started with the
current interpreter; clients talk to the gateway over real HTTP.
"""

# Standard
import json

# Third-Party
import httpx
import pytest
import pytest_asyncio

# First-Party
from mcpproxy.exceptions import ConnectError
from mcpproxy.orchestrator import GatewayState, start_proxy
from mcpproxy.schemas import StdioUpstreamConfig
from mcpproxy.services.upstream_service import connect_upstream


@pytest_asyncio.fixture
async def running(echo_server_command, test_logger):
    command, args = echo_server_command
    config = {"upstream": {"type": "stdio", "command": command, "args": args, "env": {"PROXY_MARKER": "from-gateway"}}}
    result, gateway = await start_proxy(config, logger=test_logger, handle_signals=False)
    try:
        yield result, gateway
    finally:
        await gateway.shutdown()


async def rpc(result, method, params=None, request_id=1):
    body = {"jsonrpc": "2.0", "id": request_id, "method": method}
    if params is not None:
        body["params"] = params
    async with httpx.AsyncClient(timeout=30) as client:
        return await client.post(result.url, json=body, headers={"Authorization": f"Bearer {result.api_key}"})


@pytest.mark.asyncio
async def test_tools_list_through_gateway(running):
    result, gateway = running
    assert gateway.state is GatewayState.RUNNING

    response = await rpc(result, "tools/list")

    assert response.status_code == 200
    names = {tool["name"] for tool in response.json()["result"]["tools"]}
    assert names == {"echo", "env"}


@pytest.mark.asyncio
async def test_tools_call_through_gateway(running):
    result, _ = running
    response = await rpc(result, "tools/call", {"name": "echo", "arguments": {"text": "hello"}}, request_id="call-1")

    assert response.status_code == 200
    payload = response.json()
    assert payload["id"] == "call-1"
    assert json.loads(payload["result"]["content"][0]["text"]) == {"ok": True, "echo": "hello"}


@pytest.mark.asyncio
async def test_upstream_env_reaches_the_subprocess(running):
    result, _ = running
    response = await rpc(result, "tools/call", {"name": "env", "arguments": {"name": "PROXY_MARKER"}})
    assert response.json()["result"]["content"][0]["text"] == "from-gateway"


@pytest.mark.asyncio
async def test_initialize_reports_upstream_capabilities(running):
    result, _ = running
    response = await rpc(
        result,
        "initialize",
        {"protocolVersion": "2025-03-26", "capabilities": {}, "clientInfo": {"name": "it", "version": "0"}},
    )
    body = response.json()["result"]
    assert "tools" in body["capabilities"]
    assert body["protocolVersion"]


@pytest.mark.asyncio
async def test_unimplemented_upstream_method_is_jsonrpc_error(running):
    result, _ = running
    response = await rpc(result, "resources/list")
    assert response.status_code == 200
    assert "error" in response.json()
    assert isinstance(response.json()["error"]["code"], int)


@pytest.mark.asyncio
async def test_wrong_token_is_rejected(running):
    result, _ = running
    async with httpx.AsyncClient() as client:
        response = await client.post(result.url, json={"jsonrpc": "2.0", "id": 1, "method": "tools/list"}, headers={"Authorization": "Bearer nope"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_missing_command_fails_to_connect(test_logger):
    cfg = StdioUpstreamConfig(command="definitely-not-an-mcp-server-binary")
    with pytest.raises(ConnectError, match="Failed to connect"):
        await connect_upstream(cfg, logger=test_logger, connect_timeout=10)
