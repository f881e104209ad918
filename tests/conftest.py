# -*- coding: utf-8 -*-
"""Location: ./tests/conftest.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0
Authors: MCP Proxy Contributors
"""

# Standard
import logging
import os
import sys
from unittest.mock import AsyncMock, MagicMock

# Third-Party
import httpx
import pytest
import pytest_asyncio

# First-Party
from mcpproxy.server import ForwardingGateway

API_KEY = "ab" * 32
FIXTURES_DIR = os.path.join(os.path.dirname(__file__), "fixtures")
ECHO_SERVER = os.path.join(FIXTURES_DIR, "echo_stdio_server.py")


@pytest.fixture(autouse=True)
def clean_action_env(monkeypatch):
    """Keep the runner's own INPUT_* and GITHUB_OUTPUT out of the tests."""
    for key in list(os.environ):
        if key.startswith("INPUT_") or key == "GITHUB_OUTPUT":
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def api_key():
    return API_KEY


@pytest.fixture
def auth_headers(api_key):
    return {"Authorization": f"Bearer {api_key}"}


@pytest.fixture
def test_logger():
    logger = logging.getLogger("mcpproxy.tests")
    logger.setLevel(logging.DEBUG)
    return logger


@pytest.fixture
def fake_upstream():
    """Stand-in for an initialized UpstreamSession."""
    upstream = MagicMock()
    upstream.request = AsyncMock(return_value={"tools": []})
    upstream.notify = AsyncMock(return_value=None)
    upstream.aclose = AsyncMock(return_value=None)
    upstream.server_capabilities = {"tools": {"listChanged": False}}
    upstream.server_info = {"name": "upstream", "version": "1.0.0"}
    upstream.instructions = None
    upstream.closed = False
    return upstream


@pytest.fixture
def gateway(fake_upstream, api_key, test_logger):
    return ForwardingGateway(fake_upstream, api_key, logger=test_logger)


@pytest_asyncio.fixture
async def client(gateway):
    transport = httpx.ASGITransport(app=gateway.app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as c:
        yield c


@pytest.fixture
def echo_server_command():
    """Command line that starts the stdio echo MCP server."""
    return sys.executable, [ECHO_SERVER]
