# -*- coding: utf-8 -*-
"""Location: ./tests/fixtures/echo_stdio_server.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0
Authors: MCP Proxy Contributors

Minimal MCP server speaking over stdio, used by the end-to-end tests.

Tools:
- ``echo``: returns ``{"ok": true, "echo": <text>}``
- ``env``: returns the value of the environment variable ``name``
"""

# Standard
import asyncio
import json
import logging
import os
import sys

# Third-Party
from mcp.server import NotificationOptions, Server
from mcp.server.models import InitializationOptions
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stderr)],
)
log = logging.getLogger("echo_stdio_server")

server = Server("echo-stdio-server")


@server.list_tools()
async def list_tools() -> list[Tool]:
    return [
        Tool(
            name="echo",
            description="Return the provided text.",
            inputSchema={
                "type": "object",
                "properties": {"text": {"type": "string"}},
                "required": ["text"],
            },
        ),
        Tool(
            name="env",
            description="Return the value of an environment variable.",
            inputSchema={
                "type": "object",
                "properties": {"name": {"type": "string"}},
                "required": ["name"],
            },
        ),
    ]


@server.call_tool()
async def call_tool(name: str, arguments: dict) -> list[TextContent]:
    if name == "echo":
        return [TextContent(type="text", text=json.dumps({"ok": True, "echo": arguments["text"]}))]
    if name == "env":
        return [TextContent(type="text", text=os.environ.get(arguments["name"], ""))]
    return [TextContent(type="text", text=json.dumps({"ok": False, "error": f"unknown tool: {name}"}))]


async def main() -> None:
    log.info("Starting echo server (stdio)...")
    async with stdio_server() as (read_stream, write_stream):
        await server.run(
            read_stream,
            write_stream,
            InitializationOptions(
                server_name="echo-stdio-server",
                server_version="0.1.0",
                capabilities=server.get_capabilities(notification_options=NotificationOptions(), experimental_capabilities={}),
            ),
        )


if __name__ == "__main__":  # pragma: no cover
    asyncio.run(main())
