# -*- coding: utf-8 -*-
"""Location: ./mcpproxy/cli.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0
Authors: MCP Proxy Contributors

MCP Proxy command line.

Starts one gateway from action inputs (``INPUT_*`` environment variables)
and/or command line flags, prints the startup result as JSON, publishes the
step outputs and serves until interrupted. A flag overrides the input of the
same name.

Usage::

    mcp-proxy --type stdio --command npx --args '["-y", "@modelcontextprotocol/server-everything"]'
    mcp-proxy --type http --url https://example.com/mcp --headers '{"Authorization": "Bearer x"}'
    INPUT_TYPE=http INPUT_URL=http://localhost:4000/mcp python -m mcpproxy

Examples:
    >>> args = _parse_args(["--type", "http", "--url", "http://x/mcp", "--port", "9000"])
    >>> (args.type, args.url, args.port)
    ('http', 'http://x/mcp', '9000')
    >>> merged = merge_inputs({"INPUT_URL": "http://old/mcp"}, args)
    >>> merged["INPUT_URL"], merged["INPUT_PORT"]
    ('http://x/mcp', '9000')
"""

# Standard
import argparse
import asyncio
import os
import sys
from typing import Dict, Mapping, Optional, Sequence

# Third-Party
import orjson

# First-Party
from mcpproxy import __version__
from mcpproxy.inputs import ActionInputs, ActionOutputs, build_gateway_config
from mcpproxy.orchestrator import start_proxy
from mcpproxy.runtimes.docker_backend import DockerContainerDriver
from mcpproxy.services.logging_service import LoggingService

__all__ = ["main"]  # for console-script entry-point

# argparse dest -> action input name
FLAG_INPUTS: Dict[str, str] = {
    "type": "type",
    "command": "command",
    "args": "args",
    "env": "env",
    "url": "url",
    "headers": "headers",
    "logs_dir": "logs-dir",
    "container_image": "container-image",
    "container_version": "container-version",
    "container_port": "container-port",
    "host": "host",
    "port": "port",
}


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    """Parse command line arguments.

    Every value stays a string; validation happens in ``build_gateway_config``
    so flags and inputs report the same errors.

    Args:
        argv: Sequence of command line arguments.

    Returns:
        argparse.Namespace: Parsed command line arguments.

    Examples:
        >>> args = _parse_args([])
        >>> args.type is None and args.log_level is None
        True
        >>> _parse_args(["--container", "img"]).container_image
        'img'
    """
    p = argparse.ArgumentParser(
        prog="mcp-proxy",
        description="Expose one MCP server (stdio subprocess, Streamable HTTP endpoint or container) behind an authenticated HTTP endpoint.",
    )
    p.add_argument("--type", help="Upstream type: stdio or http")
    p.add_argument("--command", help="Executable of the stdio upstream")
    p.add_argument("--args", help="JSON array of arguments for the stdio upstream")
    p.add_argument("--env", help="JSON object of environment variables for the stdio upstream")
    p.add_argument("--url", help="URL of the http upstream")
    p.add_argument("--headers", help="JSON object of headers for the http upstream")
    p.add_argument("--logs-dir", dest="logs_dir", help="Directory for the debug log file (default: ./logs)")
    p.add_argument("--container-image", "--container", dest="container_image", help="Container image to run as the upstream")
    p.add_argument("--container-version", dest="container_version", help="Container image tag")
    p.add_argument("--container-port", dest="container_port", help="Port the containerized server listens on (default: 4000)")
    p.add_argument("--host", help="Interface the gateway binds (default: 127.0.0.1)")
    p.add_argument("--port", help="Port the gateway binds (default: a free port)")
    p.add_argument("--log-level", dest="log_level", choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], type=str.upper, help="Log level")
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return p.parse_args(argv)


def merge_inputs(environ: Mapping[str, str], args: argparse.Namespace) -> Dict[str, str]:
    """Overlay command line flags onto the ``INPUT_*`` environment.

    Args:
        environ: Process environment.
        args: Parsed flags.

    Returns:
        Dict[str, str]: Environment copy where each given flag replaces its input.
    """
    merged = dict(environ)
    for dest, name in FLAG_INPUTS.items():
        value = getattr(args, dest, None)
        if value is not None:
            merged[ActionInputs.env_name(name)] = value
    return merged


async def run(environ: Mapping[str, str], log_level: Optional[str] = None, outputs: Optional[ActionOutputs] = None) -> int:
    """Start the gateway, publish its outputs and serve until it shuts down.

    Args:
        environ: Environment carrying the action inputs.
        log_level: Level of the ``mcpproxy`` logger.
        outputs: Output writer; built over ``environ`` when omitted.

    Returns:
        int: Process exit status.
    """
    outputs = outputs or ActionOutputs(environ)
    try:
        config = build_gateway_config(ActionInputs(environ))
    except Exception as exc:
        outputs.set_failed(str(exc))
        return 1

    log_service = LoggingService(config.log_dir, level=log_level)
    logger = log_service.initialize()
    try:
        try:
            result, gateway = await start_proxy(config, logger=logger, container_driver=DockerContainerDriver(logger=log_service.get_logger("runtime")))
        except Exception as exc:
            outputs.set_failed(str(exc))
            return 1

        # The runner masks only lines printed after the mask command.
        outputs.add_mask(result.api_key)
        sys.stdout.write(orjson.dumps(result.to_output(), option=orjson.OPT_INDENT_2).decode("utf-8") + "\n")
        sys.stdout.flush()
        outputs.publish(result)

        try:
            await gateway.wait_closed()
        finally:
            await gateway.shutdown()
        logger.info("MCP proxy stopped")
        return 0
    finally:
        log_service.shutdown()


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Console-script entry point.

    Args:
        argv: Command line arguments; defaults to ``sys.argv[1:]``.

    Returns:
        int: Process exit status.
    """
    args = _parse_args(sys.argv[1:] if argv is None else argv)
    environ = merge_inputs(os.environ, args)
    try:
        return asyncio.run(run(environ, log_level=args.log_level))
    except KeyboardInterrupt:
        return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
