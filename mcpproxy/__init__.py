# -*- coding: utf-8 -*-
"""Location: ./mcpproxy/__init__.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0
Authors: MCP Proxy Contributors

MCP Proxy.

Exposes one upstream MCP server, reached over stdio, Streamable HTTP or as a
locally provisioned container, behind a single bearer-token protected HTTP
endpoint.
"""

__author__ = "MCP Proxy Contributors"
__copyright__ = "Copyright 2025"
__license__ = "Apache 2.0"
__version__ = "0.1.0"
__description__ = "MCP Proxy - authenticated HTTP gateway for a single MCP server"
