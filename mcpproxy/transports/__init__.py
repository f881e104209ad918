# -*- coding: utf-8 -*-
"""Location: ./mcpproxy/transports/__init__.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0
Authors: MCP Proxy Contributors

Transports Package.
Per-request JSON-RPC transport used by the forwarding server.
"""
