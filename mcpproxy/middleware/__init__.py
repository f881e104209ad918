# -*- coding: utf-8 -*-
"""Location: ./mcpproxy/middleware/__init__.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0
Authors: MCP Proxy Contributors

Middleware Package.
ASGI middleware for client disconnect handling and request logging.
"""
