# -*- coding: utf-8 -*-
"""Location: ./mcpproxy/services/__init__.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0
Authors: MCP Proxy Contributors

Services Package.
Exposes the gateway services:
- Upstream connector
- Request handler registry
- Debug log sink
"""
