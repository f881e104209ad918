# -*- coding: utf-8 -*-
"""Location: ./mcpproxy/utils/__init__.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0
Authors: MCP Proxy Contributors

Utils Package.
"""
