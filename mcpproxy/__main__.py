# -*- coding: utf-8 -*-
"""Location: ./mcpproxy/__main__.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0
Authors: MCP Proxy Contributors

Allow ``python -m mcpproxy``.
"""

# Standard
import sys

# First-Party
from mcpproxy.cli import main

if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
