# -*- coding: utf-8 -*-
"""Location: ./mcpproxy/utils/orjson_response.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0
Authors: MCP Proxy Contributors

JSON response rendered with orjson.

Examples:
    >>> ORJSONResponse({"error": "unauthorized"}, status_code=401).body
    b'{"error":"unauthorized"}'
"""

# Standard
from typing import Any

# Third-Party
import orjson
from starlette.responses import JSONResponse


class ORJSONResponse(JSONResponse):
    """``application/json`` response serialized with orjson."""

    def render(self, content: Any) -> bytes:
        """Serialize ``content`` to compact JSON bytes.

        Args:
            content: JSON-compatible value.

        Returns:
            bytes: Encoded body.
        """
        return orjson.dumps(content, option=orjson.OPT_NON_STR_KEYS)
