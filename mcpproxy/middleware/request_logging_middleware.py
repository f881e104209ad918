# -*- coding: utf-8 -*-
"""Location: ./mcpproxy/middleware/request_logging_middleware.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0
Authors: MCP Proxy Contributors

Request Logging Middleware.

Logs each inbound request with its headers and JSON-RPC body. The bearer
token and any sensitive JSON keys are masked before the record is written.

Examples:
    >>> mask_sensitive_headers({"Authorization": "Bearer abc", "Accept": "application/json"})
    {'Authorization': '******', 'Accept': 'application/json'}
    >>> mask_sensitive_data({"params": {"arguments": {"token": "t", "q": 1}}})
    {'params': {'arguments': {'token': '******', 'q': 1}}}
"""

# Standard
import logging
from typing import Any, Callable, Dict, Mapping, Optional

# Third-Party
import orjson
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

LOGGER = logging.getLogger(__name__)

MASK = "******"
SENSITIVE_KEYS = {"password", "secret", "token", "apikey", "api_key", "access_token", "refresh_token", "client_secret", "authorization"}


def mask_sensitive_data(data: Any) -> Any:
    """Recursively mask sensitive keys in dict/list payloads.

    Args:
        data: Decoded JSON value.

    Returns:
        Any: Copy of ``data`` with sensitive values replaced.
    """
    if isinstance(data, dict):
        return {k: (MASK if k.lower() in SENSITIVE_KEYS else mask_sensitive_data(v)) for k, v in data.items()}
    if isinstance(data, list):
        return [mask_sensitive_data(i) for i in data]
    return data


def mask_sensitive_headers(headers: Mapping[str, str]) -> Dict[str, str]:
    """Mask sensitive headers like Authorization.

    Args:
        headers: Request headers.

    Returns:
        Dict[str, str]: Headers with credentials masked.
    """
    masked = {}
    for key, value in headers.items():
        key_lower = key.lower()
        if key_lower in SENSITIVE_KEYS or "auth" in key_lower or key_lower == "cookie":
            masked[key] = MASK
        else:
            masked[key] = value
    return masked


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log request line, masked headers and masked body at INFO level."""

    def __init__(self, app, logger: Optional[logging.Logger] = None, log_requests: bool = True, max_body_size: int = 4096):
        super().__init__(app)
        self.log_requests = log_requests
        self.max_body_size = max_body_size
        self._logger = logger or LOGGER

    async def dispatch(self, request: Request, call_next: Callable):
        if not self.log_requests or not self._logger.isEnabledFor(logging.INFO):
            return await call_next(request)

        try:
            body = await request.body()
            truncated = len(body) > self.max_body_size
            body_to_log = body[: self.max_body_size]

            payload = body_to_log.decode("utf-8", errors="ignore").strip()
            if not payload:
                payload_str = "<empty>"
            else:
                try:
                    payload_str = orjson.dumps(mask_sensitive_data(orjson.loads(payload))).decode("utf-8")
                except orjson.JSONDecodeError:
                    payload_str = payload
                    if any(key in payload.lower() for key in SENSITIVE_KEYS):
                        payload_str = "<contains sensitive data - masked>"

            self._logger.info(
                f"Incoming request: {request.method} {request.url.path} "
                f"headers={mask_sensitive_headers(request.headers)} "
                f"body={payload_str}{'... [truncated]' if truncated else ''}"
            )
        except Exception as e:
            self._logger.warning(f"Failed to log request body: {e}")

        return await call_next(request)
