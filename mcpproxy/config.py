# -*- coding: utf-8 -*-
"""Location: ./mcpproxy/config.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0
Authors: MCP Proxy Contributors

MCP Proxy runtime settings.

Tunables that are not part of the per-run gateway configuration (timeouts,
the container engine binary, log levels). Values come from environment
variables prefixed with ``MCP_PROXY_`` or from a ``.env`` file.

Examples:
    >>> from mcpproxy.config import Settings
    >>> s = Settings(_env_file=None)
    >>> s.container_engine
    'docker'
    >>> s.container_port
    4000
    >>> s.container_ready_wait
    3.0
"""

# Standard
from functools import lru_cache

# Third-Party
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """MCP Proxy settings loaded from the environment."""

    model_config = SettingsConfigDict(env_prefix="MCP_PROXY_", env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Logging
    log_level: str = Field(default="INFO", description="Level of the mcpproxy logger")
    log_requests: bool = Field(default=False, description="Log every inbound HTTP request (headers masked)")
    server_log_level: str = Field(default="warning", description="uvicorn log level")

    # Listener
    listen_host: str = Field(default="127.0.0.1", description="Default bind address of the gateway")
    max_request_body_bytes: int = Field(default=4 * 1024 * 1024, ge=1, description="Largest accepted request body")

    # Container provisioning
    container_engine: str = Field(default="docker", description="Container engine binary (docker, podman)")
    container_port: int = Field(default=4000, ge=1, le=65535, description="Port the containerized server listens on")
    container_ready_wait: float = Field(default=3.0, ge=0, description="Fixed grace period after container start")
    container_ready_timeout: float = Field(default=0.0, ge=0, description="Bounded TCP readiness poll after the grace period; 0 disables")
    container_ready_poll_interval: float = Field(default=0.5, gt=0)
    container_start_timeout: int = Field(default=300, ge=1, description="Timeout for the engine run command")
    container_stop_timeout: int = Field(default=60, ge=1, description="Timeout for the engine stop command")

    # Upstream
    upstream_connect_timeout: float = Field(default=30.0, gt=0, description="Bound on connect + initialize")
    upstream_request_timeout: float = Field(default=60.0, gt=0, description="Bound on each forwarded call")

    @field_validator("log_level")
    @classmethod
    def _upper_log_level(cls, value: str) -> str:
        """Normalize the log level name.

        Args:
            value: Level name from the environment.

        Returns:
            str: Upper-cased level name.
        """
        return value.upper()


@lru_cache()
def get_settings() -> Settings:
    """Return the cached settings instance.

    Returns:
        Settings: Process-wide settings.
    """
    return Settings()


settings = get_settings()
