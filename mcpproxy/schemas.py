# -*- coding: utf-8 -*-
"""Location: ./mcpproxy/schemas.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0
Authors: MCP Proxy Contributors

Gateway configuration and result schemas.

The upstream definition is a tagged union discriminated on ``type``: a
``stdio`` upstream has a command and never a URL, an ``http`` upstream has a
URL and never a command.

Examples:
    >>> cfg = GatewayConfig.from_input({"upstream": {"type": "http", "url": "http://x/mcp"}})
    >>> cfg.upstream.url
    'http://x/mcp'
    >>> cfg.listen.host
    '127.0.0.1'
    >>> cfg.container_port
    4000
    >>> GatewayConfig.from_input({"upstream": {"type": "stdio"}})
    Traceback (most recent call last):
    ...
    mcpproxy.exceptions.InvalidUpstreamError: Invalid upstream configuration: command: Field required
"""

# Standard
from typing import Annotated, Any, Dict, List, Literal, Mapping, Optional, Union

# Third-Party
from pydantic import Field, model_validator, ValidationError

# First-Party
from mcpproxy.config import settings
from mcpproxy.exceptions import ConfigurationError, InvalidUpstreamError
from mcpproxy.utils.base_models import BaseModelWithConfigDict

DEFAULT_LOG_DIR = "./logs"


class StdioUpstreamConfig(BaseModelWithConfigDict):
    """Upstream reached by spawning a subprocess that speaks MCP over stdio."""

    type: Literal["stdio"] = "stdio"
    command: str = Field(..., min_length=1, description="Executable path or name")
    args: List[str] = Field(default_factory=list, description="Arguments passed to the command")
    env: Optional[Dict[str, str]] = Field(default=None, description="Extra environment for the subprocess")


class HttpUpstreamConfig(BaseModelWithConfigDict):
    """Upstream reached over MCP Streamable HTTP."""

    type: Literal["http"] = "http"
    url: str = Field(..., min_length=1, description="Absolute URL of the upstream MCP endpoint")
    headers: Optional[Dict[str, str]] = Field(default=None, description="Headers sent with every upstream request")


UpstreamConfig = Annotated[Union[StdioUpstreamConfig, HttpUpstreamConfig], Field(discriminator="type")]


class ListenConfig(BaseModelWithConfigDict):
    """Where the gateway listens. A missing port is allocated at start; the host defaults to ``settings.listen_host``."""

    host: str = Field(default_factory=lambda: settings.listen_host, min_length=1)
    port: Optional[int] = Field(default=None, ge=1, le=65535)


class GatewayConfig(BaseModelWithConfigDict):
    """Everything one gateway run needs."""

    upstream: Optional[UpstreamConfig] = None
    listen: ListenConfig = Field(default_factory=ListenConfig)
    log_dir: str = Field(default=DEFAULT_LOG_DIR)
    container_image: Optional[str] = None
    container_version: Optional[str] = None
    container_port: int = Field(default_factory=lambda: settings.container_port, ge=1, le=65535)

    @model_validator(mode="after")
    def validate_container(self) -> "GatewayConfig":
        """Require container image and version together.

        Returns:
            GatewayConfig: The validated configuration.

        Raises:
            ValueError: If only one of image and version is set.
        """
        if bool(self.container_image) != bool(self.container_version):
            raise ValueError("container_image and container_version must be set together")
        return self

    @property
    def wants_container(self) -> bool:
        """Whether this run provisions the upstream as a container.

        Returns:
            bool: True when both image and version are configured.

        Examples:
            >>> GatewayConfig().wants_container
            False
            >>> GatewayConfig(container_image="img", container_version="v1").wants_container
            True
        """
        return bool(self.container_image and self.container_version)

    @classmethod
    def from_input(cls, data: Union["GatewayConfig", Mapping[str, Any]]) -> "GatewayConfig":
        """Validate a raw mapping into a configuration record.

        Args:
            data: A ready ``GatewayConfig`` or a mapping using snake_case or camelCase keys.

        Returns:
            GatewayConfig: The validated configuration.

        Raises:
            InvalidUpstreamError: If the ``upstream`` entry is malformed.
            ConfigurationError: For any other validation failure.

        Examples:
            >>> GatewayConfig.from_input({"containerImage": "img", "containerVersion": "v1"}).container_image
            'img'
            >>> GatewayConfig.from_input({"containerImage": "img"})
            Traceback (most recent call last):
            ...
            mcpproxy.exceptions.ConfigurationError: Invalid gateway configuration: container_image and container_version must be set together
        """
        if isinstance(data, GatewayConfig):
            return data
        try:
            return cls.model_validate(dict(data))
        except ValidationError as exc:
            upstream_errors = [err for err in exc.errors() if err["loc"] and err["loc"][0] == "upstream"]
            if upstream_errors:
                raise InvalidUpstreamError(_describe(upstream_errors)) from exc
            raise ConfigurationError(f"Invalid gateway configuration: {_describe(exc.errors())}") from exc


class GatewayResult(BaseModelWithConfigDict):
    """Connection details handed back once the gateway is running."""

    url: str
    port: int
    api_key: str = Field(..., min_length=64, max_length=64, pattern=r"^[0-9a-f]{64}$")
    container_id: Optional[str] = None

    def to_output(self) -> Dict[str, Any]:
        """Serialize with camelCase keys, dropping ``containerId`` when absent.

        Returns:
            Dict[str, Any]: The caller-visible startup result.

        Examples:
            >>> GatewayResult(url="http://127.0.0.1:1/mcp", port=1, api_key="a" * 64).to_output()["port"]
            1
            >>> "containerId" in GatewayResult(url="u", port=1, api_key="a" * 64).to_output()
            False
        """
        return self.to_dict(use_alias=True)


def _describe(errors: List[Dict[str, Any]]) -> str:
    """Flatten pydantic error entries into one readable line.

    Args:
        errors: Entries from ``ValidationError.errors()``.

    Returns:
        str: ``field: message`` pairs joined by ``;``.
    """
    parts = []
    for err in errors:
        # Drop the union tag ("stdio"/"http") pydantic inserts into the location.
        loc = [str(p) for p in err["loc"] if p not in ("upstream", "stdio", "http")]
        message = err["msg"]
        if message.startswith("Value error, "):
            message = message[len("Value error, ") :]
        parts.append(f"{'.'.join(loc)}: {message}" if loc else message)
    return "; ".join(parts)
