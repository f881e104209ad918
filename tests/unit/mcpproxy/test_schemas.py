# -*- coding: utf-8 -*-
"""Unit tests for gateway configuration and result schemas."""

# Third-Party
from pydantic import ValidationError
import pytest

# First-Party
from mcpproxy.config import settings
from mcpproxy.exceptions import ConfigurationError, InvalidUpstreamError
from mcpproxy.schemas import GatewayConfig, GatewayResult, HttpUpstreamConfig, StdioUpstreamConfig


def test_gateway_config_accepts_both_upstream_variants():
    stdio = GatewayConfig.from_input({"upstream": {"type": "stdio", "command": "npx", "args": ["-y", "srv"], "env": {"A": "1"}}})
    http = GatewayConfig.from_input({"upstream": {"type": "http", "url": "http://x/mcp", "headers": {"X-Key": "k"}}})

    assert isinstance(stdio.upstream, StdioUpstreamConfig)
    assert stdio.upstream.args == ["-y", "srv"]
    assert isinstance(http.upstream, HttpUpstreamConfig)
    assert http.upstream.headers == {"X-Key": "k"}


def test_gateway_config_defaults():
    cfg = GatewayConfig.from_input({})
    assert cfg.upstream is None
    assert cfg.listen.host == "127.0.0.1"
    assert cfg.listen.port is None
    assert cfg.log_dir == "./logs"
    assert cfg.container_port == 4000
    assert cfg.wants_container is False


def test_defaults_follow_runtime_settings(monkeypatch):
    monkeypatch.setattr(settings, "listen_host", "0.0.0.0")
    monkeypatch.setattr(settings, "container_port", 8080)

    cfg = GatewayConfig.from_input({})
    assert cfg.listen.host == "0.0.0.0"
    assert cfg.container_port == 8080

    explicit = GatewayConfig.from_input({"listen": {"host": "10.0.0.2"}, "containerPort": 9000})
    assert explicit.listen.host == "10.0.0.2"
    assert explicit.container_port == 9000


def test_gateway_config_accepts_camel_case_and_snake_case():
    camel = GatewayConfig.from_input({"logDir": "/tmp/l", "containerImage": "img", "containerVersion": "v1", "containerPort": 8000})
    snake = GatewayConfig.from_input({"log_dir": "/tmp/l", "container_image": "img", "container_version": "v1", "container_port": 8000})
    assert camel == snake
    assert camel.wants_container


@pytest.mark.parametrize(
    "upstream",
    [
        {"type": "stdio"},
        {"type": "stdio", "command": ""},
        {"type": "http"},
        {"type": "ftp", "url": "ftp://x"},
        {"type": "stdio", "command": "x", "url": "http://x/mcp"},
        {"type": "http", "url": "http://x/mcp", "command": "x"},
    ],
)
def test_invalid_upstream_is_rejected(upstream):
    with pytest.raises(InvalidUpstreamError) as exc_info:
        GatewayConfig.from_input({"upstream": upstream})
    assert str(exc_info.value).startswith("Invalid upstream configuration")


def test_container_version_without_image_is_rejected():
    with pytest.raises(ConfigurationError, match="must be set together"):
        GatewayConfig.from_input({"containerVersion": "v1"})


def test_unknown_top_level_key_is_rejected():
    with pytest.raises(ConfigurationError) as exc_info:
        GatewayConfig.from_input({"upstreams": []})
    assert not isinstance(exc_info.value, InvalidUpstreamError)


def test_listen_port_range():
    with pytest.raises(ConfigurationError):
        GatewayConfig.from_input({"listen": {"port": 70000}})


def test_from_input_returns_config_unchanged():
    cfg = GatewayConfig()
    assert GatewayConfig.from_input(cfg) is cfg


def test_gateway_result_output_shape():
    result = GatewayResult(url="http://127.0.0.1:1234/mcp", port=1234, api_key="0" * 64, container_id="c1")
    assert result.to_output() == {"url": "http://127.0.0.1:1234/mcp", "port": 1234, "apiKey": "0" * 64, "containerId": "c1"}


def test_gateway_result_omits_missing_container_id():
    result = GatewayResult(url="http://127.0.0.1:1234/mcp", port=1234, api_key="f" * 64)
    assert "containerId" not in result.to_output()


@pytest.mark.parametrize("api_key", ["abc", "G" * 64, "A" * 64])
def test_gateway_result_requires_64_lowercase_hex_key(api_key):
    with pytest.raises(ValidationError):
        GatewayResult(url="u", port=1, api_key=api_key)
