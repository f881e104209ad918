# -*- coding: utf-8 -*-
"""Location: ./mcpproxy/inputs.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0
Authors: MCP Proxy Contributors

Action inputs and outputs.

Reads the gateway configuration the way a GitHub Actions step receives it:
every input ``name`` arrives as the environment variable ``INPUT_<NAME>``
(upper-cased, spaces replaced by underscores). JSON-shaped inputs are
validated before anything reaches the orchestrator.

Outputs are appended to the file named by ``GITHUB_OUTPUT`` using the
heredoc-delimiter format, or printed as workflow commands when that file is
not set.

Examples:
    >>> inputs = ActionInputs({"INPUT_TYPE": "http", "INPUT_URL": " http://x/mcp "})
    >>> inputs.get("url")
    'http://x/mcp'
    >>> cfg = build_gateway_config(inputs)
    >>> (cfg.upstream.type, cfg.log_dir)
    ('http', './logs')
    >>> ActionInputs({"INPUT_ENV": "[1]"}).get_json_object("env")
    Traceback (most recent call last):
    ...
    mcpproxy.exceptions.InputError: Invalid JSON for input 'env': Input 'env' must be a JSON object, received: array
"""

# Standard
import os
import sys
from typing import Any, Dict, List, Mapping, Optional, TextIO
import uuid

# Third-Party
import orjson

# First-Party
from mcpproxy.exceptions import InputError
from mcpproxy.schemas import DEFAULT_LOG_DIR, GatewayConfig, GatewayResult


def js_type_name(value: Any) -> str:
    """Name a decoded JSON value the way JavaScript's ``typeof`` would.

    Args:
        value: Decoded JSON value.

    Returns:
        str: ``string``, ``number``, ``boolean`` or ``object``.

    Examples:
        >>> [js_type_name(v) for v in ("a", 1, 1.5, True, None, {}, [])]
        ['string', 'number', 'number', 'boolean', 'object', 'object', 'object']
    """
    if isinstance(value, str):
        return "string"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    return "object"


def validate_string_record(record: Mapping[str, Any], name: str) -> Dict[str, str]:
    """Require every value of ``record`` to be a string.

    Args:
        record: Decoded JSON object.
        name: Input name, for the error message.

    Returns:
        Dict[str, str]: The same mapping.

    Raises:
        InputError: On the first non-string value.

    Examples:
        >>> validate_string_record({"a": "1", "b": 2}, "env")
        Traceback (most recent call last):
        ...
        mcpproxy.exceptions.InputError: Input 'env' must contain only string values, but key 'b' has type number
    """
    result = {}
    for key, value in record.items():
        if not isinstance(value, str):
            raise InputError(f"Input '{name}' must contain only string values, but key '{key}' has type {js_type_name(value)}")
        result[key] = value
    return result


def validate_string_list(items: List[Any], name: str) -> List[str]:
    """Require every item of ``items`` to be a string.

    Args:
        items: Decoded JSON array.
        name: Input name, for the error message.

    Returns:
        List[str]: The same items.

    Raises:
        InputError: On the first non-string item.
    """
    for index, item in enumerate(items):
        if not isinstance(item, str):
            raise InputError(f"Input '{name}' must contain only string values, but index {index} has type {js_type_name(item)}")
    return list(items)


class ActionInputs:
    """Typed access to ``INPUT_*`` environment variables."""

    def __init__(self, environ: Optional[Mapping[str, str]] = None):
        self._environ = os.environ if environ is None else environ

    @staticmethod
    def env_name(name: str) -> str:
        """Environment variable carrying input ``name``.

        Args:
            name: Input name, e.g. ``logs-dir``.

        Returns:
            str: e.g. ``INPUT_LOGS-DIR``.

        Examples:
            >>> ActionInputs.env_name("container version")
            'INPUT_CONTAINER_VERSION'
        """
        return f"INPUT_{name.replace(' ', '_').upper()}"

    def get(self, name: str, required: bool = False) -> str:
        """Return the trimmed input value, or ``""`` when unset.

        Args:
            name: Input name.
            required: Raise when the input is empty.

        Returns:
            str: The value.

        Raises:
            InputError: If ``required`` and the input is empty.
        """
        value = self._environ.get(self.env_name(name), "").strip()
        if required and not value:
            raise InputError(f"Input required and not supplied: {name}")
        return value

    def get_json_object(self, name: str) -> Optional[Dict[str, Any]]:
        """Parse a JSON object input.

        Args:
            name: Input name.

        Returns:
            Optional[Dict[str, Any]]: The object, or None when the input is empty.

        Raises:
            InputError: If the value is not valid JSON or not an object.
        """
        raw = self.get(name)
        if not raw:
            return None
        try:
            parsed = orjson.loads(raw)
            if not isinstance(parsed, dict):
                kind = "array" if isinstance(parsed, list) else js_type_name(parsed)
                raise InputError(f"Input '{name}' must be a JSON object, received: {kind}")
        except (orjson.JSONDecodeError, InputError) as exc:
            raise InputError(f"Invalid JSON for input '{name}': {exc}") from exc
        return parsed

    def get_json_array(self, name: str) -> Optional[List[Any]]:
        """Parse a JSON array input.

        Args:
            name: Input name.

        Returns:
            Optional[List[Any]]: The array, or None when the input is empty.

        Raises:
            InputError: If the value is not valid JSON or not an array.

        Examples:
            >>> ActionInputs({"INPUT_ARGS": '["-y", "server"]'}).get_json_array("args")
            ['-y', 'server']
        """
        raw = self.get(name)
        if not raw:
            return None
        try:
            parsed = orjson.loads(raw)
            if not isinstance(parsed, list):
                raise InputError(f"Input '{name}' must be a JSON array, received: {js_type_name(parsed)}")
        except (orjson.JSONDecodeError, InputError) as exc:
            raise InputError(f"Invalid JSON array for input '{name}': {exc}") from exc
        return parsed

    def get_port(self, name: str) -> Optional[int]:
        """Parse a TCP port input.

        Args:
            name: Input name.

        Returns:
            Optional[int]: The port, or None when the input is empty.

        Raises:
            InputError: If the value is not an integer in 1-65535.

        Examples:
            >>> ActionInputs({"INPUT_PORT": "8080"}).get_port("port")
            8080
            >>> ActionInputs({"INPUT_PORT": "http"}).get_port("port")
            Traceback (most recent call last):
            ...
            mcpproxy.exceptions.InputError: Input 'port' must be a port number, received: 'http'
        """
        raw = self.get(name)
        if not raw:
            return None
        if not raw.isdigit() or not 0 < int(raw) < 65536:
            raise InputError(f"Input '{name}' must be a port number, received: {raw!r}")
        return int(raw)


def build_gateway_config(inputs: ActionInputs) -> GatewayConfig:
    """Assemble and validate the gateway configuration from action inputs.

    Args:
        inputs: Input source.

    Returns:
        GatewayConfig: The validated configuration.

    Raises:
        InputError: If an input is missing or malformed.
        ConfigurationError: If the assembled configuration is invalid.
    """
    upstream_type = inputs.get("type", required=True)
    logs_dir = inputs.get("logs-dir") or DEFAULT_LOG_DIR

    env_obj = inputs.get_json_object("env")
    env = validate_string_record(env_obj, "env") if env_obj is not None else None
    headers_obj = inputs.get_json_object("headers")
    headers = validate_string_record(headers_obj, "headers") if headers_obj is not None else None
    args_list = inputs.get_json_array("args")
    args = validate_string_list(args_list, "args") if args_list is not None else None

    upstream: Dict[str, Any]
    if upstream_type == "stdio":
        command = inputs.get("command")
        if not command:
            raise InputError("Input 'command' is required when type is 'stdio'")
        upstream = {"type": "stdio", "command": command, "env": env}
        if args is not None:
            upstream["args"] = args
    elif upstream_type == "http":
        url = inputs.get("url")
        if not url:
            raise InputError("Input 'url' is required when type is 'http'")
        upstream = {"type": "http", "url": url, "headers": headers}
    else:
        raise InputError(f"Invalid type '{upstream_type}'. Must be 'stdio' or 'http'")

    data: Dict[str, Any] = {
        "upstream": upstream,
        "logDir": logs_dir,
        "containerImage": inputs.get("container-image") or inputs.get("container") or None,
        "containerVersion": inputs.get("container-version") or None,
    }
    container_port = inputs.get_port("container-port")
    if container_port is not None:
        data["containerPort"] = container_port
    listen: Dict[str, Any] = {}
    host = inputs.get("host")
    if host:
        listen["host"] = host
    port = inputs.get_port("port")
    if port is not None:
        listen["port"] = port
    if listen:
        data["listen"] = listen
    return GatewayConfig.from_input(data)


class ActionOutputs:
    """Workflow-command writer for outputs, masks and failures."""

    def __init__(self, environ: Optional[Mapping[str, str]] = None, stream: Optional[TextIO] = None):
        self._environ = os.environ if environ is None else environ
        self._stream = stream

    @property
    def stream(self) -> TextIO:
        """Where workflow commands are printed (stdout by default)."""
        return self._stream or sys.stdout

    def _command(self, command: str, value: str) -> None:
        self.stream.write(f"::{command}::{value}\n")
        self.stream.flush()

    def set_output(self, name: str, value: Any) -> None:
        """Publish one step output.

        Args:
            name: Output name.
            value: Output value; converted with ``str``.

        Examples:
            >>> import io
            >>> buf = io.StringIO()
            >>> ActionOutputs({}, buf).set_output("port", 8080)
            >>> buf.getvalue()
            '::set-output name=port::8080\\n'
        """
        text = str(value)
        path = self._environ.get("GITHUB_OUTPUT")
        if not path:
            self._command(f"set-output name={name}", text)
            return
        delimiter = f"ghadelimiter_{uuid.uuid4()}"
        with open(path, "a", encoding="utf-8") as fh:
            fh.write(f"{name}<<{delimiter}\n{text}\n{delimiter}\n")

    def add_mask(self, value: str) -> None:
        """Ask the runner to mask ``value`` in logs.

        Args:
            value: Secret value.
        """
        self._command("add-mask", value)

    def set_failed(self, message: str) -> None:
        """Report a failure annotation.

        Args:
            message: Error message.
        """
        self._command("error", message)

    def publish(self, result: GatewayResult) -> None:
        """Publish the startup result as ``url``, ``port``, ``token`` and ``container-id``.

        Args:
            result: Gateway startup result.
        """
        self.add_mask(result.api_key)
        self.set_output("url", result.url)
        self.set_output("port", result.port)
        self.set_output("token", result.api_key)
        if result.container_id:
            self.set_output("container-id", result.container_id)
