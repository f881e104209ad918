# -*- coding: utf-8 -*-
"""Location: ./tests/unit/mcpproxy/services/test_logging_service.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0
Authors: MCP Proxy Contributors

Unit tests for the debug log sink.
"""

# Standard
import logging
import os
import re

# Third-Party
import orjson
import pytest

# First-Party
from mcpproxy.services.logging_service import LoggingService


@pytest.fixture
def service(tmp_path):
    svc = LoggingService(str(tmp_path / "nested" / "logs"), level="DEBUG", logger_name="mcpproxy.test_sink", console=False)
    yield svc
    svc.shutdown()


def test_initialize_creates_directory_and_file(service, tmp_path):
    service.initialize()
    log_dir = tmp_path / "nested" / "logs"
    assert log_dir.is_dir()
    assert re.fullmatch(r"mcp-proxy-\d{13}\.log", os.path.basename(service.log_file))
    assert os.path.dirname(service.log_file) == str(log_dir)


def test_records_are_written_as_json_lines(service):
    logger = service.initialize()
    logger.info("upstream connected")
    service.get_logger("server").warning("slow request")
    for handler in logger.handlers:
        handler.flush()

    with open(service.log_file, encoding="utf-8") as fh:
        lines = [orjson.loads(line) for line in fh if line.strip()]

    messages = [line["message"] for line in lines]
    assert messages[0].startswith("Logging to ")
    assert "upstream connected" in messages
    assert "slow request" in messages
    assert lines[-1]["name"] == "mcpproxy.test_sink.server"
    assert lines[-1]["levelname"] == "WARNING"


def test_logger_does_not_touch_root(service):
    root_handlers = list(logging.getLogger().handlers)
    logger = service.initialize()
    assert logger.propagate is False
    assert logging.getLogger().handlers == root_handlers


def test_initialize_is_idempotent(service):
    first = service.initialize()
    log_file = service.log_file
    second = service.initialize()
    assert first is second
    assert service.log_file == log_file
    assert len(first.handlers) == 1


def test_log_file_is_appended(tmp_path):
    svc = LoggingService(str(tmp_path), logger_name="mcpproxy.test_append", console=False)
    logger = svc.initialize()
    with open(svc.log_file, "a", encoding="utf-8") as fh:
        fh.write('{"message": "earlier"}\n')
    logger.info("later")
    svc.shutdown()

    with open(svc.log_file, encoding="utf-8") as fh:
        content = fh.read()
    assert '"earlier"' in content
    assert '"later"' in content


def test_shutdown_detaches_handlers(tmp_path):
    svc = LoggingService(str(tmp_path), logger_name="mcpproxy.test_shutdown", console=True)
    logger = svc.initialize()
    assert len(logger.handlers) == 2
    svc.shutdown()
    assert logger.handlers == []
    svc.shutdown()
