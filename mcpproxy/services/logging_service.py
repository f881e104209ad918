# -*- coding: utf-8 -*-
"""Location: ./mcpproxy/services/logging_service.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0
Authors: MCP Proxy Contributors

Logging Service Implementation.

Fans every record of the ``mcpproxy`` logger out to the console and to an
append-only debug log file named ``mcp-proxy-<unixMillis>.log``. The file gets
one JSON object per line; the console gets plain text.

The service owns its handlers and never touches the root logger, so the
logger it returns is passed explicitly to the components that log.
"""

# Standard
import logging
import os
import sys
import time
from typing import List, Optional

# Third-Party
from pythonjsonlogger import jsonlogger

# First-Party
from mcpproxy.config import settings

LOGGER_NAME = "mcpproxy"
LOG_FILE_PREFIX = "mcp-proxy-"

# Create a text formatter
text_formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

# Create a JSON formatter
json_formatter = jsonlogger.JsonFormatter("%(asctime)s %(name)s %(levelname)s %(message)s")


class LoggingService:
    """Debug log sink keyed by a logical logger name.

    Examples:
        >>> import tempfile
        >>> tmp = tempfile.mkdtemp()
        >>> service = LoggingService(tmp, logger_name="mcpproxy.doctest")
        >>> logger = service.initialize()
        >>> logger.name
        'mcpproxy.doctest'
        >>> service.log_file.startswith(tmp)
        True
        >>> service.shutdown()
    """

    def __init__(self, log_dir: str, level: Optional[str] = None, logger_name: str = LOGGER_NAME, console: bool = True):
        """Initialize logging service.

        Args:
            log_dir: Directory receiving the debug log file. Created if missing.
            level: Level name; defaults to ``settings.log_level``.
            logger_name: Name of the logger the service configures.
            console: Also write records to stderr.
        """
        self._log_dir = log_dir
        self._level = (level or settings.log_level).upper()
        self._logger_name = logger_name
        self._console = console
        self._handlers: List[logging.Handler] = []
        self._logger: Optional[logging.Logger] = None
        self._log_file: Optional[str] = None
        self._propagate = True

    @property
    def log_file(self) -> Optional[str]:
        """Path of the debug log file, once initialized."""
        return self._log_file

    def initialize(self) -> logging.Logger:
        """Create the log directory and file, attach the handlers.

        Returns:
            logging.Logger: The configured logger.
        """
        if self._logger is not None:
            return self._logger

        os.makedirs(self._log_dir, exist_ok=True)
        self._log_file = os.path.join(self._log_dir, f"{LOG_FILE_PREFIX}{int(time.time() * 1000)}.log")

        file_handler = logging.FileHandler(self._log_file, mode="a", encoding="utf-8")
        file_handler.setFormatter(json_formatter)
        self._handlers.append(file_handler)

        if self._console:
            text_handler = logging.StreamHandler(sys.stderr)
            text_handler.setFormatter(text_formatter)
            self._handlers.append(text_handler)

        logger = logging.getLogger(self._logger_name)
        self._propagate = logger.propagate
        logger.setLevel(getattr(logging, self._level, logging.INFO))
        logger.propagate = False
        for handler in self._handlers:
            logger.addHandler(handler)

        self._logger = logger
        logger.info(f"Logging to {self._log_file}")
        return logger

    def get_logger(self, name: str) -> logging.Logger:
        """Return a child of the service logger.

        Args:
            name: Child name, e.g. ``"server"``.

        Returns:
            logging.Logger: ``<service logger>.<name>``, sharing its handlers.
        """
        return self.initialize().getChild(name)

    def shutdown(self) -> None:
        """Flush and detach the handlers owned by this service, restoring propagation."""
        if self._logger is None:
            return
        for handler in self._handlers:
            self._logger.removeHandler(handler)
            handler.close()
        self._handlers.clear()
        self._logger.propagate = self._propagate
        self._logger = None
