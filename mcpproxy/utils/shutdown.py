# -*- coding: utf-8 -*-
"""Location: ./mcpproxy/utils/shutdown.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0
Authors: MCP Proxy Contributors

Shutdown hook registry.

Hooks run once, newest first, so resources are released in the reverse of
the order they were acquired. A failing hook is logged and the remaining
hooks still run.

Examples:
    >>> import asyncio
    >>> calls = []
    >>> hooks = ShutdownHooks()
    >>> async def first():
    ...     calls.append("first")
    >>> async def second():
    ...     calls.append("second")
    >>> hooks.register("first", first)
    >>> hooks.register("second", second)
    >>> asyncio.run(hooks.run())
    >>> calls
    ['second', 'first']
    >>> asyncio.run(hooks.run())
    >>> calls
    ['second', 'first']
"""

# Standard
import logging
from typing import Awaitable, Callable, List, Optional, Tuple

LOGGER = logging.getLogger(__name__)

Hook = Callable[[], Awaitable[None]]


class ShutdownHooks:
    """LIFO registry of async cleanup callbacks."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self._hooks: List[Tuple[str, Hook]] = []
        self._logger = logger or LOGGER
        self._done = False

    @property
    def done(self) -> bool:
        """Whether the hooks already ran."""
        return self._done

    def register(self, name: str, hook: Hook) -> None:
        """Add a hook to run at shutdown.

        Args:
            name: Label used in log messages.
            hook: Coroutine function without arguments.
        """
        self._hooks.append((name, hook))

    async def run(self) -> None:
        """Run every hook in reverse registration order; never raises."""
        if self._done:
            return
        self._done = True
        while self._hooks:
            name, hook = self._hooks.pop()
            try:
                self._logger.debug(f"Running shutdown hook: {name}")
                await hook()
            except Exception as exc:  # noqa: BLE001
                self._logger.warning(f"Shutdown hook {name} failed: {exc}")
