# -*- coding: utf-8 -*-
"""Docker container driver implementation.

Works with any engine that accepts the Docker CLI verbs used here
(``run -d --rm -p`` and ``stop``), e.g. podman.
"""

# Standard
import asyncio
import logging
from typing import List, Optional

# First-Party
from mcpproxy.config import settings
from mcpproxy.exceptions import LaunchError
from mcpproxy.runtimes.base import ContainerDriver, ContainerSpec

LOGGER = logging.getLogger(__name__)


class DockerContainerDriver(ContainerDriver):
    """Start and stop upstream containers through the engine CLI."""

    def __init__(
        self,
        engine_binary: Optional[str] = None,
        logger: Optional[logging.Logger] = None,
        start_timeout: Optional[int] = None,
        stop_timeout: Optional[int] = None,
    ):
        self.engine_binary = engine_binary or settings.container_engine
        self.start_timeout = start_timeout or settings.container_start_timeout
        self.stop_timeout = stop_timeout or settings.container_stop_timeout
        self._logger = logger or LOGGER

    def run_command(self, spec: ContainerSpec) -> List[str]:
        """Build the engine command that starts ``spec``.

        Args:
            spec: Container to run.

        Returns:
            List[str]: Command tokens.

        Examples:
            >>> DockerContainerDriver("docker").run_command(ContainerSpec("img", "v1", 8080, 4000))
            ['docker', 'run', '-d', '--rm', '-p', '8080:4000', 'img:v1']
        """
        return [self.engine_binary, "run", "-d", "--rm", "-p", spec.port_mapping, spec.reference]

    async def start(self, image: str, version: str, host_port: int, container_port: int) -> str:
        """Run the container detached and return its id.

        Args:
            image: Image name.
            version: Image tag.
            host_port: Port published on the host.
            container_port: Port inside the container.

        Returns:
            str: Container id printed by the engine, trimmed.

        Raises:
            LaunchError: If the engine cannot be executed or exits non-zero.
        """
        spec = ContainerSpec(image=image, version=version, host_port=host_port, container_port=container_port)
        stdout = await self._run(self.run_command(spec), timeout=self.start_timeout)
        lines = stdout.strip().splitlines()
        if not lines:
            raise LaunchError(f"{self.engine_binary} run returned no container id for {spec.reference}")
        container_id = lines[-1].strip()
        self._logger.debug(f"Container {container_id} running {spec.reference} on {spec.port_mapping}")
        return container_id

    async def stop(self, container_id: str) -> None:
        """Stop the container, discarding every failure.

        Args:
            container_id: Identifier returned by ``start``.
        """
        try:
            await self._run([self.engine_binary, "stop", container_id], timeout=self.stop_timeout)
        except Exception as exc:  # noqa: BLE001
            self._logger.debug(f"Ignoring failure while stopping container {container_id}: {exc}")

    async def _run(self, cmd: List[str], timeout: int = 300) -> str:
        """Run an engine CLI command and return stdout or raise on failure.

        Args:
            cmd: Command tokens to execute.
            timeout: Maximum command runtime in seconds.

        Returns:
            str: Decoded standard output.

        Raises:
            LaunchError: If command cannot start, times out or exits with non-zero status.
        """
        self._logger.debug("Container engine command: %s", " ".join(cmd))
        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as exc:
            raise LaunchError(f"Command not found: {cmd[0]}. Ensure the container engine is installed.") from exc
        except PermissionError as exc:
            raise LaunchError(f"Permission denied while executing: {' '.join(cmd)}") from exc
        except OSError as exc:
            raise LaunchError(f"Failed to start command: {' '.join(cmd)} ({exc})") from exc
        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
        except asyncio.TimeoutError as exc:
            process.kill()
            await process.communicate()
            raise LaunchError(f"Command timed out ({timeout}s): {' '.join(cmd)}") from exc

        out = stdout.decode("utf-8", errors="replace")
        err = stderr.decode("utf-8", errors="replace")
        if process.returncode != 0:
            raise LaunchError(f"{self.engine_binary} {cmd[1]} failed: {err}")
        return out
