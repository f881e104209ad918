# -*- coding: utf-8 -*-
"""Base interfaces for container runtime drivers."""

# Standard
from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class ContainerSpec:
    """What to run and how to publish it."""

    image: str
    version: str
    host_port: int
    container_port: int

    @property
    def reference(self) -> str:
        """Image reference ``image:version``.

        Returns:
            str: The tagged image reference.

        Examples:
            >>> ContainerSpec("ghcr.io/acme/server", "1.2.0", 8080, 4000).reference
            'ghcr.io/acme/server:1.2.0'
        """
        return f"{self.image}:{self.version}"

    @property
    def port_mapping(self) -> str:
        """Engine ``-p`` value ``hostPort:containerPort``.

        Returns:
            str: The port publishing spec.

        Examples:
            >>> ContainerSpec("img", "v1", 8080, 4000).port_mapping
            '8080:4000'
        """
        return f"{self.host_port}:{self.container_port}"


class ContainerDriver(ABC):
    """Abstract container lifecycle driver."""

    @abstractmethod
    async def start(self, image: str, version: str, host_port: int, container_port: int) -> str:
        """Start a detached, auto-removing container.

        Args:
            image: Image name.
            version: Image tag.
            host_port: Port published on the host.
            container_port: Port the containerized process listens on.

        Returns:
            str: Opaque container identifier.
        """

    @abstractmethod
    async def stop(self, container_id: str) -> None:
        """Stop a container. Must never raise.

        Args:
            container_id: Identifier returned by ``start``.
        """
