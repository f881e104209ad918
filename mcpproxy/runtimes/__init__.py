# -*- coding: utf-8 -*-
"""Container runtime driver implementations."""

# First-Party
from mcpproxy.runtimes.base import ContainerDriver, ContainerSpec
from mcpproxy.runtimes.docker_backend import DockerContainerDriver

__all__ = [
    "ContainerDriver",
    "ContainerSpec",
    "DockerContainerDriver",
]
