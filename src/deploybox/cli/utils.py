"""CLI utilities for deploybox.

Docker client setup and status checks shared by the commands.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Console

from .. import daemon
from ..errors import DockerNotRunningError
from ..logging import get_logger

if TYPE_CHECKING:
    import docker

console = Console(force_terminal=True, legacy_windows=False)
logger = get_logger(__name__)

ERR_DOCKER_NOT_RUNNING = "[red]Error: Docker is not running.[/red]"


def connect_docker(api_version: str) -> docker.DockerClient | None:
    """Connect to the Docker daemon and check it responds.

    Returns:
        A ready client, or None if the daemon is unavailable.
    """
    try:
        client = daemon.get_client(api_version)
    except DockerNotRunningError as e:
        logger.debug("Docker client creation failed: %s", e)
        return None
    if not daemon.check_docker_status(client):
        client.close()
        return None
    return client
