"""Container lifecycle: handles, final container creation and start."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from . import daemon
from .constants import FORCE_ROOT_ENV, NOPROXY_ENV, ROOT_USER
from .logging import get_logger

if TYPE_CHECKING:
    import docker

    from .images import ResolvedImage
    from .mounts import MountSpec

logger = get_logger(__name__)


class ContainerRole(str, Enum):
    PROBE = "probe"
    FINAL = "final"


class ContainerState(str, Enum):
    CREATED = "created"
    RUNNING = "running"
    REMOVED = "removed"


@dataclass
class ContainerHandle:
    """A container created during a run.

    The probe and the final container each get their own handle; state is
    updated in place as the container moves through its lifecycle.
    """

    container_id: str
    role: ContainerRole
    state: ContainerState = ContainerState.CREATED

    @property
    def short_id(self) -> str:
        return self.container_id[:12]

    @property
    def alive(self) -> bool:
        return self.state is not ContainerState.REMOVED


def split_command(command: str) -> list[str]:
    """Split a command line on whitespace into an entrypoint list."""
    return command.split()


def build_environment(no_proxy_hosts: Sequence[str], root: bool = False) -> list[str]:
    """Build the final container environment."""
    env = [f"{NOPROXY_ENV}={','.join(no_proxy_hosts)}"]
    if root:
        env.append(FORCE_ROOT_ENV)
    return env


def create_final(
    client: docker.DockerClient,
    image: ResolvedImage,
    command: str,
    mounts: MountSpec,
    env: Sequence[str],
    *,
    name: str | None = None,
    privileged: bool = False,
    user: str = ROOT_USER,
) -> ContainerHandle:
    """Create the final development container.

    The process runs as root whatever identity the mounted passwd/group
    files carry; those files serve tools running inside the container.
    The container removes itself once stopped.

    Raises:
        ContainerCreateError: If the daemon rejects the request.
    """
    container_id = daemon.create_container(
        client,
        image.id,
        entrypoint=split_command(command),
        environment=env,
        user=user,
        mounts=mounts.to_docker_mounts(),
        name=name,
        privileged=privileged,
        auto_remove=True,
    )
    handle = ContainerHandle(container_id, ContainerRole.FINAL)
    logger.info("Created final container %s (%s)", handle.short_id, name)
    return handle


def start_container(client: docker.DockerClient, handle: ContainerHandle) -> None:
    """Start a created container.

    Raises:
        ContainerStartError: If the daemon refuses; the container is left as is.
    """
    daemon.start_container(client, handle.container_id)
    handle.state = ContainerState.RUNNING
    logger.info("Started %s container %s", handle.role.value, handle.short_id)
