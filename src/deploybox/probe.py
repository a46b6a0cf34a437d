"""Probe containers: short-lived, unmounted containers used to inspect an image."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING

from . import daemon
from .constants import DEFAULT_COMMAND
from .errors import DockerError
from .lifecycle import ContainerHandle, ContainerRole, ContainerState, split_command
from .logging import get_logger

if TYPE_CHECKING:
    import docker

    from .images import ResolvedImage

logger = get_logger(__name__)


def create_probe(
    client: docker.DockerClient,
    image: ResolvedImage,
    command: str = DEFAULT_COMMAND,
) -> ContainerHandle:
    """Create a probe container from the image.

    No mounts, user or name are set. The command replaces the image
    entrypoint so the container body stays alive while it is inspected.

    Raises:
        ContainerCreateError: If the daemon rejects the request.
    """
    container_id = daemon.create_container(
        client,
        image.id,
        entrypoint=split_command(command),
    )
    handle = ContainerHandle(container_id, ContainerRole.PROBE)
    logger.info("Created probe container %s from %s", handle.short_id, image.display_name)
    return handle


def remove_probe(client: docker.DockerClient, handle: ContainerHandle) -> None:
    """Force-remove a probe, started or not.

    Raises:
        ContainerRemoveError: If the daemon refuses the removal.
    """
    if not handle.alive:
        return
    daemon.remove_container(client, handle.container_id, force=True)
    handle.state = ContainerState.REMOVED
    logger.info("Removed probe container %s", handle.short_id)


@contextmanager
def probe_container(
    client: docker.DockerClient,
    image: ResolvedImage,
    command: str = DEFAULT_COMMAND,
) -> Iterator[ContainerHandle]:
    """Create a probe for the duration of a block.

    The block is expected to remove the probe itself once it has what it
    needs. If the block raises first, removal is attempted here and a
    removal failure is logged so it does not mask the original error.
    """
    handle = create_probe(client, image, command)
    try:
        yield handle
    except BaseException:
        if handle.alive:
            try:
                remove_probe(client, handle)
            except DockerError as e:
                logger.warning("Probe container %s left behind: %s", handle.short_id, e)
        raise
