"""Docker daemon operations for deploybox.

Thin wrappers over the Engine API client that bound every request with the
client timeout and translate SDK/transport failures into the deploybox error
hierarchy. Provisioning logic lives elsewhere; nothing here keeps state.
"""

from __future__ import annotations

import io
import posixpath
import tarfile
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any

import docker
import docker.errors
import requests

from .constants import DEFAULT_API_VERSION, DOCKER_COMMAND_TIMEOUT
from .errors import (
    ContainerCreateError,
    ContainerRemoveError,
    ContainerStartError,
    DockerError,
    DockerNotRunningError,
    DockerTimeoutError,
    FileCopyError,
    FileWriteError,
)
from .logging import get_logger

logger = get_logger(__name__)

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence

    from docker.types import Mount

__all__ = [
    "daemon_call",
    "get_client",
    "check_docker_status",
    "list_images",
    "create_container",
    "path_exists",
    "copy_from_container",
    "remove_container",
    "start_container",
]


def get_client(
    api_version: str = DEFAULT_API_VERSION,
    *,
    timeout: int = DOCKER_COMMAND_TIMEOUT,
) -> docker.DockerClient:
    """Create a Docker client from the environment (DOCKER_HOST etc.).

    Args:
        api_version: Engine API version, or "auto" to negotiate.
        timeout: Deadline in seconds applied to every daemon request.

    Raises:
        DockerNotRunningError: If the daemon cannot be reached.
    """
    logger.debug("Creating docker client: api=%s timeout=%ds", api_version, timeout)
    try:
        return docker.from_env(version=api_version, timeout=timeout)
    except docker.errors.DockerException as e:
        raise DockerNotRunningError(f"Cannot connect to the Docker daemon: {e}") from e


@contextmanager
def daemon_call(
    action: str,
    subject: str,
    error_cls: type[DockerError] = DockerError,
) -> Iterator[None]:
    """Run a daemon request with consistent error handling.

    Args:
        action: Short verb for log and error messages ("create", "start"...).
        subject: Image name, container id or path the call is about.
        error_cls: Error raised when the daemon rejects the request.

    Raises:
        DockerTimeoutError: If the request exceeds the client deadline.
        DockerNotRunningError: If the daemon connection fails.
        error_cls: If the daemon answers with an API error or the SDK
            refuses the request.
        DockerError: On any other transport failure.
    """
    logger.debug("Docker %s: %s", action, subject)
    try:
        yield
    except requests.exceptions.Timeout as e:
        logger.error("Docker %s timed out: %s", action, subject)
        raise DockerTimeoutError(f"Docker {action} timed out: {subject}", subject=subject) from e
    except requests.exceptions.ConnectionError as e:
        logger.error("Docker daemon unreachable during %s: %s", action, subject)
        raise DockerNotRunningError(
            f"Docker daemon unreachable during {action}: {subject}", subject=subject
        ) from e
    except docker.errors.APIError as e:
        reason = e.explanation or str(e)
        logger.error("Docker %s failed for %s: %s", action, subject, reason)
        raise error_cls(f"Docker {action} failed for {subject}: {reason}", subject=subject) from e
    except docker.errors.DockerException as e:
        # Client-side rejections, e.g. InvalidVersion for a pinned API version
        logger.error("Docker %s rejected by client for %s: %s", action, subject, e)
        raise error_cls(f"Docker {action} failed for {subject}: {e}", subject=subject) from e
    except requests.exceptions.RequestException as e:
        logger.error("Docker %s transport error for %s: %s", action, subject, e)
        raise DockerError(f"Docker {action} transport error for {subject}: {e}", subject=subject) from e


def check_docker_status(client: docker.DockerClient) -> bool:
    """Check if the Docker daemon is responsive."""
    try:
        with daemon_call("ping", "daemon"):
            return bool(client.ping())
    except DockerError:
        return False


def list_images(client: docker.DockerClient) -> list[dict[str, Any]]:
    """List all images known to the daemon (Engine API image summaries)."""
    with daemon_call("image list", "daemon"):
        images: list[dict[str, Any]] = client.api.images()
    logger.debug("Daemon reports %d images", len(images))
    return images


def create_container(
    client: docker.DockerClient,
    image: str,
    *,
    entrypoint: Sequence[str],
    environment: Sequence[str] | None = None,
    user: str | None = None,
    mounts: Sequence[Mount] | None = None,
    name: str | None = None,
    privileged: bool = False,
    auto_remove: bool = False,
) -> str:
    """Create (but do not start) a container.

    A host config is only sent when mounts or host flags are requested, so a
    bare create carries nothing beyond image, entrypoint and environment.

    Returns:
        The new container id.

    Raises:
        ContainerCreateError: If the daemon rejects the request.
    """
    with daemon_call("create", name or image, ContainerCreateError):
        host_config = None
        if mounts or privileged or auto_remove:
            host_config = client.api.create_host_config(
                mounts=list(mounts or []),
                privileged=privileged,
                auto_remove=auto_remove,
            )
        body = client.api.create_container(
            image,
            entrypoint=list(entrypoint),
            environment=list(environment) if environment is not None else None,
            user=user,
            name=name,
            host_config=host_config,
            use_config_proxy=False,
        )
    for warning in body.get("Warnings") or []:
        logger.warning("Docker create warning: %s", warning)
    container_id: str = body["Id"]
    logger.debug("Created container %s from %s", container_id[:12], image)
    return container_id


def path_exists(client: docker.DockerClient, container_id: str, path: str) -> bool:
    """Check whether a path exists inside a container filesystem.

    Uses the archive endpoint's stat header; nothing is executed in the
    container and it does not need to be running.
    """
    with daemon_call("stat", f"{container_id[:12]}:{path}"):
        try:
            stream, stat = client.api.get_archive(container_id, path)
        except docker.errors.NotFound:
            return False
        stream.close()
    logger.debug("Found %s in %s (mode=%s)", path, container_id[:12], stat.get("mode"))
    return True


def copy_from_container(
    client: docker.DockerClient,
    container_id: str,
    path: str,
    dest: Path,
) -> Path:
    """Copy a single file out of a container to a host path.

    The daemon returns the file packed in a tar archive; the regular-file
    entry named after the path's basename is unpacked to ``dest``.

    Raises:
        FileCopyError: If the daemon cannot produce the file or the archive
            holds no regular file for it.
        FileWriteError: If the host file cannot be written.
    """
    subject = f"{container_id[:12]}:{path}"
    with daemon_call("copy", subject, FileCopyError):
        stream, _ = client.api.get_archive(container_id, path)
        data = b"".join(stream)

    name = posixpath.basename(path)
    try:
        with tarfile.open(fileobj=io.BytesIO(data)) as archive:
            member = archive.getmember(name)
            if not member.isfile():
                raise FileCopyError(f"{subject} is not a regular file", subject=subject)
            source = archive.extractfile(member)
            content = source.read() if source else b""
    except (tarfile.TarError, KeyError) as e:
        raise FileCopyError(f"Cannot unpack {subject}: {e}", subject=subject) from e

    try:
        dest.write_bytes(content)
    except OSError as e:
        raise FileWriteError(f"Cannot write {dest}: {e}", subject=str(dest)) from e
    logger.debug("Copied %s to %s (%d bytes)", subject, dest, len(content))
    return dest


def remove_container(client: docker.DockerClient, container_id: str, *, force: bool = True) -> None:
    """Remove a container, killing it first when force is set.

    Raises:
        ContainerRemoveError: If the daemon refuses the removal.
    """
    with daemon_call("remove", container_id[:12], ContainerRemoveError):
        client.api.remove_container(container_id, v=False, link=False, force=force)


def start_container(client: docker.DockerClient, container_id: str) -> None:
    """Start a created container.

    Raises:
        ContainerStartError: If the daemon refuses to start it.
    """
    with daemon_call("start", container_id[:12], ContainerStartError):
        client.api.start(container_id)
