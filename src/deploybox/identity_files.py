"""Identity file synthesis.

The image's own ``/etc/passwd`` and ``/etc/group`` are copied out of the
probe container and one line for the target identity is appended to each.
The host copies are later bind-mounted over the originals in the final
container, so tools inside it resolve the caller's uid/gid to a name.

Existing content is never rewritten: the host file is opened in append mode
and receives exactly one line. A failure part way leaves whatever was
written on disk; the caller must not go on to create the final container.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from . import daemon
from .constants import CONTAINER_GROUP, CONTAINER_PASSWD, GROUP_FILE, PASSWD_FILE
from .errors import FileWriteError
from .logging import get_logger

if TYPE_CHECKING:
    import docker

    from .identity import IdentityRecord
    from .lifecycle import ContainerHandle

logger = get_logger(__name__)


@dataclass(frozen=True)
class IdentityFiles:
    """Host paths of the rewritten identity files."""

    passwd: Path
    group: Path


def append_line(path: Path, line: str) -> None:
    """Append one line to an existing host file.

    Raises:
        FileWriteError: If the file cannot be opened or written.
    """
    try:
        with open(path, "a", encoding="utf-8") as f:
            f.write(line)
    except OSError as e:
        raise FileWriteError(f"Cannot append to {path}: {e}", subject=str(path)) from e


def rewrite_identity_files(
    client: docker.DockerClient,
    probe: ContainerHandle,
    identity: IdentityRecord,
    workdir: Path,
) -> IdentityFiles:
    """Copy passwd and group out of the probe and append the identity lines.

    Raises:
        FileCopyError: If a file cannot be copied out of the probe.
        FileWriteError: If a host copy cannot be written.
    """
    plan = (
        (CONTAINER_PASSWD, workdir / PASSWD_FILE, identity.passwd_line()),
        (CONTAINER_GROUP, workdir / GROUP_FILE, identity.group_line()),
    )
    for container_path, host_path, line in plan:
        daemon.copy_from_container(client, probe.container_id, container_path, host_path)
        append_line(host_path, line)
        logger.debug("Appended %r to %s", line.rstrip("\n"), host_path)

    logger.info("Wrote identity files for %s (%d:%d)", identity.uname, identity.uid, identity.gid)
    return IdentityFiles(passwd=workdir / PASSWD_FILE, group=workdir / GROUP_FILE)
