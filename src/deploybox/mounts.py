"""Bind mount planning for the final container."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from docker.types import Mount

from .constants import (
    CONTAINER_GROUP,
    CONTAINER_HOST_DIR,
    CONTAINER_LOG_DIR,
    CONTAINER_PASSWD,
    CONTAINER_SOURCE_DIR,
    GROUP_FILE,
    LOG_SUBDIR,
    MOUNT_PROPAGATION,
    PASSWD_FILE,
)
from .errors import ConfigError


class MountKind(str, Enum):
    LOG = "log"
    SOURCE = "source"
    HOST = "host"
    PASSWD = "passwd"
    GROUP = "group"


# Kinds whose host side is a directory (created on demand); the rest are files
DIRECTORY_KINDS = frozenset({MountKind.LOG, MountKind.SOURCE, MountKind.HOST})


@dataclass(frozen=True)
class BindMount:
    kind: MountKind
    source: Path
    target: str
    read_only: bool = False

    def to_docker_mount(self) -> Mount:
        return Mount(
            target=self.target,
            source=str(self.source),
            type="bind",
            read_only=self.read_only,
            propagation=MOUNT_PROPAGATION,
        )


@dataclass(frozen=True)
class MountSpec:
    """Ordered bind mounts of the final container."""

    mounts: tuple[BindMount, ...]

    def __iter__(self):
        return iter(self.mounts)

    def __len__(self) -> int:
        return len(self.mounts)

    def to_docker_mounts(self) -> list[Mount]:
        return [m.to_docker_mount() for m in self.mounts]

    def ensure_sources(self) -> None:
        """Make sure every host path exists before the container is created.

        Missing directories are created. Missing files are an error, as they
        can only come from an earlier provisioning step.

        Raises:
            ConfigError: If a host path is relative or a file source is missing.
        """
        for mount in self.mounts:
            if not mount.source.is_absolute():
                raise ConfigError(
                    f"Mount source must be absolute: {mount.source}", subject=str(mount.source)
                )
            if mount.kind in DIRECTORY_KINDS:
                mount.source.mkdir(parents=True, exist_ok=True)
            elif not mount.source.is_file():
                raise ConfigError(
                    f"Mount source for {mount.target} is missing: {mount.source}",
                    subject=str(mount.source),
                )


def plan_mounts(workdir: Path, source_dir: Path) -> MountSpec:
    """Compute the five read-write bind mounts of the final container."""
    return MountSpec(
        (
            BindMount(MountKind.LOG, workdir / LOG_SUBDIR, CONTAINER_LOG_DIR),
            BindMount(MountKind.SOURCE, source_dir, CONTAINER_SOURCE_DIR),
            BindMount(MountKind.HOST, workdir, CONTAINER_HOST_DIR),
            BindMount(MountKind.PASSWD, workdir / PASSWD_FILE, CONTAINER_PASSWD),
            BindMount(MountKind.GROUP, workdir / GROUP_FILE, CONTAINER_GROUP),
        )
    )
