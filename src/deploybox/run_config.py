"""Provisioning configuration for deploybox.

Bundles CLI arguments and computed defaults into a single immutable object
handed to the provisioning pipeline.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from .config import PROJECT_INFO, ProjectKind
from .constants import (
    DEFAULT_API_VERSION,
    DEFAULT_COMMAND,
    DEFAULT_GNAME,
    DEFAULT_NOPROXY_HOSTS,
    DEFAULT_TAG,
    DEFAULT_UNAME,
    MIN_API_VERSION,
)
from .errors import ConfigError


def parse_host_list(value: str) -> tuple[str, ...]:
    """Parse a comma separated host list, dropping blanks."""
    return tuple(h.strip() for h in value.split(",") if h.strip())


def parse_api_version(value: str) -> tuple[int, int] | None:
    """Parse a pinned "major.minor" API version; None means negotiate ("auto").

    Raises:
        ConfigError: If the value is not "auto" or "major.minor".
    """
    if value == DEFAULT_API_VERSION:
        return None
    major, sep, minor = value.partition(".")
    if not sep or not major.isdigit() or not minor.isdigit():
        raise ConfigError(f"Invalid Docker API version: {value}", subject=value)
    return int(major), int(minor)


@dataclass(frozen=True)
class ProvisionConfig:
    """Configuration for one provisioning run.

    Immutable dataclass; every path is absolute once built by from_cli.
    """

    project: ProjectKind
    base_dir: Path
    install_manifest: Path
    workdir: Path
    container_name: str
    uid: int
    gid: int

    # Image selection: image_id wins over repository/tag
    image_id: str | None = None
    repository: str = ""
    tag: str = DEFAULT_TAG

    # Container options
    command: str = DEFAULT_COMMAND
    privileged: bool = False
    root: bool = False
    no_proxy_hosts: tuple[str, ...] = DEFAULT_NOPROXY_HOSTS

    # Identity
    username: str = DEFAULT_UNAME
    groupname: str = DEFAULT_GNAME

    api_version: str = DEFAULT_API_VERSION

    @property
    def source_dir(self) -> Path:
        """Project source directory under the base directory."""
        return self.base_dir / PROJECT_INFO[self.project].source_subpath

    @classmethod
    def from_cli(
        cls,
        *,
        project: str,
        basedir: str,
        json_path: str,
        workdir: str,
        cname: str,
        uid: int,
        gid: int,
        imageid: str | None = None,
        repository: str = "",
        tag: str = DEFAULT_TAG,
        cmd: str = DEFAULT_COMMAND,
        privileged: bool = False,
        root: bool = False,
        noproxy: str = ",".join(DEFAULT_NOPROXY_HOSTS),
        uname: str = DEFAULT_UNAME,
        gname: str = DEFAULT_GNAME,
        apiversion: str = DEFAULT_API_VERSION,
    ) -> ProvisionConfig:
        """Create a ProvisionConfig from CLI arguments.

        Maps each option to its field by name and makes paths absolute.
        """
        return cls(
            project=ProjectKind(project),
            base_dir=Path(basedir).expanduser().resolve(),
            install_manifest=Path(json_path).expanduser().resolve(),
            workdir=Path(workdir).expanduser().resolve(),
            container_name=cname,
            uid=uid,
            gid=gid,
            image_id=imageid or None,
            repository=repository,
            tag=tag,
            command=cmd,
            privileged=privileged,
            root=root,
            no_proxy_hosts=parse_host_list(noproxy),
            username=uname,
            groupname=gname,
            api_version=apiversion,
        )

    def validate(self) -> ProvisionConfig:
        """Check required inputs before provisioning starts.

        Raises:
            ConfigError: If a path is relative or missing, the command is empty
                or the pinned Docker API version is too old.
        """
        for label, path in (
            ("base directory", self.base_dir),
            ("install manifest", self.install_manifest),
            ("working directory", self.workdir),
        ):
            if not path.is_absolute():
                raise ConfigError(f"{label} must be an absolute path: {path}", subject=str(path))
        if not self.base_dir.is_dir():
            raise ConfigError(
                f"Base directory does not exist: {self.base_dir}", subject=str(self.base_dir)
            )
        if not self.install_manifest.is_file():
            raise ConfigError(
                f"Install manifest {self.install_manifest} doesn't exist",
                subject=str(self.install_manifest),
            )
        if not self.source_dir.is_dir():
            raise ConfigError(
                f"Project {self.project.value} source is not a directory: {self.source_dir}",
                subject=str(self.source_dir),
            )
        if not self.command.split():
            raise ConfigError("Container command cannot be empty")
        if not self.image_id and not self.repository:
            raise ConfigError("Either an image id or an image repository is required")
        pinned = parse_api_version(self.api_version)
        if pinned is not None and pinned < MIN_API_VERSION:
            raise ConfigError(
                f"Docker API version {self.api_version} is too old, "
                f"bind mounts need {'.'.join(map(str, MIN_API_VERSION))} or later",
                subject=self.api_version,
            )
        return self
