"""Configuration management for deploybox."""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path

from rich.console import Console

from .constants import (
    CONTAINER_HOST_DIR,
    CONTAINER_NAME_PREFIX,
    DEFAULT_API_VERSION,
    DEFAULT_LOGSTASH_HOST,
    DEFAULT_LOGSTASH_PORT,
    DEFAULT_REPO_BASE_URL,
    IMAGE_REPOSITORY_PREFIX,
    REPO_CONFIG_FILE,
)
from .errors import FileWriteError
from .logging import get_logger

console = Console(stderr=True)
logger = get_logger(__name__)


class ProjectKind(str, Enum):
    """Deployer projects a development container can be provisioned for."""

    HIGGS = "higgs"
    KONRAD = "konrad"
    RACDB = "racdb"


@dataclass(frozen=True)
class ProjectInfo:
    """Per-project layout facts."""

    source_subpath: str  # Relative to the base source directory
    home: str  # Home directory written into the synthesized passwd line
    description: str


PROJECT_INFO: dict[ProjectKind, ProjectInfo] = {
    ProjectKind.HIGGS: ProjectInfo(
        "higgs-gateway-appliance-deployer/deployer", CONTAINER_HOST_DIR, "Higgs gateway appliance"
    ),
    ProjectKind.KONRAD: ProjectInfo(
        "compute-konrad-deployer/deployer", CONTAINER_HOST_DIR, "Compute konrad"
    ),
    ProjectKind.RACDB: ProjectInfo(
        "compute-rac-db-deployer/deployer", CONTAINER_HOST_DIR, "Compute RAC database"
    ),
}


@dataclass
class Settings:
    """deploybox user settings (~/.deploybox/config.json)."""

    # Values written into repoconfig.json
    repo_base_url: str = DEFAULT_REPO_BASE_URL
    logstash_host: str = DEFAULT_LOGSTASH_HOST
    logstash_port: int = DEFAULT_LOGSTASH_PORT

    docker_api_version: str = DEFAULT_API_VERSION


def get_config_dir() -> Path:
    """Get the deploybox configuration directory."""
    return Path.home() / ".deploybox"


def get_config_path() -> Path:
    """Get the path to the settings file."""
    return get_config_dir() / "config.json"


def load_settings() -> Settings:
    """Load settings from file, or return defaults."""
    config_path = get_config_path()

    if config_path.exists():
        try:
            data = json.loads(config_path.read_text(encoding="utf-8"))
            return Settings(**data)
        except (json.JSONDecodeError, TypeError, ValueError) as e:
            console.print(f"[yellow]Warning: Failed to load settings ({e}), using defaults[/yellow]")

    return Settings()


@dataclass(frozen=True)
class RepoConfig:
    """Runtime configuration consumed by the deployer inside the container."""

    repo_base_url: str
    logstash_host: str
    logstash_port: int

    @classmethod
    def from_settings(cls, settings: Settings) -> RepoConfig:
        return cls(
            repo_base_url=settings.repo_base_url,
            logstash_host=settings.logstash_host,
            logstash_port=settings.logstash_port,
        )

    def to_dict(self) -> dict[str, dict[str, str | int]]:
        return {
            "repository": {"repo_base_url": self.repo_base_url},
            "logstash": {"host": self.logstash_host, "port": self.logstash_port},
        }


def write_repo_config(repo_config: RepoConfig, workdir: Path) -> Path:
    """Write repoconfig.json into the working directory.

    Written once per run; a file left by an earlier run is replaced.

    Raises:
        FileWriteError: If the file cannot be written.
    """
    path = workdir / REPO_CONFIG_FILE
    try:
        with open(path, "w", encoding="utf-8") as f:
            json.dump(repo_config.to_dict(), f)
    except OSError as e:
        raise FileWriteError(f"Cannot write {path}: {e}", subject=str(path)) from e
    logger.debug("Wrote %s", path)
    return path


def get_image_repository(username: str) -> str:
    """Get the default development image repository for a host user."""
    return f"{IMAGE_REPOSITORY_PREFIX}{username}"


def get_container_name(now: datetime | None = None) -> str:
    """Get a default container name stamped with the current time."""
    now = now or datetime.now()
    return f"{CONTAINER_NAME_PREFIX}{now.strftime('%b%d%a%H%M%S')}"
