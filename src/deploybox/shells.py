"""Interactive shell detection inside a probe container."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

from . import daemon
from .errors import NoShellAvailableError
from .logging import get_logger

if TYPE_CHECKING:
    import docker

    from .lifecycle import ContainerHandle

logger = get_logger(__name__)


class ShellChoice(Enum):
    """Shells that can be offered for interactive access."""

    ZSH = "/bin/zsh"
    BASH = "/bin/bash"
    SH = "/bin/sh"

    @property
    def path(self) -> str:
        return self.value


# Most preferred first
SHELL_PRIORITY: tuple[ShellChoice, ...] = (ShellChoice.ZSH, ShellChoice.BASH, ShellChoice.SH)


def available_shells(client: docker.DockerClient, probe: ContainerHandle) -> list[ShellChoice]:
    """Return the candidate shells present in the probe, in priority order."""
    return [s for s in SHELL_PRIORITY if daemon.path_exists(client, probe.container_id, s.path)]


def detect_shell(client: docker.DockerClient, probe: ContainerHandle) -> ShellChoice:
    """Pick the most preferred shell present in the probe.

    Raises:
        NoShellAvailableError: If none of the candidates exist.
    """
    found = available_shells(client, probe)
    if not found:
        raise NoShellAvailableError(
            "No usable shell in image (tried "
            + ", ".join(s.path for s in SHELL_PRIORITY)
            + ")",
            subject=probe.short_id,
        )
    shell = found[0]
    logger.info("Detected shell %s in probe %s", shell.path, probe.short_id)
    return shell
