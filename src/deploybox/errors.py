"""Unified exception hierarchy for deploybox.

All custom exceptions inherit from DeployboxError. The provisioning pipeline
raises them unchanged; the CLI converts them to a red error line and exit 1.

Dependency direction:
    This module has NO internal dependencies (leaf module).
    It may be imported by: all other deploybox modules.
"""

from __future__ import annotations


class DeployboxError(Exception):
    """Base exception for all deploybox errors.

    Attributes:
        subject: The offending identifier (image name, container id or file
            path), or None when the error is not tied to one.
    """

    def __init__(self, message: str, subject: str | None = None) -> None:
        super().__init__(message)
        self.subject = subject


class ConfigError(DeployboxError):
    """Configuration-related errors.

    Examples:
        - Missing base directory or install manifest
        - Project source directory is not a directory
        - Unreadable settings file values
    """


class DockerError(DeployboxError):
    """Docker daemon operation errors.

    Base class for all daemon-related exceptions.
    """


class DockerNotRunningError(DockerError):
    """Raised when the Docker daemon cannot be reached."""


class DockerTimeoutError(DockerError):
    """Raised when a daemon call exceeds its deadline."""


class ImageNotFoundError(DockerError):
    """Raised when no local image matches the requested id or repository/tag."""


class ContainerError(DockerError):
    """Raised when container operations fail."""


class ContainerCreateError(ContainerError):
    """Raised when the daemon refuses to create a container."""


class ContainerRemoveError(ContainerError):
    """Raised when a container cannot be removed."""


class ContainerStartError(ContainerError):
    """Raised when a created container cannot be started."""


class NoShellAvailableError(ContainerError):
    """Raised when none of the candidate shells exist in the image."""


class FileCopyError(DockerError):
    """Raised when a file cannot be copied out of a container."""


class FileWriteError(DeployboxError):
    """Raised when a host-side file cannot be opened or written."""


class ProvisionStateError(DeployboxError):
    """Raised on an illegal provisioning state transition."""
