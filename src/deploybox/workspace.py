"""Host working directory preparation."""

from __future__ import annotations

import random
import shutil
from pathlib import Path

from .constants import (
    INSTALL_MANIFEST_FILE,
    LOG_SUBDIR,
    SRC_SUBDIR,
    WORKDIR_NAME_ATTEMPTS,
    WORKDIR_PREFIX,
)
from .errors import ConfigError, FileWriteError
from .logging import get_logger

logger = get_logger(__name__)


def new_workdir_name(parent: Path, rng: random.Random) -> str:
    """Pick an unused ``cc_<9 digits>`` directory name under parent.

    Args:
        parent: Directory the working directory will be created in.
        rng: Per-run random source.

    Raises:
        ConfigError: If no free name is found.
    """
    for _ in range(WORKDIR_NAME_ATTEMPTS):
        name = f"{WORKDIR_PREFIX}{rng.randrange(10**9):09d}"
        if not (parent / name).exists():
            return name
    raise ConfigError(f"No free working directory name under {parent}", subject=str(parent))


def prepare_workdir(workdir: Path) -> Path:
    """Create the working directory with its log and src subdirectories.

    Raises:
        FileWriteError: If the directories cannot be created.
    """
    try:
        for sub in (LOG_SUBDIR, SRC_SUBDIR):
            (workdir / sub).mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise FileWriteError(f"Cannot create working directory {workdir}: {e}", subject=str(workdir)) from e
    logger.debug("Prepared working directory %s", workdir)
    return workdir


def copy_install_manifest(manifest: Path, workdir: Path) -> Path:
    """Copy the install manifest into the working directory.

    Raises:
        FileWriteError: If the copy fails.
    """
    dest = workdir / INSTALL_MANIFEST_FILE
    try:
        shutil.copyfile(manifest, dest)
    except OSError as e:
        raise FileWriteError(f"Cannot copy {manifest} to {dest}: {e}", subject=str(dest)) from e
    logger.debug("Copied install manifest to %s", dest)
    return dest
