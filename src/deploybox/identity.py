"""In-container identity: host defaults and the record rendered into passwd/group."""

from __future__ import annotations

import getpass
import os
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .config import PROJECT_INFO

if TYPE_CHECKING:
    from .run_config import ProvisionConfig
    from .shells import ShellChoice


@dataclass(frozen=True)
class HostIdentity:
    """The user running deploybox on the host."""

    username: str
    uid: int
    gid: int


def get_host_identity() -> HostIdentity:
    """Return the current host user's name, uid and gid."""
    return HostIdentity(username=getpass.getuser(), uid=os.getuid(), gid=os.getgid())


@dataclass(frozen=True)
class IdentityRecord:
    """One user and its primary group, as written into the identity files."""

    uname: str
    uid: int
    gname: str
    gid: int
    home: str
    shell_path: str

    def passwd_line(self) -> str:
        return f"{self.uname}:x:{self.uid}:{self.gid}::{self.home}:{self.shell_path}\n"

    def group_line(self) -> str:
        return f"{self.gname}:x:{self.gid}:\n"


def resolve_identity(config: ProvisionConfig, shell: ShellChoice) -> IdentityRecord:
    """Build the identity record for a run from its config and detected shell."""
    return IdentityRecord(
        uname=config.username,
        uid=config.uid,
        gname=config.groupname,
        gid=config.gid,
        home=PROJECT_INFO[config.project].home,
        shell_path=shell.path,
    )
