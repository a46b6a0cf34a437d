"""Two-phase provisioning pipeline.

A run resolves the image, inspects it through a probe container, writes the
identity and runtime files on the host, then creates and starts the final
container:

    INIT -> IMAGE_RESOLVED -> PROBE_UP -> SHELL_KNOWN -> IDENTITY_WRITTEN
         -> PROBE_DOWN -> CONFIG_WRITTEN -> FINAL_UP -> STARTED

Each transition happens at most once and nothing is retried. Any error moves
the run to ABORTED and is re-raised unchanged. An aborted run removes its
probe on a best-effort basis; a final container that was created but failed
to start is reported and left in place.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from .config import write_repo_config
from .errors import ContainerRemoveError, DeployboxError, ProvisionStateError
from .identity import resolve_identity
from .identity_files import rewrite_identity_files
from .images import resolve_image
from .lifecycle import build_environment, create_final, start_container
from .logging import RUN_CONTEXT, get_logger
from .mounts import plan_mounts
from .probe import probe_container, remove_probe
from .shells import detect_shell

if TYPE_CHECKING:
    from pathlib import Path

    import docker

    from .config import RepoConfig
    from .identity_files import IdentityFiles
    from .images import ResolvedImage
    from .lifecycle import ContainerHandle
    from .mounts import MountSpec
    from .run_config import ProvisionConfig
    from .shells import ShellChoice

logger = get_logger(__name__)


class ProvisionState(str, Enum):
    INIT = "init"
    IMAGE_RESOLVED = "image_resolved"
    PROBE_UP = "probe_up"
    SHELL_KNOWN = "shell_known"
    IDENTITY_WRITTEN = "identity_written"
    PROBE_DOWN = "probe_down"
    CONFIG_WRITTEN = "config_written"
    FINAL_UP = "final_up"
    STARTED = "started"
    ABORTED = "aborted"


STATE_ORDER: tuple[ProvisionState, ...] = (
    ProvisionState.INIT,
    ProvisionState.IMAGE_RESOLVED,
    ProvisionState.PROBE_UP,
    ProvisionState.SHELL_KNOWN,
    ProvisionState.IDENTITY_WRITTEN,
    ProvisionState.PROBE_DOWN,
    ProvisionState.CONFIG_WRITTEN,
    ProvisionState.FINAL_UP,
    ProvisionState.STARTED,
)
NEXT_STATE: dict[ProvisionState, ProvisionState] = dict(zip(STATE_ORDER, STATE_ORDER[1:]))


@dataclass(frozen=True)
class ProvisionResult:
    """What a successful run hands back to its caller."""

    container: ContainerHandle
    shell: ShellChoice
    image: ResolvedImage
    identity_files: IdentityFiles
    repo_config_path: Path
    mounts: MountSpec
    leaked_probe: str | None = None  # Probe id that could not be removed


class ProvisionRun:
    """State of a single provisioning run."""

    def __init__(
        self,
        config: ProvisionConfig,
        client: docker.DockerClient,
        repo_config: RepoConfig,
    ) -> None:
        self.config = config
        self.client = client
        self.repo_config = repo_config

        self.state = ProvisionState.INIT
        self.history: list[ProvisionState] = [ProvisionState.INIT]
        self.error: DeployboxError | None = None

        self.image: ResolvedImage | None = None
        self.probe: ContainerHandle | None = None
        self.shell: ShellChoice | None = None
        self.identity_files: IdentityFiles | None = None
        self.repo_config_path: Path | None = None
        self.mounts: MountSpec | None = None
        self.final: ContainerHandle | None = None
        self.leaked_probe: str | None = None

    def _advance(self, state: ProvisionState) -> None:
        if NEXT_STATE.get(self.state) is not state:
            raise ProvisionStateError(f"Illegal transition {self.state.value} -> {state.value}")
        self.state = state
        self.history.append(state)
        RUN_CONTEXT.state = state.value
        logger.info("Provision state: %s", state.value)

    def _abort(self, error: DeployboxError) -> None:
        failed_from = self.state
        self.state = ProvisionState.ABORTED
        self.history.append(ProvisionState.ABORTED)
        RUN_CONTEXT.state = ProvisionState.ABORTED.value
        self.error = error
        logger.error("Provisioning aborted after %s: %s", failed_from.value, error)

    def run(self) -> ProvisionResult:
        """Execute the pipeline once.

        Raises:
            ProvisionStateError: If this run was already executed.
            DeployboxError: The error of the failing step, after moving to ABORTED.
        """
        if self.state is not ProvisionState.INIT:
            raise ProvisionStateError(f"Run already executed (state: {self.state.value})")
        RUN_CONTEXT.state = self.state.value
        try:
            return self._provision()
        except DeployboxError as e:
            self._abort(e)
            raise
        finally:
            RUN_CONTEXT.clear()

    def _provision(self) -> ProvisionResult:
        cfg = self.config
        client = self.client

        self.image = resolve_image(
            client, image_id=cfg.image_id, repository=cfg.repository, tag=cfg.tag
        )
        self._advance(ProvisionState.IMAGE_RESOLVED)

        # Phase 1: inspect the image through a disposable probe
        with probe_container(client, self.image, cfg.command) as probe:
            self.probe = probe
            RUN_CONTEXT.container = probe.container_id
            self._advance(ProvisionState.PROBE_UP)

            self.shell = detect_shell(client, probe)
            self._advance(ProvisionState.SHELL_KNOWN)

            identity = resolve_identity(cfg, self.shell)
            self.identity_files = rewrite_identity_files(client, probe, identity, cfg.workdir)
            self._advance(ProvisionState.IDENTITY_WRITTEN)

            self._remove_probe(probe)
        RUN_CONTEXT.container = None
        self._advance(ProvisionState.PROBE_DOWN)

        self.repo_config_path = write_repo_config(self.repo_config, cfg.workdir)
        self._advance(ProvisionState.CONFIG_WRITTEN)

        # Phase 2: the final container, built only from host-side facts
        self.mounts = plan_mounts(cfg.workdir, cfg.source_dir)
        self.mounts.ensure_sources()
        env = build_environment(cfg.no_proxy_hosts, root=cfg.root)
        final = create_final(
            client,
            self.image,
            cfg.command,
            self.mounts,
            env,
            name=cfg.container_name,
            privileged=cfg.privileged,
        )
        self.final = final
        RUN_CONTEXT.container = final.container_id
        self._advance(ProvisionState.FINAL_UP)

        try:
            start_container(client, final)
        except DeployboxError:
            logger.error(
                "Container %s was created but did not start; inspect or remove it manually",
                final.short_id,
            )
            raise
        self._advance(ProvisionState.STARTED)

        return ProvisionResult(
            container=final,
            shell=self.shell,
            image=self.image,
            identity_files=self.identity_files,
            repo_config_path=self.repo_config_path,
            mounts=self.mounts,
            leaked_probe=self.leaked_probe,
        )

    def _remove_probe(self, probe: ContainerHandle) -> None:
        # The probe has served its purpose; a failed removal is only reported
        try:
            remove_probe(self.client, probe)
        except ContainerRemoveError as e:
            self.leaked_probe = probe.container_id
            logger.warning("Could not remove probe container %s: %s", probe.short_id, e)
