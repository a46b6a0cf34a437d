"""Run operations for deploybox.

Prepares the host working directory, runs the provisioning pipeline and
prints how to reach the new container.
"""

from __future__ import annotations

import sys

from rich.console import Console
from rich.panel import Panel

from ..config import RepoConfig, Settings
from ..constants import LOG_SUBDIR
from ..errors import DeployboxError
from ..logging import get_logger
from ..pipeline import ProvisionResult, ProvisionRun
from ..run_config import ProvisionConfig
from ..workspace import copy_install_manifest, prepare_workdir
from .utils import ERR_DOCKER_NOT_RUNNING, connect_docker

console = Console()
logger = get_logger(__name__)


def print_usage(result: ProvisionResult, config: ProvisionConfig) -> None:
    """Print commands for reaching and cleaning up the container."""
    cid = result.container.short_id
    hints = [
        ("Access container", f"docker exec -it {cid} {result.shell.path}"),
        ("Stop container", f"docker stop {cid}"),
        ("Remove container", f"docker rm {cid}"),
        ("List all containers", "docker ps -a"),
        ("Stop all containers", "docker stop $(docker ps -a -q)"),
        ("Remove all containers", "docker rm $(docker ps -a -q)"),
        ("Log location", str(config.workdir / LOG_SUBDIR)),
        ("Source location", str(config.source_dir)),
    ]
    for label, value in hints:
        console.print(f"{label}: [cyan]{value}[/cyan]", highlight=False)
    if result.leaked_probe:
        console.print(
            f"[yellow]Probe container {result.leaked_probe[:12]} could not be removed: "
            f"docker rm -f {result.leaked_probe[:12]}[/yellow]"
        )


def provision(config: ProvisionConfig, settings: Settings) -> ProvisionResult:
    """Provision a development container for a validated config.

    Exits the process with status 1 on any deploybox error.
    """
    logger.info("Starting provision: project=%s workdir=%s", config.project.value, config.workdir)

    client = connect_docker(config.api_version)
    if client is None:
        console.print(ERR_DOCKER_NOT_RUNNING)
        console.print("Start Docker and try again.")
        sys.exit(1)

    console.print(
        Panel.fit(
            f"[bold]{config.project.value}[/bold] → {config.container_name}",
            border_style="blue",
        )
    )

    try:
        prepare_workdir(config.workdir)
        copy_install_manifest(config.install_manifest, config.workdir)
        run = ProvisionRun(config, client, RepoConfig.from_settings(settings))
        with console.status("[dim]Provisioning container...[/dim]"):
            result = run.run()
    except DeployboxError as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)
    finally:
        client.close()

    console.print(f"[green]✓ Container {result.container.short_id} is running[/green]\n")
    print_usage(result, config)
    return result
