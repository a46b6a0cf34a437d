"""CLI package for deploybox.

This package contains the CLI commands and supporting modules:
- run: Working directory setup, provisioning and usage hints
- utils: Docker client setup and status checks

The provisioning pipeline is imported lazily from the default command
so --help and the listing commands stay fast.
"""

from __future__ import annotations

import random
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from .. import __version__
from ..config import PROJECT_INFO, ProjectKind, get_container_name, get_image_repository, load_settings
from ..constants import DEFAULT_COMMAND, DEFAULT_GNAME, DEFAULT_NOPROXY_HOSTS, DEFAULT_TAG, DEFAULT_UNAME
from ..errors import ConfigError, DeployboxError
from ..identity import get_host_identity
from ..logging import set_debug
from ..run_config import ProvisionConfig
from ..workspace import new_workdir_name
from .utils import ERR_DOCKER_NOT_RUNNING, connect_docker

console = Console(force_terminal=True, legacy_windows=False)

__all__ = ["cli", "build_config"]


def build_config(
    *,
    project: str,
    basedir: str,
    json_path: str,
    cmd: str,
    cname: str | None,
    uid: int | None,
    gid: int | None,
    uname: str,
    gname: str,
    imageid: str | None,
    tag: str,
    noproxy: str,
    privileged: bool,
    root: bool,
    workdir: str | None,
    apiversion: str,
    rng: random.Random,
) -> ProvisionConfig:
    """Fill in host defaults and build a validated ProvisionConfig.

    Raises:
        ConfigError: If required inputs are missing or invalid.
    """
    host = get_host_identity()
    if workdir is None:
        cwd = Path.cwd()
        workdir = str(cwd / new_workdir_name(cwd, rng))

    config = ProvisionConfig.from_cli(
        project=project,
        basedir=basedir,
        json_path=json_path,
        workdir=workdir,
        cname=cname or get_container_name(),
        uid=uid if uid else host.uid,
        gid=gid if gid else host.gid,
        imageid=imageid,
        repository=get_image_repository(host.username),
        tag=tag,
        cmd=cmd,
        privileged=privileged,
        root=root,
        noproxy=noproxy,
        uname=uname,
        gname=gname,
        apiversion=apiversion,
    )
    return config.validate()


@click.group(invoke_without_command=True)
@click.option("--basedir", "-b", type=click.Path(), help="Base source directory [required]")
@click.option("--json", "-j", "json_path", type=click.Path(), help="install_json.json [required]")
@click.option(
    "--project",
    "-p",
    type=click.Choice([k.value for k in ProjectKind]),
    help="Project type [required]",
)
@click.option("--cmd", "-c", default=DEFAULT_COMMAND, show_default=True, help="Container command")
@click.option("--cname", help="Container name (default: deployer_<timestamp>)")
@click.option("--uid", type=int, help="UID in container (default: host uid)")
@click.option("--gid", type=int, help="GID in container (default: host gid)")
@click.option("--uname", default=DEFAULT_UNAME, show_default=True, help="User name in container")
@click.option("--gname", default=DEFAULT_GNAME, show_default=True, help="Group name in container")
@click.option("--imageid", help="Docker image id (overrides repository/tag)")
@click.option("--tag", default=DEFAULT_TAG, show_default=True, help="Image tag")
@click.option(
    "--noproxy",
    default=",".join(DEFAULT_NOPROXY_HOSTS),
    show_default=True,
    help="Comma separated no-proxy hosts",
)
@click.option("--privileged", is_flag=True, help="Run container in privileged mode")
@click.option("--root", is_flag=True, help="Allow tooling in the container to run as root")
@click.option("--workdir", "-w", type=click.Path(), help="Working directory (default: ./cc_<n>)")
@click.option("--apiversion", help="Docker API version (default: from settings)")
@click.option("--debug", "-d", is_flag=True, help="Enable debug logging")
@click.pass_context
@click.version_option(version=__version__, prog_name="deploybox")
def cli(
    ctx: click.Context,
    basedir: str | None,
    json_path: str | None,
    project: str | None,
    cmd: str,
    cname: str | None,
    uid: int | None,
    gid: int | None,
    uname: str,
    gname: str,
    imageid: str | None,
    tag: str,
    noproxy: str,
    privileged: bool,
    root: bool,
    workdir: str | None,
    apiversion: str | None,
    debug: bool,
) -> None:
    """deploybox - Provision a deployer development container.

    Inspects the image through a throwaway probe container, maps your
    identity into it and leaves the final container running.
    """
    if debug:
        set_debug(True)

    if ctx.invoked_subcommand is not None:
        return

    missing = [
        flag
        for flag, value in (("--basedir", basedir), ("--json", json_path), ("--project", project))
        if not value
    ]
    if missing:
        raise click.UsageError(f"Missing required option(s): {', '.join(missing)}")

    settings = load_settings()
    try:
        config = build_config(
            project=project,
            basedir=basedir,
            json_path=json_path,
            cmd=cmd,
            cname=cname,
            uid=uid,
            gid=gid,
            uname=uname,
            gname=gname,
            imageid=imageid,
            tag=tag,
            noproxy=noproxy,
            privileged=privileged,
            root=root,
            workdir=workdir,
            apiversion=apiversion or settings.docker_api_version,
            rng=random.Random(),
        )
    except ConfigError as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)

    # Lazy import: the pipeline and its collaborators
    from .run import provision

    provision(config, settings)


@cli.command()
def projects() -> None:
    """List supported project types."""
    table = Table(title="Projects")
    table.add_column("Project", style="cyan")
    table.add_column("Description")
    table.add_column("Source path")

    for kind in ProjectKind:
        info = PROJECT_INFO[kind]
        table.add_row(kind.value, info.description, info.source_subpath)

    console.print(table)
    console.print("\n[dim]Usage: deploybox -p konrad -b ~/src -j install_json.json[/dim]")


@cli.command()
def doctor() -> None:
    """Check Docker status, settings and local development images."""
    from .. import daemon
    from ..images import match_repo_tag

    settings = load_settings()
    host = get_host_identity()
    repository = get_image_repository(host.username)

    table = Table(title="Settings")
    table.add_column("Key")
    table.add_column("Value", style="cyan")
    table.add_row("Docker API version", settings.docker_api_version)
    table.add_row("Repository base URL", settings.repo_base_url)
    table.add_row("Logstash", f"{settings.logstash_host}:{settings.logstash_port}")
    table.add_row("Host identity", f"{host.username} ({host.uid}:{host.gid})")
    console.print(table)

    client = connect_docker(settings.docker_api_version)
    if client is None:
        console.print(ERR_DOCKER_NOT_RUNNING)
        sys.exit(1)

    console.print("[green]Docker running[/green]")
    console.print(f"\n[bold]Images matching {repository}:[/bold]")
    try:
        matches = match_repo_tag(daemon.list_images(client), repository, "")
    except DeployboxError as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)
    finally:
        client.close()
    if not matches:
        console.print("  [dim]None found[/dim]")
    for image in matches:
        console.print(f"  [green]{image.matched_tag}[/green] {image.short_id}")


if __name__ == "__main__":  # pragma: no cover
    cli()
