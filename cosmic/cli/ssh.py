"""SSH CLI commands.

Runs the SSH plugin from the shell, mainly to check a configuration
before using it from scripts:

    cosmic ssh exec build01 uname -a
    cosmic ssh --dry-run upload build01 dist/app.tar.gz /srv/app.tar.gz
    cosmic ssh --name ssh_legacy download old01 /var/log/syslog syslog
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    TextColumn,
    TransferSpeedColumn,
)

from cosmic.cli.logging import configure_cli_logging
from cosmic.cli.rich_output import should_use_rich
from cosmic.config import ConfigError
from cosmic.environment import Environment, Notification
from cosmic.plugin import PluginError
from cosmic.ssh import SSH
from cosmic.transport import ProgressCallback

console = Console()


def _print_notification(verbose: bool):
    def _print(notification: Notification) -> None:
        if notification.has_tag("dryrun"):
            message = escape(notification.message)
            console.print(f"[yellow]\\[dry-run][/yellow] {message}")
        elif verbose or not notification.has_tag("trace"):
            message = escape(notification.message)
            console.print(f"[dim]{message}[/dim]", highlight=False)

    return _print


def _plugin(ctx: click.Context) -> SSH:
    """Build the SSH plugin from the group options."""
    opts = ctx.obj
    try:
        environment = Environment(config_path=opts["config"], dry_run=opts["dry_run"])
        environment.subscribe(_print_notification(opts["verbose"]))
        return SSH(environment, opts["name"])
    except (ConfigError, ValueError) as e:
        raise click.ClickException(str(e)) from e


@contextmanager
def _transfer_progress(label: str) -> Iterator[ProgressCallback]:
    """Yield a progress callback rendering a bar (or plain counters)."""
    if not should_use_rich():

        def _plain(chunk: bytes, name: str, done: int, total: int) -> None:
            click.echo(f"\r{name}: {done}/{total}", nl=False)

        try:
            yield _plain
        finally:
            click.echo()
        return

    with Progress(
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        DownloadColumn(),
        TransferSpeedColumn(),
        console=console,
        transient=True,
    ) as progress:
        task = None

        def _rich(chunk: bytes, name: str, done: int, total: int) -> None:
            nonlocal task
            if task is None:
                task = progress.add_task(f"{label} {name}", total=total)
            progress.update(task, completed=done)

        yield _rich


def _run(action):
    """Run a plugin call, turning failures into one-line CLI errors."""
    try:
        return action()
    except click.ClickException:
        raise
    except PluginError as e:
        raise click.UsageError(str(e)) from e
    except Exception as e:
        raise click.ClickException(f"{type(e).__name__}: {e}") from e


@click.group()
@click.option(
    "--name", default="ssh", show_default=True, help="Plugin instance (config section)"
)
@click.option(
    "--config",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Configuration file (default: COSMIC_CONFIG or ~/.config/cosmic/cosmic.yaml)",
)
@click.option(
    "--dry-run/--live",
    default=None,
    help="Only report what would be done (default: COSMIC_DRY_RUN)",
)
@click.option("--verbose", "-v", is_flag=True, help="Show trace messages and logs")
@click.pass_context
def ssh(
    ctx: click.Context,
    name: str,
    config: Path | None,
    dry_run: bool | None,
    verbose: bool,
) -> None:
    """Run commands on and copy files to and from remote hosts.

    \b
    Commands:
      exec      Run a command on a host
      upload    Copy a local file to a host
      download  Copy a file from a host
    """
    configure_cli_logging("ssh", verbose=verbose)
    ctx.obj = {"name": name, "config": config, "dry_run": dry_run, "verbose": verbose}


@ssh.command("exec")
@click.argument("host")
@click.argument("cmd", nargs=-1, required=True)
@click.option("--user", "-u", help="Remote user (default: configured username)")
@click.pass_context
def ssh_exec(ctx: click.Context, host: str, cmd: tuple[str, ...], user: str | None):
    """Run CMD on HOST and print its combined output.

    \b
    Examples:
      cosmic ssh exec build01 uname -a
      cosmic ssh exec build01 -u root -- systemctl status nginx
    """
    plugin = _plugin(ctx)
    output = _run(lambda: plugin.exec(host=host, cmd=" ".join(cmd), user=user))
    if output:
        click.echo(output, nl=not output.endswith("\n"))


@ssh.command("upload")
@click.argument("host")
@click.argument("local", type=click.Path(exists=True, dir_okay=False))
@click.argument("remote", required=False)
@click.option("--user", "-u", help="Remote user (default: configured username)")
@click.pass_context
def ssh_upload(
    ctx: click.Context, host: str, local: str, remote: str | None, user: str | None
):
    """Copy LOCAL to HOST (at REMOTE, default: the same path)."""
    plugin = _plugin(ctx)
    if plugin.environment.in_dry_run_mode():
        _run(lambda: plugin.upload(host=host, local=local, remote=remote, user=user))
        return
    with _transfer_progress("Uploading") as progress:
        _run(
            lambda: plugin.upload(
                {"host": host, "local": local, "remote": remote, "user": user},
                progress,
            )
        )


@ssh.command("download")
@click.argument("host")
@click.argument("remote")
@click.argument("local", required=False, type=click.Path(dir_okay=False))
@click.option("--user", "-u", help="Remote user (default: configured username)")
@click.pass_context
def ssh_download(
    ctx: click.Context, host: str, remote: str, local: str | None, user: str | None
):
    """Copy REMOTE from HOST (to LOCAL, default: the same path)."""
    plugin = _plugin(ctx)
    if plugin.environment.in_dry_run_mode():
        _run(lambda: plugin.download(host=host, remote=remote, local=local, user=user))
        return
    with _transfer_progress("Downloading") as progress:
        _run(
            lambda: plugin.download(
                {"host": host, "remote": remote, "local": local, "user": user},
                progress,
            )
        )
