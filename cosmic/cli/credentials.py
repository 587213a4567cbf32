"""Credential management CLI commands.

Stores the username, password or private key used by a plugin instance
whose configuration says ``credentials: keyring``. The SERVICE argument
is the ``auth.service`` value from the configuration, or the plugin
instance name when none is set.

On headless systems, use environment variables instead:

    export SERVICE_NAME_USERNAME=your_username
    export SERVICE_NAME_PASSWORD=your_password
    export SERVICE_NAME_KEY_DATA="$(cat ~/.ssh/id_ed25519)"
"""

from __future__ import annotations

from pathlib import Path

import click
from rich.console import Console

from cosmic.credentials import CredentialManager

console = Console()


@click.group()
def credentials():
    """Manage credentials for plugin instances.

    \b
    Commands:
      set     Store credentials for a service
      get     Check if credentials are stored
      delete  Remove stored credentials
    """
    pass


@credentials.command("set")
@click.argument("service")
@click.option("--username", "-u", help="Username")
@click.option("--password", "-p", is_flag=True, help="Prompt for a password")
@click.option(
    "--key-file",
    "-k",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Private key to store (its contents, not its path)",
)
@click.option("--force", "-f", is_flag=True, help="Overwrite existing credentials")
def credentials_set(
    service: str,
    username: str | None,
    password: bool,
    key_file: Path | None,
    force: bool,
) -> None:
    """Store credentials for SERVICE in the system keyring.

    \b
    Examples:
      cosmic credentials set ssh -u deploy -k ~/.ssh/deploy_ed25519
      cosmic credentials set legacy-hosts -u admin -p
    """
    creds = CredentialManager()

    if not force and creds.has_credentials(service):
        if not click.confirm(
            f"Credentials already exist for {service}. Overwrite?",
            default=False,
        ):
            console.print("[yellow]Aborted.[/yellow]")
            raise SystemExit(0)

    secret = click.prompt("Password", hide_input=True) if password else None
    key_data = key_file.read_text() if key_file else None
    if not (username or secret or key_data):
        raise click.UsageError("Give at least one of --username, --password, --key-file")

    if creds.set_credentials(service, username, secret, key_data):
        console.print(f"[green]✓ Credentials stored for {service}[/green]")
    else:
        prefix = service.upper().replace("-", "_")
        console.print(f"[red]✗ Failed to store credentials for {service}[/red]")
        console.print(
            "\n[yellow]Hint: Check that your system keyring is available.[/yellow]\n"
            "On headless systems, use environment variables instead:\n"
            f"  export {prefix}_USERNAME=your_username\n"
            f"  export {prefix}_PASSWORD=your_password"
        )
        raise SystemExit(1)


@credentials.command("get")
@click.argument("service")
def credentials_get(service: str) -> None:
    """Show which credentials are available for SERVICE.

    Secrets are always masked.
    """
    creds = CredentialManager()
    result = creds.get_credentials(service)
    if result is None:
        console.print(f"[yellow]No credentials found for {service}[/yellow]")
        console.print(f"\nTo set credentials: cosmic credentials set {service}")
        raise SystemExit(1)

    console.print(f"[green]✓ Credentials available for {service}[/green]")
    console.print(f"  Username: {result.get('username', '-')}")
    console.print(f"  Password: {'********' if result.get('password') else '-'}")
    console.print(f"  Key data: {'<private key>' if result.get('key_data') else '-'}")
    console.print(
        f"  Keyring:  {'available' if creds.keyring_available else 'unavailable'}"
    )


@credentials.command("delete")
@click.argument("service")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompt")
def credentials_delete(service: str, yes: bool) -> None:
    """Delete stored credentials for SERVICE."""
    if not yes and not click.confirm(f"Delete credentials for {service}?"):
        console.print("[yellow]Aborted.[/yellow]")
        raise SystemExit(0)

    if CredentialManager().delete_credentials(service):
        console.print(f"[green]✓ Deleted credentials for {service}[/green]")
    else:
        console.print(f"[yellow]No stored credentials for {service}[/yellow]")
