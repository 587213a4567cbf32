"""CLI interface for cosmic.

Command groups are split by functionality:

    cosmic ssh ...          Run the SSH plugin (exec, upload, download)
    cosmic credentials ...  Manage keyring credentials
"""

import click
from dotenv import load_dotenv

from cosmic import __version__
from cosmic.cli.credentials import credentials
from cosmic.cli.ssh import ssh

# Load environment variables from .env file
load_dotenv(override=True)


@click.group(invoke_without_command=True)
@click.option(
    "--version",
    is_flag=True,
    help="Show the cosmic version and exit.",
)
@click.pass_context
def main(ctx: click.Context, version: bool) -> None:
    """Cosmic - remote commands and file transfers for automation scripts.

    \b
      cosmic ssh exec HOST CMD        Run a command on a host
      cosmic ssh upload HOST LOCAL    Copy a file to a host
      cosmic ssh download HOST REMOTE Copy a file from a host
      cosmic credentials set SERVICE  Store credentials in the keyring
    """
    if version:
        click.echo(__version__)
        ctx.exit()

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


main.add_command(ssh)
main.add_command(credentials)


if __name__ == "__main__":
    main()
