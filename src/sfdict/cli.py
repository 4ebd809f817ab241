from __future__ import annotations

import logging
from typing import Optional, cast

import click
from click import Command

from . import __version__
from .command_common import connect_api
from .command_generate import generate_cmd
from .command_objects import objects_cmd
from .env_loader import load_env_files
from .logging_config import configure_logging

_logger = logging.getLogger(__name__)

# Load .env very early, so everything else sees env vars
load_env_files()


@click.group(
    context_settings={"help_option_names": ["-h", "--help"]},
    invoke_without_command=True,
)
@click.version_option(__version__, "--version", prog_name="sfdict")
@click.option(
    "-v",
    "--verbose",
    "loglevel",
    flag_value=logging.INFO,
    default=None,
    help="Enable INFO logs.",
)
@click.option(
    "-vv",
    "--very-verbose",
    "loglevel",
    flag_value=logging.DEBUG,
    help="Enable DEBUG logs.",
)
@click.pass_context
def cli(ctx: click.Context, loglevel: Optional[int]) -> None:
    """Salesforce data dictionary generator. Use subcommands like 'objects' or 'generate'."""
    configure_logging(loglevel)
    _logger.debug("CLI start, version=%s", __version__)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@cli.command("login")
@click.option("--api-version", help="Salesforce API version, e.g. 60.0.")
def cmd_login(api_version: Optional[str]) -> None:
    """Check the Salesforce connection configured in the environment."""
    api = connect_api(api_version)
    click.echo(f"Connected to {api.instance_url} (API {api.api_version})")
    daily = api.limits().get("DailyApiRequests", {})
    click.echo(f"Daily API requests: {daily.get('Remaining')} remaining of {daily.get('Max')}")


# Cast ensures IDE knows of the Command type
cli.add_command(cast(Command, objects_cmd))
cli.add_command(cast(Command, generate_cmd))
