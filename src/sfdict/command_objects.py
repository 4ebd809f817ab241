from __future__ import annotations

from typing import Optional

import click

from .catalog import SchemaCatalog
from .command_common import connect_api, resolver_options
from .exceptions import SchemaResolutionError
from .identity import PermissionDirectory
from .resolver import ObjectSetResolver, ResolverConfig


@click.command("objects")
@resolver_options
def objects_cmd(api_version: Optional[str], **options) -> None:
    """Print the resolved object set, one name per line.

    Uses environment-based Salesforce auth (see `sfdict login --help`).
    """
    config = ResolverConfig.from_options(**options)
    api = connect_api(api_version)

    resolver = ObjectSetResolver(SchemaCatalog(api), PermissionDirectory(api))
    try:
        names = resolver.resolve(config)
    except SchemaResolutionError as e:
        raise click.ClickException(str(e)) from e

    for n in names:
        click.echo(n)
