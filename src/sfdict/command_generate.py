from __future__ import annotations

from pathlib import Path
from typing import Optional

import click

from .catalog import SchemaCatalog
from .command_common import connect_api, resolver_options
from .exceptions import SchemaResolutionError
from .generator import DictionaryGenerator, GenerateOptions
from .identity import PermissionDirectory
from .project import get_name
from .resolver import ResolverConfig


@click.command("generate")
@resolver_options
@click.option(
    "-d",
    "--dir",
    "out_dir",
    type=click.Path(file_okay=False, dir_okay=True, path_type=Path),
    default=Path("."),
    show_default=True,
    help="Directory to create the DataDictionary-<date> folder in.",
)
@click.option("--output-time", is_flag=True, help="Use a timestamp, not a date, in names.")
@click.option("--skip-charts", is_flag=True, help="Do not write the ERD HTML pages.")
@click.option("--verbose", is_flag=True, help="List the objects that were documented.")
def generate_cmd(
    api_version: Optional[str],
    out_dir: Path,
    output_time: bool,
    skip_charts: bool,
    verbose: bool,
    **options,
) -> None:
    """Generate the data dictionary workbook (and ERD pages)."""
    config = ResolverConfig.from_options(**options)
    api = connect_api(api_version)

    generator = DictionaryGenerator(
        SchemaCatalog(api),
        config,
        GenerateOptions(
            dir=out_dir,
            output_time=output_time,
            skip_charts=skip_charts,
            project_name=get_name(),
        ),
        directory=PermissionDirectory(api),
    )
    try:
        result = generator.build()
    except SchemaResolutionError as e:
        raise click.ClickException(str(e)) from e

    click.echo(f"Documented {len(result.objects)} objects")
    click.echo(f"Output folder: {result.output_folder}")
    click.echo(f"Workbook: {result.workbook}")
    if verbose:
        for name in result.objects:
            click.echo(f"  {name}")
