from __future__ import annotations

import logging
from typing import Callable, Optional

import click
import requests

from .api import SalesforceAPI, SFConfig
from .exceptions import MissingCredentialsError
from .project import get_source_api_version
from .resolver import DEFAULT_BATCH_SIZE, MAX_BATCH_SIZE, MIN_BATCH_SIZE

_logger = logging.getLogger(__name__)

_CREDENTIALS_HELP = (
    "Set these environment variables (or create a .env file), e.g. for "
    "client-credentials auth:\n"
    "  SF_AUTH_FLOW=client_credentials\n"
    "  SF_CLIENT_ID=...             # Connected App Consumer Key\n"
    "  SF_CLIENT_SECRET=...         # Connected App Client Secret\n"
    "  SF_LOGIN_URL=https://login.salesforce.com  # or your My Domain URL\n"
    "  SF_API_VERSION=v60.0         # optional; will auto-discover if omitted\n\n"
    "Alternatively provide SF_ACCESS_TOKEN and SF_INSTANCE_URL directly.\n"
    "Tip: run `sfdict login --help` for more details on configuration."
)


def connect_api(api_version: Optional[str] = None) -> SalesforceAPI:
    """Build and connect the API client, mapping auth problems to ClickException.

    API version precedence: explicit flag, SF_API_VERSION, the project's
    sourceApiVersion, then the latest version the org offers.
    """
    try:
        cfg = SFConfig.from_env()
    except ValueError as e:
        raise click.ClickException(f"Invalid Salesforce configuration: {e}") from e
    if api_version:
        cfg.api_version = api_version
    elif not cfg.api_version:
        cfg.api_version = get_source_api_version()

    api = SalesforceAPI(cfg)
    try:
        api.connect()
    except MissingCredentialsError as e:
        needed = ", ".join(e.missing)
        raise click.ClickException(
            f"Missing Salesforce credentials: {needed}\n\n{_CREDENTIALS_HELP}"
        ) from e
    except requests.RequestException as e:
        raise click.ClickException(f"Could not connect to Salesforce: {e}") from e
    return api


def resolver_options(fn: Callable) -> Callable:
    """Options shared by every command that resolves an object set."""
    options = [
        click.option(
            "--username",
            help="Resolve the objects this user can read (profile + permission sets).",
        ),
        click.option(
            "--start-object",
            help="Crawl relationships starting from this object.",
        ),
        click.option(
            "-s",
            "--sobjects",
            help="Comma-separated list of objects to use verbatim.",
        ),
        click.option(
            "--include-std-objects",
            help="Comma-separated standard objects the crawler may expand.",
        ),
        click.option(
            "-m",
            "--include-all-managed",
            "include_managed",
            is_flag=True,
            help="Include managed package objects.",
        ),
        click.option(
            "-x",
            "--exclude-managed-prefixes",
            help="Comma-separated namespace prefixes to leave out (with -m).",
        ),
        click.option(
            "-l",
            "--include-managed-prefixes",
            help="Comma-separated namespace prefixes to include in a full scan.",
        ),
        click.option(
            "--exclude-objects",
            help="Comma-separated objects to drop from the result.",
        ),
        click.option(
            "--skip-empty-objects",
            is_flag=True,
            help="Drop objects without any records (one COUNT() query per object).",
        ),
        click.option(
            "--process-batch-size",
            "batch_size",
            type=click.IntRange(MIN_BATCH_SIZE, MAX_BATCH_SIZE),
            default=DEFAULT_BATCH_SIZE,
            show_default=True,
            help="Maximum concurrent COUNT()/describe calls.",
        ),
        click.option(
            "--api-version",
            help="Salesforce API version, e.g. 60.0 (default: project or latest).",
        ),
    ]
    for option in reversed(options):
        fn = option(fn)
    return fn
