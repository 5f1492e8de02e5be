"""FlareSolverr commands for the steamdb CLI.

Probe a solver service and bootstrap cookies through it.
"""

import click
import json
import sys
from typing import Optional

from ..challenge import FlareSolverr
from ..config import Settings
from ..constants import DEFAULT_FLARESOLVERR_ENDPOINT, TARGET_URL
from ..http import HttpClient
from ..session import Session


def resolve_settings(solver_url: Optional[str]) -> Settings:
    """Settings for an explicit ``--solver-url``, else from the environment."""
    if solver_url:
        return Settings(flaresolverr_url=solver_url)
    return Settings.from_env()


@click.command()
@click.option('--solver-url', help='FlareSolverr endpoint (defaults to $FLARESOLVERR_URL)')
def solver_status(solver_url: Optional[str]) -> None:
    """Check whether the FlareSolverr service is reachable."""
    settings = resolve_settings(solver_url)
    flaresolverr = FlareSolverr(endpoint=settings.flaresolverr_url or DEFAULT_FLARESOLVERR_ENDPOINT)

    info = flaresolverr.version()
    click.echo(json.dumps(info, indent=2))

    if info.get("status") != "running":
        sys.exit(1)


@click.command()
@click.option('--solver-url', help='FlareSolverr endpoint (defaults to $FLARESOLVERR_URL)')
@click.option('--url', '-u', default=TARGET_URL, show_default=True, help='Page to solve')
def cookies(solver_url: Optional[str], url: str) -> None:
    """Bootstrap cookies through FlareSolverr and print the Cookie header."""
    settings = resolve_settings(solver_url)
    if not settings.flaresolverr_url:
        settings.flaresolverr_url = DEFAULT_FLARESOLVERR_ENDPOINT

    solver = settings.build_solver()
    with HttpClient() as client:
        result = Session(client).authenticate_with_flaresolverr(solver=solver, url=url)
        if not result.success:
            click.echo(f"Bootstrap failed: {result.error}", err=True)
            sys.exit(1)

        click.echo(f"Loaded {result.cookies_count} cookies")
        click.echo(client.cookie_jar.header_for(url))
