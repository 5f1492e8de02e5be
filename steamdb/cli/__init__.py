"""Command-line interface for the steamdb fetch layer.

Provides commands for fetching pages, classifying saved responses and
working with a FlareSolverr service.
"""

import click
import json
import sys
from typing import Optional, Dict, Any, Tuple
import logging

# Import CLI modules
from .solver import cookies, solver_status, resolve_settings

# Import core functionality
from ..challenge import detect as detect_challenge
from ..challenge import rate_limited, retry_after
from ..constants import DEFAULT_REGION
from ..errors import FetchError
from ..http import ClientConfig, HttpClient, HttpResponse


# Configure logging for CLI
def setup_logging(verbose: int = 0) -> None:
    """Setup logging based on verbosity level."""
    if verbose == 0:
        level = logging.WARNING
    elif verbose == 1:
        level = logging.INFO
    else:
        level = logging.DEBUG

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    logging.getLogger('steamdb').setLevel(level)


def parse_headers(headers: Tuple[str, ...]) -> Dict[str, str]:
    """Parse repeated ``Name: Value`` options into a dict."""
    parsed_headers = {}
    for header in headers:
        if ':' in header:
            key, value = header.split(':', 1)
            parsed_headers[key.strip()] = value.strip()
    return parsed_headers


def format_response(url: str, response: HttpResponse) -> str:
    """Human-readable report of a fetched page."""
    challenge = response.challenge
    return f"""Fetch Results:
URL: {url}
Status Code: {response.status}
Content Length: {len(response.body)} bytes
Challenge: {challenge.type.value if challenge else 'none'}

Headers:
{chr(10).join(f"  {k}: {v}" for k, v in response.headers.items())}

Response Content:
{response.text}
"""


@click.group()
@click.option('--verbose', '-v', count=True, help='Increase verbosity (use -vv for debug)')
@click.option('--config', '-c', type=click.Path(exists=True), help='Client configuration file (JSON)')
@click.pass_context
def cli(ctx: click.Context, verbose: int, config: Optional[str]) -> None:
    """steamdb - Resilient fetch layer for SteamDB pages.

    Fetches pages through a cached, throttled client and hands blocked
    requests to a FlareSolverr service.
    """
    setup_logging(verbose)

    # Ensure context object exists
    ctx.ensure_object(dict)

    ctx.obj['verbose'] = verbose
    ctx.obj['config_file'] = config

    # Load configuration if provided
    if config:
        try:
            with open(config, 'r') as f:
                ctx.obj['config'] = json.load(f)
        except (OSError, ValueError) as e:
            click.echo(f"Error loading config file: {e}", err=True)
            sys.exit(1)
    else:
        ctx.obj['config'] = {}


@cli.command()
@click.argument('path')
@click.option('--region', '-r', default=DEFAULT_REGION, show_default=True, help='Store region cookie value')
@click.option('--header', '-H', 'headers', multiple=True, help='Headers in format "Name: Value"')
@click.option('--solver-url', help='FlareSolverr endpoint (defaults to $FLARESOLVERR_URL)')
@click.option('--throttle', '-t', type=float, help='Minimum seconds between requests')
@click.option('--output', '-o', type=click.Path(), help='Output file for response')
@click.option('--json-output', is_flag=True, help='Output response as JSON')
@click.pass_context
def fetch(ctx: click.Context, path: str, region: str, headers: Tuple[str, ...],
          solver_url: Optional[str], throttle: Optional[float], output: Optional[str],
          json_output: bool) -> None:
    """Fetch PATH (relative to the site root, or an absolute URL)."""
    config = ClientConfig.from_dict(ctx.obj.get('config', {}))
    if throttle is not None:
        config.throttle_interval = throttle

    solver = resolve_settings(solver_url).build_solver()
    if solver is not None:
        config.solver = solver

    with HttpClient(config) as client:
        url = client.build_url(path)
        try:
            response = client.fetch(url, headers=parse_headers(headers), region=region)
        except FetchError as e:
            click.echo(f"Fetch failed: {e}", err=True)
            sys.exit(1)

    if json_output:
        output_data = {
            "url": url,
            "status_code": response.status,
            "headers": dict(response.headers.items()),
            "content": response.text,
            "challenge": response.challenge.to_dict() if response.challenge else None,
        }
        output_text = json.dumps(output_data, indent=2)
    else:
        output_text = format_response(url, response)

    if output:
        with open(output, 'w') as f:
            f.write(output_text)
        click.echo(f"Results saved to {output}")
    else:
        click.echo(output_text)

    if response.challenge is not None:
        click.echo(f"Warning: {response.challenge.type.value} challenge detected", err=True)


@cli.command()
@click.argument('file', type=click.Path(exists=True, dir_okay=False))
@click.option('--status', '-s', default=200, show_default=True, help='HTTP status the body was served with')
@click.option('--header', '-H', 'headers', multiple=True, help='Response headers in format "Name: Value"')
def detect(file: str, status: int, headers: Tuple[str, ...]) -> None:
    """Classify a saved response body."""
    with open(file, 'rb') as f:
        body = f.read()

    response = HttpResponse(status=status, headers=parse_headers(headers), body=body)
    challenge = detect_challenge(response)

    result: Dict[str, Any] = {
        "challenge": challenge.to_dict() if challenge else None,
        "rate_limited": rate_limited(response),
        "retry_after": retry_after(response),
    }
    click.echo(json.dumps(result, indent=2))


@cli.command()
def version() -> None:
    """Show version information."""
    from .. import __version__

    click.echo(f"steamdb CLI version {__version__}")
    click.echo("Resilient fetch layer for SteamDB pages")


# Add solver commands
cli.add_command(solver_status, name='solver-status')
cli.add_command(cookies, name='cookies')


def main() -> None:
    """Main CLI entry point."""
    try:
        cli()
    except KeyboardInterrupt:
        click.echo("\nOperation cancelled by user.")
        sys.exit(1)


if __name__ == '__main__':
    main()


# Export public API
__all__ = [
    'cli',
    'main',
    'setup_logging',
]
