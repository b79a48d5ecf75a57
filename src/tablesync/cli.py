"""Command-line interface for tablesync."""

import json
import logging
import sys
from pathlib import Path
from typing import Any, NoReturn

import click
from botocore.exceptions import ClientError

from .config import load_manifest
from .exceptions import TableSyncError
from .models import ReconcileOptions
from .observer import Present
from .orchestrator import Orchestrator
from .state import JsonStateStore

DEFAULT_STATE_FILE = ".tablesync/state.json"


def _echo_json(data: Any) -> None:
    click.echo(json.dumps(data, indent=2, sort_keys=True))


def _fail(message: str) -> NoReturn:
    click.echo(f"✗ {message}", err=True)
    sys.exit(1)


def _error_message(e: Exception) -> str:
    if isinstance(e, ClientError):
        error = e.response.get("Error", {})
        return f"DynamoDB API error ({error.get('Code')}): {error.get('Message')}"
    return str(e)


def _make_orchestrator(ctx: click.Context) -> Orchestrator:
    return Orchestrator(options=ctx.obj["options"])


def _load_raw(config_path: Path | None) -> dict[str, Any]:
    return load_manifest(config_path) if config_path else {}


config_option = click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="YAML or JSON manifest describing the table (default: all defaults)",
)


@click.group()
@click.version_option(package_name="tablesync")
@click.option(
    "--state-file",
    default=DEFAULT_STATE_FILE,
    show_default=True,
    type=click.Path(dir_okay=False, path_type=Path),
    help="Where the table's persisted state is kept between runs",
)
@click.option(
    "--endpoint-url",
    help=(
        "AWS endpoint URL "
        "(e.g., http://localhost:4566 for LocalStack, or other AWS-compatible services)"
    ),
)
@click.option(
    "--stream-poll-attempts",
    type=click.IntRange(1, 100),
    default=None,
    help="DescribeTable attempts while waiting for a stream ARN (default: 5)",
)
@click.option(
    "--stream-poll-interval",
    type=click.FloatRange(0, 300),
    default=None,
    help="Seconds between stream ARN attempts (default: 10)",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(
    ctx: click.Context,
    state_file: Path,
    endpoint_url: str | None,
    stream_poll_attempts: int | None,
    stream_poll_interval: float | None,
    verbose: bool,
) -> None:
    """tablesync DynamoDB table lifecycle CLI."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )
    ctx.ensure_object(dict)
    ctx.obj["store"] = JsonStateStore(state_file)
    try:
        ctx.obj["options"] = ReconcileOptions.from_env(
            endpoint_url=endpoint_url,
            stream_poll_attempts=stream_poll_attempts,
            stream_poll_interval=stream_poll_interval,
        )
    except ValueError as e:
        raise click.BadParameter(str(e)) from e


@cli.command()
@config_option
@click.pass_context
def deploy(ctx: click.Context, config_path: Path | None) -> None:
    """Create or update the DynamoDB table to match the manifest."""
    store: JsonStateStore = ctx.obj["store"]
    try:
        result = _make_orchestrator(ctx).deploy(
            _load_raw(config_path), store.load(), persist=store.save
        )
    except (TableSyncError, ClientError) as e:
        _fail(f"Deployment failed: {_error_message(e)}")

    _echo_json(result.outputs)


@cli.command()
@config_option
@click.pass_context
def plan(ctx: click.Context, config_path: Path | None) -> None:
    """Show the changes a deploy would make, without making them."""
    store: JsonStateStore = ctx.obj["store"]
    try:
        table_plan = _make_orchestrator(ctx).plan(_load_raw(config_path), store.load())
    except (TableSyncError, ClientError) as e:
        _fail(f"Planning failed: {_error_message(e)}")

    _echo_json(table_plan.to_dict())


@cli.command()
@click.pass_context
def remove(ctx: click.Context) -> None:
    """Delete the table if its deletion policy is "delete"."""
    store: JsonStateStore = ctx.obj["store"]
    try:
        result = _make_orchestrator(ctx).remove(store.load(), persist=store.save)
    except (TableSyncError, ClientError) as e:
        _fail(f"Removal failed: {_error_message(e)}")

    if not result.removed:
        click.echo("Nothing removed.")
        return
    _echo_json(result.outputs)


@cli.command()
@click.option("--name", help="Table name (default: the table recorded in the state file)")
@click.option("--region", help="AWS region (default: recorded region, then TABLESYNC_REGION)")
@click.pass_context
def status(ctx: click.Context, name: str | None, region: str | None) -> None:
    """Describe the table as DynamoDB currently sees it."""
    state = ctx.obj["store"].load()
    name = name or state.name
    if not name:
        _fail("No table name given and none recorded in the state file.")

    try:
        observation = _make_orchestrator(ctx).observe(name, region or state.region)
    except (TableSyncError, ClientError) as e:
        _fail(f"Failed to get status: {_error_message(e)}")

    if isinstance(observation, Present):
        _echo_json(observation.table.to_dict())
    else:
        click.echo(f"Table {name} does not exist.")


def main() -> None:
    """Entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
