"""Command line interface for the exit offboarding toolkit."""
from __future__ import annotations

from dataclasses import replace
from pathlib import Path
from typing import Optional, Tuple

import typer

from .config import AppConfig, ConfigurationError, load_config
from .errors import FatalError
from .exchange_client import ExchangeMailboxClient
from .graph_client import GraphDirectoryClient
from .logger import RunLogger
from .runner import preview_users, run_offboarding

app = typer.Typer(
    help="Offboard Microsoft 365 accounts flagged for exit by their display name prefix."
)


def _load_configuration(
    config_path: Optional[Path],
    prefix: Optional[str] = None,
    log_file: Optional[Path] = None,
) -> AppConfig:
    try:
        config = load_config(config_path)
    except ConfigurationError as exc:
        typer.echo(f"Error: {exc}")
        raise typer.Exit(code=1)

    run_config = config.run
    if prefix:
        run_config = replace(run_config, display_name_prefix=prefix)
    if log_file is not None:
        run_config = replace(run_config, log_file=log_file)
    return replace(config, run=run_config)


def build_clients(config: AppConfig) -> Tuple[GraphDirectoryClient, ExchangeMailboxClient]:
    directory = GraphDirectoryClient(config.graph)
    mailbox = ExchangeMailboxClient(config.exchange, config.graph)
    return directory, mailbox


def _offboard(config: AppConfig) -> None:
    directory, mailbox = build_clients(config)
    with RunLogger(config.run.log_file) as logger:
        try:
            run_offboarding(directory, mailbox, config.run.display_name_prefix, logger)
        except FatalError:
            logger.log("Offboarding aborted.")
            raise typer.Exit(code=1)


@app.callback(invoke_without_command=True)
def main(ctx: typer.Context) -> None:
    """Run the offboarding with default settings when no command is given."""

    if ctx.invoked_subcommand is None:
        _offboard(_load_configuration(None))


@app.command("run")
def run_command(
    config_path: Optional[Path] = typer.Option(
        None, "--config", help="Path to a specific settings file (overrides default)."
    ),
    prefix: Optional[str] = typer.Option(
        None, "--prefix", help="Display name prefix that marks accounts for exit."
    ),
    log_file: Optional[Path] = typer.Option(
        None, "--log-file", help="File the run log is appended to."
    ),
) -> None:
    """Remove groups and licenses and convert mailboxes for flagged accounts."""

    _offboard(_load_configuration(config_path, prefix, log_file))


@app.command("preview")
def preview_command(
    config_path: Optional[Path] = typer.Option(
        None, "--config", help="Path to a specific settings file (overrides default)."
    ),
    prefix: Optional[str] = typer.Option(
        None, "--prefix", help="Display name prefix that marks accounts for exit."
    ),
    log_file: Optional[Path] = typer.Option(
        None, "--log-file", help="File the run log is appended to."
    ),
) -> None:
    """List the accounts that would be offboarded without changing them."""

    config = _load_configuration(config_path, prefix, log_file)
    directory, _ = build_clients(config)
    with RunLogger(config.run.log_file) as logger:
        try:
            preview_users(directory, config.run.display_name_prefix, logger)
        except FatalError:
            logger.log("Preview aborted.")
            raise typer.Exit(code=1)


def run():
    app()


if __name__ == "__main__":
    run()
