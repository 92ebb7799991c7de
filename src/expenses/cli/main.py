#!/usr/bin/env python3
"""
Main CLI Entry Point for the Expense Dashboard

Provides the ``expenses`` command group: configuration inspection, Monzo
authorization and expense syncing.
"""

import logging
import os

import click

from ..core.config import reload_config


@click.group()
@click.option(
    "--config-env",
    type=click.Choice(["development", "test", "production"]),
    help="Override environment configuration",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.pass_context
def main(ctx: click.Context, config_env: str | None, verbose: bool, debug: bool) -> None:
    """
    Expense Dashboard - work expenses from a CSV baseline and the Monzo feed

    Reconciles historical expenses with live Monzo transactions, keeps an
    archive beyond the provider's 90-day window, and reports per-bucket totals.
    """
    # Tests pass a pre-populated obj (config, shared http client)
    ctx.ensure_object(dict)

    if config_env:
        os.environ["EXPENSES_ENV"] = config_env

    if debug:
        os.environ["LOG_LEVEL"] = "DEBUG"

    if "config" not in ctx.obj:
        try:
            ctx.obj["config"] = reload_config()
        except ValueError as e:
            raise click.ClickException(str(e)) from e
    config_obj = ctx.obj["config"]
    config_obj.setup_logging()

    if debug:
        logging.getLogger().setLevel(logging.DEBUG)
        logging.getLogger("expenses").setLevel(logging.DEBUG)

    ctx.obj["verbose"] = verbose
    ctx.obj["debug"] = debug

    if verbose:
        click.echo(f"Environment: {config_obj.environment.value}")
        click.echo(f"Data directory: {config_obj.data_dir}")

    if debug:
        click.echo("Debug logging enabled")


@main.command()
@click.pass_context
def version(ctx: click.Context) -> None:
    """Show version information."""
    from expenses import __author__, __version__

    click.echo(f"Expense Dashboard v{__version__}")
    click.echo(f"Author: {__author__}")


@main.command()
@click.option("--show-secrets", is_flag=True, help="Include secrets instead of redacting them")
@click.pass_context
def config(ctx: click.Context, show_secrets: bool) -> None:
    """Show current configuration."""
    config_obj = ctx.obj["config"]

    click.echo("Current Configuration:")
    for section, values in config_obj.to_dict(include_sensitive=show_secrets).items():
        if isinstance(values, dict):
            click.echo(f"  {section}:")
            for name, value in values.items():
                click.echo(f"    {name}: {value}")
        else:
            click.echo(f"  {section}: {values}")


@main.command()
@click.pass_context
def diagnose(ctx: click.Context) -> None:
    """
    Check OAuth and storage settings before connecting.

    Exits non-zero when any problem is found.
    """
    config_obj = ctx.obj["config"]
    issues = config_obj.oauth_issues()
    problems = issues + [p for p in config_obj.validate() if p not in issues]

    click.echo("Monzo OAuth Diagnostics")
    click.echo(f"  Client ID: {_mask(config_obj.monzo.client_id)}")
    click.echo(f"  Redirect URI: {config_obj.monzo.redirect_uri or 'NOT SET'}")
    click.echo(f"  Account ID: {config_obj.monzo.account_id or 'NOT SET'}")
    click.echo(f"  Token storage: {'encrypted' if config_obj.vault.encryption_key else 'in-process only'}")
    click.echo(f"  Archive: {config_obj.archive.blob_url or config_obj.archive.data_dir}")
    click.echo(f"  Baseline CSV: {config_obj.baseline.csv_path}")
    click.echo()

    if not problems:
        click.echo("✅ No configuration problems found")
        return

    click.echo("Problems:")
    for problem in problems:
        click.echo(f"  ❌ {problem}")
    raise click.ClickException(f"{len(problems)} configuration problem(s) found")


def _mask(value: str | None) -> str:
    if not value:
        return "NOT SET"
    return f"{value[:16]}..." if len(value) > 16 else value


from .auth import auth  # noqa: E402
from .sync import explain, sync  # noqa: E402

main.add_command(auth)
main.add_command(sync)
main.add_command(explain)


if __name__ == "__main__":
    main()
