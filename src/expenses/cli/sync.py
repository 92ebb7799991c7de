#!/usr/bin/env python3
"""
Sync CLI - Expense Summary Commands

Run a sync pass and print the summary, or explain how the classifier treats
each live transaction.
"""

import click

from ..core.dates import FinancialDate
from ..core.errors import ExpensesError
from ..core.json_utils import dumps_json
from ..core.models import ConnectionState, Summary
from ..core.money import Money
from ..sync.factory import build_orchestrator
from ..sync.orchestrator import SyncOrchestrator


def _orchestrator(ctx: click.Context) -> SyncOrchestrator:
    if "orchestrator" not in ctx.obj:
        try:
            ctx.obj["orchestrator"] = build_orchestrator(ctx.obj["config"], ctx.obj.get("http"))
        except ValueError as e:
            raise click.ClickException(str(e)) from e
    return ctx.obj["orchestrator"]


def _window(ctx: click.Context, days: int | None) -> int:
    return days if days is not None else ctx.obj["config"].sync.default_window_days


@click.command()
@click.option("--days", type=int, help="Look-back window in days (default: SYNC_WINDOW_DAYS)")
@click.option("--skip-cache", is_flag=True, help="Ignore the cached summary")
@click.option("--json", "as_json", is_flag=True, help="Print the summary as JSON")
@click.option("--limit", type=int, default=20, help="Expenses to list in text output (default: 20)")
@click.pass_context
def sync(ctx: click.Context, days: int | None, skip_cache: bool, as_json: bool, limit: int) -> None:
    """
    Sync Monzo and print the expense summary.

    Examples:
      expenses sync
      expenses sync --days 7 --json
    """
    try:
        summary = _orchestrator(ctx).sync(_window(ctx, days), skip_cache=skip_cache)
    except (ExpensesError, ValueError) as e:
        raise click.ClickException(str(e)) from e

    if as_json:
        click.echo(dumps_json(summary.to_dict()))
        return

    _print_summary(summary, limit)


def _print_summary(summary: Summary, limit: int) -> None:
    connected = summary.connection_state == ConnectionState.CONNECTED
    click.echo(f"Expense Summary ({'connected' if connected else 'disconnected'})")
    click.echo(f"  Last updated: {summary.last_updated}")
    if summary.cached:
        click.echo(f"  Cached: {summary.cache_age}s old")
    if summary.step_up_required:
        click.echo("  ⚠️  Approve access in the Monzo app, then sync again")
    elif summary.reauthorization_required:
        click.echo("  ⚠️  Monzo session expired; run `expenses auth url` to reconnect")
    click.echo()

    click.echo("Buckets:")
    for name, bucket in summary.buckets.items():
        click.echo(f"  {name:<20} {str(bucket.total):>12}  ({bucket.count} expenses)")
    click.echo(f"  {'TOTAL':<20} {str(summary.total):>12}  ({summary.count} expenses)")
    click.echo()

    if not summary.expenses:
        click.echo("No expenses")
        return

    click.echo(f"Latest {min(limit, summary.count)} of {summary.count} expenses:")
    for expense in summary.expenses[:limit]:
        click.echo(
            f"  {expense.date} {expense.weekday}  {expense.merchant[:30]:<30} {str(expense.amount):>10}  {expense.category}"
        )


@click.command()
@click.option("--days", type=int, help="Look-back window in days (default: SYNC_WINDOW_DAYS)")
@click.option("--rejected-only", is_flag=True, help="Only show transactions the classifier rejected")
@click.pass_context
def explain(ctx: click.Context, days: int | None, rejected_only: bool) -> None:
    """Show every classification rule's verdict for each live transaction."""
    orchestrator = _orchestrator(ctx)
    try:
        report = orchestrator.explain(_window(ctx, days))
    except (ExpensesError, ValueError) as e:
        raise click.ClickException(str(e)) from e

    zone = orchestrator.classifier.settings.zone
    shown = 0
    for txn, outcomes in report:
        accepted = all(o.passed for o in outcomes)
        if rejected_only and accepted:
            continue
        shown += 1
        amount = Money.from_minor_units(txn.amount, currency=txn.currency)
        day = FinancialDate.from_timestamp(txn.created, zone)
        click.echo(f"{'✅' if accepted else '❌'} {day} {txn.merchant_name} {amount}")
        for outcome in outcomes:
            if not outcome.passed:
                click.echo(f"     ✗ {outcome.rule}: {outcome.description}")

    click.echo()
    click.echo(f"{shown} of {len(report)} transactions shown")
