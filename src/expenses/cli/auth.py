#!/usr/bin/env python3
"""
Auth CLI - Monzo Authorization Management

Start the OAuth flow, complete it with the returned code, and inspect or drop
the stored session.
"""

import click

from ..core.errors import ExpensesError
from ..monzo.auth import AuthManager
from ..sync.factory import build_auth_manager, build_monzo_client, build_token_vault


def _auth_manager(ctx: click.Context) -> AuthManager:
    if "auth_manager" not in ctx.obj:
        try:
            ctx.obj["auth_manager"] = build_auth_manager(ctx.obj["config"], ctx.obj.get("http"))
        except ValueError as e:
            raise click.ClickException(str(e)) from e
    return ctx.obj["auth_manager"]


@click.group()
def auth() -> None:
    """Monzo OAuth authorization commands."""
    pass


@auth.command()
@click.option("--redirect-uri", help="Override MONZO_REDIRECT_URI")
@click.pass_context
def url(ctx: click.Context, redirect_uri: str | None) -> None:
    """
    Print the Monzo authorization URL.

    Open it in a browser, approve access, then pass the ``code`` query
    parameter of the redirect to ``expenses auth exchange``.
    """
    config = ctx.obj["config"]
    if not config.monzo.client_id:
        raise click.ClickException("MONZO_CLIENT_ID is not configured")

    manager = _auth_manager(ctx)
    state = manager.new_state()
    click.echo(manager.authorization_url(state, redirect_uri))
    click.echo()
    click.echo(f"State: {state}")
    click.echo("Check that the redirect carries the same state before exchanging the code.")


@auth.command()
@click.argument("code")
@click.option("--redirect-uri", help="Override MONZO_REDIRECT_URI (must match the one used for the URL)")
@click.pass_context
def exchange(ctx: click.Context, code: str, redirect_uri: str | None) -> None:
    """Exchange an authorization code for tokens and store them."""
    config = ctx.obj["config"]
    try:
        record = _auth_manager(ctx).exchange_code_for_tokens(code, redirect_uri)
    except ExpensesError as e:
        click.echo(f"❌ Authorization failed: {e}", err=True)
        raise click.ClickException(str(e)) from e

    click.echo("✅ Connected to Monzo")
    click.echo(f"  Access token expires: {record.expires_at.isoformat()}")
    if not config.vault.encryption_key:
        click.echo("⚠️  TOKEN_ENCRYPTION_KEY is not set; the session was not stored")
    click.echo("Approve the login in the Monzo app before syncing (strong customer authentication).")


@auth.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show whether a usable Monzo session exists."""
    config = ctx.obj["config"]
    manager = _auth_manager(ctx)
    vault = build_token_vault(config)
    stored = vault.load() if vault is not None else None

    if stored is not None:
        click.echo(f"Stored session: access token expires {stored.expires_at.isoformat()}")
    elif config.monzo.access_token or config.monzo.refresh_token:
        click.echo("Stored session: none (static tokens configured in the environment)")
    else:
        click.echo("Stored session: none")

    if manager.has_valid_tokens():
        click.echo("✅ Connected")
    else:
        click.echo("❌ Not connected; run `expenses auth url` to authorize")


@auth.command()
@click.pass_context
def disconnect(ctx: click.Context) -> None:
    """Forget the stored Monzo session."""
    _auth_manager(ctx).disconnect()
    click.echo("Monzo session cleared")


@auth.command()
@click.pass_context
def accounts(ctx: click.Context) -> None:
    """List the Monzo accounts the session can see."""
    config = ctx.obj["config"]
    try:
        token = _auth_manager(ctx).get_valid_access_token()
        found = build_monzo_client(config, ctx.obj.get("http")).list_accounts(token)
    except ExpensesError as e:
        raise click.ClickException(str(e)) from e

    if not found:
        click.echo("No accounts visible to this session")
        return

    for account in found:
        marker = "*" if account.id == config.monzo.account_id else " "
        closed = " (closed)" if account.closed else ""
        click.echo(f"{marker} {account.id}  {account.type}  {account.description}{closed}")
