"""Flask CLI commands for operator account and session maintenance."""

from __future__ import annotations

import logging
from datetime import timedelta

import click
from flask import current_app
from flask.cli import with_appcontext

from frends.api.deps import build_account_service, build_auth_service, get_refresh_store
from frends.services._shared.errors import ServiceError
from frends.services._shared.policies.roles import KNOWN_ROLES, LEVEL1
from frends.services.accounts.dto import CreateUserIn

LOGGER = logging.getLogger(__name__)


@click.group("accounts")
def accounts_cli() -> None:
    """Operator commands for accounts and refresh sessions."""


@accounts_cli.command("create-user")
@click.option("--username", required=True)
@click.option("--email", required=True)
@click.option("--password", prompt=True, hide_input=True, confirmation_prompt=True)
@click.option(
    "--role",
    "roles",
    multiple=True,
    type=click.Choice(sorted(KNOWN_ROLES)),
    help="Role tag to grant. Repeatable.",
)
@click.option("--admin", is_flag=True, help="Grant every role tag.")
@with_appcontext
def create_user_command(
    username: str, email: str, password: str, roles: tuple[str, ...], admin: bool
) -> None:
    """Create a verified, active account."""
    granted = frozenset(KNOWN_ROLES) if admin else frozenset(roles or (LEVEL1,))
    try:
        user = build_account_service().create_user(
            CreateUserIn(username=username, email=email, password=password, roles=granted)
        )
    except ServiceError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"Created user {user.username} (id={user.id}) roles={','.join(user.roles)}")


@accounts_cli.command("revoke-sessions")
@click.argument("user_id", type=int)
@with_appcontext
def revoke_sessions_command(user_id: int) -> None:
    """Close every refresh session held by USER_ID."""
    revoked = build_auth_service().revoke_all_sessions(user_id)
    click.echo(f"Revoked {revoked} session(s) for user {user_id}")


@accounts_cli.command("prune-tokens")
@with_appcontext
def prune_tokens_command() -> None:
    """Delete expired refresh tokens and stale rotation tombstones."""
    store = get_refresh_store()
    purge = getattr(store, "purge", None)
    if purge is None:
        click.echo("Refresh token store expires entries on its own; nothing to prune.")
        return
    grace = timedelta(seconds=int(current_app.config.get("REFRESH_REUSE_GRACE_SECONDS", 10)))
    removed = purge(grace=grace)
    LOGGER.info("accounts.tokens_pruned", extra={"event": "accounts.tokens_pruned"})
    click.echo(f"Pruned {removed} refresh token row(s)")
