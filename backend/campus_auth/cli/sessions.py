"""Flask CLI commands for refresh-session maintenance."""

from __future__ import annotations

import logging

import click
from flask.cli import with_appcontext

from campus_auth.services._shared.errors import NotFoundError, StoreUnavailableError
from campus_auth.services.auth import get_engine

LOGGER = logging.getLogger(__name__)


def _configure_logging(verbose: bool) -> None:
    """Raise logging verbosity for the session engine when requested."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.getLogger("campus_auth.services.auth").setLevel(level)
    LOGGER.setLevel(level)


@click.group("sessions")
@click.option("--verbose", is_flag=True, help="Enable verbose logging.")
def sessions_cli(verbose: bool) -> None:
    """Refresh-session maintenance commands."""
    _configure_logging(verbose)


@sessions_cli.command("prune")
@with_appcontext
def prune_command() -> None:
    """Delete expired refresh records."""
    try:
        count = get_engine().authority.prune_expired()
    except StoreUnavailableError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"Pruned {count} expired refresh token(s).")


@sessions_cli.command("revoke-all")
@click.argument("user_id", type=int)
@with_appcontext
def revoke_all_command(user_id: int) -> None:
    """Sign USER_ID out everywhere (revoke refresh tokens, bump token_version)."""
    try:
        version = get_engine().authority.logout_all(user_id)
    except NotFoundError as exc:
        raise click.ClickException(str(exc)) from exc
    except StoreUnavailableError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"User {user_id} signed out everywhere; token_version is now {version}.")
