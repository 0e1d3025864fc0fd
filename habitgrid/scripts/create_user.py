"""CLI command for creating API logins.

Usage:
    flask create-user --email me@example.com --password secret123
    flask create-user --email me@example.com --password secret123 --full-name "Me"
"""

from __future__ import annotations

import click
from flask.cli import with_appcontext


@click.command("create-user")
@click.option("--email", required=True, help="Login email")
@click.option("--password", required=True, help="At least 8 characters")
@click.option("--full-name", default=None, help="Display name")
@with_appcontext
def create_user_command(email: str, password: str, full_name: str | None):
    """Create a login for the habits API."""
    from pydantic import ValidationError

    from habitgrid.core.users.schemas import UserCreateRequest
    from habitgrid.core.users.services import create_user

    try:
        user = create_user(UserCreateRequest(email=email, password=password, full_name=full_name))
    except ValidationError as exc:
        raise click.BadParameter(str(exc)) from exc
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"  ✓ Created user {user.id} <{user.email}>")


def register_commands(app):
    """Register CLI commands with the app."""
    app.cli.add_command(create_user_command)
