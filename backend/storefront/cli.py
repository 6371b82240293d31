# Overview: Flask CLI command groups for local storage, the session and catalog inspection.

# backend/storefront/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# Local storage:
# - python -m flask storage init
#   Create the client storage table (idempotent).
#
# Session:
# - python -m flask session status
#   Show who is signed in, decoded from the persisted credential.
# - python -m flask session logout
#   Remove the persisted credential.
#
# Catalog:
# - python -m flask events list [--city Paris] [--query jazz] [--free]
#   Search events on the remote API.

import click
from flask import current_app
from flask.cli import with_appcontext

from .context import get_services
from .extensions import db
from .permissions import capabilities_for, get_capability_definition, role_for
from .schemas import SearchFilters
from .services.gateway_service import GatewayError


@click.group('storage')
def storage_group():
    """Local client storage commands."""


@storage_group.command('init')
@with_appcontext
def init_storage():
    """Create the client storage table."""
    from . import models  # noqa: F401
    db.create_all()
    click.echo(f"Client storage ready ({current_app.config['SQLALCHEMY_DATABASE_URI']})")


@click.group('session')
def session_group():
    """Client session commands."""


@session_group.command('status')
@with_appcontext
def session_status():
    """Show the current session."""
    session = get_services().session_view
    if session.loading:
        get_services().session.bootstrap()

    if not session.is_authenticated:
        click.echo("Not signed in.")
        if session.error:
            click.echo(f"Last error: {session.error}")
        return

    identity = session.identity
    click.echo(f"Signed in as {identity.name or '-'} <{identity.email or '-'}> (id {identity.id})")
    click.echo(f"Role: {role_for(identity).name.lower()}")
    click.echo("Capabilities:")
    for code in sorted(capabilities_for(identity)):
        definition = get_capability_definition(code)
        click.echo(f"  {code:<26} {definition['name']}")


@session_group.command('logout')
@with_appcontext
def session_logout():
    """Remove the persisted credential."""
    get_services().session.logout()
    click.echo("Signed out.")


@click.group('events')
def events_group():
    """Catalog inspection commands."""


@events_group.command('list')
@click.option('--city', help='Filter by city')
@click.option('--query', help='Free-text search')
@click.option('--free', is_flag=True, default=False, help='Only free events')
@with_appcontext
def list_events(city, query, free):
    """Search events on the remote API."""
    filters = SearchFilters(query=query, city=city, is_free=True if free else None)
    try:
        events = get_services().gateway.list_events(filters)
    except GatewayError as e:
        raise click.ClickException(e.message)

    if not events:
        click.echo("No events found.")
        return

    click.echo("\n" + "=" * 90)
    click.echo(f"{'ID':<6} {'Start':<18} {'City':<16} {'Title'}")
    click.echo("=" * 90)
    for event in events:
        start = event.start_datetime.strftime("%Y-%m-%d %H:%M") if event.start_datetime else "-"
        click.echo(f"{event.id:<6} {start:<18} {(event.city or '-'):<16} {event.title}")
        for ticket in event.tickets:
            click.echo(f"{'':<6} - {ticket.type}: {ticket.price} ({ticket.available} left)")
    click.echo("=" * 90 + "\n")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(storage_group)
    app.cli.add_command(session_group)
    app.cli.add_command(events_group)
