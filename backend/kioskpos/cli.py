# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/kioskpos/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create any missing tables (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Accounts:
# - python -m flask users create-manager --name "Factory" --email manager@example.com --password secret1
#   Create the factory manager (only one may exist).
# - python -m flask users create-kiosk --name "Asha" --kiosk-name "Station Road" --email kiosk@example.com --password secret1
#   Create a kiosk account.
# - python -m flask users list
#   List all accounts.
#
# Catalog:
# - python -m flask catalog seed
#   Create factory entries for every predefined menu item that is missing.
#
# Reports:
# - python -m flask reports snapshot [--date 2024-05-01]
#   Archive the day's per-kiosk summary into the reports table.

import click
from flask.cli import with_appcontext

from .extensions import db
from .menu import PREDEFINED_MENU
from .models import Profile, ROLE_MANAGER, ROLE_KIOSK
from .services import auth_service, catalog_service, reporting_service
from .validation import ValidationError, ConflictError


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database tables created.")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete. Run 'python -m flask users create-manager' next.")


# =============================================================================
# ACCOUNT COMMANDS
# =============================================================================

@click.group('users')
def users_group():
    """Account inspection and bootstrap commands."""


def _create_account(**fields):
    try:
        profile = auth_service.sign_up(**fields)
    except (ValidationError, ConflictError) as e:
        click.echo(f"FAIL {e}")
        return None
    click.echo(f"PASS Created {profile.role}: {profile.name} ({profile.email}) id={profile.id}")
    return profile


@users_group.command('create-manager')
@click.option('--name', prompt=True, help='Display name')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password (6-72 chars)')
@with_appcontext
def create_manager_cli(name, email, password):
    """Create the factory manager account."""
    _create_account(name=name, email=email, password=password, role=ROLE_MANAGER)


@users_group.command('create-kiosk')
@click.option('--name', prompt=True, help='Operator name')
@click.option('--kiosk-name', prompt=True, help='Kiosk (storefront) name')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password (6-72 chars)')
@with_appcontext
def create_kiosk_cli(name, kiosk_name, email, password):
    """Create a kiosk account."""
    _create_account(name=name, email=email, password=password, role=ROLE_KIOSK, kiosk_name=kiosk_name)


@users_group.command('list')
@with_appcontext
def list_users():
    """List all accounts, manager first."""
    profiles = db.session.query(Profile).order_by(Profile.role.desc(), Profile.name.asc()).all()

    if not profiles:
        click.echo("No accounts found.")
        return

    click.echo("\n" + "="*110)
    click.echo(f"{'ID':<38} {'Role':<9} {'Name':<20} {'Kiosk':<20} {'Email'}")
    click.echo("="*110)

    for profile in profiles:
        click.echo(
            f"{profile.id:<38} {profile.role:<9} {profile.name:<20} "
            f"{profile.kiosk_name or '-':<20} {profile.email}"
        )

    click.echo("="*110 + "\n")


# =============================================================================
# CATALOG COMMANDS
# =============================================================================

@click.group('catalog')
def catalog_group():
    """Factory catalog commands."""


@catalog_group.command('seed')
@with_appcontext
def seed_catalog():
    """Create a factory entry for each predefined menu item that has none."""
    created = 0
    for name, price_cents in PREDEFINED_MENU:
        if catalog_service.find_factory_item_by_name(name):
            click.echo(f"WARN  {name} already exists, skipping...")
            continue
        catalog_service.create_factory_item(name=name, price_cents=price_cents)
        created += 1
        click.echo(f"PASS Created {name} at {price_cents / 100:.2f}")

    click.echo(f"DONE {created} factory item(s) created.")


# =============================================================================
# REPORT COMMANDS
# =============================================================================

@click.group('reports')
def reports_group():
    """Report archiving commands."""


@reports_group.command('snapshot')
@click.option('--date', 'day', default=None, help='Day to archive (YYYY-MM-DD, default today UTC)')
@with_appcontext
def snapshot_cli(day):
    """Archive one day's per-kiosk summary into the reports table."""
    try:
        report_day = reporting_service.resolve_day(day)
    except reporting_service.ReportError as e:
        raise click.BadParameter(str(e), param_hint='--date')

    rows = reporting_service.snapshot_day(report_day)
    for row in rows:
        click.echo(f"PASS {row.kiosk_id}: {row.order_count} order(s), {row.revenue_cents} cents")
    click.echo(f"DONE Archived {len(rows)} kiosk summary row(s) for {report_day.isoformat()}.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(catalog_group)
    app.cli.add_command(reports_group)
