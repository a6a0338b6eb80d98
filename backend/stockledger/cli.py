# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/stockledger/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: creates tables, a default warehouse and this year's
#   B2C/B2B/DEV/DEP/WEB document series.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Locations:
# - python -m flask locations list [--all]
# - python -m flask locations create --name "Tienda Centro" --type retail [--city Madrid]
#
# Document series:
# - python -m flask series list
# - python -m flask series create --code B2C --scope sale_b2c [--prefix B2C] [--year 2025] [--padding 6]
#
# Stock inspection:
# - python -m flask stock show --location-id 1 [--sku ABC-1]

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import DocumentSeries, Location
from .models.catalog import LOCATION_TYPE_WAREHOUSE, LOCATION_TYPES
from .services import location_service, series_service, stock_service
from .services.series_service import DEFAULT_PADDING, PREFERRED_SERIES_CODES
from .time_utils import utcnow
from .validation import LedgerError


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--warehouse', 'warehouse_name', default='Almacen principal', help='Default warehouse name')
@with_appcontext
def init_system(warehouse_name):
    """
    Initialize a fresh database (idempotent).

    Creates:
    - all tables (when missing)
    - one active warehouse, unless one already exists
    - one series per standard scope for the current year
    """
    db.create_all()

    warehouse = Location.query.filter_by(type=LOCATION_TYPE_WAREHOUSE, active=True).first()
    if warehouse is None:
        warehouse = Location(type=LOCATION_TYPE_WAREHOUSE, name=warehouse_name, active=True)
        db.session.add(warehouse)
        click.echo(f"PASS Created warehouse '{warehouse_name}'")
    else:
        click.echo(f"SKIP Warehouse exists: {warehouse.name} (id={warehouse.id})")

    year = utcnow().year
    for scope, code in PREFERRED_SERIES_CODES.items():
        existing = DocumentSeries.query.filter_by(scope=scope, active=True).first()
        if existing is not None:
            click.echo(f"SKIP Series for {scope} exists: {existing.code}")
            continue
        db.session.add(DocumentSeries(
            code=code,
            name=f"Serie {code}",
            scope=scope,
            prefix=code,
            year=year,
            next_number=1,
            padding=DEFAULT_PADDING,
            active=True,
        ))
        click.echo(f"PASS Created series {code} for {scope}/{year}")

    db.session.commit()
    click.echo("PASS System initialized.")


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

    click.echo("PASS Database reset complete. Run 'python -m flask system init' to initialize.")


@click.group('locations')
def locations_group():
    """Location registry commands."""


@locations_group.command('list')
@click.option('--all', 'include_inactive', is_flag=True, help='Include inactive locations')
@with_appcontext
def list_locations(include_inactive):
    """List locations."""
    locations = location_service.list_locations(include_inactive=include_inactive)

    if not locations:
        click.echo("No locations found.")
        return

    click.echo("\n" + "="*70)
    click.echo(f"{'ID':<5} {'Type':<10} {'Name':<35} {'Active'}")
    click.echo("="*70)
    for loc in locations:
        active_str = "Yes" if loc.active else "No"
        click.echo(f"{loc.id:<5} {loc.type:<10} {loc.name:<35} {active_str}")
    click.echo("="*70 + "\n")


@locations_group.command('create')
@click.option('--name', required=True, help='Location name')
@click.option('--type', 'location_type', type=click.Choice(LOCATION_TYPES), required=True)
@click.option('--city', default=None, help='City')
@with_appcontext
def create_location_cli(name, location_type, city):
    """Create a location."""
    try:
        location = location_service.create_location(name=name, location_type=location_type, city=city)
    except LedgerError as e:
        raise click.ClickException(e.message)
    click.echo(f"PASS Created location {location.name} (id={location.id}, type={location.type})")


@click.group('series')
def series_group():
    """Document series commands."""


@series_group.command('list')
@with_appcontext
def list_series_cli():
    """List document series with their next number."""
    series = series_service.list_series()

    if not series:
        click.echo("No document series found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'Code':<12} {'Scope':<12} {'Prefix':<10} {'Year':<6} {'Next':<8} {'Pad':<4} {'Active'}")
    click.echo("="*80)
    for s in series:
        active_str = "Yes" if s.active else "No"
        year = s.year if s.year is not None else "-"
        click.echo(f"{s.code:<12} {s.scope:<12} {s.prefix or '-':<10} {year!s:<6} {s.next_number:<8} {s.padding:<4} {active_str}")
    click.echo("="*80 + "\n")


@series_group.command('create')
@click.option('--code', required=True, help='Unique series code')
@click.option('--scope', required=True, help='sale_b2c, sale_b2b, return, deposit, web or a custom scope')
@click.option('--prefix', default=None, help='Reference prefix (defaults to the code)')
@click.option('--year', type=int, default=None, help='Year (omit for an evergreen series)')
@click.option('--next-number', type=int, default=1, help='First number to issue')
@click.option('--padding', type=int, default=DEFAULT_PADDING, help='Zero padding width')
@with_appcontext
def create_series_cli(code, scope, prefix, year, next_number, padding):
    """Create a document series."""
    try:
        series = series_service.create_series({
            "code": code,
            "scope": scope,
            "prefix": prefix,
            "year": year,
            "next_number": next_number,
            "padding": padding,
        })
    except LedgerError as e:
        raise click.ClickException(e.message)
    click.echo(f"PASS Created series {series.code} ({series.scope})")


@click.group('stock')
def stock_group():
    """Ledger-derived stock inspection."""


@stock_group.command('show')
@click.option('--location-id', type=int, required=True, help='Location ID')
@click.option('--sku', default=None, help='Single SKU')
@with_appcontext
def show_stock(location_id, sku):
    """Show balances at a location."""
    try:
        if sku:
            location_service.require_active_location(location_id)
            click.echo(f"{sku}: {stock_service.get_balance(location_id, sku)}")
            return
        items = stock_service.list_stock(location_id)
    except LedgerError as e:
        raise click.ClickException(e.message)

    items = [item for item in items if item["quantity"] != 0]
    if not items:
        click.echo("No stock at this location.")
        return
    for item in items:
        click.echo(f"{item['sku']:<20} {item['name']:<40} {item['quantity']:>8}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(locations_group)
    app.cli.add_command(series_group)
    app.cli.add_command(stock_group)
