# Overview: Flask CLI command groups for tenant bootstrap, numbering administration, and stock inspection.

# backend/docstock/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# Tenant bootstrap:
# - python -m flask tenants create --name "Acme Corp" --code "ACME" [--policy WARN]
#   Create a tenant with its default warehouse.
# - python -m flask tenants list
#   List all tenants with their negative stock policy.
# - python -m flask tenants add-warehouse --tenant-id 1 --name "Annex" [--default]
#   Add a warehouse; --default moves the default flag to it.
#
# Numbering administration:
# - python -m flask numbering set-template --tenant-id 1 --series pafo --pattern "PAFO-{{YYYY}}-{{SEQ:5}}" [--starting-value 100]
#   Create or replace the tenant's template for a series.
# - python -m flask numbering preview --tenant-id 1 --series fac
#   Show the next number without reserving it.
# - python -m flask numbering current --tenant-id 1 --series fac
#   Show the last reserved counter value.
# - python -m flask numbering ensure-ahead --tenant-id 1 --series pafo --min-value 250
#   Raise the counter to at least the given value (never lowers it).
# - python -m flask numbering reset --tenant-id 1 --series fac --yes
#   DEV/ADMIN only: set one counter back to 0.
# - python -m flask numbering reset-all --tenant-id 1 --yes
#   DEV/ADMIN only: set every counter of the tenant back to 0.
#
# Stock inspection:
# - python -m flask stock balance --tenant-id 1 --product-id 7 [--warehouse-id 2]
#   Ledger-derived balance.
# - python -m flask stock movements --tenant-id 1 --product-id 7 [--limit 20]
#   Latest movements, newest first.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import NumberingTemplate, Tenant, Warehouse
from .models.tenancy import NEGATIVE_STOCK_FORBID, NEGATIVE_STOCK_POLICIES
from .services import numbering_service, stock_service, tenant_service
from .services.numbering_service import ConfigurationMissing
from .services.sequence_template import TemplateError, sequence_width
from .services.tenant_service import TenantError


def _require_tenant(tenant_id):
    try:
        return tenant_service.require_tenant(tenant_id)
    except TenantError as e:
        raise click.ClickException(str(e))


# =============================================================================
# TENANT COMMANDS
# =============================================================================

@click.group('tenants')
def tenants_group():
    """Tenant bootstrap commands."""


@tenants_group.command('create')
@click.option('--name', required=True, help='Tenant name')
@click.option('--code', required=True, help='Short code (unique)')
@click.option('--policy', type=click.Choice(NEGATIVE_STOCK_POLICIES), default=NEGATIVE_STOCK_FORBID,
              show_default=True, help='Negative stock policy')
@click.option('--warehouse', 'warehouse_name', default='Main', show_default=True, help='Default warehouse name')
@with_appcontext
def create_tenant_cli(name, code, policy, warehouse_name):
    """Create a tenant and its default warehouse."""
    existing = db.session.query(Tenant).filter_by(code=code).first()
    if existing:
        click.echo(f"FAIL Tenant with code '{code}' already exists")
        return

    tenant = Tenant(name=name, code=code, negative_stock_policy=policy, is_active=True)
    db.session.add(tenant)
    db.session.flush()
    db.session.add(Warehouse(tenant_id=tenant.id, name=warehouse_name, is_default=True))
    db.session.commit()

    click.echo(f"PASS Created tenant: {tenant.name} (ID: {tenant.id}, Code: {tenant.code}, Policy: {policy})")


@tenants_group.command('list')
@with_appcontext
def list_tenants():
    """List all tenants."""
    tenants = db.session.query(Tenant).order_by(Tenant.id).all()

    if not tenants:
        click.echo("No tenants found.")
        return

    click.echo("\n" + "="*72)
    click.echo(f"{'ID':<5} {'Name':<30} {'Code':<12} {'Policy':<8} {'Active':<8} {'Warehouses'}")
    click.echo("="*72)

    for tenant in tenants:
        warehouse_count = db.session.query(Warehouse).filter_by(tenant_id=tenant.id).count()
        active_str = "Yes" if tenant.is_active else "No"
        click.echo(
            f"{tenant.id:<5} {tenant.name:<30} {tenant.code or '-':<12} "
            f"{tenant.negative_stock_policy:<8} {active_str:<8} {warehouse_count}"
        )

    click.echo("="*72 + "\n")


@tenants_group.command('add-warehouse')
@click.option('--tenant-id', type=int, required=True, help='Tenant ID')
@click.option('--name', required=True, help='Warehouse name (unique within tenant)')
@click.option('--code', help='Warehouse code')
@click.option('--default', 'make_default', is_flag=True, help='Make this the default warehouse')
@with_appcontext
def add_warehouse_cli(tenant_id, name, code, make_default):
    """Add a warehouse to a tenant."""
    tenant = _require_tenant(tenant_id)

    existing = db.session.query(Warehouse).filter_by(tenant_id=tenant_id, name=name).first()
    if existing:
        click.echo(f"FAIL Warehouse '{name}' already exists for this tenant")
        return

    if make_default:
        db.session.query(Warehouse).filter_by(tenant_id=tenant_id, is_default=True).update({"is_default": False})

    warehouse = Warehouse(tenant_id=tenant_id, name=name, code=code, is_default=make_default)
    db.session.add(warehouse)
    db.session.commit()

    click.echo(f"PASS Created warehouse: {warehouse.name} (ID: {warehouse.id}) for '{tenant.name}'")


# =============================================================================
# NUMBERING COMMANDS
# =============================================================================

@click.group('numbering')
def numbering_group():
    """Document numbering administration."""


@numbering_group.command('set-template')
@click.option('--tenant-id', type=int, required=True, help='Tenant ID')
@click.option('--series', 'series_code', required=True, help='Series code (e.g. pafo, fac)')
@click.option('--pattern', required=True, help='Pattern with exactly one {{SEQ:n}}')
@click.option('--starting-value', type=click.IntRange(min=0), default=0, show_default=True,
              help='Counter floor')
@with_appcontext
def set_template_cli(tenant_id, series_code, pattern, starting_value):
    """Create or replace a tenant's numbering template."""
    _require_tenant(tenant_id)
    try:
        sequence_width(pattern)
    except TemplateError as e:
        click.echo(f"FAIL {e}")
        return

    template = tenant_service.get_numbering_template(tenant_id, series_code)
    if template is None:
        template = NumberingTemplate(tenant_id=tenant_id, series_code=series_code)
        db.session.add(template)
    template.pattern = pattern
    template.starting_value = starting_value
    db.session.commit()

    click.echo(f"PASS Template for '{series_code}': {pattern} (starting value {starting_value})")


@numbering_group.command('preview')
@click.option('--tenant-id', type=int, required=True, help='Tenant ID')
@click.option('--series', 'series_code', required=True, help='Series code')
@with_appcontext
def preview_cli(tenant_id, series_code):
    """Show the next number without reserving it."""
    _require_tenant(tenant_id)
    try:
        number = numbering_service.preview_number(tenant_id, series_code)
    except (ConfigurationMissing, TemplateError) as e:
        click.echo(f"FAIL {e}")
        return
    click.echo(number)


@numbering_group.command('current')
@click.option('--tenant-id', type=int, required=True, help='Tenant ID')
@click.option('--series', 'series_code', required=True, help='Series code')
@with_appcontext
def current_cli(tenant_id, series_code):
    """Show the last reserved counter value."""
    _require_tenant(tenant_id)
    click.echo(str(numbering_service.current_value(tenant_id, series_code)))


@numbering_group.command('ensure-ahead')
@click.option('--tenant-id', type=int, required=True, help='Tenant ID')
@click.option('--series', 'series_code', required=True, help='Series code')
@click.option('--min-value', type=click.IntRange(min=0), required=True, help='Minimum counter value')
@with_appcontext
def ensure_ahead_cli(tenant_id, series_code, min_value):
    """Raise a counter to at least --min-value."""
    _require_tenant(tenant_id)
    numbering_service.ensure_sequence_ahead(tenant_id, series_code, min_value)
    db.session.commit()
    value = numbering_service.current_value(tenant_id, series_code)
    click.echo(f"PASS Counter '{series_code}' is at {value}")


@numbering_group.command('reset')
@click.option('--tenant-id', type=int, required=True, help='Tenant ID')
@click.option('--series', 'series_code', required=True, help='Series code')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_cli(tenant_id, series_code, yes):
    """
    DANGER: Set one series counter back to 0.

    Numbers already issued stay protected by the unique constraints.
    """
    _require_tenant(tenant_id)
    if not yes:
        click.confirm(f"WARN Reset counter '{series_code}' for tenant {tenant_id}?", abort=True)

    numbering_service.reset_counter(tenant_id, series_code)
    click.echo(f"PASS Counter '{series_code}' reset to 0")


@numbering_group.command('reset-all')
@click.option('--tenant-id', type=int, required=True, help='Tenant ID')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_all_cli(tenant_id, yes):
    """DANGER: Set every series counter of the tenant back to 0."""
    _require_tenant(tenant_id)
    if not yes:
        click.confirm(f"WARN Reset ALL counters for tenant {tenant_id}?", abort=True)

    codes = numbering_service.reset_all(tenant_id)
    click.echo(f"PASS Reset {len(codes)} counter(s): {', '.join(codes)}")


# =============================================================================
# STOCK COMMANDS
# =============================================================================

@click.group('stock')
def stock_group():
    """Stock ledger inspection."""


@stock_group.command('balance')
@click.option('--tenant-id', type=int, required=True, help='Tenant ID')
@click.option('--product-id', type=int, required=True, help='Product ID')
@click.option('--warehouse-id', type=int, help='Warehouse ID (default: all warehouses)')
@with_appcontext
def balance_cli(tenant_id, product_id, warehouse_id):
    """Show the ledger-derived balance of a product."""
    _require_tenant(tenant_id)
    try:
        product = tenant_service.require_product_in_tenant(product_id, tenant_id)
    except TenantError as e:
        click.echo(f"FAIL {e}")
        return

    balance = stock_service.balance_of(tenant_id, product_id, warehouse_id)
    scope = f"warehouse {warehouse_id}" if warehouse_id else "all warehouses"
    click.echo(f"{product.sku} {product.name}: {balance} ({scope})")


@stock_group.command('movements')
@click.option('--tenant-id', type=int, required=True, help='Tenant ID')
@click.option('--product-id', type=int, required=True, help='Product ID')
@click.option('--warehouse-id', type=int, help='Warehouse ID')
@click.option('--limit', type=int, default=20, show_default=True, help='Max rows')
@with_appcontext
def movements_cli(tenant_id, product_id, warehouse_id, limit):
    """List the latest movements of a product."""
    _require_tenant(tenant_id)
    movements = stock_service.list_movements(
        tenant_id, product_id, warehouse_id=warehouse_id, limit=limit
    )
    if not movements:
        click.echo("No movements found.")
        return

    click.echo(f"{'ID':<6} {'Occurred':<21} {'Type':<7} {'Qty':>12} {'WH':<5} {'Source'}")
    for mv in movements:
        occurred = mv.occurred_at.strftime("%Y-%m-%d %H:%M:%S") if mv.occurred_at else "-"
        source = f"{mv.source_kind}:{mv.source_id}" if mv.source_id else mv.source_kind
        click.echo(
            f"{mv.id:<6} {occurred:<21} {mv.type:<7} {str(mv.quantity):>12} "
            f"{mv.warehouse_id or '-'!s:<5} {source}"
        )


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(tenants_group)
    app.cli.add_command(numbering_group)
    app.cli.add_command(stock_group)
