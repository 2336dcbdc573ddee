# Overview: Flask CLI command groups for bootstrap and maintenance.

# backend/backoffice/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init
#   Create all tables and the default roles (admin, owner, manager, staff).
#
# Staff:
# - python -m flask staff create --name "Jo Bloggs" --username jo --role manager
# - python -m flask staff list
#
# Sessions (tokens for POS clients and scripts):
# - python -m flask sessions issue jo
#   Print a new bearer token for staff member "jo".
# - python -m flask sessions cleanup --retention-days 30
#
# Items and tabs:
# - python -m flask items create --name "Oil change" --price-cents 4500 --stock 10
# - python -m flask items set-stock 3 25
# - python -m flask tabs create --name "Garage tab" --amount-cents 10000

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Item, Staff, Tab
from .services import session_service, staff_service


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """Create tables and default roles. Idempotent."""
    db.create_all()
    roles = staff_service.create_default_roles()
    click.echo(f"PASS Roles ready: {', '.join(f'{r.name}({r.permissions_level})' for r in roles)}")


@click.group('staff')
def staff_group():
    """Staff management commands."""


@staff_group.command('create')
@click.option('--name', prompt=True)
@click.option('--username', prompt=True)
@click.option('--role', 'role_name', default='staff', show_default=True)
@with_appcontext
def create_staff(name, username, role_name):
    try:
        staff = staff_service.create_staff(name=name, username=username, role_name=role_name)
    except ValueError as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS Created staff {staff.username} (ID: {staff.id}, role: {role_name})")


@staff_group.command('list')
@with_appcontext
def list_staff():
    rows = db.session.query(Staff).order_by(Staff.id).all()
    if not rows:
        click.echo("No staff found")
        return
    for staff in rows:
        role = staff.role.name if staff.role else "-"
        status = "active" if staff.is_active else "inactive"
        click.echo(f"{staff.id:>4}  {staff.username:<20} {role:<10} {status}")


@click.group('sessions')
def sessions_group():
    """Session token commands."""


@sessions_group.command('issue')
@click.argument('username')
@with_appcontext
def issue_session(username):
    staff = db.session.query(Staff).filter_by(username=username).first()
    if not staff:
        raise click.ClickException(f"Staff '{username}' not found")
    try:
        session, token = session_service.create_session(staff.id)
    except ValueError as e:
        raise click.ClickException(str(e))
    click.echo(token)


@sessions_group.command('cleanup')
@click.option('--retention-days', default=30, show_default=True, type=int)
@with_appcontext
def cleanup_sessions(retention_days):
    deleted = session_service.cleanup_expired_sessions(retention_days)
    click.echo(f"PASS Deleted {deleted} session(s)")


@click.group('items')
def items_group():
    """Item and stock commands."""


@items_group.command('create')
@click.option('--name', required=True)
@click.option('--price-cents', required=True, type=click.IntRange(min=0))
@click.option('--stock', default=0, show_default=True, type=int)
@click.option('--category', default=None)
@with_appcontext
def create_item(name, price_cents, stock, category):
    item = Item(name=name, price_cents=price_cents, stock=stock, category=category, is_active=True)
    db.session.add(item)
    db.session.commit()
    click.echo(f"PASS Created item {item.name} (ID: {item.id}, stock: {item.stock})")


@items_group.command('set-stock')
@click.argument('item_id', type=int)
@click.argument('stock', type=int)
@with_appcontext
def set_stock(item_id, stock):
    """Stock count correction: overwrite on-hand quantity."""
    item = db.session.get(Item, item_id)
    if not item:
        raise click.ClickException(f"Item {item_id} not found")
    item.stock = stock
    db.session.commit()
    click.echo(f"PASS Item {item.id} stock set to {item.stock}")


@click.group('tabs')
def tabs_group():
    """Tab commands."""


@tabs_group.command('create')
@click.option('--name', required=True)
@click.option('--amount-cents', default=0, show_default=True, type=int)
@with_appcontext
def create_tab(name, amount_cents):
    tab = Tab(name=name, amount_cents=amount_cents, active=True)
    db.session.add(tab)
    db.session.commit()
    click.echo(f"PASS Created tab {tab.name} (ID: {tab.id}, balance: {tab.amount_cents})")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(staff_group)
    app.cli.add_command(sessions_group)
    app.cli.add_command(items_group)
    app.cli.add_command(tabs_group)
