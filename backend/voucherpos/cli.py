# Overview: Flask CLI command groups for bootstrap, account setup, and stock loading.

# backend/voucherpos/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init [--admin-password "Password123!"]
#   Idempotent bootstrap: tables, admin user, default commission group.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Retailers:
# - python -m flask retailers create --name "Corner Spaza" --credit-limit-cents 50000 --group "Default"
# - python -m flask retailers list
# - python -m flask retailers deposit 1 100000 --note "EFT 2026-01-04"
#
# Terminals:
# - python -m flask terminals create 1 "Till 1" [--cashier-username till1 --cashier-email till1@voucherpos.local]
#
# Vouchers:
# - python -m flask vouchers create-type --name "MTN Airtime" --category airtime --network MTN
# - python -m flask vouchers stock 1 units.json
#   units.json: [{"amount_cents": 1000, "pin": "1234...", "serial_number": "..."}, ...]
#
# Commissions:
# - python -m flask commissions set-rate "Default" 1 5.0 --agent-pct 1.0

import json

import click
from flask import current_app
from flask.cli import with_appcontext

from .errors import VoucherPosError
from .extensions import db
from .models import CommissionGroup, Retailer, User
from .models.auth import ROLE_ADMIN
from .services import account_service, commission_service, inventory_service, ledger_service
from .services.auth_service import create_user, PasswordValidationError


DEFAULT_GROUP_NAME = "Default"


def _rounds() -> int:
    return current_app.config.get("BCRYPT_ROUNDS", 12)


def _group_by_name(name: str) -> CommissionGroup | None:
    return db.session.query(CommissionGroup).filter_by(name=name).first()


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--admin-username', default='admin', help='Admin username')
@click.option('--admin-email', default='admin@voucherpos.local', help='Admin email')
@click.option('--admin-password', default='Password123!', help='Admin password')
@with_appcontext
def init_system(admin_username, admin_email, admin_password):
    """
    Initialize VoucherPOS: tables, the admin user, and the default commission group.

    SECURITY: Change the admin password immediately in production!
    """
    click.echo("START Initializing VoucherPOS...")

    db.create_all()
    click.echo("PASS Tables ready")

    if not _group_by_name(DEFAULT_GROUP_NAME):
        commission_service.create_group(DEFAULT_GROUP_NAME, "Created by system init")
        click.echo(f"PASS Created commission group: {DEFAULT_GROUP_NAME}")
    else:
        click.echo(f"PASS Using existing commission group: {DEFAULT_GROUP_NAME}")

    admin = db.session.query(User).filter_by(username=admin_username).first()
    if admin:
        click.echo(f"PASS Admin user exists: {admin_username}")
    else:
        try:
            create_user(
                username=admin_username,
                email=admin_email,
                password=admin_password,
                role=ROLE_ADMIN,
                rounds=_rounds(),
            )
            click.echo(f"PASS Created admin user: {admin_username} ({admin_email})")
        except PasswordValidationError as e:
            click.echo(f"FAIL Password validation failed: {str(e)}")
            click.echo("Requirements: 8+ chars, uppercase, lowercase, digit, special char")
            return

    click.echo("DONE System initialized")


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


@click.group('retailers')
def retailers_group():
    """Retailer account commands."""


@retailers_group.command('create')
@click.option('--name', prompt=True, help='Retailer name')
@click.option('--credit-limit-cents', type=int, default=0, help='Credit limit in cents')
@click.option('--group', 'group_name', default=DEFAULT_GROUP_NAME, help='Commission group name')
@click.option('--username', help='Create a retailer login with this username')
@click.option('--email', help='Retailer login email')
@click.option('--password', help='Retailer login password')
@with_appcontext
def create_retailer_cli(name, credit_limit_cents, group_name, username, email, password):
    """Create a retailer account (and optionally its owner login)."""
    try:
        group = _group_by_name(group_name) if group_name else None
        if group_name and not group:
            click.echo(f"FAIL Commission group '{group_name}' not found")
            return

        retailer = account_service.create_retailer(
            name,
            credit_limit_cents=credit_limit_cents,
            commission_group_id=group.id if group else None,
        )
        click.echo(f"PASS Created retailer: {retailer.name} (ID: {retailer.id})")

        if username:
            user = create_user(
                username=username,
                email=email or f"{username}@voucherpos.local",
                password=password or "",
                role="retailer",
                retailer_id=retailer.id,
                rounds=_rounds(),
            )
            click.echo(f"PASS Created retailer login: {user.username}")
    except VoucherPosError as e:
        click.echo(f"FAIL {e.message}")


@retailers_group.command('list')
@with_appcontext
def list_retailers_cli():
    """List retailers with balances (amounts in cents)."""
    retailers = db.session.query(Retailer).order_by(Retailer.id).all()
    if not retailers:
        click.echo("No retailers found")
        return
    for r in retailers:
        click.echo(
            f"{r.id:>4}  {r.name:<30} {r.status:<10} "
            f"balance={r.balance_cents} credit={r.credit_used_cents}/{r.credit_limit_cents} "
            f"commission={r.commission_balance_cents}"
        )


@retailers_group.command('deposit')
@click.argument('retailer_id', type=int)
@click.argument('amount_cents', type=int)
@click.option('--note', help='Ledger note')
@with_appcontext
def deposit_cli(retailer_id, amount_cents, note):
    """Load funds onto a retailer account (repays credit first)."""
    try:
        retailer = ledger_service.deposit(retailer_id, amount_cents, note=note)
        click.echo(
            f"PASS Deposited {amount_cents} to {retailer.name}: "
            f"balance={retailer.balance_cents} credit_used={retailer.credit_used_cents}"
        )
    except VoucherPosError as e:
        click.echo(f"FAIL {e.message}")


@click.group('terminals')
def terminals_group():
    """Terminal commands."""


@terminals_group.command('create')
@click.argument('retailer_id', type=int)
@click.argument('name')
@click.option('--cashier-username', help='Create a cashier login bound to the terminal')
@click.option('--cashier-email', help='Cashier email')
@click.option('--cashier-password', default='Password123!', help='Cashier password')
@with_appcontext
def create_terminal_cli(retailer_id, name, cashier_username, cashier_email, cashier_password):
    try:
        terminal = account_service.create_terminal(retailer_id, name)
        click.echo(f"PASS Created terminal: {terminal.name} (ID: {terminal.id})")
        if cashier_username:
            user = account_service.create_cashier(
                terminal.id,
                username=cashier_username,
                email=cashier_email or f"{cashier_username}@voucherpos.local",
                password=cashier_password,
                rounds=_rounds(),
            )
            click.echo(f"PASS Created cashier: {user.username}")
    except VoucherPosError as e:
        click.echo(f"FAIL {e.message}")


@click.group('vouchers')
def vouchers_group():
    """Voucher type and stock commands."""


@vouchers_group.command('create-type')
@click.option('--name', prompt=True, help='Voucher type name')
@click.option('--category', prompt=True, help='Category (airtime, data, ott, ...)')
@click.option('--network', 'network_provider', help='Network provider')
@click.option('--sub-category', help='Duration bucket for data (daily, weekly, monthly)')
@click.option('--instructions', help='Redemption instructions printed on receipts')
@with_appcontext
def create_type_cli(name, category, network_provider, sub_category, instructions):
    try:
        voucher_type = inventory_service.create_voucher_type(
            name=name,
            category=category,
            network_provider=network_provider,
            sub_category=sub_category,
            instructions=instructions,
        )
        click.echo(f"PASS Created voucher type: {voucher_type.name} (ID: {voucher_type.id})")
    except VoucherPosError as e:
        click.echo(f"FAIL {e.message}")


@vouchers_group.command('stock')
@click.argument('voucher_type_id', type=int)
@click.argument('units_file', type=click.File('r'))
@with_appcontext
def stock_cli(voucher_type_id, units_file):
    """Load already-parsed units from a JSON list."""
    try:
        units = json.load(units_file)
    except ValueError as e:
        click.echo(f"FAIL Invalid JSON: {str(e)}")
        return
    if not isinstance(units, list):
        click.echo("FAIL Expected a JSON list of units")
        return

    try:
        count = inventory_service.add_inventory_units(voucher_type_id, units)
        click.echo(f"PASS Loaded {count} units")
    except VoucherPosError as e:
        click.echo(f"FAIL {e.message}")


@click.group('commissions')
def commissions_group():
    """Commission group commands."""


@commissions_group.command('set-rate')
@click.argument('group_name')
@click.argument('voucher_type_id', type=int)
@click.argument('retailer_pct')
@click.option('--agent-pct', default='0', help='Agent percentage')
@with_appcontext
def set_rate_cli(group_name, voucher_type_id, retailer_pct, agent_pct):
    """Create or replace a group's rate for one voucher type (creates the group if needed)."""
    try:
        group = _group_by_name(group_name) or commission_service.create_group(group_name)
        rate = commission_service.upsert_rate(group.id, voucher_type_id, retailer_pct, agent_pct)
        click.echo(
            f"PASS {group.name}: voucher type {voucher_type_id} "
            f"retailer={rate.retailer_pct}% agent={rate.agent_pct}%"
        )
    except VoucherPosError as e:
        click.echo(f"FAIL {e.message}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(retailers_group)
    app.cli.add_command(terminals_group)
    app.cli.add_command(vouchers_group)
    app.cli.add_command(commissions_group)
