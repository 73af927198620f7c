# Overview: Flask CLI command groups for bootstrap and periodic finance maintenance.

# backend/pdv/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system seed-demo
#   Idempotent: creates a demo operator, product (with opening stock), customer and loyalty program.
#
# Finance:
# - python -m flask finance process-recurring [--date 2025-01-31]
#   Emit today's transactions for every due recurring entry.
# - python -m flask finance mark-overdue [--date 2025-01-31]
#   Flag pending financial transactions and credit sales past their due date.
#
# Maintenance:
# - python -m flask maintenance run
#   One maintenance pass (recurring entries, then overdue marking).
# - python -m flask maintenance run --loop --interval 86400
#   Keep running one pass per interval (the periodic timer).

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .models import Customer, LoyaltyProgram, Product, User
from .services import customer_service, finance_service, inventory_service, operator_service, recurring_service
from .services.maintenance_service import MaintenanceTask
from .time_utils import parse_iso_date
from .validation import DomainError


def _as_of(value):
    if not value:
        return None
    try:
        return parse_iso_date(value)
    except ValueError:
        raise click.BadParameter("expected YYYY-MM-DD", param_hint="--date")


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('seed-demo')
@with_appcontext
def seed_demo():
    """
    Create demo data for a local installation.

    Creates (when missing):
    - Operator: caixa (5% commission)
    - Product: Café 500g, barcode 7890000000001, 50 units at 12.00
    - Customer: Cliente Demo with a 500.00 credit limit
    - Loyalty program: 1 point per currency unit
    """
    click.echo("START Seeding demo data...")

    operator = db.session.query(User).filter_by(username="caixa").first()
    if operator is None:
        operator = operator_service.create_operator(
            name="Caixa Demo",
            username="caixa",
            commission_type="PERCENTAGE",
            commission_value=500,
        )
        click.echo(f"PASS Created operator: {operator.username} (ID: {operator.id})")
    else:
        click.echo(f"WARN  Operator '{operator.username}' already exists, skipping...")

    product = db.session.query(Product).filter_by(barcode="7890000000001").first()
    if product is None:
        product = Product(
            name="Café 500g",
            barcode="7890000000001",
            cost_price_cents=1200,
            selling_price_cents=1990,
            min_stock=10,
            current_stock=0,
            average_cost_cents=0,
            invested_value_cents=0,
        )
        db.session.add(product)
        db.session.commit()
        inventory_service.apply_entry(
            product_id=product.id,
            quantity=50,
            unit_cost_cents=1200,
            note="Opening stock",
            user_id=operator.id,
        )
        click.echo(f"PASS Created product: {product.name} (ID: {product.id})")
    else:
        click.echo(f"WARN  Product '{product.name}' already exists, skipping...")

    customer = db.session.query(Customer).filter_by(name="Cliente Demo").first()
    if customer is None:
        customer = customer_service.create_customer(patch={
            "name": "Cliente Demo",
            "credit_limit_cents": 50000,
        })
        click.echo(f"PASS Created customer: {customer.name} (ID: {customer.id})")
    else:
        click.echo(f"WARN  Customer '{customer.name}' already exists, skipping...")

    if db.session.query(LoyaltyProgram).filter_by(is_active=True).first() is None:
        program = customer_service.create_loyalty_program(name="Programa Padrão", points_rate_bps=10000)
        click.echo(f"PASS Created loyalty program: {program.name} (ID: {program.id})")
    else:
        click.echo("WARN  An active loyalty program already exists, skipping...")

    click.echo("DONE Demo data ready.")


@click.group('finance')
def finance_group():
    """Financial transaction commands."""


@finance_group.command('process-recurring')
@click.option('--date', 'as_of', default=None, help='Business date (YYYY-MM-DD); defaults to today')
@with_appcontext
def process_recurring_cli(as_of):
    """Emit transactions for every recurring entry due on the given date."""
    generated = recurring_service.process_all(today=_as_of(as_of))
    current_app.logger.info("Processed recurring entries: %s transactions generated", len(generated))
    click.echo(f"Generated {len(generated)} transactions from recurring entries.")
    for tx in generated:
        click.echo(f"  #{tx.id} {tx.type:<8} {tx.amount_cents:>10} {tx.description}")


@finance_group.command('mark-overdue')
@click.option('--date', 'as_of', default=None, help='Business date (YYYY-MM-DD); defaults to today')
@with_appcontext
def mark_overdue_cli(as_of):
    """Flag pending financial transactions and credit sales past their due date."""
    day = _as_of(as_of)
    overdue = finance_service.mark_overdue(today=day)
    overdue_credit = customer_service.mark_overdue_credit(today=day)
    click.echo(f"Marked {len(overdue)} financial transactions and {overdue_credit} credit sales as overdue.")


@click.group('maintenance')
def maintenance_group():
    """Maintenance commands."""


@maintenance_group.command('run')
@click.option('--loop', is_flag=True, default=False, help='Keep running once per interval')
@click.option('--interval', type=int, default=None, help='Seconds between runs (defaults to config)')
@with_appcontext
def maintenance_run_cli(loop, interval):
    """
    Run the periodic maintenance pass.

    Default interval: RECURRING_PROCESS_INTERVAL_SECONDS (one day).
    """
    task = MaintenanceTask()
    try:
        if not loop:
            summary = task.run_once()
            click.echo(
                f"Recurring generated: {summary['recurring_generated']}, "
                f"financial overdue: {summary['financial_overdue']}, "
                f"credit overdue: {summary['credit_overdue']}"
            )
            return
        seconds = interval or current_app.config["RECURRING_PROCESS_INTERVAL_SECONDS"]
        click.echo(f"Running maintenance every {seconds} seconds (Ctrl+C to stop)...")
        task.run_forever(seconds)
    except DomainError as e:
        raise click.ClickException(e.message)
    except KeyboardInterrupt:
        click.echo(f"Stopped after {task.runs} runs ({task.failures} failed).")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(finance_group)
    app.cli.add_command(maintenance_group)
