# Overview: Flask CLI command groups for bootstrap, escrow maintenance and finance inspection.

# backend/printmarket/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init-db
#   Create all tables (idempotent; use migrations for upgrades).
# - python -m flask system import-legacy export.json
#   Import a document-store export (profiles, products, orders, earnings, requests).
#
# Escrow maintenance:
# - python -m flask escrow status 42
#   Show escrow state and release eligibility for a request.
# - python -m flask escrow repair [--request-id 42]
#   Backfill missing payout timestamps (one request, or every request with payouts).
# - python -m flask escrow release-eligible
#   Repair then release every payout that is due.
#
# Finance inspection:
# - python -m flask finance summary --user-id u1 --role designer --range 30d
#   Print a finance summary.
# - python -m flask finance backfill-earnings --user-id u1
#   Create missing earnings records for a designer's paid design orders.

import json

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import CustomizationRequest
from .services import earnings_service, escrow_service, finance_service
from .services.legacy_import_service import LegacyImportError, import_legacy_documents


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database tables created")


@system_group.command('import-legacy')
@click.argument('export_file', type=click.File('r', encoding='utf-8'))
@with_appcontext
def import_legacy(export_file):
    """Import a JSON export from the previous document store."""
    try:
        payload = json.load(export_file)
    except json.JSONDecodeError as exc:
        raise click.ClickException(f"Export is not valid JSON: {exc}")

    try:
        counts = import_legacy_documents(payload)
    except LegacyImportError as exc:
        raise click.ClickException(str(exc))

    for name, count in counts.items():
        click.echo(f"PASS {name}: {count}")


@click.group('escrow')
def escrow_group():
    """Escrow inspection and repair commands."""


@escrow_group.command('status')
@click.argument('request_id', type=int)
@with_appcontext
def escrow_status(request_id):
    """Show escrow state for a customization request."""
    try:
        status = escrow_service.get_escrow_status(request_id)
    except escrow_service.EscrowError as exc:
        raise click.ClickException(str(exc))
    click.echo(json.dumps(status, indent=2))


@escrow_group.command('repair')
@click.option('--request-id', type=int, default=None, help='Repair a single request')
@with_appcontext
def escrow_repair(request_id):
    """Backfill payout timestamps left missing by interrupted releases."""
    if request_id is not None:
        request_ids = [request_id]
    else:
        request_ids = [
            row.id
            for row in db.session.query(CustomizationRequest.id)
            .filter(
                db.or_(
                    CustomizationRequest.designer_payout_cents.isnot(None),
                    CustomizationRequest.shop_payout_cents.isnot(None),
                )
            )
            .order_by(CustomizationRequest.id)
            .all()
        ]

    repaired = 0
    for rid in request_ids:
        try:
            if escrow_service.repair_escrow_state(rid):
                repaired += 1
                click.echo(f"PASS Repaired request {rid}")
        except escrow_service.EscrowError as exc:
            click.echo(f"FAIL Request {rid}: {exc}")

    click.echo(f"DONE {repaired} of {len(request_ids)} request(s) repaired")


@escrow_group.command('release-eligible')
@with_appcontext
def escrow_release_eligible():
    """Repair then release every payout that is due."""
    result = escrow_service.release_eligible_payments()
    click.echo(
        f"DONE checked={result['checked']} repaired={result['repaired']} "
        f"designer_released={result['designer_released']} shop_released={result['shop_released']} "
        f"failed={result['failed']}"
    )


@click.group('finance')
def finance_group():
    """Finance inspection commands."""


@finance_group.command('summary')
@click.option('--user-id', required=True)
@click.option('--role', type=click.Choice(sorted(finance_service.SUMMARY_ROLES)), default='designer')
@click.option('--range', 'time_range', type=click.Choice(list(finance_service.TIME_RANGE_DAYS)), default='all')
@with_appcontext
def finance_summary(user_id, role, time_range):
    """Print the finance summary for a user."""
    summary = finance_service.get_finance_summary(user_id, role, time_range)
    click.echo(json.dumps(summary.to_dict(), indent=2))


@finance_group.command('backfill-earnings')
@click.option('--user-id', required=True)
@with_appcontext
def finance_backfill_earnings(user_id):
    """Create missing earnings records for paid design-only orders."""
    created = earnings_service.backfill_design_order_earnings(user_id)
    click.echo(f"PASS Created {created} earnings record(s)")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(escrow_group)
    app.cli.add_command(finance_group)
