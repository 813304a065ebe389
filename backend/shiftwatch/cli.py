# Overview: Flask CLI command groups for the watchdog, directory seeding, and timers.

# backend/shiftwatch/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# Missed-shift watchdog:
# - python -m flask watchdog tick [--grace-minutes 15] [--company-id 1]
#   Run a single scan and print what was marked.
# - python -m flask watchdog run [--interval 60]
#   Run the scan loop in the foreground until interrupted.
#
# Directory seeding:
# - python -m flask directory add-company --name "Acme Cafe"
# - python -m flask directory add-employee --company-id 1 --first-name Ana --last-name Ruiz
# - python -m flask directory add-shift --employee-id 1 --start 2026-10-19T09:00:00Z --end 2026-10-19T17:00:00Z
#
# Timers:
# - python -m flask timers restore
#   Re-arm break warnings for every employee currently clocked in.

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .models import Company, Employee, Shift
from .models.scheduling import SHIFT_SCHEDULED
from .services.errors import AttendanceError
from .services.timer_session import get_registry
from .services.watchdog import MissedShiftWatchdog, run_tick
from .time_utils import parse_iso_datetime


@click.group('watchdog')
def watchdog_group():
    """Missed-shift detection."""


@watchdog_group.command('tick')
@click.option('--grace-minutes', type=int, default=None, help='Override GRACE_PERIOD_MINUTES')
@click.option('--company-id', type=int, default=None, help='Limit the scan to one company')
@with_appcontext
def watchdog_tick(grace_minutes, company_id):
    """Run one watchdog pass."""
    try:
        result = run_tick(grace_minutes=grace_minutes, company_id=company_id)
    except AttendanceError as e:
        raise click.ClickException(str(e))

    click.echo(f"PASS Scanned {len(result.scanned)} overdue shift(s) (grace {result.grace_minutes} min)")
    for shift_id in result.marked:
        click.echo(f"  MISSED shift {shift_id}")
    if result.skipped:
        click.echo(f"  Skipped {len(result.skipped)} (clocked in or already handled)")
    if result.failed:
        click.echo(f"FAIL {len(result.failed)} shift(s) failed: {', '.join(map(str, result.failed))}")


@watchdog_group.command('run')
@click.option('--interval', type=float, default=None, help='Seconds between ticks (WATCHDOG_INTERVAL_SECONDS)')
@click.option('--grace-minutes', type=int, default=None, help='Override GRACE_PERIOD_MINUTES')
@click.option('--company-id', type=int, default=None, help='Limit the scan to one company')
@with_appcontext
def watchdog_run(interval, grace_minutes, company_id):
    """Run the watchdog loop in the foreground (Ctrl+C to stop)."""
    app = current_app._get_current_object()
    watchdog = MissedShiftWatchdog(
        app,
        interval_seconds=interval,
        grace_minutes=grace_minutes,
        company_id=company_id,
    )
    click.echo(f"START Watchdog running every {watchdog.interval_seconds:g}s")
    try:
        watchdog.run_forever()
    except KeyboardInterrupt:
        click.echo("\nSTOP Watchdog stopped")


@click.group('directory')
def directory_group():
    """Seed companies, employees and shifts."""


@directory_group.command('add-company')
@click.option('--name', prompt=True, help='Company name')
@with_appcontext
def add_company(name):
    company = Company(name=name.strip(), is_active=True)
    db.session.add(company)
    db.session.commit()
    click.echo(f"PASS Created company: {company.name} (ID: {company.id})")


@directory_group.command('add-employee')
@click.option('--company-id', type=int, required=True)
@click.option('--first-name', prompt=True)
@click.option('--last-name', default='')
@click.option('--email', default=None)
@with_appcontext
def add_employee(company_id, first_name, last_name, email):
    if not db.session.get(Company, company_id):
        raise click.ClickException(f"Company {company_id} not found")

    employee = Employee(
        company_id=company_id,
        first_name=first_name.strip(),
        last_name=last_name.strip(),
        email=email,
        is_active=True,
    )
    db.session.add(employee)
    db.session.commit()
    click.echo(f"PASS Created employee: {employee.display_name} (ID: {employee.id})")


@directory_group.command('add-shift')
@click.option('--employee-id', type=int, required=True)
@click.option('--start', 'start_raw', required=True, help='ISO-8601 start time')
@click.option('--end', 'end_raw', required=True, help='ISO-8601 end time')
@click.option('--notes', default=None)
@with_appcontext
def add_shift(employee_id, start_raw, end_raw, notes):
    employee = db.session.get(Employee, employee_id)
    if not employee:
        raise click.ClickException(f"Employee {employee_id} not found")

    try:
        start = parse_iso_datetime(start_raw)
        end = parse_iso_datetime(end_raw)
    except ValueError as e:
        raise click.ClickException(str(e))
    if end <= start:
        raise click.ClickException("--end must be after --start")

    shift = Shift(
        employee_id=employee.id,
        company_id=employee.company_id,
        start_time=start,
        end_time=end,
        status=SHIFT_SCHEDULED,
        notes=notes,
    )
    db.session.add(shift)
    db.session.commit()
    click.echo(f"PASS Created shift {shift.id} for {employee.display_name}: {start.isoformat()} -> {end.isoformat()}")


@click.group('timers')
def timers_group():
    """Persistent work/break timers."""


@timers_group.command('restore')
@with_appcontext
def timers_restore():
    """Re-arm break warnings from the stored active entries."""
    restored = get_registry().restore_all()
    click.echo(f"PASS Restored timers for {restored} employee(s)")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(watchdog_group)
    app.cli.add_command(directory_group)
    app.cli.add_command(timers_group)
