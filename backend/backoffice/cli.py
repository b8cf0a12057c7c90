# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/backoffice/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init [--password "Password123!"]
#   Idempotent bootstrap: creates tables and triggers, plus a default manager
#   (login "admin") when there are no employees yet.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Employee (user) inspection/bootstrap:
# - python -m flask users list
#   List all employees with role and login.
# - python -m flask users create --employee-id E001 --first-name Ann --last-name Lee --role cashier \
#       --login ann --password "Password123!" --birth-date 1990-01-01 --work-start-date 2020-01-01 ...
#   Create an employee that can sign in (prompts if options are omitted).

from datetime import date

import click
from flask import current_app
from flask.cli import with_appcontext
from sqlalchemy.exc import IntegrityError

from .entities import ROLE_MANAGER, ROLES, Address, EmployeeInput, PersonName
from .extensions import db
from .repositories.base import FilterParam
from .repositories.employee import EmployeeFilter, EmployeeOrder, EmployeeRepository
from .repositories.query_builder import OrderParam
from .services.auth_service import PasswordValidationError, hash_password

DEFAULT_ADMIN_ID = "ADMIN"
DEFAULT_ADMIN_LOGIN = "admin"
DEFAULT_PASSWORD = "Password123!"


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--password', default=DEFAULT_PASSWORD, help='Password for the default manager')
@with_appcontext
def init_system(password):
    """
    Initialize the back office: schema, triggers and a default manager.

    Creates:
    - All tables, constraints and triggers (if missing)
    - Manager employee ADMIN with login "admin", only if no employee exists

    SECURITY: Change the default password immediately in production!
    """
    click.echo("START Initializing back office...")

    db.create_all()
    click.echo("PASS Schema ready")

    repo = EmployeeRepository(db.session)
    if repo.select().total_count > 0:
        click.echo("PASS Employees already exist, skipping default manager")
        return

    try:
        password_hash = hash_password(password, current_app.config["HASH_SALT_ROUNDS"])
    except PasswordValidationError as e:
        click.echo(f"FAIL Password validation failed: {e}")
        return

    today = date.today()
    repo.insert(EmployeeInput(
        employee_id=DEFAULT_ADMIN_ID,
        name=PersonName("System", "Administrator"),
        role=ROLE_MANAGER,
        salary=0,
        birth_date=date(1970, 1, 1),
        work_start_date=today,
        phone="-",
        address=Address("-", "-", "-"),
        login=DEFAULT_ADMIN_LOGIN,
        password_hash=password_hash,
    ))
    db.session.commit()

    click.echo(f"PASS Created default manager: {DEFAULT_ADMIN_LOGIN} (employee {DEFAULT_ADMIN_ID})")
    click.echo("SECURITY Change the default password before going live")


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


@click.group('users')
def users_group():
    """Employee account commands."""


@users_group.command('create')
@click.option('--employee-id', prompt=True, help='Employee ID (up to 10 chars)')
@click.option('--first-name', prompt=True)
@click.option('--middle-name', default=None)
@click.option('--last-name', prompt=True)
@click.option('--role', type=click.Choice(list(ROLES)), prompt=True, help='Role')
@click.option('--login', prompt=True, help='Login')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--salary', type=int, default=0, show_default=True)
@click.option('--birth-date', type=click.DateTime(formats=["%Y-%m-%d"]), prompt=True)
@click.option('--work-start-date', type=click.DateTime(formats=["%Y-%m-%d"]), default=None,
              help='Defaults to today')
@click.option('--phone', prompt=True)
@click.option('--city', prompt=True)
@click.option('--street', prompt=True)
@click.option('--zip-code', prompt=True)
@with_appcontext
def create_user_cli(employee_id, first_name, middle_name, last_name, role, login, password, salary,
                    birth_date, work_start_date, phone, city, street, zip_code):
    """
    Create an employee who can sign in.

    Password must meet strength requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character
    """
    try:
        password_hash = hash_password(password, current_app.config["HASH_SALT_ROUNDS"])
    except PasswordValidationError as e:
        click.echo(f"FAIL Password validation failed: {e}")
        click.echo("Requirements: 8+ chars, uppercase, lowercase, digit, special char")
        return

    employee = EmployeeInput(
        employee_id=employee_id,
        name=PersonName(first_name, last_name, middle_name),
        role=role,
        salary=salary,
        birth_date=birth_date.date(),
        work_start_date=work_start_date.date() if work_start_date else date.today(),
        phone=phone,
        address=Address(city, street, zip_code),
        login=login,
        password_hash=password_hash,
    )
    try:
        EmployeeRepository(db.session).insert(employee)
        db.session.commit()
    except IntegrityError as e:
        db.session.rollback()
        click.echo(f"FAIL Employee violates the data constraints: {e.orig}")
        return

    click.echo(f"PASS Created employee {employee_id} ({login}) with role '{role}'")
    click.echo("SECURITY Password securely hashed with bcrypt")


@users_group.command('list')
@click.option('--role', type=click.Choice(list(ROLES)), default=None, help='Filter by role')
@with_appcontext
def list_users(role):
    """List all employees with their roles and logins."""
    filters = [FilterParam(EmployeeFilter.ROLE, role)] if role else []
    result = EmployeeRepository(db.session).select(filters, OrderParam(EmployeeOrder.LAST_NAME))

    if not result.rows:
        click.echo("No employees found.")
        return

    click.echo("\n" + "=" * 80)
    click.echo(f"{'ID':<12} {'Login':<16} {'Role':<10} {'Name'}")
    click.echo("=" * 80)

    for employee in result.rows:
        full_name = f"{employee.name.last_name} {employee.name.first_name}"
        click.echo(f"{employee.employee_id:<12} {employee.login or '-':<16} {employee.role:<10} {full_name}")

    click.echo("=" * 80 + "\n")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
