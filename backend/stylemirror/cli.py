# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/stylemirror/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to stylemirror (PowerShell: $env:FLASK_APP="stylemirror").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init [--email admin@stylemirror.com] [--password admin123]
#   Create all tables and the company owner account (idempotent).
#
# User inspection/bootstrap:
# - python -m flask users list
#   List staff accounts with role, store and status.
# - python -m flask users create-owner --email owner@example.com --password "secret1"
#   Create an additional company owner.
#
# Maintenance:
# - python -m flask maintenance purge-customer-photos [--grace-minutes 0]
#   Delete photos uploaded to customer sessions that have expired.

import click
from flask.cli import with_appcontext

from .errors import ServiceError
from .extensions import db
from .models import User, UserRole
from .services import auth_service, maintenance_service, storage_service


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init')
@click.option('--email', default='admin@stylemirror.com', show_default=True, help='Owner email')
@click.option('--password', default='admin123', show_default=True, help='Owner password')
@with_appcontext
def init_system(email, password):
    """
    Create tables, upload folders and the company owner account.

    SECURITY: Change the owner password immediately in production!
    """
    db.create_all()
    storage_service.ensure_upload_dirs()
    click.echo("PASS Database tables and upload folders ready")

    existing = auth_service.get_user_by_email(email)
    if existing:
        click.echo(f"WARN  User '{existing.email}' already exists, skipping...")
        return

    try:
        owner = auth_service.create_user(email, password, UserRole.OWNER)
    except ServiceError as exc:
        raise click.ClickException(exc.message)

    click.echo(f"PASS Created company owner: {owner.email}")


@click.group('users')
def users_group():
    """Staff account commands."""


@users_group.command('list')
@with_appcontext
def list_users():
    users = db.session.query(User).order_by(User.id.asc()).all()
    if not users:
        click.echo("No users found.")
        return
    for user in users:
        store = user.store.name if user.store else "-"
        status = "active" if user.is_active else "inactive"
        reset = " (must reset password)" if user.must_reset_password else ""
        click.echo(f"{user.id:>4}  {user.email:<40} {user.role.value:<15} {store:<25} {status}{reset}")


@users_group.command('create-owner')
@click.option('--email', prompt=True)
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
@with_appcontext
def create_owner(email, password):
    try:
        owner = auth_service.create_user(email, password, UserRole.OWNER)
    except ServiceError as exc:
        raise click.ClickException(exc.message)
    click.echo(f"PASS Created company owner: {owner.email} (ID: {owner.id})")


@click.group('maintenance')
def maintenance_group():
    """Maintenance commands."""


@maintenance_group.command('purge-customer-photos')
@click.option('--grace-minutes', type=int, default=0, show_default=True)
@with_appcontext
def purge_customer_photos(grace_minutes):
    """Delete customer photos once their session has expired."""
    purged = maintenance_service.purge_expired_customer_photos(grace_minutes=grace_minutes)
    click.echo(f"Purged photos of {purged} expired customer sessions.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(maintenance_group)
