"""CLI tools for Notes API administration."""

import click

from notes_api.config import settings
from notes_api.database import SessionLocal
from notes_api.services.auth_service import auth_service
from notes_api.services.token_service import TokenService
from notes_api.utils.security import hash_password


@click.group()
def cli():
    """Notes API CLI tools."""
    pass


@cli.command()
@click.option("--email", default=None, help="Admin email (defaults to ADMIN_EMAIL)")
@click.option("--password", default=None, help="Admin password (defaults to ADMIN_PASSWORD)")
def seed_admin(email: str | None, password: str | None):
    """
    Create the admin user, or reset its password if it already exists.

    Safe to run repeatedly. Example:
        notes-api seed-admin --email admin@example.com --password 'change-me-please'
    """
    email = email or settings.ADMIN_EMAIL
    password = password or settings.ADMIN_PASSWORD
    if not email or not password:
        click.echo("Skipping admin user creation: admin credentials not configured")
        return

    db = SessionLocal()
    try:
        user, created = auth_service.ensure_user(db, email, password)
        click.echo(f"Admin user {'created' if created else 'updated'}: {user.email}")
    finally:
        db.close()


@cli.command()
def purge_expired_tokens():
    """Delete expired refresh tokens (requests also remove them lazily)."""
    db = SessionLocal()
    try:
        count = TokenService.from_settings(settings).purge_expired_refresh_tokens(db)
        click.echo(f"Deleted {count} expired refresh token(s)")
    finally:
        db.close()


@cli.command(name="hash-password")
@click.argument("password")
def hash_password_cmd(password: str):
    """Print a bcrypt hash for PASSWORD."""
    click.echo(hash_password(password))


if __name__ == "__main__":
    cli()
