"""Management commands for the pharmacy POS backend."""

from __future__ import annotations

import logging
import os
from typing import Optional

import click

from pharmacy_pos.db.seed import seed_demo_data
from pharmacy_pos.db.session import get_database
from pharmacy_pos.main import create_app
from pharmacy_pos.repositories.user_repo import UserRepository
from pharmacy_pos.services.user_service import UserService

logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")

# Create the Flask application once so commands can share configuration.
app = create_app()


@click.group()
def cli() -> None:
    """Entry point for management commands."""


@cli.command("init-db")
def init_db() -> None:
    """Create any missing tables."""
    get_database(app).create_tables()
    logging.info("Database tables are up to date.")


@cli.command("create-admin")
@click.option("--email", "email_override", default=None, help="Overrides ADMIN_EMAIL.")
@click.option("--name", default="Administrator", show_default=True)
@click.option(
    "--password",
    default=None,
    help="Overrides ADMIN_PASSWORD. Prompted for when neither is set.",
)
def create_admin(email_override: Optional[str], name: str, password: Optional[str]) -> None:
    """Ensure an admin account exists for the given email."""
    email = email_override or os.getenv("ADMIN_EMAIL")
    if not email:
        raise click.ClickException(
            "ADMIN_EMAIL environment variable is not set and no --email provided."
        )
    password = password or os.getenv("ADMIN_PASSWORD")
    if not password:
        password = click.prompt("Password", hide_input=True, confirmation_prompt=True)

    settings = app.extensions["pharmacy_settings"]
    with get_database(app).session_scope() as session:
        service = UserService(
            UserRepository(session),
            settings.jwt_secret_key,
            settings.jwt_expiration_hours,
        )
        user, created = service.ensure_admin(email, name, password)

    if created:
        logging.info("Created admin %s (id=%s).", user.email, user.id)
    else:
        logging.info(
            "User %s already exists (id=%s, role=%s); no changes made.",
            user.email,
            user.id,
            user.role,
        )


@cli.command("seed-demo")
def seed_demo() -> None:
    """Load demo stores, drugs, stock and customers."""
    with get_database(app).session_scope() as session:
        created = seed_demo_data(session)
    logging.info(
        "Seeded %s stores, %s drugs, %s inventory rows, %s customers.",
        created["stores"],
        created["drugs"],
        created["inventory"],
        created["customers"],
    )


if __name__ == "__main__":
    cli()
