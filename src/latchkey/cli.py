"""Command-line interface for Latchkey.

This module provides the CLI commands for running and managing
the Latchkey service.
"""

from pathlib import Path
from typing import NoReturn

import click

from latchkey import __version__
from latchkey.core.config import get_settings
from latchkey.core.logging import configure_logging, get_logger

PROJECT_ROOT = Path(__file__).resolve().parents[2]


@click.group()
@click.version_option(version=__version__, prog_name="Latchkey")
def cli() -> None:
    """Latchkey - credential and session authentication service.

    Configuration is read from LATCHKEY_* environment variables and .env.
    LATCHKEY_JWT_SECRET and LATCHKEY_DATABASE_URL are required.
    """


@cli.command()
@click.option("--host", type=str, default=None, help="Host to bind to (overrides config)")
@click.option("--port", type=int, default=None, help="Port to bind to (overrides config)")
@click.option(
    "--workers",
    type=int,
    default=None,
    help="Number of worker processes (overrides config)",
)
@click.option(
    "--reload",
    is_flag=True,
    default=False,
    help="Enable auto-reload for development",
)
def serve(host: str | None, port: int | None, workers: int | None, reload: bool) -> None:
    """Start the Latchkey server."""
    import uvicorn

    settings = get_settings()

    bind_host = host or settings.host
    bind_port = port or settings.port
    bind_workers = workers or settings.workers

    configure_logging(settings)

    logger = get_logger(__name__)
    logger.info(
        "Starting Latchkey server",
        host=bind_host,
        port=bind_port,
        workers=bind_workers,
        reload=reload,
        environment=settings.environment,
    )

    uvicorn.run(
        "latchkey.infrastructure.api.app:app",
        host=bind_host,
        port=bind_port,
        workers=1 if reload else bind_workers,
        reload=reload,
        log_level=settings.log_level.lower(),
        access_log=True,
    )


@cli.command()
@click.option(
    "--revision",
    type=str,
    default="head",
    show_default=True,
    help="Target revision",
)
def migrate(revision: str) -> None:
    """Apply database migrations."""
    from alembic import command
    from alembic.config import Config

    settings = get_settings()
    configure_logging(settings)
    logger = get_logger(__name__)

    config = Config(str(PROJECT_ROOT / "alembic.ini"))
    config.set_main_option("script_location", str(PROJECT_ROOT / "alembic"))
    config.set_main_option("sqlalchemy.url", settings.database_url)

    command.upgrade(config, revision)
    logger.info("Migrations applied", revision=revision)
    click.echo(f"Database upgraded to {revision}.")


@cli.command()
@click.option(
    "--force",
    is_flag=True,
    help="Skip confirmation prompt",
)
def init_db(force: bool) -> None:
    """Create all database tables directly.

    Use this only in development. In production, use ``latchkey migrate``.
    """
    import asyncio

    from latchkey.infrastructure.persistence import models  # noqa: F401
    from latchkey.infrastructure.persistence.database import get_db_manager

    settings = get_settings()
    configure_logging(settings)

    if settings.is_production and not force:
        click.echo(
            "ERROR: Running in production mode. Use migrations instead of init-db.",
            err=True,
        )
        raise SystemExit(1)

    if not force:
        click.confirm(
            "This will create all database tables. Continue?",
            abort=True,
            default=False,
        )

    async def initialize() -> None:
        db = get_db_manager()
        try:
            await db.create_tables()
            click.echo("Database initialized successfully.")
        finally:
            await db.disconnect()

    asyncio.run(initialize())


@cli.command()
def purge_reset_tokens() -> None:
    """Delete expired password reset tokens."""
    import asyncio

    from latchkey.infrastructure.persistence.database import get_db_manager
    from latchkey.infrastructure.persistence.repositories import PasswordResetRepository

    settings = get_settings()
    configure_logging(settings)
    logger = get_logger(__name__)

    async def purge() -> int:
        db = get_db_manager()
        try:
            async with db.session() as session:
                deleted = await PasswordResetRepository(session).delete_expired()
                await session.commit()
                return deleted
        finally:
            await db.disconnect()

    deleted = asyncio.run(purge())
    logger.info("Expired reset tokens purged", deleted=deleted)
    click.echo(f"Deleted {deleted} expired reset token(s).")


@cli.command()
def info() -> None:
    """Display Latchkey configuration (secrets are not shown)."""
    from sqlalchemy.engine import make_url

    settings = get_settings()
    database_url = make_url(settings.database_url).render_as_string(hide_password=True)

    click.echo(f"""
Latchkey v{settings.app_version}
{'=' * 40}

Configuration:
  Environment:   {settings.environment}
  Debug:         {settings.debug}
  API Prefix:    {settings.api_prefix}

Server:
  Host:          {settings.host}
  Port:          {settings.port}
  Workers:       {settings.workers}

Database:
  URL:           {database_url}
  Pool Size:     {settings.db_pool_size}

Security:
  Hash cost:     t={settings.password_hash_time_cost} m={settings.password_hash_memory_cost} p={settings.password_hash_parallelism}
  Expose resets: {settings.expose_reset_token}

Logging:
  Level:         {settings.log_level}
  Format:        {settings.log_format}
""")


def main() -> NoReturn:
    """Main entry point for the CLI."""
    cli()
