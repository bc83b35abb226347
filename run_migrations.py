#!/usr/bin/env python
"""
Run the Alembic migrations programmatically.
This works cross-platform including Windows where the alembic command may not be in PATH.

When the database is configured through DB_* settings and does not exist yet
on the PostgreSQL server, it is created before upgrading.
"""
import sys

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError

from backend.config import config
from backend.persistence.db import build_database_url, missing_database_settings
from backend.utils.verbosity_logger import get_logger

logger = get_logger("run_migrations")


def ensure_database(db_config):
    """CREATE DATABASE on the server when the configured one is missing."""
    if db_config.get("url") or db_config.get("user") == "sqlite":
        return
    url = make_url(build_database_url(db_config))
    if url.get_backend_name() != "postgresql":
        return

    admin_engine = create_engine(
        url.set(database="postgres"), isolation_level="AUTOCOMMIT"
    )
    try:
        with admin_engine.connect() as conn:
            exists = conn.execute(
                text("SELECT 1 FROM pg_database WHERE datname = :name"),
                {"name": url.database},
            ).scalar()
            if not exists:
                logger.info("Creating database %s", url.database)
                conn.execute(text(f'CREATE DATABASE "{url.database}"'))
    finally:
        admin_engine.dispose()


def main():
    """Run alembic upgrade head"""
    db_config = config.get_database_config()
    missing = missing_database_settings(db_config)
    if missing:
        logger.error("Missing database settings: %s", ", ".join(missing))
        return 1

    try:
        ensure_database(db_config)
        alembic_cfg = Config("alembic.ini")
        command.upgrade(alembic_cfg, "head")
        logger.info("Database migrations completed successfully")
        return 0
    except SQLAlchemyError as e:
        logger.error("Migration failed: %s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
