#!/usr/bin/env python3
"""
Drop every ANT Support table, including alembic_version, so the next
run_migrations.py starts from an empty schema.

Usage:
    python3 scripts/clean_db.py --yes
"""

import argparse
import os
import sys

from sqlalchemy import MetaData
from sqlalchemy.exc import SQLAlchemyError

# Add the project root to Python path so the backend package resolves
script_dir = os.path.dirname(os.path.abspath(__file__))
project_root = os.path.dirname(script_dir)
sys.path.insert(0, project_root)

from backend.persistence.db import Database  # noqa: E402  pylint: disable=wrong-import-position


def drop_everything(database):
    """Reflect the live schema and drop it, dependents first."""
    metadata = MetaData()
    metadata.reflect(bind=database.engine)
    names = [table.name for table in metadata.sorted_tables]
    metadata.drop_all(bind=database.engine)
    return names


def main():
    parser = argparse.ArgumentParser(description="Drop all ANT Support tables")
    parser.add_argument("--yes", action="store_true", help="do not ask for confirmation")
    args = parser.parse_args()

    database = Database.from_config()
    print(f"Target database: {database.url.split('@')[-1]}")
    if not args.yes:
        answer = input("This permanently removes every table. Continue? [y/N] ")
        if answer.strip().lower() not in ("y", "yes"):
            print("Aborted")
            return 1

    try:
        dropped = drop_everything(database)
    except SQLAlchemyError as e:
        print(f"Error dropping tables: {e}", file=sys.stderr)
        return 1
    finally:
        database.dispose()

    for name in dropped:
        print(f"  dropped {name}")
    print(f"Dropped {len(dropped)} tables")
    return 0


if __name__ == "__main__":
    sys.exit(main())
