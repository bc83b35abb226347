"""
This module manages the Database object, the gateway into the SQLAlchemy
engine and its bounded connection pool.  One Database is constructed at
application start-up, kept on ``app.state.database`` and handed to route
handlers through the get_db() dependency.
"""

import time
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional

from fastapi import Request
from sqlalchemy import create_engine, event, func, inspect, select, text
from sqlalchemy.engine import URL, Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from backend.config import config
from backend.utils.verbosity_logger import get_logger

logger = get_logger("backend.persistence.db")

# Get the base model class - we can use this to extend any models
Base = declarative_base()

# Tables counted by the db-info and clear-all endpoints, parents last
CATALOG_TABLES = [
    "devices",
    "problems",
    "diagnostic_steps",
    "diagnostic_sessions",
    "tv_interfaces",
    "tv_interface_marks",
]


def utcnow() -> datetime:
    """Naive UTC timestamp as stored in DateTime columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def build_database_url(db_config: Dict[str, Any]) -> str:
    """
    Build the connection string from the ``database`` config section.
    DATABASE_URL (``url``) wins over the individual DB_* settings.
    """
    if db_config.get("url"):
        url = db_config["url"]
        # Heroku/Neon style URLs use the legacy scheme name
        if url.startswith("postgres://"):
            url = "postgresql://" + url[len("postgres://") :]
        return url

    if db_config.get("user") == "sqlite" or not db_config.get("host"):
        return f"sqlite:///{db_config['name']}"

    return URL.create(
        "postgresql",
        username=db_config["user"],
        password=db_config.get("password") or None,
        host=db_config["host"],
        port=db_config.get("port"),
        database=db_config["name"],
    ).render_as_string(hide_password=False)


def missing_database_settings(db_config: Dict[str, Any]) -> List[str]:
    """Return the names of required settings that are absent (empty when usable)."""
    if db_config.get("url"):
        return []
    if db_config.get("user") == "sqlite":
        return [] if db_config.get("name") else ["DB_NAME"]
    missing = []
    for key, env_name in (("host", "DB_HOST"), ("name", "DB_NAME"), ("user", "DB_USER")):
        if not db_config.get(key):
            missing.append(env_name)
    return missing


class Database:
    """
    Owns the engine, its pool and the session factory.

    The engine is created lazily on first use so constructing a Database
    never touches the network.
    """

    def __init__(
        self,
        url: str,
        pool_size: int = 10,
        max_overflow: int = 10,
        pool_timeout: int = 10,
        pool_recycle: int = 1800,
        ssl: bool = False,
        debug_sql: bool = False,
    ):
        self.url = url
        self.pool_size = pool_size
        self.max_overflow = max_overflow
        self.pool_timeout = pool_timeout
        self.pool_recycle = pool_recycle
        self.ssl = ssl
        self.debug_sql = debug_sql
        self._engine: Optional[Engine] = None
        self._session_factory: Optional[sessionmaker] = None

    @classmethod
    def from_config(cls, db_config: Optional[Dict[str, Any]] = None) -> "Database":
        """Construct a Database from the ``database`` config section."""
        db_config = db_config or config.get_database_config()
        pool = db_config.get("pool", {})
        return cls(
            build_database_url(db_config),
            pool_size=pool.get("size", 10),
            max_overflow=pool.get("max_overflow", 10),
            pool_timeout=pool.get("timeout", 10),
            pool_recycle=pool.get("recycle", 1800),
            ssl=bool(db_config.get("ssl")),
            debug_sql=bool(db_config.get("debug_sql")),
        )

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")

    @property
    def dialect(self) -> str:
        return self.engine.dialect.name

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            self._engine = self._create_engine()
            self._session_factory = sessionmaker(
                autocommit=False, autoflush=False, bind=self._engine
            )
        return self._engine

    def _create_engine(self) -> Engine:
        if self.is_sqlite:
            engine = create_engine(
                self.url, connect_args={"check_same_thread": False}, echo=False
            )

            @event.listens_for(engine, "connect")
            def _enable_foreign_keys(dbapi_connection, _record):
                cursor = dbapi_connection.cursor()
                cursor.execute("PRAGMA foreign_keys=ON")
                cursor.close()

        else:
            connect_args = {"connect_timeout": self.pool_timeout}
            if self.ssl:
                connect_args["sslmode"] = "require"
            engine = create_engine(
                self.url,
                pool_size=self.pool_size,
                max_overflow=self.max_overflow,
                pool_timeout=self.pool_timeout,
                pool_recycle=self.pool_recycle,
                pool_pre_ping=True,
                connect_args=connect_args,
                echo=False,
            )

        self._install_sql_logging(engine)
        logger.info(
            "Database engine created (dialect=%s, pool_size=%s)",
            engine.dialect.name,
            self.pool_size,
        )
        return engine

    def _install_sql_logging(self, engine: Engine):
        debug_sql = self.debug_sql

        @event.listens_for(engine, "before_cursor_execute")
        def _start_timer(conn, _cursor, statement, parameters, _context, _many):
            conn.info.setdefault("query_start", []).append(time.perf_counter())
            if debug_sql:
                logger.debug("SQL Query: %s", statement)
                logger.debug("Parameters: %s", parameters)

        @event.listens_for(engine, "after_cursor_execute")
        def _stop_timer(conn, cursor, _statement, _parameters, _context, _many):
            started = conn.info["query_start"].pop()
            if debug_sql:
                logger.debug(
                    "Query completed in %.1fms, rows affected: %s",
                    (time.perf_counter() - started) * 1000,
                    cursor.rowcount,
                )

        @event.listens_for(engine, "handle_error")
        def _log_error(context):
            starts = context.connection.info.get("query_start") if context.connection else None
            elapsed = (time.perf_counter() - starts.pop()) * 1000 if starts else 0.0
            logger.error(
                "SQL Error after %.1fms: %s", elapsed, context.original_exception
            )
            logger.error("Query: %s", context.statement)
            logger.error("Parameters: %s", context.parameters)

    def new_session(self) -> Session:
        """Return a new ORM session bound to the pool; the caller must close it."""
        self.engine  # pylint: disable=pointless-statement
        return self._session_factory()

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Session scoped to a with-block, released to the pool in ``finally``."""
        db = self.new_session()
        try:
            yield db
        finally:
            db.close()

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """
        BEGIN on entry, COMMIT on a clean exit, ROLLBACK and re-raise on error.
        """
        db = self.new_session()
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def query(self, sql: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """Run one parameterized statement and return its rows as dicts."""
        with self.engine.begin() as conn:
            result = conn.execute(text(sql), params or {})
            if not result.returns_rows:
                return []
            return [dict(row) for row in result.mappings()]

    def test_connection(self) -> Dict[str, Any]:
        """Round-trip to the server; never raises."""
        try:
            with self.engine.connect() as conn:
                if self.dialect == "postgresql":
                    row = conn.execute(
                        text("SELECT NOW() AS current_time, version() AS version")
                    ).one()
                    server_time, version = row.current_time, row.version
                else:
                    server_time = conn.execute(select(func.current_timestamp())).scalar()
                    version = f"SQLite {conn.execute(text('select sqlite_version()')).scalar()}"
            logger.info("Database connection successful (%s)", version.split(" ")[0])
            return {"success": True, "serverTime": str(server_time), "version": version}
        except SQLAlchemyError as e:
            logger.error("Database connection failed: %s", e)
            return {"success": False, "error": str(e)}

    def table_names(self) -> List[str]:
        return sorted(inspect(self.engine).get_table_names())

    def foreign_keys(self) -> List[Dict[str, str]]:
        """Every foreign key as {table_name, column_name, foreign_table_name, ...}."""
        inspector = inspect(self.engine)
        keys = []
        for table_name in sorted(inspector.get_table_names()):
            for fk in inspector.get_foreign_keys(table_name):
                for column, referred in zip(fk["constrained_columns"], fk["referred_columns"]):
                    keys.append(
                        {
                            "table_name": table_name,
                            "column_name": column,
                            "foreign_table_name": fk["referred_table"],
                            "foreign_column_name": referred,
                            "constraint_name": fk.get("name"),
                        }
                    )
        return keys

    def row_counts(self, tables: Optional[List[str]] = None) -> Dict[str, Any]:
        """COUNT(*) per table; "N/A" for tables that do not exist."""
        existing = set(self.table_names())
        counts: Dict[str, Any] = {}
        with self.engine.connect() as conn:
            for table_name in tables or CATALOG_TABLES:
                if table_name not in existing:
                    counts[table_name] = "N/A"
                    continue
                counts[table_name] = conn.execute(
                    text(f'SELECT COUNT(*) FROM "{table_name}"')  # nosec B608
                ).scalar()
        return counts

    def get_stats(self) -> Dict[str, Any]:
        """Per-table row statistics plus the database size where the server reports it."""
        stats: Dict[str, Any] = {"timestamp": utcnow().isoformat() + "Z"}
        if self.dialect == "postgresql":
            stats["tables"] = self.query(
                """
                SELECT schemaname, relname AS tablename,
                       n_tup_ins AS inserts, n_tup_upd AS updates,
                       n_tup_del AS deletes, n_live_tup AS live_rows,
                       n_dead_tup AS dead_rows
                FROM pg_stat_user_tables
                ORDER BY n_live_tup DESC
                """
            )
            stats["databaseSize"] = self.query(
                "SELECT pg_size_pretty(pg_database_size(current_database())) AS size"
            )[0]["size"]
        else:
            counts = self.row_counts(self.table_names())
            stats["tables"] = [
                {"tablename": name, "live_rows": count} for name, count in counts.items()
            ]
            stats["databaseSize"] = None
        return stats

    def create_all(self):
        """Create every mapped table (used by tests and the SQLite dev setup)."""
        from backend.persistence import models  # noqa: F401  pylint: disable=import-outside-toplevel

        Base.metadata.create_all(bind=self.engine)

    def drop_all(self):
        from backend.persistence import models  # noqa: F401  pylint: disable=import-outside-toplevel

        Base.metadata.drop_all(bind=self.engine)

    def dispose(self):
        """Close every pooled connection."""
        if self._engine is not None:
            logger.info("Closing database connection pool")
            self._engine.dispose()


def get_database(request: Request) -> Database:
    """FastAPI dependency returning the application's Database."""
    return request.app.state.database


def get_db(request: Request) -> Iterator[Session]:
    """
    FastAPI dependency yielding a session for the duration of one request.
    """
    db = get_database(request).new_session()
    try:
        yield db
    finally:
        db.close()


def get_database_url() -> str:
    """Database URL for alembic and other external tools."""
    return build_database_url(config.get_database_config())
