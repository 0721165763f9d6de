from __future__ import annotations

import os

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from config import Config

# Final (system of record) and staging namespaces.
FINAL_SCHEMA = "kbo"
STAGING_SCHEMA = "kbo_stg"
NAMESPACES: tuple[str, ...] = (FINAL_SCHEMA, STAGING_SCHEMA)


def normalize_database_url(url: str) -> str:
    """Accept libpq style ``postgres://`` URLs as well as SQLAlchemy URLs."""

    url = (url or "").strip()
    if url.startswith("postgres://"):
        return "postgresql+psycopg2://" + url[len("postgres://") :]
    if url.startswith("postgresql://"):
        return "postgresql+psycopg2://" + url[len("postgresql://") :]
    return url


def namespace_path(db_path: str, schema: str) -> str:
    """File backing an attached SQLite namespace, next to the main DB file."""

    if db_path in ("", ":memory:"):
        return ":memory:"
    root, _ext = os.path.splitext(db_path)
    return f"{root}.{schema}.sqlite"


def _sqlite_on_connect(db_path: str):
    def _on_connect(dbapi_connection, connection_record):
        # SQLite has no schemas; each namespace is an attached database so
        # that `kbo.enterprise` and `kbo_stg.enterprise` resolve the same way
        # they do on PostgreSQL.
        cursor = dbapi_connection.cursor()
        try:
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.execute("PRAGMA busy_timeout=30000")
            for schema in NAMESPACES:
                cursor.execute(
                    f"ATTACH DATABASE ? AS {schema}", (namespace_path(db_path, schema),)
                )
        finally:
            cursor.close()

    return _on_connect


def make_engine(url: str | None = None) -> Engine:
    """Create an engine for the configured store.

    PostgreSQL is the production target. SQLite is supported for local runs
    and tests; its namespaces are emulated with attached database files.
    """

    url = normalize_database_url(url or Config.DATABASE_URL)
    parsed = make_url(url)

    if parsed.get_backend_name() != "sqlite":
        return create_engine(url, pool_pre_ping=True)

    db_path = parsed.database or ""
    if db_path and db_path != ":memory:":
        os.makedirs(os.path.dirname(os.path.abspath(db_path)), exist_ok=True)
        eng = create_engine(
            url,
            connect_args={"check_same_thread": False, "timeout": 30},
            pool_pre_ping=True,
        )
    else:
        # One shared connection, otherwise every checkout sees a new empty DB.
        eng = create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

    event.listen(eng, "connect", _sqlite_on_connect(db_path))
    return eng


SessionLocal = sessionmaker(autocommit=False, autoflush=False)
Base = declarative_base()
