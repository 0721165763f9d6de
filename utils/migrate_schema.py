"""Schema setup for the KBO store.

This project does not use Alembic. `ensure_schema()` brings any database
(fresh, current or legacy) to the shape of the current models and is safe to
run on every start. It will:
- create the `kbo` and `kbo_stg` namespaces when missing
- create missing final and staging tables (PKs, FKs, indexes)
- create missing indexes on tables that already existed
- relax the legacy NOT NULL on `kbo.enterprise.juridical_form`

It never drops data.
"""

from __future__ import annotations

import sys
import os

# Allow running as standalone script
sys.path.append(os.path.dirname(os.path.dirname(__file__)))

import argparse

from sqlalchemy import inspect
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.schema import CreateSchema

import db
from db import FINAL_SCHEMA, NAMESPACES
from logging_utils import get_logger
from models import Base
from models.enterprises import Enterprise
from support.source_ingest_base import IngestError

logger = get_logger(__name__)


class SchemaSetupError(IngestError):
    """Schema could not be brought up to date; nothing downstream may run."""


def create_namespaces_if_missing(conn: Connection) -> bool:
    """Create the final and staging schemas (PostgreSQL only).

    SQLite namespaces are attached databases and exist as soon as a
    connection is opened (see `db.make_engine`).
    """

    if conn.dialect.name == "sqlite":
        return False

    existing = set(inspect(conn).get_schema_names())
    changed = False
    for schema in NAMESPACES:
        if schema not in existing:
            conn.execute(CreateSchema(schema))
            logger.info("Created schema %s", schema)
            changed = True
    return changed


def create_tables_if_missing(conn: Connection) -> bool:
    insp = inspect(conn)
    changed = False
    for table in Base.metadata.sorted_tables:
        if insp.has_table(table.name, schema=table.schema):
            continue
        table.create(conn)
        logger.info("Created table %s", table.fullname)
        changed = True
    return changed


def create_indexes_if_missing(conn: Connection) -> bool:
    """Create declared indexes missing from tables that predate them."""

    insp = inspect(conn)
    changed = False
    for table in Base.metadata.sorted_tables:
        if not table.indexes:
            continue
        existing = {ix["name"] for ix in insp.get_indexes(table.name, schema=table.schema)}
        for index in table.indexes:
            if index.name in existing:
                continue
            index.create(conn)
            logger.info("Created index %s on %s", index.name, table.fullname)
            changed = True
    return changed


def _juridical_form_is_not_null(conn: Connection) -> bool:
    insp = inspect(conn)
    if not insp.has_table("enterprise", schema=FINAL_SCHEMA):
        return False
    for col in insp.get_columns("enterprise", schema=FINAL_SCHEMA):
        if col["name"] == "juridical_form":
            return not col.get("nullable", True)
    return False


def _rebuild_sqlite_enterprise(conn: Connection) -> None:
    """Recreate kbo.enterprise from the current model, keeping its rows.

    SQLite cannot drop a NOT NULL in place. Foreign key checks are suspended
    and legacy rename semantics enabled so establishment/branch keep
    referencing `enterprise` (now the rebuilt table).
    """

    table = Enterprise.__table__
    cols = ", ".join(f'"{c.name}"' for c in table.columns)

    conn.exec_driver_sql("PRAGMA foreign_keys=OFF")
    conn.exec_driver_sql("PRAGMA legacy_alter_table=ON")
    try:
        conn.exec_driver_sql(
            f"ALTER TABLE {FINAL_SCHEMA}.enterprise RENAME TO _enterprise_legacy"
        )
        table.create(conn)
        conn.exec_driver_sql(
            f"INSERT INTO {FINAL_SCHEMA}.enterprise ({cols}) "
            f"SELECT {cols} FROM {FINAL_SCHEMA}._enterprise_legacy"
        )
        conn.exec_driver_sql(f"DROP TABLE {FINAL_SCHEMA}._enterprise_legacy")
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.exec_driver_sql("PRAGMA legacy_alter_table=OFF")
        conn.exec_driver_sql("PRAGMA foreign_keys=ON")
        conn.commit()


def relax_juridical_form_not_null(engine: Engine) -> bool:
    """Drop the NOT NULL some older databases put on juridical_form."""

    with engine.connect() as conn:
        if not _juridical_form_is_not_null(conn):
            return False

        logger.info("Relaxing NOT NULL on %s.enterprise.juridical_form", FINAL_SCHEMA)
        if conn.dialect.name == "sqlite":
            _rebuild_sqlite_enterprise(conn)
        else:
            conn.exec_driver_sql(
                f"ALTER TABLE {FINAL_SCHEMA}.enterprise "
                "ALTER COLUMN juridical_form DROP NOT NULL"
            )
            conn.commit()
        return True


def ensure_schema(engine: Engine) -> bool:
    """Idempotently create/upgrade the whole schema.

    Returns True if anything changed.

    Raises:
        SchemaSetupError: on any store error. No partial schema is usable.
    """

    try:
        with engine.begin() as conn:
            changed = create_namespaces_if_missing(conn)
            changed |= create_tables_if_missing(conn)
        with engine.begin() as conn:
            changed |= create_indexes_if_missing(conn)
        changed |= relax_juridical_form_not_null(engine)
    except SQLAlchemyError as e:
        logger.exception("Schema setup failed")
        raise SchemaSetupError(f"Schema setup failed: {e}") from e

    if changed:
        logger.info("Schema updated")
    else:
        logger.info("Schema already up to date")
    return changed


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Create or upgrade the KBO schema")
    p.add_argument(
        "--database-url",
        default=None,
        help="SQLAlchemy URL (default: DATABASE_URL)",
    )
    args, _unknown = p.parse_known_args(argv)
    return args


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    engine = db.make_engine(args.database_url)
    try:
        ensure_schema(engine)
    except SchemaSetupError:
        return 1
    finally:
        engine.dispose()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
