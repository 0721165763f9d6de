"""Shared helpers for tests.

Intended usage:
- spin up a temporary SQLite store (with its attached `kbo`/`kbo_stg` files)
- write small KBO-shaped CSV extracts
- stage rows directly when a test only exercises the transform

These utilities keep tests small and consistent.
"""

from __future__ import annotations

import csv
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import Any

from sqlalchemy import Table, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

import db
from utils.migrate_schema import ensure_schema
from utils.staging_loader import COPY_JOBS

__all__ = [
    "make_sqlite_engine",
    "create_kbo_db",
    "write_csv",
    "write_extract",
    "stage_rows",
    "table_rows",
    "SAMPLE_EXTRACT",
]


def make_sqlite_engine(db_path: Path | str) -> Engine:
    """Create a SQLite store engine suitable for tests (no schema yet)."""

    return db.make_engine(f"sqlite:///{db_path}")


def create_kbo_db(db_path: Path) -> tuple[Session, Engine]:
    """Create an empty store and bring the schema up to date.

    Returns (session, engine).
    """

    engine = make_sqlite_engine(db_path)
    ensure_schema(engine)
    return db.SessionLocal(bind=engine), engine


def write_csv(path: Path, header: Sequence[str], rows: Iterable[Sequence[Any]]) -> Path:
    """Write a KBO style CSV: every field quoted, comma separated."""

    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8", newline="") as fh:
        w = csv.writer(fh, quoting=csv.QUOTE_ALL)
        w.writerow(header)
        for row in rows:
            w.writerow(row)
    return path


# A tiny but complete extract: two enterprises, one establishment, one branch.
SAMPLE_EXTRACT: dict[str, list[tuple[str, ...]]] = {
    "code.csv": [
        ("Status", "AC", "NL", "Actief"),
        ("Status", "AC", "FR", "Actif"),
        ("JuridicalForm", "014", "NL", "Naamloze vennootschap"),
        ("JuridicalForm", "014", "FR", "Société anonyme"),
        ("JuridicalSituation", "000", "NL", "Normale toestand"),
        ("JuridicalSituation", "000", "FR", "Situation normale"),
        ("TypeOfEnterprise", "1", "NL", "Natuurlijk persoon"),
        ("TypeOfEnterprise", "2", "NL", "Rechtspersoon"),
        ("Nace2008", "62010", "NL", "Ontwerpen en programmeren van computerprogramma's"),
        ("Nace2008", "62010", "FR", "Programmation informatique"),
    ],
    "enterprise.csv": [
        ("0200.065.765", "AC", "000", "2", "014", "", "09-08-1960"),
        ("0201.310.929", "AC", "000", "1", "", "", "01-01-1998"),
    ],
    "establishment.csv": [
        ("2.000.000.339", "01-11-1974", "0200.065.765"),
    ],
    "branch.csv": [
        ("9.001.234.567", "05-03-1998", "0200.065.765"),
    ],
    "denomination.csv": [
        ("0200.065.765", "2", "001", "Intergemeentelijke Vereniging Veneco"),
        ("0200.065.765", "2", "001", "Intergemeentelijke Vereniging Veneco"),
        ("0201.310.929", "2", "001", "Jan Peeters"),
    ],
    "address.csv": [
        (
            "0200.065.765", "REGO", "", "", "9070",
            "Destelbergen", "Destelbergen", "Panhuisstraat", "Panhuisstraat",
            "1", "", "", "",
        ),
    ],
    "contact.csv": [
        ("0200.065.765", "ENT", "TEL", "093553910"),
    ],
    "activity.csv": [
        ("0200.065.765", "BTW", "2008", "62010", "MAIN"),
    ],
    "meta.csv": [
        ("SnapshotDate", "06-01-2024"),
        ("ExtractNumber", "140"),
    ],
    "NACEBEL_2025.csv": [
        ("5", "62100", "Computerprogrammering", "Programmation informatique", "", "Computer programming"),
    ],
}


def write_extract(
    files_dir: Path, overrides: dict[str, list[tuple[str, ...]]] | None = None
) -> Path:
    """Write all ten source files (SAMPLE_EXTRACT unless overridden)."""

    data = dict(SAMPLE_EXTRACT)
    data.update(overrides or {})
    for job in COPY_JOBS:
        write_csv(files_dir / job.file_name, job.columns, data.get(job.file_name, []))
    return files_dir


def stage_rows(engine: Engine, table: Table, rows: Iterable[Sequence[Any]]) -> None:
    """Insert positional rows straight into a staging table."""

    cols = [c.name for c in table.columns]
    payload = [dict(zip(cols, r)) for r in rows]
    with engine.begin() as conn:
        conn.execute(table.delete())
        if payload:
            conn.execute(table.insert(), payload)


def table_rows(engine: Engine, table: Table, *order_by: str) -> list[tuple]:
    with engine.connect() as conn:
        q = select(table)
        if order_by:
            q = q.order_by(*(table.c[c] for c in order_by))
        return [tuple(r) for r in conn.execute(q)]
