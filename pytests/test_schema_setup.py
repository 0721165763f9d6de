from __future__ import annotations

from datetime import date

from sqlalchemy import inspect, select

from db import FINAL_SCHEMA, STAGING_SCHEMA
from models import Base
from models.staging import STAGING_TABLES
from models.enterprises import Enterprise, Establishment
from pytests.common import make_sqlite_engine
from utils.migrate_schema import ensure_schema, main


FINAL_TABLES = {
    "code",
    "enterprise",
    "establishment",
    "branch",
    "denomination",
    "address",
    "contact",
    "activity",
    "extract_meta",
}


def test_ensure_schema_creates_both_namespaces(tmp_path) -> None:
    engine = make_sqlite_engine(tmp_path / "kbo.sqlite")
    try:
        assert ensure_schema(engine) is True

        insp = inspect(engine)
        assert FINAL_TABLES.issubset(set(insp.get_table_names(schema=FINAL_SCHEMA)))
        staged = set(insp.get_table_names(schema=STAGING_SCHEMA))
        assert {t.name for t in STAGING_TABLES} == staged

        address_ix = {ix["name"] for ix in insp.get_indexes("address", schema=FINAL_SCHEMA)}
        assert "idx_address_entity" in address_ix
        activity_ix = {ix["name"] for ix in insp.get_indexes("activity", schema=FINAL_SCHEMA)}
        assert {"idx_activity_entity", "idx_activity_nace"}.issubset(activity_ix)

        # Namespaces live in their own files next to the main DB.
        assert (tmp_path / "kbo.kbo.sqlite").exists()
        assert (tmp_path / "kbo.kbo_stg.sqlite").exists()
    finally:
        engine.dispose()


def test_ensure_schema_is_idempotent_and_keeps_data(tmp_path) -> None:
    engine = make_sqlite_engine(tmp_path / "kbo.sqlite")
    try:
        ensure_schema(engine)
        with engine.begin() as conn:
            conn.execute(
                Enterprise.__table__.insert(),
                {
                    "enterprise_number": "0200.065.765",
                    "status": "AC",
                    "juridical_situation": "000",
                    "type_of_enterprise": "2",
                    "juridical_form": "014",
                    "start_date": date(1960, 8, 9),
                },
            )

        assert ensure_schema(engine) is False

        with engine.connect() as conn:
            n = conn.execute(select(Enterprise.enterprise_number)).all()
        assert [r[0] for r in n] == ["0200.065.765"]
    finally:
        engine.dispose()


def test_ensure_schema_creates_index_missing_from_existing_table(tmp_path) -> None:
    engine = make_sqlite_engine(tmp_path / "kbo.sqlite")
    try:
        ensure_schema(engine)
        with engine.begin() as conn:
            conn.exec_driver_sql(f"DROP INDEX {FINAL_SCHEMA}.idx_activity_nace")

        assert ensure_schema(engine) is True
        ix = {i["name"] for i in inspect(engine).get_indexes("activity", schema=FINAL_SCHEMA)}
        assert "idx_activity_nace" in ix
    finally:
        engine.dispose()


def test_ensure_schema_relaxes_legacy_juridical_form_not_null(tmp_path) -> None:
    engine = make_sqlite_engine(tmp_path / "legacy.sqlite")
    try:
        # Shape written by older releases: juridical_form NOT NULL.
        with engine.begin() as conn:
            conn.exec_driver_sql(
                f"""
                CREATE TABLE {FINAL_SCHEMA}.enterprise (
                    enterprise_number TEXT PRIMARY KEY,
                    status TEXT NOT NULL,
                    juridical_situation TEXT NOT NULL,
                    type_of_enterprise TEXT NOT NULL,
                    juridical_form TEXT NOT NULL,
                    juridical_form_cac TEXT,
                    start_date DATE NOT NULL
                )
                """.strip()
            )
            conn.exec_driver_sql(
                f"INSERT INTO {FINAL_SCHEMA}.enterprise VALUES "
                "('0200.065.765', 'AC', '000', '2', '014', NULL, '1960-08-09')"
            )

        assert ensure_schema(engine) is True

        cols = {
            c["name"]: c
            for c in inspect(engine).get_columns("enterprise", schema=FINAL_SCHEMA)
        }
        assert cols["juridical_form"]["nullable"] is True

        with engine.begin() as conn:
            conn.execute(
                Enterprise.__table__.insert(),
                {
                    "enterprise_number": "0201.310.929",
                    "status": "AC",
                    "juridical_situation": "000",
                    "type_of_enterprise": "1",
                    "juridical_form": None,
                    "start_date": date(1998, 1, 1),
                },
            )
            # Establishments still reference the rebuilt enterprise table.
            conn.execute(
                Establishment.__table__.insert(),
                {
                    "establishment_number": "2.000.000.339",
                    "start_date": date(1974, 11, 1),
                    "enterprise_number": "0200.065.765",
                },
            )

        with engine.connect() as conn:
            rows = conn.execute(
                select(Enterprise.enterprise_number, Enterprise.juridical_form).order_by(
                    Enterprise.enterprise_number
                )
            ).all()
        assert [tuple(r) for r in rows] == [
            ("0200.065.765", "014"),
            ("0201.310.929", None),
        ]

        # Second run: nothing left to relax.
        assert ensure_schema(engine) is False
    finally:
        engine.dispose()


def test_migrate_schema_cli(tmp_path) -> None:
    url = f"sqlite:///{tmp_path / 'cli.sqlite'}"
    assert main(["--database-url", url]) == 0
    assert main(["--database-url", url]) == 0


def test_every_model_table_has_a_namespace() -> None:
    for table in Base.metadata.sorted_tables:
        assert table.schema in (FINAL_SCHEMA, STAGING_SCHEMA)
