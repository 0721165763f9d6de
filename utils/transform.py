"""Transform staged KBO rows into the final `kbo` tables.

Every entity is described once by an `EntityDescriptor`: where it reads from,
where it writes to, its natural key, its `ConflictPolicy` and a converter
that turns one staged row into typed final rows. `write_entity()` is the
single routine that applies a descriptor:

- OVERWRITE       insert, on key conflict overwrite every non-key column
- INSERT_MISSING  insert, on key conflict keep the existing row
- REPLACE_ALL     delete final rows of every entity present in staging, then
                  insert (for tables without a natural key, i.e. address)

Steps run in foreign key order (`STEPS`). Each step is all-or-nothing: a row
that cannot be converted (bad date, non-numeric NACE version) or that points
at a missing enterprise fails the whole step and rolls it back. Staged rows
are streamed in partitions and written with executemany, so memory stays
bounded by `batch_size`.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Iterator

from sqlalchemy import Table, exists, func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError

from logging_utils import get_logger
from models import staging
from models.activities import Activity
from models.addresses import Address
from models.codes import Code
from models.contacts import Contact
from models.denominations import Denomination
from models.enterprises import Branch, Enterprise, Establishment
from models.extract_meta import ExtractMeta
from support.source_ingest_base import IngestError
from utils.time_utils import parse_source_date
from utils.value_parsing import blank_to_none, parse_int_strict

logger = get_logger(__name__)

NACEBEL_2025_CATEGORY = "NACEBEL_2025"
DEFAULT_BATCH_SIZE = 5000

# Number of offending keys quoted in a referential error.
_ORPHAN_SAMPLE = 10


class ConflictPolicy(enum.Enum):
    OVERWRITE = "overwrite"
    INSERT_MISSING = "insert_missing"
    REPLACE_ALL = "replace_all"


class RowTransformError(IngestError):
    """A staged value could not be coerced to its final type."""

    def __init__(self, entity: str, key: Any, column: str, value: Any, reason: str) -> None:
        super().__init__(
            f"{entity} {key!r}: cannot convert {column}={value!r} ({reason})"
        )
        self.entity = entity
        self.key = key
        self.column = column
        self.value = value


class ReferentialIntegrityError(IngestError):
    """Staged rows reference final rows that do not exist."""

    def __init__(self, entity: str, orphans: list[tuple[Any, Any]], reason: str | None = None) -> None:
        sample = ", ".join(f"{k} -> {ref}" for k, ref in orphans[:_ORPHAN_SAMPLE])
        msg = f"{entity}: rows reference a missing enterprise ({sample})"
        if reason:
            msg = f"{entity}: {reason}"
        super().__init__(msg)
        self.entity = entity
        self.orphans = orphans


Converter = Callable[[Any], Iterable[dict[str, Any]]]


@dataclass(frozen=True)
class EntityDescriptor:
    name: str
    target: Table
    source: Table
    # Staged column that must be non-empty for the row to be considered.
    source_key: str
    policy: ConflictPolicy
    convert: Converter
    # Final-table columns forming the conflict target.
    natural_key: tuple[str, ...] = ()
    # Staged column holding an enterprise number that must already exist.
    enterprise_ref: str | None = None
    # REPLACE_ALL: final column whose staged values select the rows to replace.
    replace_key: str | None = None

    @property
    def columns(self) -> list[str]:
        return [c.name for c in self.target.columns if not (c.primary_key and c.autoincrement is True)]


@dataclass
class StepResult:
    name: str
    written: int = 0
    skipped: int = 0


@dataclass
class TransformResult:
    steps: list[StepResult]

    def written(self) -> dict[str, int]:
        return {s.name: s.written for s in self.steps}

    def skipped(self) -> dict[str, int]:
        return {s.name: s.skipped for s in self.steps}


# --- converters -------------------------------------------------------------


def _date(entity: str, key: Any, column: str, value: str | None):
    try:
        return parse_source_date(value)
    except ValueError as e:
        raise RowTransformError(entity, key, column, value, str(e)) from None


def _convert_code(row) -> Iterator[dict[str, Any]]:
    yield {
        "category": row.Category,
        "code": row.Code,
        "language": row.Language,
        "description": row.Description,
    }


_NACEBEL_TITLES = (
    ("NL", "NATIONAL_TITLE_BE_NL"),
    ("FR", "NATIONAL_TITLE_BE_FR"),
    ("DE", "NATIONAL_TITLE_BE_DE"),
    ("EN", "NATIONAL_TITLE_BE_EN"),
)


def _convert_nacebel2025(row) -> Iterator[dict[str, Any]]:
    # One staged row carries all four languages; pivot to one code row each.
    for language, column in _NACEBEL_TITLES:
        description = blank_to_none(getattr(row, column))
        if description is None:
            continue
        yield {
            "category": NACEBEL_2025_CATEGORY,
            "code": row.CODE,
            "language": language,
            "description": description,
        }


def _convert_enterprise(row) -> Iterator[dict[str, Any]]:
    yield {
        "enterprise_number": row.EnterpriseNumber,
        "status": row.Status,
        "juridical_situation": row.JuridicalSituation,
        "type_of_enterprise": row.TypeOfEnterprise,
        "juridical_form": row.JuridicalForm,
        "juridical_form_cac": blank_to_none(row.JuridicalFormCAC),
        "start_date": _date("enterprise", row.EnterpriseNumber, "StartDate", row.StartDate),
    }


def _convert_establishment(row) -> Iterator[dict[str, Any]]:
    yield {
        "establishment_number": row.EstablishmentNumber,
        "start_date": _date(
            "establishment", row.EstablishmentNumber, "StartDate", row.StartDate
        ),
        "enterprise_number": row.EnterpriseNumber,
    }


def _convert_branch(row) -> Iterator[dict[str, Any]]:
    yield {
        "id": row.Id,
        "start_date": _date("branch", row.Id, "StartDate", row.StartDate),
        "enterprise_number": row.EnterpriseNumber,
    }


def _convert_denomination(row) -> Iterator[dict[str, Any]]:
    yield {
        "entity_number": row.EntityNumber,
        "language": row.Language,
        "type_of_denomination": row.TypeOfDenomination,
        "denomination": row.Denomination,
    }


def _convert_address(row) -> Iterator[dict[str, Any]]:
    striking_off = blank_to_none(row.DateStrikingOff)
    if striking_off is not None:
        striking_off = _date("address", row.EntityNumber, "DateStrikingOff", striking_off)
    yield {
        "entity_number": row.EntityNumber,
        "type_of_address": row.TypeOfAddress,
        "country_nl": blank_to_none(row.CountryNL),
        "country_fr": blank_to_none(row.CountryFR),
        "zipcode": blank_to_none(row.Zipcode),
        "municipality_nl": blank_to_none(row.MunicipalityNL),
        "municipality_fr": blank_to_none(row.MunicipalityFR),
        "street_nl": blank_to_none(row.StreetNL),
        "street_fr": blank_to_none(row.StreetFR),
        "house_number": blank_to_none(row.HouseNumber),
        "box": blank_to_none(row.Box),
        "extra_address_info": blank_to_none(row.ExtraAddressInfo),
        "date_striking_off": striking_off,
    }


def _convert_contact(row) -> Iterator[dict[str, Any]]:
    yield {
        "entity_number": row.EntityNumber,
        "entity_contact": row.EntityContact,
        "contact_type": row.ContactType,
        "value": row.Value,
    }


def _convert_activity(row) -> Iterator[dict[str, Any]]:
    try:
        nace_version = parse_int_strict(row.NaceVersion)
    except ValueError as e:
        raise RowTransformError(
            "activity", row.EntityNumber, "NaceVersion", row.NaceVersion, str(e)
        ) from None
    yield {
        "entity_number": row.EntityNumber,
        "activity_group": row.ActivityGroup,
        "nace_version": nace_version,
        "nace_code": row.NaceCode,
        "classification": row.Classification,
    }


def _convert_meta(row) -> Iterator[dict[str, Any]]:
    yield {"variable": row.Variable, "value": row.Value}


_CODE_KEY = ("category", "code", "language")

STEPS: tuple[EntityDescriptor, ...] = (
    EntityDescriptor(
        "code", Code.__table__, staging.code, "Category",
        ConflictPolicy.OVERWRITE, _convert_code, natural_key=_CODE_KEY,
    ),
    EntityDescriptor(
        "code_nacebel2025", Code.__table__, staging.nacebel2025, "CODE",
        ConflictPolicy.OVERWRITE, _convert_nacebel2025, natural_key=_CODE_KEY,
    ),
    EntityDescriptor(
        "enterprise", Enterprise.__table__, staging.enterprise, "EnterpriseNumber",
        ConflictPolicy.OVERWRITE, _convert_enterprise,
        natural_key=("enterprise_number",),
    ),
    EntityDescriptor(
        "establishment", Establishment.__table__, staging.establishment,
        "EstablishmentNumber", ConflictPolicy.OVERWRITE, _convert_establishment,
        natural_key=("establishment_number",), enterprise_ref="EnterpriseNumber",
    ),
    EntityDescriptor(
        "branch", Branch.__table__, staging.branch, "Id",
        ConflictPolicy.OVERWRITE, _convert_branch,
        natural_key=("id",), enterprise_ref="EnterpriseNumber",
    ),
    EntityDescriptor(
        "denomination", Denomination.__table__, staging.denomination, "EntityNumber",
        ConflictPolicy.INSERT_MISSING, _convert_denomination,
        natural_key=("entity_number", "language", "type_of_denomination", "denomination"),
    ),
    EntityDescriptor(
        "address", Address.__table__, staging.address, "EntityNumber",
        ConflictPolicy.REPLACE_ALL, _convert_address, replace_key="entity_number",
    ),
    EntityDescriptor(
        "contact", Contact.__table__, staging.contact, "EntityNumber",
        ConflictPolicy.INSERT_MISSING, _convert_contact,
        natural_key=("entity_number", "entity_contact", "contact_type", "value"),
    ),
    EntityDescriptor(
        "activity", Activity.__table__, staging.activity, "EntityNumber",
        ConflictPolicy.INSERT_MISSING, _convert_activity,
        natural_key=(
            "entity_number", "activity_group", "nace_version", "nace_code", "classification",
        ),
    ),
    EntityDescriptor(
        "extract_meta", ExtractMeta.__table__, staging.meta, "Variable",
        ConflictPolicy.OVERWRITE, _convert_meta, natural_key=("variable",),
    ),
)


# --- generic writer ---------------------------------------------------------


def _insert_statement(conn: Connection, desc: EntityDescriptor):
    dialect = conn.dialect.name
    if dialect == "postgresql":
        stmt = postgresql.insert(desc.target)
    elif dialect == "sqlite":
        stmt = sqlite.insert(desc.target)
    else:
        raise IngestError(f"Unsupported store dialect for upserts: {dialect}")

    if desc.policy is ConflictPolicy.OVERWRITE:
        non_key = [c for c in desc.columns if c not in desc.natural_key]
        return stmt.on_conflict_do_update(
            index_elements=list(desc.natural_key),
            set_={c: stmt.excluded[c] for c in non_key},
        )
    if desc.policy is ConflictPolicy.INSERT_MISSING:
        return stmt.on_conflict_do_nothing(index_elements=list(desc.natural_key))
    return stmt


def _dedupe(desc: EntityDescriptor, rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
    # A multi-row upsert may not touch the same target row twice.
    if desc.policy is not ConflictPolicy.OVERWRITE:
        return rows
    by_key: dict[tuple, dict[str, Any]] = {}
    for r in rows:
        by_key[tuple(r[k] for k in desc.natural_key)] = r
    return list(by_key.values())


def _staged_key_present(desc: EntityDescriptor):
    col = desc.source.c[desc.source_key]
    return (col.is_not(None)) & (col != "")


def check_enterprise_refs(conn: Connection, desc: EntityDescriptor) -> None:
    """Raise if any staged row points at an enterprise that is not in kbo.enterprise."""

    if desc.enterprise_ref is None:
        return
    src = desc.source
    ref = src.c[desc.enterprise_ref]
    ent = Enterprise.__table__
    q = (
        select(src.c[desc.source_key], ref)
        .where(_staged_key_present(desc))
        .where(~exists().where(ent.c.enterprise_number == ref))
        .limit(_ORPHAN_SAMPLE)
    )
    orphans = [(r[0], r[1]) for r in conn.execute(q)]
    if orphans:
        raise ReferentialIntegrityError(desc.name, orphans)


def _replace_existing(conn: Connection, desc: EntityDescriptor) -> int:
    src_key = desc.source.c[desc.source_key]
    target_key = desc.target.c[desc.replace_key]
    staged_keys = select(src_key).where(_staged_key_present(desc)).distinct()
    res = conn.execute(desc.target.delete().where(target_key.in_(staged_keys)))
    return int(res.rowcount or 0)


def write_entity(
    conn: Connection, desc: EntityDescriptor, *, batch_size: int = DEFAULT_BATCH_SIZE
) -> StepResult:
    """Apply one descriptor inside the caller's transaction."""

    result = StepResult(desc.name)

    check_enterprise_refs(conn, desc)

    if desc.policy is ConflictPolicy.REPLACE_ALL:
        removed = _replace_existing(conn, desc)
        logger.info("%s: removed %s rows of reloaded entities", desc.name, removed)

    stmt = _insert_statement(conn, desc)
    result.skipped = int(
        conn.execute(
            select(func.count()).select_from(desc.source).where(~_staged_key_present(desc))
        ).scalar()
        or 0
    )

    staged = conn.execution_options(yield_per=batch_size).execute(
        select(desc.source).where(_staged_key_present(desc))
    )
    for partition in staged.partitions():
        rows: list[dict[str, Any]] = []
        for staged_row in partition:
            rows.extend(desc.convert(staged_row))
        rows = _dedupe(desc, rows)
        if not rows:
            continue
        try:
            conn.execute(stmt, rows)
        except IntegrityError as e:
            if desc.enterprise_ref is not None:
                raise ReferentialIntegrityError(desc.name, [], reason=str(e.orig)) from e
            raise
        result.written += len(rows)

    logger.info(
        "%s -> %s: %s rows written (%s), %s staged rows without key skipped",
        desc.source.fullname,
        desc.target.fullname,
        result.written,
        desc.policy.value,
        result.skipped,
    )
    return result


def transform(
    engine: Engine,
    *,
    atomic: bool = False,
    batch_size: int = DEFAULT_BATCH_SIZE,
    steps: tuple[EntityDescriptor, ...] = STEPS,
) -> TransformResult:
    """Run all transform steps in foreign key order.

    With `atomic=False` each step commits on its own: a failure rolls back
    that step only and stops the run, earlier steps stay committed. With
    `atomic=True` all steps share one transaction.
    """

    results: list[StepResult] = []
    if atomic:
        with engine.begin() as conn:
            for desc in steps:
                results.append(write_entity(conn, desc, batch_size=batch_size))
    else:
        for desc in steps:
            with engine.begin() as conn:
                results.append(write_entity(conn, desc, batch_size=batch_size))
    return TransformResult(results)


SANITY_TABLES: tuple[Table, ...] = (
    Enterprise.__table__,
    Establishment.__table__,
    Address.__table__,
    Contact.__table__,
    Activity.__table__,
)


def sanity_counts(engine: Engine) -> dict[str, int]:
    """Row counts of the main final tables. Observational only."""

    counts: dict[str, int] = {}
    with engine.connect() as conn:
        for table in SANITY_TABLES:
            n = conn.execute(select(func.count()).select_from(table)).scalar() or 0
            counts[table.fullname] = int(n)
            logger.info("  %s: %s", table.fullname, n)
    return counts
