"""Load KBO source extracts into the staging namespace.

Each `CopyJob` maps one CSV file onto one `kbo_stg` table. A job:

1. resolves the file under the configured source directory
   (`MissingSourceFile` if absent)
2. checks the header row positionally against the table's declared columns
3. in ONE transaction truncates the table and bulk-loads the remaining rows

If anything fails the transaction rolls back, so a staging table is never
left half loaded. PostgreSQL loads through `COPY ... FROM STDIN` (psycopg2
`copy_expert`, fed from the open file in fixed-size reads); other dialects
stream `csv.reader` rows in bounded executemany batches.

Jobs are independent and may run on a bounded thread pool. Final tables are
never touched here.
"""

from __future__ import annotations

import csv
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Sequence

from sqlalchemy import Table
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from logging_utils import get_logger
from models import staging
from support.source_ingest_base import IngestError

logger = get_logger(__name__)

# Bytes per read when feeding COPY; bounds memory regardless of file size.
COPY_BUFFER_SIZE = 1 << 16
# Rows per executemany on the non-COPY path.
INSERT_BATCH_SIZE = 5000


class MissingSourceFile(IngestError):
    def __init__(self, path: Path) -> None:
        super().__init__(f"Missing file: {path}")
        self.path = path


class StagingHeaderMismatch(IngestError):
    def __init__(self, path: Path, expected: Sequence[str], found: Sequence[str]) -> None:
        super().__init__(
            f"Unexpected header in {path.name}: expected {list(expected)}, found {list(found)}"
        )
        self.path = path
        self.expected = list(expected)
        self.found = list(found)


class StagingLoadError(IngestError):
    def __init__(self, path: Path, table: str, reason: str, line: int | None = None) -> None:
        where = f"{path.name}:{line}" if line is not None else path.name
        super().__init__(f"Loading {where} into {table} failed: {reason}")
        self.path = path
        self.table = table
        self.line = line


@dataclass(frozen=True)
class CopyJob:
    table: Table
    file_name: str

    @property
    def columns(self) -> list[str]:
        return [c.name for c in self.table.columns]


COPY_JOBS: tuple[CopyJob, ...] = (
    CopyJob(staging.code, "code.csv"),
    CopyJob(staging.enterprise, "enterprise.csv"),
    CopyJob(staging.establishment, "establishment.csv"),
    CopyJob(staging.branch, "branch.csv"),
    CopyJob(staging.denomination, "denomination.csv"),
    CopyJob(staging.address, "address.csv"),
    CopyJob(staging.contact, "contact.csv"),
    CopyJob(staging.activity, "activity.csv"),
    CopyJob(staging.meta, "meta.csv"),
    CopyJob(staging.nacebel2025, "NACEBEL_2025.csv"),
)


def source_path(files_dir: Path | str, job: CopyJob) -> Path:
    return Path(files_dir) / job.file_name


def check_source_files(files_dir: Path | str, jobs: Sequence[CopyJob] = COPY_JOBS) -> None:
    """Fail before any staging table is altered if a source file is absent."""

    for job in jobs:
        path = source_path(files_dir, job)
        if not path.is_file():
            raise MissingSourceFile(path)


def _read_header(fh: IO[str], path: Path, job: CopyJob) -> None:
    # Read exactly one physical line so the handle can be passed on to COPY.
    line = fh.readline()
    header = next(csv.reader([line]), [])
    header = [h.strip() for h in header]
    if header != job.columns:
        raise StagingHeaderMismatch(path, job.columns, header)


def _truncate(conn: Connection, table: Table) -> None:
    if conn.dialect.name == "postgresql":
        conn.exec_driver_sql(f"TRUNCATE TABLE {table.schema}.{table.name}")
    else:
        conn.execute(table.delete())


def _copy_postgres(conn: Connection, fh: IO[str], job: CopyJob) -> int:
    preparer = conn.dialect.identifier_preparer
    cols = ", ".join(preparer.quote(c) for c in job.columns)
    sql = (
        f"COPY {preparer.format_table(job.table)} ({cols}) FROM STDIN "
        "WITH (FORMAT csv, HEADER false, DELIMITER ',', QUOTE '\"', ESCAPE '\"')"
    )
    raw = conn.connection.driver_connection
    with raw.cursor() as cur:
        cur.copy_expert(sql, fh, size=COPY_BUFFER_SIZE)
        return int(cur.rowcount or 0)


def _insert_batches(conn: Connection, fh: IO[str], path: Path, job: CopyJob) -> int:
    cols = job.columns
    stmt = job.table.insert()
    reader = csv.reader(fh, delimiter=",", quotechar='"', doublequote=True)

    total = 0
    batch: list[dict[str, str]] = []
    try:
        for row in reader:
            if not row:
                continue
            if len(row) != len(cols):
                raise StagingLoadError(
                    path,
                    job.table.fullname,
                    f"expected {len(cols)} fields, got {len(row)}",
                    # +1 for the header consumed before the reader started.
                    line=reader.line_num + 1,
                )
            batch.append(dict(zip(cols, row)))
            if len(batch) >= INSERT_BATCH_SIZE:
                conn.execute(stmt, batch)
                total += len(batch)
                batch = []
    except csv.Error as e:
        raise StagingLoadError(
            path, job.table.fullname, str(e), line=reader.line_num + 1
        ) from e

    if batch:
        conn.execute(stmt, batch)
        total += len(batch)
    return total


def load_staging_table(engine: Engine, files_dir: Path | str, job: CopyJob) -> int:
    """Truncate-then-load one staging table from its source file.

    Returns the number of rows loaded.
    """

    path = source_path(files_dir, job)
    if not path.is_file():
        raise MissingSourceFile(path)

    table_name = job.table.fullname
    # utf-8-sig: tolerate a BOM in front of the header.
    with open(path, "r", encoding="utf-8-sig", newline="") as fh:
        _read_header(fh, path, job)
        try:
            with engine.begin() as conn:
                logger.info("Truncate %s", table_name)
                _truncate(conn, job.table)

                logger.info("Copy %s into %s", job.file_name, table_name)
                if conn.dialect.name == "postgresql":
                    rows = _copy_postgres(conn, fh, job)
                else:
                    rows = _insert_batches(conn, fh, path, job)
        except UnicodeDecodeError as e:
            raise StagingLoadError(path, table_name, f"not valid UTF-8: {e}") from e
        except SQLAlchemyError as e:
            raise StagingLoadError(path, table_name, str(e)) from e
        except IngestError:
            raise
        except Exception as e:
            # Driver level COPY errors (e.g. psycopg2.DataError) arrive unwrapped.
            raise StagingLoadError(path, table_name, str(e)) from e

    logger.info("Loaded %s rows into %s", rows, table_name)
    return rows


def load_staging_tables(
    engine: Engine,
    files_dir: Path | str,
    jobs: Sequence[CopyJob] = COPY_JOBS,
    *,
    workers: int = 1,
) -> dict[str, int]:
    """Load every job; returns rows per staging table.

    All files are checked up front. Jobs then run on at most `workers`
    threads (one on SQLite, which allows a single writer). The first failure
    cancels jobs that have not started and is re-raised once running jobs
    finish.
    """

    check_source_files(files_dir, jobs)

    if engine.dialect.name == "sqlite" and workers > 1:
        logger.info("SQLite store: loading staging tables with 1 worker (requested %s)", workers)
        workers = 1
    workers = max(1, int(workers))

    counts: dict[str, int] = {}
    if workers == 1:
        for job in jobs:
            counts[job.table.fullname] = load_staging_table(engine, files_dir, job)
        return counts

    logger.info("Loading %s staging tables with %s workers", len(jobs), workers)
    with ThreadPoolExecutor(max_workers=workers) as ex:
        futs = {ex.submit(load_staging_table, engine, files_dir, job): job for job in jobs}
        done, not_done = wait(futs, return_when=FIRST_EXCEPTION)
        failed = [f for f in done if f.exception() is not None]
        if failed:
            for f in not_done:
                f.cancel()
            wait(not_done)
            raise failed[0].exception()

        for fut, job in futs.items():
            counts[job.table.fullname] = fut.result()

    return counts
