from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path

# Allow running this file directly (e.g. `python jobs/kbo_ingest.py`) by
# ensuring the project root is importable.
_PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(_PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(_PROJECT_ROOT))

from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import SQLAlchemyError

from db import normalize_database_url
from logging_utils import configure_app_logging, get_logger
from support.source_ingest_base import IngestError, IngestRunResult, PipelineContext
from utils.migrate_schema import ensure_schema
from utils.staging_loader import COPY_JOBS, load_staging_tables
from utils.transform import sanity_counts, transform

logger = get_logger(__name__)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        description="Load a KBO open-data extract: schema -> staging -> final tables"
    )
    p.add_argument(
        "--files-dir",
        default=None,
        help="Directory with code.csv, enterprise.csv, ... (default: KBO_FILES_DIR)",
    )
    p.add_argument(
        "--database-url",
        default=None,
        help="SQLAlchemy URL of the store (default: DATABASE_URL)",
    )
    p.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Concurrent staging load jobs (default: KBO_LOAD_WORKERS, 1)",
    )
    p.add_argument(
        "--atomic-transform",
        action="store_true",
        default=None,
        help="Run all transform steps in one transaction instead of one per entity",
    )
    p.add_argument(
        "--batch-size",
        type=int,
        default=None,
        help="Rows per write batch during transform (default: KBO_TRANSFORM_BATCH_SIZE)",
    )
    p.add_argument(
        "--skip-staging",
        action="store_true",
        help="Transform what is already staged instead of reloading the CSV files",
    )
    p.add_argument(
        "--log-level",
        default=None,
        help="Override LOG_LEVEL for this run (e.g. DEBUG, INFO, WARNING)",
    )
    args, unknown = p.parse_known_args(argv)
    if unknown:
        logger.debug("Ignoring unknown CLI args: %s", unknown)
    return args


def _safe_url(url: str) -> str:
    # Never log credentials.
    try:
        return make_url(normalize_database_url(url)).render_as_string(hide_password=True)
    except Exception:
        return "(unparseable url)"


def run_pipeline(ctx: PipelineContext, *, skip_staging: bool = False) -> IngestRunResult:
    """Run schema setup, staging load and transform in order.

    Any failure propagates; phases that completed stay committed.
    """

    engine: Engine = ctx.engine

    logger.info("-> Ensure schema")
    ensure_schema(engine)

    if skip_staging:
        logger.info("-> Staging load skipped")
    else:
        logger.info("-> Load staging tables from %s", ctx.files_dir)
        ctx.result.staged_rows = load_staging_tables(
            engine, ctx.files_dir, COPY_JOBS, workers=ctx.workers
        )

    logger.info(
        "-> Transform staging -> final (atomic=%s batch_size=%s)",
        ctx.atomic_transform,
        ctx.batch_size,
    )
    outcome = transform(engine, atomic=ctx.atomic_transform, batch_size=ctx.batch_size)
    ctx.result.written_rows = outcome.written()
    ctx.result.skipped_rows = outcome.skipped()

    logger.info("Done. Sanity counts:")
    ctx.result.sanity_counts = sanity_counts(engine)
    return ctx.result


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)

    if args.log_level:
        os.environ["LOG_LEVEL"] = str(args.log_level)
        configure_app_logging(args.log_level)

    with PipelineContext(
        files_dir=args.files_dir,
        database_url=args.database_url,
        workers=args.workers,
        atomic_transform=args.atomic_transform,
        batch_size=args.batch_size,
    ) as ctx:
        logger.info(
            "kbo_ingest starting | store=%s files_dir=%s workers=%s",
            _safe_url(ctx.database_url),
            ctx.files_dir,
            ctx.workers,
        )
        try:
            result = run_pipeline(ctx, skip_staging=args.skip_staging)
        except IngestError as e:
            logger.exception("kbo_ingest failed: %s", e)
            return 1
        except SQLAlchemyError as e:
            logger.exception("kbo_ingest failed on the store: %s", e)
            return 1

    logger.info(
        "kbo_ingest complete | staged=%s written=%s",
        sum(result.staged_rows.values()),
        sum(result.written_rows.values()),
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
