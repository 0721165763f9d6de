from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from sqlalchemy.engine import Engine

import db
from config import Config
from utils.time_utils import utcnow


class IngestError(RuntimeError):
    """Base class for fatal ingestion errors.

    Anything raising this aborts the remaining pipeline. Phases that already
    committed stay committed.
    """


@dataclass
class IngestRunResult:
    staged_rows: dict[str, int] = field(default_factory=dict)
    written_rows: dict[str, int] = field(default_factory=dict)
    skipped_rows: dict[str, int] = field(default_factory=dict)
    sanity_counts: dict[str, int] = field(default_factory=dict)
    started_at: datetime = field(default_factory=utcnow)
    ended_at: datetime | None = None


class PipelineContext:
    """State shared by the phases of one ingestion run.

    Owns the store engine for the lifetime of the run and disposes it on
    every exit path:

        with PipelineContext(files_dir=..., database_url=...) as ctx:
            ensure_schema(ctx.engine)
            ...

    Pass `engine=` to reuse an existing engine (tests); a borrowed engine is
    not disposed.
    """

    def __init__(
        self,
        *,
        files_dir: Path | str | None = None,
        database_url: str | None = None,
        engine: Engine | None = None,
        workers: int | None = None,
        atomic_transform: bool | None = None,
        batch_size: int | None = None,
    ) -> None:
        self.files_dir = Path(files_dir or Config.FILES_DIR)
        self.database_url = database_url or Config.DATABASE_URL
        self.workers = max(1, int(workers or Config.LOAD_WORKERS))
        self.atomic_transform = (
            Config.ATOMIC_TRANSFORM if atomic_transform is None else atomic_transform
        )
        self.batch_size = max(1, int(batch_size or Config.TRANSFORM_BATCH_SIZE))
        self.result = IngestRunResult()

        self._owns_engine = engine is None
        self._engine = engine

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            self._engine = db.make_engine(self.database_url)
        return self._engine

    def close(self) -> None:
        self.result.ended_at = utcnow()
        if self._owns_engine and self._engine is not None:
            self._engine.dispose()
            self._engine = None

    def __enter__(self) -> "PipelineContext":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
