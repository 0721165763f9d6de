from __future__ import annotations

from pathlib import Path
from typing import Generator

import pytest
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from pytests.common import create_kbo_db, write_extract


@pytest.fixture()
def kbo_db(tmp_path) -> Generator[tuple[Session, Engine], None, None]:
    """Temp SQLite store with the full schema; yields (session, engine)."""

    session, engine = create_kbo_db(tmp_path / "kbo.sqlite")
    try:
        yield session, engine
    finally:
        session.close()
        engine.dispose()


@pytest.fixture()
def kbo_engine(kbo_db) -> Engine:
    return kbo_db[1]


@pytest.fixture()
def extract_dir(tmp_path) -> Path:
    """Directory holding the sample extract."""

    return write_extract(tmp_path / "files")
