import os

from settings import SETTINGS


def _env_bool(name: str, default: bool) -> bool:
    v = os.getenv(name)
    if v is None:
        return default
    return v.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    v = os.getenv(name)
    if v is None or not v.strip():
        return default
    return int(v)


class Config:
    """Pipeline configuration loaded from environment variables."""

    # Store
    DATABASE_URL: str = os.getenv("DATABASE_URL", str(SETTINGS["DATABASE_URL"]))

    # Source extracts
    FILES_DIR: str = os.getenv("KBO_FILES_DIR", str(SETTINGS["FILES_DIR"]))

    # Execution
    LOAD_WORKERS: int = _env_int("KBO_LOAD_WORKERS", int(SETTINGS["LOAD_WORKERS"]))
    ATOMIC_TRANSFORM: bool = _env_bool(
        "KBO_ATOMIC_TRANSFORM", bool(SETTINGS["ATOMIC_TRANSFORM"])
    )
    TRANSFORM_BATCH_SIZE: int = _env_int(
        "KBO_TRANSFORM_BATCH_SIZE", int(SETTINGS["TRANSFORM_BATCH_SIZE"])
    )

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", str(SETTINGS["LOG_LEVEL"])).upper()
