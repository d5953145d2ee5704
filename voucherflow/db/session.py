"""SQLAlchemy engine and session factory configuration."""

from __future__ import annotations

from pathlib import Path

import structlog
from sqlalchemy import create_engine
from sqlalchemy.engine import URL, make_url
from sqlalchemy.orm import sessionmaker

from voucherflow.core.config import get_settings

LOGGER = structlog.get_logger(__name__)
PROJECT_ROOT = Path(__file__).resolve().parents[2]


def _normalize_database_url(raw_url: str) -> URL:
    """Return an absolute :class:`~sqlalchemy.engine.URL` for SQLite databases."""

    url = make_url(raw_url)
    if not url.drivername.startswith("sqlite"):
        return url

    database = url.database or ""
    if database in {"", ":memory:"}:
        return url

    db_path = Path(database)
    if db_path.is_absolute():
        resolved = db_path
    else:
        resolved = PROJECT_ROOT / db_path

    resolved = resolved.resolve()
    if resolved != db_path:
        LOGGER.info(
            "database_path_normalized",
            original=str(db_path),
            resolved=str(resolved),
        )

    return url.set(database=str(resolved))


def _engine_options(url: URL) -> dict[str, object]:
    options: dict[str, object] = {"pool_pre_ping": True, "future": True}
    if url.drivername.startswith("sqlite"):
        # Sessions are handed across FastAPI's threadpool.
        options["connect_args"] = {"check_same_thread": False}
    return options


_settings = get_settings()
_database_url = _normalize_database_url(_settings.database_url)
engine = create_engine(_database_url, **_engine_options(_database_url))
SessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
)

LOGGER.info("database_engine_initialized", url=str(_database_url))

__all__ = ["engine", "SessionLocal"]
