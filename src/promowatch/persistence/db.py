"""
Engine and session handling for the state store.

One engine is shared per process. Asking for a different URL replaces it,
which is how tests and ``--config`` switch databases.
"""

from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker

from .models import Base


DEFAULT_DATABASE_URL = "sqlite:///data/promowatch.db"

SQLITE_PRAGMAS = (
    "PRAGMA foreign_keys=ON",
    "PRAGMA journal_mode=WAL",
    "PRAGMA synchronous=NORMAL",
)

_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None


def _apply_sqlite_pragmas(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    for pragma in SQLITE_PRAGMAS:
        cursor.execute(pragma)
    cursor.close()


def _build_engine(url: str, echo: bool) -> Engine:
    parsed = make_url(url)
    if parsed.get_backend_name() != "sqlite":
        return create_engine(url, echo=echo, pool_pre_ping=True)

    # File databases get their parent directory created on first use
    if parsed.database and parsed.database != ":memory:":
        Path(parsed.database).parent.mkdir(parents=True, exist_ok=True)

    engine = create_engine(url, echo=echo, connect_args={"check_same_thread": False})
    event.listen(engine, "connect", _apply_sqlite_pragmas)
    return engine


def get_engine(url: str | None = None, echo: bool = False) -> Engine:
    """Return the shared engine, creating it for ``url`` if needed.

    Without a URL the current engine is reused (or the default database
    opened). A URL that differs from the current one disposes it first.
    """
    global _engine, _session_factory

    if _engine is not None and (url is None or url == _engine.url.render_as_string(hide_password=False)):
        return _engine

    dispose_engine()
    _engine = _build_engine(url or DEFAULT_DATABASE_URL, echo)
    _session_factory = sessionmaker(bind=_engine, autoflush=False, expire_on_commit=False)
    return _engine


@contextmanager
def get_session() -> Iterator[Session]:
    """Session scope: commit when the block exits cleanly, roll back otherwise."""
    if _session_factory is None:
        get_engine()
    assert _session_factory is not None

    session = _session_factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_db(url: str | None = None, echo: bool = False) -> None:
    """Create missing tables."""
    Base.metadata.create_all(bind=get_engine(url, echo=echo))


def drop_db(url: str | None = None) -> None:
    """Drop every PromoWatch table, losing all targets, state and history."""
    Base.metadata.drop_all(bind=get_engine(url))


def dispose_engine() -> None:
    global _engine, _session_factory

    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory = None
