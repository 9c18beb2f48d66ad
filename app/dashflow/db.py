"""
Engine and session wiring.

One engine per app, stored in ``app.extensions`` next to its sessionmaker.
Request handlers share a session bound to ``g`` (``db_session``); scripts and
tests use ``session_scope``. ``make_engine`` is also what the CLI scripts use,
so both paths get the same pool and sqlite settings.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from flask import Flask, current_app, g
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

logger = logging.getLogger(__name__)

_POSTGRES_POOL = {
    "pool_recycle": 1800,
    "pool_size": 5,
    "max_overflow": 10,
    "pool_timeout": 30,
}


def normalize_database_url(db_url: str) -> str:
    """Map bare ``postgres://`` URLs (as handed out by most PaaS hosts) to the psycopg 3 driver."""
    db_url = db_url.strip()
    for prefix in ("postgres://", "postgresql://"):
        if db_url.startswith(prefix):
            return "postgresql+psycopg://" + db_url[len(prefix):]
    return db_url


def _enable_sqlite_foreign_keys(dbapi_connection, _connection_record) -> None:
    # sqlite only enforces ON DELETE CASCADE when asked, per connection.
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def make_engine(db_url: str) -> Engine:
    db_url = normalize_database_url(db_url)
    options: dict[str, object] = {"pool_pre_ping": True}
    if db_url.startswith("postgresql"):
        options.update(_POSTGRES_POOL)
    engine = create_engine(db_url, **options)
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    return engine


def make_sessionmaker(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, class_=Session, autoflush=False, expire_on_commit=False)


def init_db(app: Flask) -> None:
    engine = make_engine(app.config["DATABASE_URL"])

    if app.config.get("LOG_LEVEL") == "DEBUG":
        @event.listens_for(engine, "checkout")
        def _log_checkout(dbapi_connection, connection_record, connection_proxy):  # type: ignore[no-redef]
            logger.debug("db.checkout %s", engine.pool.status())

    app.extensions["sqlalchemy_engine"] = engine
    app.extensions["sqlalchemy_sessionmaker"] = make_sessionmaker(engine)
    logger.info("db.init dialect=%s", engine.dialect.name)


def db_session(app: Flask | None = None) -> Session:
    """Request-scoped session, created on first use and closed at teardown."""
    s: Session | None = getattr(g, "db_session", None)
    if s is None:
        sm = (app or current_app).extensions["sqlalchemy_sessionmaker"]
        s = g.db_session = sm()
    return s


def teardown_db_session(exc: BaseException | None) -> None:
    s: Session | None = g.pop("db_session", None)
    if s is None:
        return
    if exc is not None:
        s.rollback()
    s.close()


@contextmanager
def session_scope(app: Flask) -> Iterator[Session]:
    """Commit on success, roll back on error. For scripts and tests."""
    s: Session = app.extensions["sqlalchemy_sessionmaker"]()
    try:
        yield s
        s.commit()
    except Exception:
        s.rollback()
        raise
    finally:
        s.close()
