from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.orm import Session

from app.dashflow.db import make_engine, make_sessionmaker


@contextmanager
def script_session(db_url: str) -> Iterator[Session]:
    """Standalone session (no Flask app) with its own short-lived engine."""
    engine = make_engine(db_url)
    s = make_sessionmaker(engine)()
    try:
        yield s
        s.commit()
    except Exception:
        s.rollback()
        raise
    finally:
        s.close()
        engine.dispose()
