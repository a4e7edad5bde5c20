from __future__ import annotations

from contextlib import contextmanager

from sqlalchemy.orm import Session

from app.pmms.db import build_engine, build_sessionmaker


@contextmanager
def script_session(db_url: str):
    """Standalone session for release/seed scripts (no Flask app needed)."""
    engine = build_engine(db_url)
    s: Session = build_sessionmaker(engine)()
    try:
        yield s
        s.commit()
    except Exception:
        s.rollback()
        raise
    finally:
        s.close()
        engine.dispose()
