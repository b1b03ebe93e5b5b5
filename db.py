# db.py
import os
from sqlalchemy import create_engine

from services.tables import clear_table_cache


_engine = None

def get_engine():
    global _engine
    if _engine is None:
        database_url = os.environ.get("DATABASE_URL")
        if not database_url:
            raise RuntimeError("DATABASE_URL is not set")
        kwargs = dict(pool_pre_ping=True, future=True)
        # SQLite (local dev / tests) has no QueuePool sizing
        if not database_url.startswith("sqlite"):
            kwargs.update(
                pool_recycle=1800, # recycle connections every 30m
                pool_size=5,
                max_overflow=5,
            )
        _engine = create_engine(database_url, **kwargs)
    return _engine


def reset_engine():
    """Dispose the cached engine and its reflected tables; the next get_engine() re-reads DATABASE_URL."""
    global _engine
    if _engine is not None:
        _engine.dispose()
    _engine = None
    clear_table_cache()
