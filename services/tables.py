# services/tables.py
"""
Reflection cache for the roster/stats tables.

Every table here is owned by the external loaders; this API only reads them.

  - dictionarydata      column metadata (TableName, FieldNameX, Verify, Order)
  - yearlystatsbatting  season batting stats, one row per PlayerRefID
  - players             roster (PlayerRefID, TeamID, Deleted, Position1, ...)
  - injuries            current injury list (PlayerRefID)
  - todaysstarters      today's confirmed starters (PlayerRefID1)
  - todaysgames         today's schedule (TeamID)

Tables are reflected one at a time, on first use, so a missing table only
breaks the lookups that actually need it.
"""

import threading
from typing import Dict

from sqlalchemy import MetaData, Table

_TABLE_NAMES = {
    "dictionary": "dictionarydata",
    "batting": "yearlystatsbatting",
    "players": "players",
    "injuries": "injuries",
    "starters": "todaysstarters",
    "games": "todaysgames",
}

# keyed by engine so tests (and re-pointed DATABASE_URLs) never see stale columns
_tables_by_engine: Dict[object, Dict[str, Table]] = {}
_lock = threading.Lock()


def _reflect(conn, key: str) -> Table:
    # fresh MetaData each time so a refresh picks up added/dropped columns
    return Table(_TABLE_NAMES[key], MetaData(), autoload_with=conn)


def get_table(conn, key: str) -> Table:
    """
    Reflect (once) and return one status table for the engine behind `conn`.
    Reflection errors propagate as SQLAlchemyError.
    """
    cached = _tables_by_engine.get(conn.engine, {})
    table = cached.get(key)
    if table is not None:
        return table

    with _lock:
        tables = _tables_by_engine.setdefault(conn.engine, {})
        if key not in tables:
            tables[key] = _reflect(conn, key)
        return tables[key]


def refresh_table(conn, key: str) -> Table:
    """Re-reflect one table, replacing the cached copy."""
    table = _reflect(conn, key)
    with _lock:
        _tables_by_engine.setdefault(conn.engine, {})[key] = table
    return table


def clear_table_cache() -> None:
    with _lock:
        _tables_by_engine.clear()
