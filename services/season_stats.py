# services/season_stats.py

import logging
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from services.errors import DataAccessError
from services.tables import get_table, refresh_table

logger = logging.getLogger(__name__)


def _missing(table, projection: Sequence[str]) -> List[str]:
    return [name for name in projection if name not in table.c]


def _projected_columns(conn, projection: Sequence[str]):
    """
    Map metadata-sourced names onto real Column objects of yearlystatsbatting.

    Only names that exist on the reflected table get through, so nothing from
    the metadata table is ever spliced into SQL text. A name the cached
    reflection lacks triggers one re-reflection before giving up.
    """
    table = get_table(conn, "batting")
    if _missing(table, projection):
        table = refresh_table(conn, "batting")
    missing = _missing(table, projection)
    if missing:
        logger.error(
            "projection names not on %s: %s", table.name, ", ".join(missing)
        )
        raise DataAccessError()
    return table, [table.c[name] for name in projection]


def fetch_record(conn, player_ref, projection: Sequence[str]) -> Optional[Dict[str, Any]]:
    """
    Fetch one player's season batting row restricted to `projection`.

    Returns a dict keyed by the projection names (in projection order), or
    None when the player has no row. If several rows match, the first wins.
    """
    if not projection:
        return None

    try:
        batting, columns = _projected_columns(conn, projection)
        stmt = select(*columns).where(batting.c.PlayerRefID == player_ref)
        row = conn.execute(stmt).first()
    except SQLAlchemyError as exc:
        logger.exception("season batting fetch failed for player %s", player_ref)
        raise DataAccessError() from exc

    if row is None:
        return None
    return {name: row[idx] for idx, name in enumerate(projection)}
