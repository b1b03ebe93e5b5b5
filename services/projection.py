# services/projection.py

import logging
from typing import List

from sqlalchemy import select, and_
from sqlalchemy.exc import SQLAlchemyError

from services.errors import DataAccessError
from services.tables import get_table

logger = logging.getLogger(__name__)

BATTING_STATS_TABLE = "YearlyStatsBatting"


def resolve_projection(conn, table_name: str) -> List[str]:
    """
    Return the active column names for a logical stats table, in display order.

    Active means dictionarydata.Verify = 1; order is dictionarydata.Order
    ascending. An empty list is a legal (if degenerate) answer; a storage
    fault is not and raises DataAccessError.
    """
    try:
        dictionary = get_table(conn, "dictionary")
        stmt = (
            select(dictionary.c.FieldNameX)
            .where(
                and_(
                    dictionary.c.TableName == table_name,
                    dictionary.c.Verify == 1,
                )
            )
            .order_by(dictionary.c.Order.asc())
        )
        rows = conn.execute(stmt).all()
    except SQLAlchemyError as exc:
        logger.exception("projection lookup failed for %s", table_name)
        raise DataAccessError() from exc

    return [row[0] for row in rows]
