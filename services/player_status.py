# services/player_status.py

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError

from db import get_engine
from services.availability import AvailabilityStatus, classify
from services.errors import DataAccessError
from services.projection import BATTING_STATS_TABLE, resolve_projection
from services.season_stats import fetch_record

logger = logging.getLogger(__name__)


@dataclass
class PlayerStatus:
    record: Optional[Dict[str, Any]]
    status: AvailabilityStatus

    def to_dict(self) -> Dict[str, Any]:
        return {"playerRecords": self.record, "status": self.status.label}


def get_player_status(player_ref, engine=None, stats_table: str = BATTING_STATS_TABLE) -> PlayerStatus:
    """
    Season batting record plus game-day availability for one player.

    Projection has to resolve before the fetch; the classifier does not look
    at the record, so a missing record never changes the status.
    """
    engine = engine or get_engine()
    try:
        with engine.connect() as conn:
            projection = resolve_projection(conn, stats_table)
            record = fetch_record(conn, player_ref, projection)
            status = classify(conn, player_ref)
    except SQLAlchemyError as exc:
        # connect() itself failing lands here
        logger.exception("player status: db error for player %s", player_ref)
        raise DataAccessError() from exc

    return PlayerStatus(record=record, status=status)
