# services/availability.py
"""
Game-day availability for a single player.

The status comes from three independent relations, checked in a fixed
priority order. The first rule that produces a status wins and nothing after
it runs:

  1. injuries        any row for the player         -> INJURED
  2. todaysstarters  any row for the player         -> STARTING
  3. todaysgames     no row for the player's team   -> NOT_PLAYING
                     a row exists                   -> UNKNOWN

Injury beats starting: source data can list an injured player as a starter.
"""

import logging
from enum import Enum
from typing import Callable, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from services.errors import DataAccessError
from services.tables import get_table

logger = logging.getLogger(__name__)


class AvailabilityStatus(str, Enum):
    INJURED = "injured"
    STARTING = "starting"
    NOT_PLAYING = "not-playing"
    UNKNOWN = "unknown"

    @property
    def label(self) -> str:
        """Text the frontend shows; UNKNOWN renders as an empty string."""
        return _LABELS[self]


_LABELS = {
    AvailabilityStatus.INJURED: "Injured",
    AvailabilityStatus.STARTING: "Player is starting",
    AvailabilityStatus.NOT_PLAYING: "Team is not playing",
    AvailabilityStatus.UNKNOWN: "",
}


def _exists(conn, stmt) -> bool:
    return conn.execute(stmt.limit(1)).first() is not None


# -------------------------------------------------------------------
# Rules: (conn, player_ref) -> status, or None to fall through
# -------------------------------------------------------------------

def _injury_rule(conn, player_ref) -> Optional[AvailabilityStatus]:
    injuries = get_table(conn, "injuries")
    stmt = select(injuries.c.PlayerRefID).where(injuries.c.PlayerRefID == player_ref)
    return AvailabilityStatus.INJURED if _exists(conn, stmt) else None


def _starting_rule(conn, player_ref) -> Optional[AvailabilityStatus]:
    starters = get_table(conn, "starters")
    stmt = select(starters.c.PlayerRefID1).where(starters.c.PlayerRefID1 == player_ref)
    return AvailabilityStatus.STARTING if _exists(conn, stmt) else None


def get_player_team(conn, player_ref):
    """
    Return the player's TeamID. A player without a team row is a
    data-integrity fault, not a status.
    """
    players = get_table(conn, "players")
    row = conn.execute(
        select(players.c.TeamID).where(players.c.PlayerRefID == player_ref).limit(1)
    ).first()
    if row is None or row[0] is None:
        logger.error("no team found for player %s", player_ref)
        raise DataAccessError()
    return row[0]


def _schedule_rule(conn, player_ref) -> Optional[AvailabilityStatus]:
    team_id = get_player_team(conn, player_ref)
    games = get_table(conn, "games")
    stmt = select(games.c.TeamID).where(games.c.TeamID == team_id)
    if not _exists(conn, stmt):
        return AvailabilityStatus.NOT_PLAYING
    return AvailabilityStatus.UNKNOWN


Rule = Callable[..., Optional[AvailabilityStatus]]

# Priority order matters; see module docstring.
RULES: List[Tuple[str, Rule]] = [
    ("injury", _injury_rule),
    ("starting", _starting_rule),
    ("schedule", _schedule_rule),
]


def classify(conn, player_ref, rules: Optional[List[Tuple[str, Rule]]] = None) -> AvailabilityStatus:
    """
    Run the rules in order and return the first status produced.

    Any storage fault aborts the whole chain with DataAccessError; whatever
    was already ruled out is discarded.
    """
    try:
        for name, rule in (rules if rules is not None else RULES):
            status = rule(conn, player_ref)
            if status is not None:
                logger.debug("player %s matched %s rule -> %s", player_ref, name, status.value)
                return status
    except SQLAlchemyError as exc:
        logger.exception("availability lookup failed for player %s", player_ref)
        raise DataAccessError() from exc

    return AvailabilityStatus.UNKNOWN
