# players/__init__.py
import logging
from flask import Blueprint, jsonify, current_app
from sqlalchemy import select, and_
from sqlalchemy.exc import SQLAlchemyError
from db import get_engine
from services.errors import DataAccessError
from services.player_status import get_player_status
from services.projection import BATTING_STATS_TABLE
from services.tables import get_table

players_bp = Blueprint("players", __name__)
log = logging.getLogger("app")

# Pitchers are excluded from every position-player listing
PITCHER_POSITIONS = ("RP", "SP")


def _row_to_dict(row):
    # Generic: handles 100+ columns without listing them
    return {key: value for key, value in row._mapping.items()}


def _position_player_filter(players):
    return [
        players.c.Deleted == 0,
        players.c.Position1.not_in(PITCHER_POSITIONS),
    ]


def _fetch_error():
    return jsonify(error="data_access_error", message="Error fetching data"), 500


# ---------------------------------------------------------------------------
# GET /api/v1/all-players[/<player_type>]
# ---------------------------------------------------------------------------
@players_bp.get("/all-players", defaults={"player_type": "all"})
@players_bp.get("/all-players/<player_type>")
def get_all_players(player_type: str):
    """
    Non-deleted position players. `player_type` is either "all" or a
    Position1 code (C, SS, CF, ...) to narrow the list.
    """
    try:
        engine = get_engine()
        with engine.connect() as conn:
            players = get_table(conn, "players")
            conditions = _position_player_filter(players)
            if player_type != "all":
                conditions.append(players.c.Position1 == player_type)
            rows = conn.execute(select(players).where(and_(*conditions))).all()
    except SQLAlchemyError:
        log.exception("all-players: db error")
        return _fetch_error()

    return jsonify(players=[_row_to_dict(r) for r in rows]), 200


# ---------------------------------------------------------------------------
# GET /api/v1/extended-search
# ---------------------------------------------------------------------------
@players_bp.get("/extended-search")
def extended_search():
    """Full season batting rows for every listed position player."""
    try:
        engine = get_engine()
        with engine.connect() as conn:
            players = get_table(conn, "players")
            batting = get_table(conn, "batting")
            listed = select(players.c.PlayerRefID).where(
                and_(*_position_player_filter(players))
            )
            stmt = select(batting).where(batting.c.PlayerRefID.in_(listed))
            rows = conn.execute(stmt).all()
    except SQLAlchemyError:
        log.exception("extended-search: db error")
        return _fetch_error()

    return jsonify(players=[_row_to_dict(r) for r in rows]), 200


# ---------------------------------------------------------------------------
# GET /api/v1/players/<player_ref>/batting
# ---------------------------------------------------------------------------
@players_bp.get("/players/<player_ref>/batting")
def get_player_batting(player_ref: str):
    """
    Season batting record (active columns only) plus today's availability:

        {"playerRecords": {...} | null, "status": "Injured" | ... | ""}
    """
    stats_table = current_app.config.get("BATTING_STATS_TABLE", BATTING_STATS_TABLE)
    try:
        result = get_player_status(player_ref, stats_table=stats_table)
    except DataAccessError as e:
        return jsonify(e.to_dict()), e.status_code

    return jsonify(result.to_dict()), 200
