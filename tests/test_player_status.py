"""Status pipeline: record + status combined, scenarios from the roster desk."""

import pytest
from sqlalchemy import text

from services import player_status
from services.availability import AvailabilityStatus
from services.errors import DataAccessError
from services.player_status import PlayerStatus, get_player_status


@pytest.fixture
def league(seed, batting_metadata):
    seed(
        "players",
        {"PlayerRefID": "P1", "TeamID": 1, "Deleted": 0, "Position1": "SS"},
        {"PlayerRefID": "P2", "TeamID": 2, "Deleted": 0, "Position1": "CF"},
        {"PlayerRefID": "P3", "TeamID": 3, "Deleted": 0, "Position1": "C"},
    )
    seed(
        "yearlystatsbatting",
        {"PlayerRefID": "P1", "AVG": 0.312, "HR": 18, "OBP": 0.390, "RBI": 61},
        {"PlayerRefID": "P2", "AVG": 0.275, "HR": 31, "OBP": 0.340, "RBI": 90},
    )
    seed("injuries", {"PlayerRefID": "P1", "Injury": "oblique"})
    seed("todaysstarters", {"PlayerRefID1": "P1"})
    seed("todaysgames", {"TeamID": 1}, {"TeamID": 2})


def test_injured_and_starting_reports_injured(engine, league):
    result = get_player_status("P1", engine=engine)
    assert result.to_dict() == {
        "playerRecords": {"AVG": 0.312, "HR": 18},
        "status": "Injured",
    }


def test_team_plays_status_blank(engine, league):
    result = get_player_status("P2", engine=engine)
    assert result.status is AvailabilityStatus.UNKNOWN
    assert result.to_dict() == {
        "playerRecords": {"AVG": 0.275, "HR": 31},
        "status": "",
    }


def test_no_record_still_gets_status(engine, league):
    result = get_player_status("P3", engine=engine)
    assert result.record is None
    assert result.to_dict() == {"playerRecords": None, "status": "Team is not playing"}


def test_inactive_columns_never_returned(engine, league):
    record = get_player_status("P2", engine=engine).record
    assert "OBP" not in record
    assert "RBI" not in record


def test_idempotent(engine, league):
    first = get_player_status("P2", engine=engine)
    second = get_player_status("P2", engine=engine)
    assert first == second
    assert first.to_dict() == second.to_dict()


def test_unknown_player_is_a_fault(engine, league):
    with pytest.raises(DataAccessError) as exc_info:
        get_player_status("GHOST", engine=engine)
    assert exc_info.value.status_code == 500


def test_uses_configured_engine(engine, league):
    # no engine passed: falls back to db.get_engine() / DATABASE_URL
    result = get_player_status("P1")
    assert isinstance(result, PlayerStatus)
    assert result.status is AvailabilityStatus.INJURED


def test_classifier_fault_discards_fetched_record(engine, league, drop_table, monkeypatch):
    # reflect every table first so the fault lands in the classifier
    get_player_status("P2", engine=engine)
    drop_table("todaysgames")

    fetched = []
    real_fetch = player_status.fetch_record

    def _fetch(conn, ref, projection):
        record = real_fetch(conn, ref, projection)
        fetched.append(record)
        return record

    monkeypatch.setattr(player_status, "fetch_record", _fetch)

    result = None
    with pytest.raises(DataAccessError):
        result = get_player_status("P2", engine=engine)

    assert fetched == [{"AVG": 0.275, "HR": 31}]
    assert result is None


def test_new_active_column_picked_up_without_restart(engine, league, seed):
    assert get_player_status("P2", engine=engine).record == {"AVG": 0.275, "HR": 31}

    with engine.begin() as conn:
        conn.execute(text("ALTER TABLE yearlystatsbatting ADD COLUMN SB INTEGER"))
        conn.execute(text("UPDATE yearlystatsbatting SET SB = 12 WHERE PlayerRefID = 'P2'"))
    seed(
        "dictionarydata",
        {"TableName": "YearlyStatsBatting", "FieldNameX": "SB", "Verify": 1, "Order": 4},
    )

    assert get_player_status("P2", engine=engine).to_dict() == {
        "playerRecords": {"AVG": 0.275, "HR": 31, "SB": 12},
        "status": "",
    }
