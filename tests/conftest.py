# tests/conftest.py
import pytest
from sqlalchemy import (
    MetaData, Table, Column, Integer, String, Float, create_engine, insert,
)

import db
from services.tables import clear_table_cache


def _schema(md):
    Table(
        "dictionarydata", md,
        Column("id", Integer, primary_key=True),
        Column("TableName", String(64)),
        Column("FieldNameX", String(64)),
        Column("Verify", Integer),
        Column("Order", Integer),
    )
    Table(
        "yearlystatsbatting", md,
        Column("id", Integer, primary_key=True),
        Column("PlayerRefID", String(32)),
        Column("AVG", Float),
        Column("HR", Integer),
        Column("OBP", Float),
        Column("RBI", Integer),
    )
    Table(
        "players", md,
        Column("id", Integer, primary_key=True),
        Column("PlayerRefID", String(32)),
        Column("TeamID", Integer, nullable=True),
        Column("Deleted", Integer),
        Column("Position1", String(4)),
        Column("Name", String(64)),
    )
    Table(
        "injuries", md,
        Column("id", Integer, primary_key=True),
        Column("PlayerRefID", String(32)),
        Column("Injury", String(64)),
    )
    Table(
        "todaysstarters", md,
        Column("id", Integer, primary_key=True),
        Column("PlayerRefID1", String(32)),
    )
    Table(
        "todaysgames", md,
        Column("id", Integer, primary_key=True),
        Column("TeamID", Integer),
    )


SCHEMA = MetaData()
_schema(SCHEMA)


@pytest.fixture
def db_url(tmp_path):
    return f"sqlite:///{tmp_path / 'roster.db'}"


@pytest.fixture
def engine(db_url, monkeypatch):
    """File-backed SQLite with the roster/stats schema and no rows."""
    clear_table_cache()
    db.reset_engine()
    monkeypatch.setenv("DATABASE_URL", db_url)

    eng = create_engine(db_url, future=True)
    SCHEMA.create_all(eng)
    yield eng

    eng.dispose()
    db.reset_engine()
    clear_table_cache()


@pytest.fixture
def seed(engine):
    """seed("players", {...}, {...}) inserts rows into a table."""
    def _seed(table_name, *rows):
        table = SCHEMA.tables[table_name]
        with engine.begin() as conn:
            for row in rows:
                conn.execute(insert(table).values(**row))
    return _seed


@pytest.fixture
def batting_metadata(seed):
    """AVG, HR active (in that order); OBP inactive."""
    seed(
        "dictionarydata",
        {"TableName": "YearlyStatsBatting", "FieldNameX": "HR", "Verify": 1, "Order": 2},
        {"TableName": "YearlyStatsBatting", "FieldNameX": "AVG", "Verify": 1, "Order": 1},
        {"TableName": "YearlyStatsBatting", "FieldNameX": "OBP", "Verify": 0, "Order": 3},
    )


@pytest.fixture
def drop_table(engine):
    """Simulate a storage fault by dropping a table after it has been reflected."""
    def _drop(table_name):
        SCHEMA.tables[table_name].drop(engine)
    return _drop
