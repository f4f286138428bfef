"""Tests for table creation and the forward-only column migration."""
from sqlalchemy import inspect, text

from database import _auto_migrate, engine, init_db


def test_up_to_date_schema_needs_no_migration(db_session):
    init_db()
    assert _auto_migrate() == {}


def test_missing_columns_are_added(db_session):
    with engine.begin() as conn:
        conn.execute(text("DROP TABLE merchant_mappings"))
        conn.execute(text(
            "CREATE TABLE merchant_mappings ("
            "id VARCHAR PRIMARY KEY, raw_pattern VARCHAR NOT NULL, clean_name VARCHAR NOT NULL)"
        ))
        conn.execute(text("INSERT INTO merchant_mappings VALUES ('m1', 'UBER', 'Uber')"))

    added = _auto_migrate()

    assert sorted(added["merchant_mappings"]) == ["category", "created_at", "pattern_type"]
    columns = {c["name"] for c in inspect(engine).get_columns("merchant_mappings")}
    assert {"category", "created_at", "pattern_type"} <= columns
    with engine.connect() as conn:
        pattern_type = conn.execute(text("SELECT pattern_type FROM merchant_mappings WHERE id = 'm1'")).scalar()
    assert pattern_type == "contains"
