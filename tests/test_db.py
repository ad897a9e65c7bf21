"""Store connection helpers and schema."""

import pytest

from dealership_platform.db import _detect_dialect, _qmark_to_pct, connect, init_db, is_unique_violation
from dealership_platform.errors import StoreError
from dealership_platform.schema import get_schema_sql


def test_dialect_detection():
    assert _detect_dialect("postgresql://u:p@localhost/db") == "postgres"
    assert _detect_dialect("postgres://localhost/db") == "postgres"
    assert _detect_dialect("./dealership.sqlite") == "sqlite"
    assert _detect_dialect("sqlite:///tmp/x.sqlite") == "sqlite"


def test_qmark_conversion_skips_literals():
    sql = "SELECT * FROM cars WHERE brand=? AND note='why?' AND id=?"
    assert _qmark_to_pct(sql) == "SELECT * FROM cars WHERE brand=%s AND note='why?' AND id=%s"


def test_postgres_schema_has_no_sqlite_pragmas():
    ddl = get_schema_sql("postgres")
    assert "PRAGMA" not in ddl
    assert "CREATE TABLE IF NOT EXISTS cars" in ddl


def test_init_db_is_idempotent(tmp_path):
    dsn = str(tmp_path / "x.sqlite")
    init_db(dsn)
    init_db(dsn)
    with connect(dsn) as conn:
        names = {r["name"] for r in conn.execute("SELECT name FROM sqlite_master WHERE type='table'").fetchall()}
    assert {"auth_identities", "users", "cars", "inquiries", "bookmarks"} <= names


def test_driver_errors_become_store_errors_and_roll_back(tmp_path):
    dsn = str(tmp_path / "x.sqlite")
    init_db(dsn)
    with pytest.raises(StoreError):
        with connect(dsn) as conn:
            conn.execute(
                "INSERT INTO bookmarks (user_id, car_id, created_at) VALUES (?,?,?)",
                ("nobody", "nothing", "2025-01-01T00:00:00Z"),
            )
    with connect(dsn) as conn:
        assert conn.execute("SELECT COUNT(*) AS n FROM bookmarks").fetchone()["n"] == 0


def test_other_exceptions_roll_back_and_propagate(tmp_path):
    dsn = str(tmp_path / "x.sqlite")
    init_db(dsn)
    with pytest.raises(KeyError):
        with connect(dsn) as conn:
            conn.execute("UPDATE cars SET brand='x'")
            raise KeyError("boom")


def test_unique_violation_is_told_apart_from_other_integrity_errors(tmp_path):
    dsn = str(tmp_path / "x.sqlite")
    init_db(dsn)
    insert = (
        "INSERT INTO auth_identities (identity_id, email, password_hash, is_active, created_at, updated_at) "
        "VALUES (?,?,?,?,?,?)"
    )
    caught = []
    with connect(dsn) as conn:
        conn.execute(insert, ("id-1", "a@example.com", "h", 1, "t", "t"))
        for stmt, params in [
            (insert, ("id-2", "a@example.com", "h", 1, "t", "t")),
            ("INSERT INTO bookmarks (user_id, car_id, created_at) VALUES (?,?,?)", ("nobody", "nothing", "t")),
        ]:
            try:
                conn.execute(stmt, params)
            except Exception as e:
                caught.append(e)
    assert [is_unique_violation(e) for e in caught] == [True, False]
    assert not is_unique_violation(KeyError("x"))
