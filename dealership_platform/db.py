from __future__ import annotations

import logging
import sqlite3
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, List, Sequence, Tuple, Type
from urllib.parse import urlparse

from dealership_platform.errors import StoreError
from dealership_platform.schema import get_schema_sql

_log = logging.getLogger("dealership_platform.db")


def _debug(msg: str) -> None:
    _log.info(msg)


def _detect_dialect(dsn: str) -> str:
    """Return 'postgres' or 'sqlite'."""
    s = (dsn or "").strip()
    if not s:
        return "sqlite"
    try:
        scheme = urlparse(s).scheme.lower()
    except Exception:
        scheme = ""
    if scheme in ("postgres", "postgresql"):
        return "postgres"
    # Allow sqlite:///path style, but default is file path.
    return "sqlite"


def _qmark_to_pct(sql: str) -> str:
    """Convert SQLite qmark placeholders (?) to psycopg2 placeholders (%s).

    Skips '?' inside single/double-quoted string literals. Not a full SQL parser,
    but sufficient for the statements in this codebase.
    """
    out: List[str] = []
    in_single = False
    in_double = False
    for ch in sql:
        if ch == "'" and not in_double:
            in_single = not in_single
        elif ch == '"' and not in_single:
            in_double = not in_double
        elif ch == "?" and not in_single and not in_double:
            out.append("%s")
            continue
        out.append(ch)
    return "".join(out)


class PGCursor:
    """psycopg2 cursor that accepts qmark SQL."""

    def __init__(self, cur: Any):
        self._cur = cur
        self.fetchone = cur.fetchone
        self.fetchall = cur.fetchall

    def execute(self, sql: str, params: Sequence[Any] | None = None) -> "PGCursor":
        self._cur.execute(_qmark_to_pct(sql), tuple(params or ()))
        return self

    @property
    def rowcount(self) -> int:
        return max(int(self._cur.rowcount or 0), 0)


class PGConnection:
    """Exposes the subset of the sqlite3.Connection API the store modules call."""

    dialect = "postgres"

    def __init__(self, conn: Any):
        self._conn = conn
        self.commit = conn.commit
        self.rollback = conn.rollback
        self.close = conn.close

    def execute(self, sql: str, params: Sequence[Any] | None = None) -> PGCursor:
        return PGCursor(self._conn.cursor()).execute(sql, params)


def is_unique_violation(exc: BaseException) -> bool:
    """True for a driver IntegrityError raised by a UNIQUE constraint."""
    if isinstance(exc, sqlite3.IntegrityError):
        return "UNIQUE constraint failed" in str(exc)
    psycopg2 = sys.modules.get("psycopg2")
    if psycopg2 is not None and isinstance(exc, psycopg2.IntegrityError):
        return getattr(exc, "pgcode", None) == "23505"
    return False


_SQLITE_PRAGMAS = (
    "PRAGMA journal_mode=WAL;",
    "PRAGMA synchronous=NORMAL;",
    "PRAGMA busy_timeout=5000;",
    "PRAGMA foreign_keys = ON;",
)


def _open_postgres(dsn: str) -> Tuple[Any, Type[Exception]]:
    try:
        import psycopg2
        import psycopg2.extras
    except ImportError as e:
        raise RuntimeError(
            "Postgres selected but psycopg2 is not installed. "
            "Install the 'postgres' extra (psycopg2-binary) and try again."
        ) from e
    try:
        raw = psycopg2.connect(dsn, cursor_factory=psycopg2.extras.RealDictCursor)
    except psycopg2.Error as e:
        raise StoreError(str(e).strip()) from e
    return PGConnection(raw), psycopg2.Error


def _open_sqlite(dsn: str) -> Tuple[Any, Type[Exception]]:
    if dsn.lower().startswith("sqlite:///"):
        dsn = dsn[len("sqlite:///") :]
    Path(dsn).parent.mkdir(parents=True, exist_ok=True)
    try:
        conn = sqlite3.connect(dsn, timeout=30, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        for pragma in _SQLITE_PRAGMAS:
            conn.execute(pragma)
    except sqlite3.Error as e:
        raise StoreError(str(e)) from e
    return conn, sqlite3.Error


@contextmanager
def connect(db_dsn: str) -> Iterator[Any]:
    """One transaction against SQLite or Postgres.

    Commits when the block exits cleanly and rolls back otherwise. Driver
    errors surface as StoreError carrying the driver message; anything else
    propagates unchanged. Postgres rows are RealDictRows, SQLite rows are
    sqlite3.Row, so both index by column name.
    """
    dsn = (db_dsn or "").strip()
    if _detect_dialect(dsn) == "postgres":
        conn, driver_error = _open_postgres(dsn)
    else:
        conn, driver_error = _open_sqlite(dsn)

    try:
        yield conn
        conn.commit()
    except driver_error as e:
        conn.rollback()
        raise StoreError(str(e).strip()) from e
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def init_db(db_dsn: str) -> None:
    """Create all tables (idempotent)."""
    dialect = _detect_dialect(db_dsn)
    _debug(f"Initializing DB ({dialect}) at {db_dsn}")
    with connect(db_dsn) as conn:
        schema_sql = get_schema_sql(dialect)
        # Ensure only one process runs schema DDL at a time on Postgres.
        if dialect == "postgres":
            conn.execute("SELECT pg_advisory_lock(2147483646);")
            try:
                _exec_schema(conn, schema_sql, dialect=dialect)
            finally:
                conn.execute("SELECT pg_advisory_unlock(2147483646);")
        else:
            _exec_schema(conn, schema_sql, dialect=dialect)


def _exec_schema(conn: Any, ddl: str, *, dialect: str) -> None:
    if dialect == "postgres":
        # Naive split is OK for our schema (no ';' inside literals)
        statements = [s.strip() for s in ddl.split(";") if s.strip()]
        for stmt in statements:
            conn.execute(stmt)
        return

    # SQLite can run it in one go
    conn.executescript(ddl)
