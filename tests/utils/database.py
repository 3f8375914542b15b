"""Test helpers: file-backed SQLite pools opened through open_pool."""

from pathlib import Path

from sqlalchemy.engine import Engine

from sqlm.core.pool import open_pool


def sqlite_pool(path: Path, *, max_conn: int = 5) -> Engine:
    """Open a validated SQLite pool on *path* (absolute, so the URL gets four slashes)."""
    return open_pool("sqlite", f"/{path}", max_conn, 60, 5)


def seed_items(engine: Engine) -> None:
    """Table t(id, name) with rows (1, 'a'), (2, 'b') and an empty audit table."""
    with engine.begin() as conn:
        conn.exec_driver_sql("CREATE TABLE t (id INTEGER PRIMARY KEY, name TEXT)")
        conn.exec_driver_sql(
            "INSERT INTO t (id, name) VALUES (?, ?)", [(1, "a"), (2, "b")]
        )
        conn.exec_driver_sql("CREATE TABLE audit (id INTEGER PRIMARY KEY, note TEXT)")


def count_rows(engine: Engine, table: str) -> int:
    """Count rows in *table* on a fresh connection, outside any test transaction."""
    with engine.connect() as conn:
        return conn.exec_driver_sql(f"SELECT COUNT(*) FROM {table}").scalar_one()
