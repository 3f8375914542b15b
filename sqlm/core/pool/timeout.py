"""
Server-side statement timeouts derived from the caller's deadline.

Postgres uses ``SET LOCAL statement_timeout`` and restores the server default
after the statement, so the limit never leaks into later statements of the
same transaction. MySQL uses ``SET SESSION max_execution_time`` and resets it
to 0 afterwards. Other dialects rely on the client-side deadline checks.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.engine import Connection

from sqlm.core.config import settings
from sqlm.core.deadline import Deadline

_log = logging.getLogger(__name__)


def effective_timeout(deadline: Deadline | None) -> float | None:
    """Smaller of the deadline's remaining time and STATEMENT_TIMEOUT_SEC (None = no limit)."""
    candidates = []
    if deadline is not None:
        remaining = deadline.remaining()
        if remaining is not None:
            candidates.append(remaining)
    configured = settings.STATEMENT_TIMEOUT_SEC
    if configured is not None and configured > 0:
        candidates.append(configured)
    return min(candidates) if candidates else None


@contextmanager
def statement_timeout(conn: Connection, seconds: float | None) -> Iterator[None]:
    """Run the enclosed statement(s) under a server-side timeout of *seconds*."""
    if seconds is None:
        yield
        return

    timeout_ms = max(1, int(seconds * 1000))
    backend = conn.dialect.name

    if backend == "postgresql":
        conn.exec_driver_sql(f"SET LOCAL statement_timeout = {timeout_ms}")
        try:
            yield
        finally:
            try:
                conn.exec_driver_sql("SET LOCAL statement_timeout = DEFAULT")
            except Exception:
                # fails once the transaction is aborted; rollback discards it anyway
                _log.warning("Could not reset statement_timeout", exc_info=True)
        return

    if backend in ("mysql", "mariadb"):
        conn.exec_driver_sql(f"SET SESSION max_execution_time = {timeout_ms}")
        try:
            yield
        finally:
            try:
                conn.exec_driver_sql("SET SESSION max_execution_time = 0")
            except Exception:
                _log.warning("Could not reset max_execution_time", exc_info=True)
        return

    yield
