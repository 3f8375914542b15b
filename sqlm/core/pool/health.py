"""
Connectivity probe for a pool: one ``SELECT 1`` bounded by a timeout.
"""

import logging
from datetime import timedelta

from sqlalchemy.engine import Engine

from sqlm.core.deadline import Deadline, to_seconds
from sqlm.core.errors import PingError

from .timeout import statement_timeout

_log = logging.getLogger(__name__)


def ping(engine: Engine, timeout: float | timedelta) -> None:
    """
    Check out one connection and run ``SELECT 1`` on it.

    Raises PingError when the driver fails or the probe did not finish within
    *timeout*. Exactly one attempt; no retries.
    """
    seconds = to_seconds(timeout)
    deadline = Deadline(seconds)
    try:
        with engine.connect() as conn:
            with statement_timeout(conn, deadline.remaining()):
                conn.exec_driver_sql("SELECT 1").scalar()
    except Exception as e:
        raise PingError(f"pinging database: {e}") from e
    if deadline.expired():
        raise PingError(f"pinging database: no reply within {seconds:g}s")


def health_check(engine: Engine, timeout: float | timedelta = 5.0) -> bool:
    """Boolean form of ping() for readiness probes. Logs the failure reason."""
    try:
        ping(engine, timeout)
        return True
    except PingError as e:
        _log.warning("Database health check failed: %s", e)
        return False
