"""
Bounded connection pool for a SQLAlchemy data source.

open_pool validates reachability with a single bounded probe before returning.
"""

from .connect import (
    MAX_CONN,
    MAX_LIFETIME,
    MYSQL_DRIVER,
    TIMEOUT,
    mysql_open,
    open_from_settings,
    open_pool,
)
from .health import health_check, ping
from .timeout import effective_timeout, statement_timeout

__all__ = [
    "MAX_CONN",
    "MAX_LIFETIME",
    "MYSQL_DRIVER",
    "TIMEOUT",
    "open_pool",
    "mysql_open",
    "open_from_settings",
    "ping",
    "health_check",
    "statement_timeout",
    "effective_timeout",
]
