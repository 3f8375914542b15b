"""
Open a bounded SQLAlchemy connection pool and validate it with one probe.

The driver is picked by the SQLAlchemy URL (mysql+pymysql, postgresql+psycopg,
sqlite, ...). The pool is returned to the caller and never disposed here,
except when validation fails.
"""

import logging
import math
from datetime import timedelta
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.engine import URL, Engine, make_url
from sqlalchemy.pool import QueuePool

from sqlm.core.config import Settings, settings as default_settings
from sqlm.core.deadline import to_seconds
from sqlm.core.errors import ConnectionOpenError

from .health import ping

_log = logging.getLogger(__name__)

MYSQL_DRIVER = "mysql+pymysql"

MAX_CONN = 25  # max open (and idle) connections
MAX_LIFETIME = timedelta(minutes=5)  # max time a connection may be reused
TIMEOUT = timedelta(seconds=5)  # probe timeout


def _connect_args(url: URL, timeout: float) -> dict[str, Any]:
    """Driver connect timeout bounded by the probe timeout, where the driver has one."""
    backend = url.get_backend_name()
    if backend in ("mysql", "mariadb", "postgresql"):
        # pymysql and libpq want whole seconds, at least 1
        return {"connect_timeout": max(1, math.ceil(timeout))}
    if backend == "sqlite":
        return {"timeout": timeout}
    return {}


def open_pool(
    driver_name: str,
    data_source_name: str,
    max_conn: int,
    max_lifetime: float | timedelta,
    ping_timeout: float | timedelta,
) -> Engine:
    """
    Open a pool for ``{driver_name}://{data_source_name}`` and ping it once.

    - driver_name: SQLAlchemy dialect[+driver], e.g. "mysql+pymysql" or "sqlite".
    - data_source_name: the rest of the URL, e.g. "user:pw@host:3306/db" or "/app.db".
    - max_conn: cap on open connections; idle connections are capped the same.
    - max_lifetime: connections older than this are recycled (<= 0 = never).
    - ping_timeout: bound on the single connectivity probe.

    Raises ConnectionOpenError for an invalid driver/URL/arguments and PingError
    when the probe fails; in both cases no engine is returned.
    """
    try:
        timeout = to_seconds(ping_timeout)
        lifetime = to_seconds(max_lifetime)
        if max_conn < 1:
            raise ValueError(f"max_conn must be >= 1, got {max_conn}")
        url = make_url(f"{driver_name}://{data_source_name}")
        engine = create_engine(
            url,
            poolclass=QueuePool,
            pool_size=max_conn,
            max_overflow=0,
            pool_recycle=lifetime if lifetime > 0 else -1,
            connect_args=_connect_args(url, timeout),
        )
    except Exception as e:
        raise ConnectionOpenError(f"opening database: {e}") from e

    try:
        ping(engine, timeout)
    except Exception:
        engine.dispose()
        raise

    _log.debug(
        "Opened pool %s (max_conn=%d, max_lifetime=%ss)",
        url.render_as_string(hide_password=True),
        max_conn,
        lifetime,
    )
    return engine


def mysql_open(data_source_name: str) -> Engine:
    """Open and validate a MySQL pool (pymysql) with the conservative defaults."""
    return open_pool(MYSQL_DRIVER, data_source_name, MAX_CONN, MAX_LIFETIME, TIMEOUT)


def open_from_settings(settings: Settings | None = None) -> Engine:
    """Open the pool described by SQLM_DATABASE_URL and the SQLM_POOL_* knobs."""
    cfg = settings or default_settings
    if not cfg.DATABASE_URL:
        raise ConnectionOpenError("opening database: SQLM_DATABASE_URL is not set")
    driver_name, sep, data_source_name = cfg.DATABASE_URL.partition("://")
    if not sep:
        raise ConnectionOpenError(
            f"opening database: malformed URL (no '://'): {driver_name!r}"
        )
    return open_pool(
        driver_name,
        data_source_name,
        cfg.POOL_MAX_CONN,
        cfg.POOL_MAX_LIFETIME_SEC,
        cfg.PING_TIMEOUT_SEC,
    )
