"""
Run a unit of work inside one SERIALIZABLE transaction.

with_transaction() begins the transaction, hands the work a Tx (a restricted
capability: exec / prepare / query / query_row, no commit or rollback) and
resolves to exactly one of commit or rollback:

- work raised a fault (BaseException that is not an Exception, e.g.
  KeyboardInterrupt): roll back, then re-raise the fault, grouped with the
  rollback error in RollbackOnFaultError if the rollback failed too.
- work raised an Exception: roll back, then re-raise it, grouped with the
  rollback error in RollbackOnErrorError if the rollback failed too.
- otherwise: commit (CommitError on failure) and return work's result.

There is no retry on serialization failures or deadlocks; that is up to the
caller.
"""

import logging
from collections.abc import Callable, Mapping
from typing import Any, Protocol, TypeVar

from sqlalchemy.engine import Connection, CursorResult, Row, RootTransaction

from sqlm.core.config import settings
from sqlm.core.deadline import Deadline
from sqlm.core.errors import (
    BeginError,
    CommitError,
    RollbackOnErrorError,
    RollbackOnFaultError,
    TransactionClosedError,
)
from sqlm.core.pool.timeout import effective_timeout, statement_timeout

_log = logging.getLogger(__name__)

ISOLATION_LEVEL = "SERIALIZABLE"

T = TypeVar("T")


class BeginTx(Protocol):
    """Anything that hands out connections, typically a sqlalchemy Engine."""

    def connect(self) -> Connection: ...


def _params(args: tuple[Any, ...]) -> Any:
    """Driver parameters: a lone mapping binds named markers, else a positional tuple."""
    if not args:
        return None
    if len(args) == 1 and isinstance(args[0], Mapping):
        return dict(args[0])
    return tuple(args)


class Tx:
    """
    Transaction capability bound to one connection.

    Placeholders use the driver's paramstyle (%s for pymysql/psycopg, ? for
    sqlite). Valid only while the unit of work runs; not safe to share
    between threads.
    """

    def __init__(self, conn: Connection, *, deadline: Deadline | None = None) -> None:
        self._conn = conn
        self.deadline = deadline
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        self._closed = True

    def _execute(
        self, query: str, args: tuple[Any, ...], deadline: Deadline | None
    ) -> CursorResult:
        if self._closed:
            raise TransactionClosedError("transaction is no longer usable")
        deadline = deadline or self.deadline
        if deadline is not None:
            deadline.check()
        if settings.LOG_SQL:
            _log.debug("SQL %s args=%r", query, args)
        with statement_timeout(self._conn, effective_timeout(deadline)):
            return self._conn.exec_driver_sql(query, _params(args))

    def exec(self, query: str, *args: Any, deadline: Deadline | None = None) -> int:
        """Execute a statement and return the affected row count (0 if unknown)."""
        result = self._execute(query, args, deadline)
        try:
            return result.rowcount if result.rowcount is not None else 0
        finally:
            result.close()

    def prepare(self, query: str) -> "Stmt":
        """Bind *query* to this transaction for repeated execution."""
        if self._closed:
            raise TransactionClosedError("transaction is no longer usable")
        return Stmt(self, query)

    def query(
        self, query: str, *args: Any, deadline: Deadline | None = None
    ) -> CursorResult:
        """Execute a row-returning statement. The caller must close the result."""
        return self._execute(query, args, deadline)

    def query_row(
        self, query: str, *args: Any, deadline: Deadline | None = None
    ) -> Row | None:
        """First row of the result (None if empty); remaining rows are discarded."""
        result = self._execute(query, args, deadline)
        try:
            return result.first()
        finally:
            result.close()


class Stmt:
    """A statement bound to one Tx."""

    def __init__(self, tx: Tx, query: str) -> None:
        self._tx = tx
        self.query_text = query

    def exec(self, *args: Any, deadline: Deadline | None = None) -> int:
        return self._tx.exec(self.query_text, *args, deadline=deadline)

    def query(self, *args: Any, deadline: Deadline | None = None) -> CursorResult:
        return self._tx.query(self.query_text, *args, deadline=deadline)

    def query_row(self, *args: Any, deadline: Deadline | None = None) -> Row | None:
        return self._tx.query_row(self.query_text, *args, deadline=deadline)


def _begin(conn: Connection, deadline: Deadline | None) -> RootTransaction:
    try:
        if deadline is not None:
            deadline.check()
        conn.execution_options(isolation_level=ISOLATION_LEVEL)
        return conn.begin()
    except Exception as e:
        raise BeginError(f"beginning transaction: {e}") from e


def _rollback(trans: RootTransaction) -> Exception | None:
    """Roll back and return the rollback's own error instead of raising it."""
    try:
        trans.rollback()
    except Exception as e:
        _log.warning("Rollback failed: %s", e)
        return e
    _log.debug("Transaction rolled back")
    return None


def with_transaction(
    pool: BeginTx,
    work: Callable[[Tx], T],
    *,
    deadline: Deadline | None = None,
) -> T:
    """
    Run ``work(tx)`` in a SERIALIZABLE transaction and commit or roll back.

    Returns whatever *work* returns. See the module docstring for how errors
    and faults raised by *work* are resolved.
    """
    try:
        conn = pool.connect()
    except Exception as e:
        raise BeginError(f"beginning transaction: {e}") from e

    try:
        trans = _begin(conn, deadline)
        tx = Tx(conn, deadline=deadline)
        try:
            result = work(tx)
        except Exception as e:
            rollback_err = _rollback(trans)
            if rollback_err is not None:
                raise RollbackOnErrorError(
                    "unit of work failed and rollback failed", [e, rollback_err]
                ) from None
            raise
        except BaseException as fault:
            rollback_err = _rollback(trans)
            if rollback_err is not None:
                raise RollbackOnFaultError(
                    "unit of work aborted and rollback failed", [fault, rollback_err]
                ) from None
            raise
        finally:
            tx.close()

        try:
            trans.commit()
        except Exception as e:
            raise CommitError(f"committing transaction: {e}") from e
        _log.debug("Transaction committed")
        return result
    finally:
        conn.close()
