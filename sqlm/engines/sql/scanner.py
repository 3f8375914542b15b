"""
Scan arbitrary query results into Records without a declared row schema.

Stages, each with its own error kind:
  execute (QueryExecError) -> describe columns (ColumnDescribeError)
  -> scan each row (RowScanError) -> release cursor (CursorReleaseError)
  -> deferred end-of-stream error, checked after release (IterationError).

The cursor is released exactly once on every exit path.
"""

import logging
from collections.abc import Iterator
from typing import Any, NamedTuple

from sqlalchemy.engine import CursorResult

from sqlm.core.deadline import Deadline
from sqlm.core.errors import (
    ColumnDescribeError,
    CursorReleaseError,
    IterationError,
    NotFoundError,
    QueryExecError,
    RowScanError,
    SqlmError,
)

from .record import Record
from .transaction import Tx

_log = logging.getLogger(__name__)


class ColumnDescriptor(NamedTuple):
    """
    Column name plus the driver's native type code (cursor.description[i][1]).

    type_code is informational: the DBAPI driver has already converted each
    cell to a Python object by the time it is fetched, so Value.of classifies
    the cell from that object. Codes are driver specific (Postgres OIDs, MySQL
    FIELD_TYPE numbers, None on sqlite).
    """

    name: str
    type_code: Any


def describe_columns(result: CursorResult) -> list[ColumnDescriptor]:
    try:
        return [ColumnDescriptor(d[0], d[1]) for d in result.cursor.description]
    except Exception as e:
        raise ColumnDescribeError(f"describing columns: {e}") from e


def _execute(
    tx: Tx, query: str, args: tuple[Any, ...], deadline: Deadline | None
) -> CursorResult:
    try:
        return tx.query(query, *args, deadline=deadline)
    except SqlmError:
        raise
    except Exception as e:
        raise QueryExecError(f"executing query: {e}") from e


def _scan_row(columns: list[ColumnDescriptor], row: Any) -> Record:
    try:
        return Record.from_row([c.name for c in columns], row)
    except Exception as e:
        raise RowScanError(f"scanning row: {e}") from e


def _release_quiet(result: CursorResult) -> None:
    """Release on a failing path; the original failure takes precedence."""
    try:
        result.close()
    except Exception:
        _log.warning("Closing rows failed while handling another error", exc_info=True)


def _scan(
    tx: Tx,
    query: str,
    args: tuple[Any, ...],
    *,
    single: bool,
    deadline: Deadline | None,
) -> Iterator[Record]:
    deadline = deadline or tx.deadline
    result = _execute(tx, query, args, deadline)

    iter_err: Exception | None = None
    try:
        if result.returns_rows:
            columns = describe_columns(result)
            while True:
                if deadline is not None:
                    deadline.check()
                try:
                    row = result.fetchone()
                except Exception as e:
                    # surfaced after the cursor is released
                    iter_err = e
                    break
                if row is None:
                    break
                yield _scan_row(columns, row)
                if single:
                    break
    except BaseException:
        _release_quiet(result)
        raise

    try:
        result.close()
    except Exception as e:
        err = CursorReleaseError(f"closing rows: {e}")
        if iter_err is not None:
            err.iteration_error = iter_err
            err.add_note(f"iterating rows also failed: {iter_err!r}")
        raise err from e
    if iter_err is not None:
        raise IterationError(f"iterating rows: {iter_err}") from iter_err


def query_one(
    tx: Tx, query: str, *args: Any, deadline: Deadline | None = None
) -> Record:
    """
    Run a query expected to return at most one row.

    Only the first row is scanned; later rows are discarded unread.
    Raises NotFoundError when the query returns no rows.
    """
    records = list(_scan(tx, query, args, single=True, deadline=deadline))
    if not records:
        raise NotFoundError("no rows in result set")
    return records[0]


def query_all(
    tx: Tx, query: str, *args: Any, deadline: Deadline | None = None
) -> list[Record]:
    """Run a query and return one Record per row, in the order the driver returned them."""
    return list(_scan(tx, query, args, single=False, deadline=deadline))


def iter_records(
    tx: Tx, query: str, *args: Any, deadline: Deadline | None = None
) -> Iterator[Record]:
    """
    Streaming form of query_all.

    The cursor stays open until the iterator is exhausted or closed, so
    consume it (or close it) before the unit of work returns.
    """
    return _scan(tx, query, args, single=False, deadline=deadline)
