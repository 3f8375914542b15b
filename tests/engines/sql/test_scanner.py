"""
Tests for engines.sql.scanner: query_one, query_all, iter_records.

Result shapes run against SQLite; stage failures (describe, scan, release,
mid-stream driver faults) are injected through a mocked Tx and cursor.
"""

from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from sqlalchemy.engine import Engine

from sqlm.core.deadline import Deadline
from sqlm.core.errors import (
    ColumnDescribeError,
    CursorReleaseError,
    DeadlineExceededError,
    IterationError,
    NotFoundError,
    QueryExecError,
    RowScanError,
    SqlmError,
)
from sqlm.engines.sql import (
    ColumnDescriptor,
    Tx,
    ValueKind,
    describe_columns,
    iter_records,
    query_all,
    query_one,
    with_transaction,
)


# --- against SQLite ---


def test_query_all_rows_in_order(pool: Engine) -> None:
    """SELECT id, name FROM t yields (1, 'a') then (2, 'b') with exact column keys."""
    records = with_transaction(
        pool, lambda tx: query_all(tx, "SELECT id, name FROM t ORDER BY id")
    )
    assert records == [{"id": 1, "name": "a"}, {"id": 2, "name": "b"}]
    assert [list(r) for r in records] == [["id", "name"], ["id", "name"]]
    assert records[0].kind("id") is ValueKind.INTEGER
    assert records[1].string("name") == "b"


def test_query_all_with_args(pool: Engine) -> None:
    def work(tx: Tx) -> tuple:
        positional = query_all(tx, "SELECT name FROM t WHERE id > ?", 1)
        named = query_all(tx, "SELECT name FROM t WHERE id = :id", {"id": 1})
        return positional, named

    positional, named = with_transaction(pool, work)
    assert positional == [{"name": "b"}]
    assert named == [{"name": "a"}]


def test_query_all_aliases_and_categories(pool: Engine) -> None:
    record = with_transaction(
        pool,
        lambda tx: query_one(
            tx, "SELECT 1 AS i, 1.5 AS f, 'x' AS s, X'00FF' AS b, NULL AS n"
        ),
    )
    assert record == {"i": 1, "f": 1.5, "s": "x", "b": b"\x00\xff", "n": None}
    assert [record.kind(k) for k in record] == [
        ValueKind.INTEGER,
        ValueKind.FLOAT,
        ValueKind.TEXT,
        ValueKind.BINARY,
        ValueKind.NULL,
    ]
    assert record.string("n") == ""


def test_query_all_empty(pool: Engine) -> None:
    assert with_transaction(pool, lambda tx: query_all(tx, "SELECT * FROM audit")) == []


def test_query_one_returns_first_row(pool: Engine) -> None:
    record = with_transaction(
        pool, lambda tx: query_one(tx, "SELECT id, name FROM t ORDER BY id DESC")
    )
    assert record == {"id": 2, "name": "b"}


def test_query_one_no_rows(pool: Engine) -> None:
    with pytest.raises(NotFoundError, match="no rows"):
        with_transaction(pool, lambda tx: query_one(tx, "SELECT * FROM t WHERE id = ?", 99))


def test_not_found_is_lookup_error(pool: Engine) -> None:
    with pytest.raises(LookupError):
        with_transaction(pool, lambda tx: query_one(tx, "SELECT * FROM audit"))


def test_statement_without_rows(pool: Engine) -> None:
    def work(tx: Tx) -> list:
        return query_all(tx, "UPDATE t SET name = 'z' WHERE id = 99")

    assert with_transaction(pool, work) == []


def test_bad_sql_is_query_exec_error(pool: Engine) -> None:
    with pytest.raises(QueryExecError, match="executing query") as exc:
        with_transaction(pool, lambda tx: query_all(tx, "SELECT * FROM no_such_table"))
    assert exc.value.__cause__ is not None


def test_iter_records_streams(pool: Engine) -> None:
    def work(tx: Tx) -> list:
        return [r["id"] for r in iter_records(tx, "SELECT id FROM t ORDER BY id")]

    assert with_transaction(pool, work) == [1, 2]


def test_expired_deadline_stops_query(pool: Engine) -> None:
    with pytest.raises(DeadlineExceededError):
        with_transaction(
            pool, lambda tx: query_all(tx, "SELECT * FROM t", deadline=Deadline(0))
        )


# --- stage failures with a mocked Tx ---


def _tx(rows: list | None = None, description: list | None = None) -> tuple[MagicMock, MagicMock]:
    result = MagicMock()
    result.returns_rows = True
    result.cursor.description = description or [
        ("id", 3, None, None, None, None, None),
        ("name", 253, None, None, None, None, None),
    ]
    result.fetchone.side_effect = list(rows or []) + [None]
    tx = MagicMock()
    tx.deadline = None
    tx.query.return_value = result
    return tx, result


def test_describe_columns() -> None:
    _, result = _tx()
    assert describe_columns(result) == [
        ColumnDescriptor("id", 3),
        ColumnDescriptor("name", 253),
    ]


def test_query_one_scans_only_first_row() -> None:
    tx, result = _tx(rows=[(1, "a"), (2, "b"), (3, "c")])
    record = query_one(tx, "SELECT id, name FROM t")
    assert record == {"id": 1, "name": "a"}
    assert result.fetchone.call_count == 1
    result.close.assert_called_once()


def test_query_passes_args_and_deadline() -> None:
    tx, _ = _tx(rows=[(Decimal("2.5"), "a")])
    d = Deadline(60)
    query_all(tx, "SELECT id, name FROM t WHERE id = %s", 5, deadline=d)
    tx.query.assert_called_once_with("SELECT id, name FROM t WHERE id = %s", 5, deadline=d)


def test_exec_failure() -> None:
    tx = MagicMock()
    tx.deadline = None
    tx.query.side_effect = RuntimeError("syntax error")
    with pytest.raises(QueryExecError, match="syntax error"):
        query_all(tx, "SELEC 1")


def test_sqlm_errors_from_tx_pass_through() -> None:
    tx = MagicMock()
    tx.deadline = None
    tx.query.side_effect = DeadlineExceededError("deadline exceeded")
    with pytest.raises(DeadlineExceededError):
        query_all(tx, "SELECT 1")


def test_describe_failure_releases_cursor() -> None:
    tx, result = _tx()
    result.cursor = None
    with pytest.raises(ColumnDescribeError, match="describing columns"):
        query_all(tx, "SELECT 1")
    result.close.assert_called_once()


def test_scan_failure_releases_cursor() -> None:
    tx, result = _tx(rows=[(1,)])
    with pytest.raises(RowScanError, match="scanning row"):
        query_all(tx, "SELECT id, name FROM t")
    result.close.assert_called_once()


def test_unsupported_value_is_scan_error() -> None:
    tx, result = _tx(rows=[(1, object())])
    with pytest.raises(RowScanError) as exc:
        query_all(tx, "SELECT id, name FROM t")
    assert isinstance(exc.value.__cause__, TypeError)
    result.close.assert_called_once()


def test_mid_stream_fault_surfaces_after_release() -> None:
    tx, result = _tx()
    lost = RuntimeError("server closed the connection")
    result.fetchone.side_effect = [(1, "a"), lost]
    events: list[str] = []
    result.close.side_effect = lambda: events.append("close")

    with pytest.raises(IterationError, match="iterating rows") as exc:
        query_all(tx, "SELECT id, name FROM t")
    assert exc.value.__cause__ is lost
    assert events == ["close"]


def test_release_failure() -> None:
    tx, result = _tx(rows=[(1, "a")])
    result.close.side_effect = RuntimeError("close failed")
    with pytest.raises(CursorReleaseError, match="close failed"):
        query_all(tx, "SELECT id, name FROM t")


def test_release_failure_keeps_stream_fault() -> None:
    """When both the fetch and the close fail, both causes stay reachable."""
    tx, result = _tx()
    lost = RuntimeError("server closed the connection")
    result.fetchone.side_effect = [(1, "a"), lost]
    result.close.side_effect = RuntimeError("close failed")

    with pytest.raises(CursorReleaseError, match="close failed") as exc:
        query_all(tx, "SELECT id, name FROM t")
    assert str(exc.value.__cause__) == "close failed"
    assert exc.value.iteration_error is lost
    assert any("server closed the connection" in n for n in exc.value.__notes__)


def test_release_failure_without_stream_fault_has_no_iteration_error() -> None:
    tx, result = _tx(rows=[(1, "a")])
    result.close.side_effect = RuntimeError("close failed")
    with pytest.raises(CursorReleaseError) as exc:
        query_all(tx, "SELECT id, name FROM t")
    assert exc.value.iteration_error is None


def test_type_code_does_not_drive_classification() -> None:
    """Cells are classified from the converted Python value, whatever the driver's type code."""
    tx, _ = _tx(
        rows=[("42", 7)],
        description=[("id", 3, None, None, None, None, None), ("name", None)],
    )
    record = query_one(tx, "SELECT id, name FROM t")
    assert record.kind("id") is ValueKind.TEXT
    assert record.kind("name") is ValueKind.INTEGER


def test_release_failure_while_failing_keeps_original_error() -> None:
    tx, result = _tx(rows=[(1,)])
    result.close.side_effect = RuntimeError("close failed")
    with pytest.raises(RowScanError):
        query_all(tx, "SELECT id, name FROM t")


def test_deadline_between_rows() -> None:
    tx, result = _tx()
    d = Deadline(60)

    def fetch():
        d.cancel()
        return (1, "a")

    result.fetchone.side_effect = fetch
    with pytest.raises(DeadlineExceededError):
        query_all(tx, "SELECT id, name FROM t", deadline=d)
    result.close.assert_called_once()


def test_iter_records_closed_early_releases_cursor() -> None:
    tx, result = _tx(rows=[(1, "a"), (2, "b")])
    it = iter_records(tx, "SELECT id, name FROM t")
    assert next(it) == {"id": 1, "name": "a"}
    it.close()
    result.close.assert_called_once()
    assert result.fetchone.call_count == 1


def test_all_stage_errors_are_sqlm_errors() -> None:
    for cls in (
        QueryExecError,
        ColumnDescribeError,
        RowScanError,
        CursorReleaseError,
        IterationError,
        NotFoundError,
    ):
        assert issubclass(cls, SqlmError)
