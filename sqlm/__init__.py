"""
sqlm: transactions and schema-less queries over a SQLAlchemy connection pool.

    engine = mysql_open("user:pw@localhost:3306/app")

    def work(tx):
        return query_all(tx, "SELECT id, name FROM t WHERE id > %s", 10)

    rows = with_transaction(engine, work)
"""

from sqlm.core.deadline import Deadline
from sqlm.core.errors import (
    BeginError,
    ColumnDescribeError,
    CommitError,
    ConnectionOpenError,
    CursorReleaseError,
    DeadlineExceededError,
    IterationError,
    NotFoundError,
    PingError,
    QueryExecError,
    RollbackOnErrorError,
    RollbackOnFaultError,
    RowScanError,
    SqlmError,
    TransactionClosedError,
)
from sqlm.core.pool import health_check, mysql_open, open_from_settings, open_pool
from sqlm.engines.sql import (
    ColumnDescriptor,
    Record,
    Stmt,
    Tx,
    Value,
    ValueKind,
    iter_records,
    query_all,
    query_one,
    with_transaction,
)

__all__ = [
    "open_pool",
    "mysql_open",
    "open_from_settings",
    "health_check",
    "with_transaction",
    "Tx",
    "Stmt",
    "query_one",
    "query_all",
    "iter_records",
    "Record",
    "Value",
    "ValueKind",
    "ColumnDescriptor",
    "Deadline",
    "SqlmError",
    "ConnectionOpenError",
    "PingError",
    "BeginError",
    "CommitError",
    "TransactionClosedError",
    "RollbackOnErrorError",
    "RollbackOnFaultError",
    "QueryExecError",
    "ColumnDescribeError",
    "RowScanError",
    "CursorReleaseError",
    "IterationError",
    "NotFoundError",
    "DeadlineExceededError",
]
