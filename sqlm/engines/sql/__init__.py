"""
SQL unit-of-work runner and dynamic row scanning.

Exports: with_transaction, Tx, Stmt, query_one, query_all, iter_records,
Record, Value, ValueKind, ColumnDescriptor.
"""

from sqlm.engines.sql.record import Record, Value, ValueKind
from sqlm.engines.sql.scanner import (
    ColumnDescriptor,
    describe_columns,
    iter_records,
    query_all,
    query_one,
)
from sqlm.engines.sql.transaction import (
    ISOLATION_LEVEL,
    BeginTx,
    Stmt,
    Tx,
    with_transaction,
)

__all__ = [
    "with_transaction",
    "BeginTx",
    "Tx",
    "Stmt",
    "ISOLATION_LEVEL",
    "query_one",
    "query_all",
    "iter_records",
    "describe_columns",
    "ColumnDescriptor",
    "Record",
    "Value",
    "ValueKind",
]
