"""
Schema-less result rows.

Each scanned cell becomes a Value tagged with one of a fixed set of kinds;
a Record maps column names to those values and boxes them back into plain
Python objects on access.
"""

import json
import uuid
from collections.abc import Iterator, Mapping, Sequence
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Any, NamedTuple


class ValueKind(str, Enum):
    """Representable categories of a scanned cell."""

    NULL = "null"
    INTEGER = "integer"
    FLOAT = "float"
    BOOLEAN = "boolean"
    TEXT = "text"
    BINARY = "binary"
    TIMESTAMP = "timestamp"


class Value(NamedTuple):
    kind: ValueKind
    data: Any

    @classmethod
    def of(cls, raw: Any) -> "Value":
        """
        Classify a driver value.

        bool is tested before int (bool subclasses int). Decimal stays Decimal
        under FLOAT so no precision is lost. UUIDs and JSON documents (dict/list)
        are carried as TEXT. Anything else raises TypeError.
        """
        if raw is None:
            return cls(ValueKind.NULL, None)
        if isinstance(raw, bool):
            return cls(ValueKind.BOOLEAN, raw)
        if isinstance(raw, int):
            return cls(ValueKind.INTEGER, raw)
        if isinstance(raw, (float, Decimal)):
            return cls(ValueKind.FLOAT, raw)
        if isinstance(raw, str):
            return cls(ValueKind.TEXT, raw)
        if isinstance(raw, (bytes, bytearray, memoryview)):
            return cls(ValueKind.BINARY, bytes(raw))
        # datetime before date (datetime subclasses date)
        if isinstance(raw, (datetime, date, time, timedelta)):
            return cls(ValueKind.TIMESTAMP, raw)
        if isinstance(raw, uuid.UUID):
            return cls(ValueKind.TEXT, str(raw))
        if isinstance(raw, (dict, list)):
            return cls(ValueKind.TEXT, json.dumps(raw, default=str))
        raise TypeError(f"unsupported column value type: {type(raw).__name__}")


_NULL = Value(ValueKind.NULL, None)


class Record(Mapping[str, Any]):
    """
    Immutable view of one row keyed by column name.

    ``record["id"]`` returns the boxed Python value, ``record.kind("id")`` its
    ValueKind and ``record.string("id")`` a display string ("" for NULL or a
    missing column).
    """

    __slots__ = ("_values",)

    def __init__(self, values: Mapping[str, Value]) -> None:
        self._values: Mapping[str, Value] = MappingProxyType(dict(values))

    @classmethod
    def from_row(cls, names: Sequence[str], row: Sequence[Any]) -> "Record":
        """Build from column names and one row; lengths must match."""
        return cls({name: Value.of(raw) for name, raw in zip(names, row, strict=True)})

    def __getitem__(self, key: str) -> Any:
        return self._values[key].data

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def value(self, key: str) -> Value:
        """Tagged value for *key*; a missing column reads as NULL."""
        return self._values.get(key, _NULL)

    def kind(self, key: str) -> ValueKind:
        return self.value(key).kind

    def string(self, key: str) -> str:
        """String form of the value behind *key*. Never raises."""
        kind, data = self.value(key)
        if kind is ValueKind.NULL:
            return ""
        if kind is ValueKind.TEXT:
            return data
        if kind is ValueKind.BINARY:
            return data.decode("utf-8", errors="replace")
        return str(data)

    def to_dict(self) -> dict[str, Any]:
        return {k: v.data for k, v in self._values.items()}

    def __repr__(self) -> str:
        return f"Record({self.to_dict()!r})"
