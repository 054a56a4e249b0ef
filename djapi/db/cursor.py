"""
db/cursor.py
------------
Row-by-row access to a query result, with columns looked up by name.

``ResultCursor`` starts *before* the first row: ``next()`` must be called
once before any value can be read. The converters at the bottom of the
module turn raw driver values into the Python types the accessor hands out.
"""

from datetime import date, datetime
from typing import Any, Iterable, Optional, Sequence

GENERATED_KEY_COLUMN = "GENERATED_KEY"

_TRUE_STRINGS = {"1", "true", "t", "yes", "y"}
_FALSE_STRINGS = {"0", "false", "f", "no", "n"}


class _RowSource:
    """In-memory stand-in for a driver cursor."""

    def __init__(self, names: Sequence[str], rows: Iterable[Sequence[Any]]):
        self.description = [(name, None, None, None, None, None, None) for name in names]
        self._rows = iter(rows)

    def fetchone(self):
        return next(self._rows, None)


class ResultCursor:
    """
    Pointer into a result set.

    Args:
        source: Anything with a DB-API ``description`` and ``fetchone()``.
    """

    def __init__(self, source):
        self._source = source
        # Duplicate labels resolve to the first column carrying them.
        self.columns: dict[str, int] = {}
        for index, column in enumerate(source.description or ()):
            self.columns.setdefault(column[0].lower(), index)
        self.row: Optional[Sequence[Any]] = None
        self.row_number = 0
        self.exhausted = False
        self.closed = False
        self.was_null = False

    @classmethod
    def from_rows(cls, names: Sequence[str], rows: Iterable[Sequence[Any]]) -> "ResultCursor":
        return cls(_RowSource(names, rows))

    def next(self) -> bool:
        """
        Move to the next row.

        Returns:
            True if a row is now current; False once the rows are exhausted,
            and on every call after that.
        """
        self._check_open()
        if self.exhausted:
            return False
        row = self._source.fetchone()
        if row is None:
            self.exhausted = True
            self.row = None
            return False
        self.row = row
        self.row_number += 1
        return True

    def value(self, column: str) -> Any:
        """
        Raw value of ``column`` in the current row (None for SQL NULL).

        Raises:
            LookupError: If no row is current.
            KeyError: If the result has no such column.
        """
        self.was_null = False
        self._check_open()
        if self.row is None:
            raise LookupError("Cursor is not positioned on a row")
        try:
            index = self.columns[column.lower()]
        except KeyError:
            raise KeyError(f"Unknown column: {column}") from None
        value = self.row[index]
        self.was_null = value is None
        return value

    def close(self) -> None:
        # The driver cursor belongs to the statement; only this view closes.
        self.closed = True
        self.row = None

    def _check_open(self) -> None:
        if self.closed:
            raise ValueError("Result cursor is closed")


# ── Converters ───────────────────────────────────────────
# Each one takes a non-NULL driver value and raises TypeError or ValueError
# when it cannot be represented as the target type.

def to_int(value: Any) -> int:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError(f"Value {value!r} is not an integer")
        return int(value)
    if isinstance(value, str):
        return int(value.strip())
    if hasattr(value, "__index__"):
        return value.__index__()
    # Decimal and friends
    if hasattr(value, "to_integral_value") and value == value.to_integral_value():
        return int(value)
    raise TypeError(f"Cannot read {type(value).__name__} value {value!r} as an integer")


def to_string(value: Any) -> str:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).decode("utf-8")
    return str(value)


def to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
        raise ValueError(f"Value {value!r} is not a boolean")
    raise TypeError(f"Cannot read {type(value).__name__} value {value!r} as a boolean")


def to_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str):
        return datetime.fromisoformat(value.strip())
    if isinstance(value, bytes):
        return datetime.fromisoformat(value.decode("ascii").strip())
    raise TypeError(f"Cannot read {type(value).__name__} value {value!r} as a timestamp")
