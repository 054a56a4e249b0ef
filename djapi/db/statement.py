"""
db/statement.py
---------------
Prepared statements on top of a DB-API 2.0 connection.

DB-API has no prepared statement object, so ``PreparedStatement`` keeps the
SQL, an array of 1-based parameter slots and the driver cursor together.
SQL is always written with ``?`` placeholders; they are rewritten to the
driver's ``paramstyle`` once, at preparation time.
"""

from typing import Any, Optional

from djapi.db.cursor import GENERATED_KEY_COLUMN, ResultCursor

_UNSET = object()


def translate_placeholders(sql: str, paramstyle: str = "qmark") -> tuple[str, int]:
    """
    Rewrite ``?`` placeholders for the given paramstyle.

    Placeholders inside quoted literals, quoted identifiers, ``--`` comments
    and ``/* */`` block comments are left alone. For ``format`` and ``pyformat``
    drivers a literal ``%`` is doubled, but only when the statement has parameters.

    Returns:
        The rewritten SQL and the number of placeholders found.
    """
    if paramstyle not in ("qmark", "numeric", "named", "format", "pyformat"):
        raise ValueError(f"Unsupported paramstyle: {paramstyle}")

    parts: list[str] = []
    count = 0
    quote: Optional[str] = None
    comment = False
    # Index just past the "/*" that opened the current block comment.
    block_start: Optional[int] = None
    for ch in sql:
        if comment:
            comment = ch != "\n"
            parts.append(ch)
        elif block_start is not None:
            if ch == "/" and len(parts) > block_start and parts[-1] == "*":
                block_start = None
            parts.append(ch)
        elif quote:
            if ch == quote:
                quote = None
            parts.append(ch)
        elif ch in ("'", '"'):
            quote = ch
            parts.append(ch)
        elif ch == "-" and parts and parts[-1] == "-":
            comment = True
            parts.append(ch)
        elif ch == "*" and parts and parts[-1] == "/":
            parts.append(ch)
            block_start = len(parts)
        elif ch == "?":
            count += 1
            parts.append(_marker(paramstyle, count))
        else:
            parts.append(ch)

    # Escaping of % needs a second pass: we only know the count at the end.
    if count and paramstyle in ("format", "pyformat"):
        parts = ["%%" if p == "%" else p for p in parts]
    return "".join(parts), count


def _marker(paramstyle: str, position: int) -> str:
    if paramstyle == "qmark":
        return "?"
    if paramstyle == "numeric":
        return f":{position}"
    if paramstyle == "named":
        return f":p{position}"
    return "%s"


class PreparedStatement:
    """
    A parameterized SQL command bound to one connection.

    Args:
        connection: An open DB-API connection.
        sql: SQL text using ``?`` placeholders.
        paramstyle: The driver module's ``paramstyle``.
        return_generated_keys: Keep generated key information after inserts.

    Raises:
        Whatever the driver raises when a cursor cannot be opened, or
        ValueError for an unsupported paramstyle.
    """

    def __init__(
        self,
        connection,
        sql: str,
        paramstyle: str = "qmark",
        return_generated_keys: bool = False,
    ):
        if connection is None:
            raise ValueError("No open connection")
        self.sql = sql
        self.paramstyle = paramstyle
        self.return_generated_keys = return_generated_keys
        self.operation, self.parameter_count = translate_placeholders(sql, paramstyle)
        self._values: list[Any] = [_UNSET] * self.parameter_count
        self._cursor = connection.cursor()
        self._result: Optional[ResultCursor] = None
        self._executed = False
        self.closed = False

    def __repr__(self) -> str:
        return f"PreparedStatement({self.sql!r})"

    # ── Binding ───────────────────────────────────────────

    def bind(self, position: int, value: Any) -> None:
        """
        Set the value of the parameter at a 1-based position.

        Raises:
            IndexError: If the position does not name a placeholder.
        """
        self._check_open()
        if not 1 <= position <= self.parameter_count:
            raise IndexError(
                f"Parameter index {position} out of range (1..{self.parameter_count})"
            )
        self._values[position - 1] = value

    def parameters(self):
        """The bound values, shaped the way the driver expects them."""
        for position, value in enumerate(self._values, start=1):
            if value is _UNSET:
                raise ValueError(f"No value specified for parameter {position}")
        if self.paramstyle == "named":
            return {f"p{i}": v for i, v in enumerate(self._values, start=1)}
        return tuple(self._values)

    # ── Execution ─────────────────────────────────────────

    def _execute(self) -> None:
        self._check_open()
        params = self.parameters()
        self._discard_result()
        if self.parameter_count:
            self._cursor.execute(self.operation, params)
        else:
            self._cursor.execute(self.operation)
        self._executed = True

    def execute_query(self) -> ResultCursor:
        """
        Run the statement and return a cursor placed before the first row.

        Raises:
            ValueError: If the statement does not produce a result set.
        """
        self._execute()
        if self._cursor.description is None:
            raise ValueError(f"Statement did not return a result set: {self.sql}")
        self._result = ResultCursor(self._cursor)
        return self._result

    def execute_update(self) -> int:
        """Run an INSERT, UPDATE or DELETE and return the affected row count."""
        self._execute()
        return self._cursor.rowcount

    def generated_keys(self) -> ResultCursor:
        """
        Return the keys generated by the last execution.

        Rows produced by the statement itself (e.g. ``RETURNING id``) are
        used when present; otherwise the driver's ``lastrowid`` is exposed as
        a single ``GENERATED_KEY`` column. No keys gives an empty cursor.
        """
        self._check_open()
        if not self.return_generated_keys:
            raise ValueError("Statement was not prepared to return generated keys")
        if not self._executed:
            raise ValueError("Statement has not been executed")
        if self._cursor.description is not None:
            self._result = ResultCursor(self._cursor)
        else:
            key = getattr(self._cursor, "lastrowid", None)
            rows = [(key,)] if key else []
            self._result = ResultCursor.from_rows([GENERATED_KEY_COLUMN], rows)
        return self._result

    # ── Lifecycle ─────────────────────────────────────────

    def _discard_result(self) -> None:
        if self._result is not None:
            self._result.close()
            self._result = None

    def _check_open(self) -> None:
        if self.closed:
            raise ValueError("Statement is closed")

    def close(self) -> None:
        """Close the statement and any cursor it produced. Idempotent."""
        if self.closed:
            return
        self._discard_result()
        self.closed = True
        self._cursor.close()
