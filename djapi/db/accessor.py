"""
db/accessor.py
--------------
Base class for data access objects built on prepared statements.

A concrete accessor subclasses ``RecordAccessor`` and writes one method per
SQL statement:

    class UserAccessor(RecordAccessor):

        def find_name(self, user_id: int) -> Optional[str]:
            self.prepare("SELECT name FROM users WHERE id = ?")
            self.bind_int(1, user_id)
            try:
                if self.execute_query():
                    return self.get_string("name")
                return None
            finally:
                self.release_all()

No helper raises. Failures are logged, recorded on ``last_error`` and turned
into a sentinel value or an ``Outcome``.
"""

import operator
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Optional

from djapi.db.configuration import ConnectionConfig
from djapi.db.cursor import ResultCursor, to_bool, to_int, to_string, to_timestamp
from djapi.db.statement import PreparedStatement
from djapi.errors import (
    ConnectionFailure,
    DJAPIError,
    ParameterBindFailure,
    QueryExecutionFailure,
    ResourceReleaseFailure,
    ResultReadFailure,
    StatementPrepareFailure,
)
from djapi.utils.logger import TRACE, get_logger

logger = get_logger(__name__)

NO_GENERATED_KEYS = 2
RETURN_GENERATED_KEYS = 1


class Outcome(Enum):
    """
    Result of an execute or cursor move.

    Only ROW and DONE are truthy, so ``if accessor.execute_query():`` reads
    as "a row is available", while ``is Outcome.NO_ROWS`` and
    ``is Outcome.ERROR`` keep the two failure shapes apart.
    """
    ROW = "row"
    NO_ROWS = "no_rows"
    DONE = "done"
    ERROR = "error"

    def __bool__(self) -> bool:
        return self in (Outcome.ROW, Outcome.DONE)


class RecordAccessor:
    """
    Owns one connection, at most one prepared statement and at most one
    result cursor.

    Args:
        config: Connection parameters. Defaults to the process-wide
            ``ConnectionConfig.get_instance()``, read once here.

    Not safe for concurrent use; give each thread its own accessor.
    """

    def __init__(self, config: Optional[ConnectionConfig] = None):
        self.config = config or ConnectionConfig.get_instance()
        self.connection = None
        self.paramstyle = "qmark"
        self.statement: Optional[PreparedStatement] = None
        self.cursor: Optional[ResultCursor] = None
        self.last_error: Optional[DJAPIError] = None
        try:
            driver = self.config.import_driver()
            self.paramstyle = getattr(driver, "paramstyle", "qmark")
            self.connection = self.config.open(driver)
        except ConnectionFailure as e:
            self._fail(e)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    # ── Failure bookkeeping ───────────────────────────────

    def _fail(self, error: DJAPIError, detail: str = "") -> None:
        self.last_error = error
        logger.error(error.message)
        if detail:
            logger.debug(detail)
        if error.cause is not None:
            logger.log(TRACE, f"Returned error: {error.cause!r}")

    # ── Statement preparation ─────────────────────────────

    def prepare(self, sql: str, generated_keys: int = NO_GENERATED_KEYS) -> None:
        """
        Compile ``sql`` into the current statement.

        The previous cursor and statement are released first.

        Args:
            sql: SQL text with ``?`` placeholders.
            generated_keys: RETURN_GENERATED_KEYS to allow
                ``fetch_generated_keys()`` after execution.
        """
        self.release_all()
        self.last_error = None
        try:
            self.statement = PreparedStatement(
                self.connection,
                sql,
                paramstyle=self.paramstyle,
                return_generated_keys=generated_keys == RETURN_GENERATED_KEYS,
            )
        except Exception as e:
            self.statement = None
            self._fail(
                StatementPrepareFailure("Unable to prepare query.", e),
                f"Current request: {sql}",
            )

    # ── Parameter binding ─────────────────────────────────

    def _bind(self, kind: str, position: int, value: Any, check: Callable[[Any], Any]) -> None:
        self.last_error = None
        try:
            if self.statement is None:
                raise ValueError("No statement prepared")
            self.statement.bind(position, check(value))
        except Exception as e:
            self._fail(
                ParameterBindFailure(f"Unable to set {kind}: {value!r}", e),
                f"Current Statement: {self.statement!r}",
            )

    def bind_int(self, position: int, value: int) -> None:
        self._bind("int", position, value, _check_int)

    def bind_string(self, position: int, value: Optional[str]) -> None:
        self._bind("string", position, value, _check_type(str, nullable=True))

    def bind_timestamp(self, position: int, value: Optional[datetime]) -> None:
        self._bind("timestamp", position, value, _check_type(datetime, nullable=True))

    def bind_boolean(self, position: int, value: bool) -> None:
        self._bind("boolean", position, value, _check_type(bool))

    # ── Execution ─────────────────────────────────────────

    def _first_row(self, cursor: ResultCursor) -> Outcome:
        self.cursor = cursor
        if self.advance_cursor():
            return Outcome.ROW
        self._drop_cursor()
        return Outcome.NO_ROWS if self.last_error is None else Outcome.ERROR

    def execute_query(self) -> Outcome:
        """
        Run the current statement as a query and move to its first row.

        Returns:
            ROW with ``cursor`` on the first row; NO_ROWS or ERROR with
            ``cursor`` cleared.
        """
        self._drop_cursor()
        self.last_error = None
        try:
            if self.statement is None:
                raise ValueError("No statement prepared")
            cursor = self.statement.execute_query()
        except Exception as e:
            self._fail(
                QueryExecutionFailure("Unable to execute query.", e),
                f"Current Statement: {self.statement!r}",
            )
            return Outcome.ERROR
        return self._first_row(cursor)

    def execute_update(self) -> Outcome:
        """Run the current statement as an INSERT, UPDATE or DELETE."""
        self._drop_cursor()
        self.last_error = None
        try:
            if self.statement is None:
                raise ValueError("No statement prepared")
            count = self.statement.execute_update()
        except Exception as e:
            self._fail(
                QueryExecutionFailure("Unable to execute update.", e),
                f"Current Statement: {self.statement!r}",
            )
            return Outcome.ERROR
        logger.debug(f"Update affected {count} row(s): {self.statement!r}")
        return Outcome.DONE

    def fetch_generated_keys(self) -> Outcome:
        """
        Load the keys generated by the last insert into ``cursor``.

        Returns:
            ROW with ``cursor`` on the first key; NO_ROWS or ERROR with
            ``cursor`` cleared.
        """
        self._drop_cursor()
        self.last_error = None
        try:
            if self.statement is None:
                raise ValueError("No statement prepared")
            cursor = self.statement.generated_keys()
        except Exception as e:
            self._fail(
                QueryExecutionFailure("Unable to get generated keys!", e),
                f"Current Statement: {self.statement!r}",
            )
            return Outcome.ERROR
        return self._first_row(cursor)

    # ── Cursor ────────────────────────────────────────────

    def advance_cursor(self) -> Outcome:
        """
        Move the cursor down one row.

        Returns:
            ROW if a row is now current, NO_ROWS when the rows are
            exhausted, ERROR if the cursor could not be moved.
        """
        self.last_error = None
        try:
            if self.cursor is None:
                raise ValueError("No open result cursor")
            moved = self.cursor.next()
        except Exception as e:
            self._fail(
                ResultReadFailure("ResultSet error.", e),
                f"Current Statement: {self.statement!r}",
            )
            return Outcome.ERROR
        return Outcome.ROW if moved else Outcome.NO_ROWS

    def _read(self, kind: str, column: str, convert: Callable[[Any], Any], default: Any) -> Any:
        self.last_error = None
        try:
            if self.cursor is None:
                raise ValueError("No open result cursor")
            value = self.cursor.value(column)
            if value is None:
                logger.debug(f"Column {column} is NULL, returning {default!r}")
                return default
            return convert(value)
        except Exception as e:
            self._fail(
                ResultReadFailure(f"Unable to get {kind} {column!r} from result set", e),
                f"Current Statement: {self.statement!r}",
            )
            return default

    def get_int(self, column: str) -> int:
        """Integer value of ``column``; -1 for NULL or on failure."""
        return self._read("integer", column, to_int, -1)

    def get_string(self, column: str) -> str:
        """String value of ``column``; an empty string for NULL or on failure."""
        return self._read("string", column, to_string, "")

    def get_boolean(self, column: str) -> bool:
        """Boolean value of ``column``; False for NULL or on failure."""
        return self._read("boolean", column, to_bool, False)

    def get_timestamp(self, column: str) -> Optional[datetime]:
        """Timestamp value of ``column``; None for NULL or on failure."""
        return self._read("timestamp", column, to_timestamp, None)

    def was_null(self) -> bool:
        """True if the last column read held SQL NULL."""
        return self.cursor is not None and self.cursor.was_null

    # ── Resource release ──────────────────────────────────

    def _drop_cursor(self) -> None:
        if self.cursor is not None:
            self.cursor.close()
            self.cursor = None

    def release_all(self) -> None:
        """
        Release the cursor, then the statement. Each release is attempted
        even if the other fails. The connection stays open.
        """
        cursor, self.cursor = self.cursor, None
        statement, self.statement = self.statement, None
        if cursor is not None:
            try:
                cursor.close()
            except Exception as e:
                self._fail(ResourceReleaseFailure("Unable to close result cursor", e))
        if statement is not None:
            try:
                statement.close()
            except Exception as e:
                self.last_error = ResourceReleaseFailure("Unable to close Statement!", e)
                logger.warning(self.last_error.message)
                logger.debug(f"Current Statement: {statement!r}")
                logger.debug(f"Returned error: {e!r}")

    def close(self) -> None:
        """Release everything including the connection. Idempotent."""
        self.release_all()
        connection, self.connection = self.connection, None
        if connection is None:
            return
        try:
            connection.close()
            logger.log(TRACE, f"Connection closed on {self.config.url}")
        except Exception as e:
            self._fail(ResourceReleaseFailure("Unable to close connection", e))


def _check_int(value: Any) -> int:
    if isinstance(value, bool):
        raise TypeError(f"Expected int, got bool: {value!r}")
    return operator.index(value)


def _check_type(expected: type, nullable: bool = False) -> Callable[[Any], Any]:
    def check(value: Any) -> Any:
        if value is None and nullable:
            return None
        if not isinstance(value, expected):
            raise TypeError(f"Expected {expected.__name__}, got {type(value).__name__}: {value!r}")
        return value
    return check
