"""
Statement execution against a wrapped Vertica connection.

The Cursor checks the connection is open, reports the statement to the
connection's sink, runs it on a native vertica_python cursor and converts
native errors through the error classifier. Results come back as a lazily
iterated, single-pass ResultSet.
"""
import logging
import time
from collections.abc import Iterator, Sequence
from functools import wraps
from typing import TYPE_CHECKING, Any

from verticadb.exceptions import ConnectionClosedError, NativeError
from verticadb.exceptions import ValidationError, classify_error
from verticadb.sink import StatementRecord
from verticadb.types import TypeConverter

if TYPE_CHECKING:
    from verticadb.connection import ConnectionWrapper

logger = logging.getLogger(__name__)

FETCH_SIZE = 5000


def dumpsql(func):
    """Decorator reporting statements and parameters to the connection's sink."""
    @wraps(func)
    def wrapper(self, operation: str, *args: Any, **kwargs: Any):
        start = time.time()
        error = None
        try:
            return func(self, operation, *args, **kwargs)
        except Exception as exc:
            error = exc
            raise
        finally:
            elapsed = time.time() - start
            self.connwrapper.addcall(elapsed)
            params = args[0] if args else None
            self.connwrapper.sink.record(StatementRecord(operation, params, elapsed, error))
    return wrapper


class Cursor:
    """Statement executor over one wrapped connection.
    """

    def __init__(self, connection_wrapper: 'ConnectionWrapper') -> None:
        self.connwrapper = connection_wrapper
        self.dbapi_cursor = None
        self._closed = True

    def _check_open(self) -> None:
        if self.connwrapper.closed:
            raise ConnectionClosedError('Connection to server was closed.')

    def _classify(self, exc: BaseException):
        return classify_error(exc, self.connwrapper.strategy.error_patterns)

    @property
    def description(self) -> list | None:
        """Column descriptions for last query."""
        if self.dbapi_cursor is None:
            return None
        return self.dbapi_cursor.description

    @property
    def rowcount(self) -> int:
        """Number of rows produced/affected by last operation."""
        if self.dbapi_cursor is None:
            return -1
        return self.dbapi_cursor.rowcount

    def close(self) -> None:
        """Close the native cursor, keeping it for rowcount/description."""
        if self.dbapi_cursor is not None and not self._closed:
            self._closed = True
            self.dbapi_cursor.close()

    def __enter__(self) -> 'Cursor':
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None,
                 exc_tb: Any | None) -> None:
        self.close()

    def _open(self) -> Any:
        self.close()
        self.dbapi_cursor = self.connwrapper.driver_connection.cursor()
        self._closed = False
        return self.dbapi_cursor

    def run(self, sql: str, args: Sequence | dict | None = None) -> 'ResultSet':
        """Execute a statement and return its (lazy) result set.

        Raises ConnectionClosedError before reaching the driver when the
        connection is closed.
        """
        self._check_open()
        self._execute(sql, args or None)
        return ResultSet(self)

    @dumpsql
    def _execute(self, sql: str, args: Sequence | dict | None = None) -> None:
        self._open()
        try:
            if args:
                self.dbapi_cursor.execute(sql, TypeConverter.convert_params(args))
            else:
                self.dbapi_cursor.execute(sql)
        except NativeError as exc:
            raise self._classify(exc) from exc

    def executemany(self, sql: str, seq_of_parameters: Sequence) -> int:
        """Execute against all parameter sequences."""
        self._check_open()
        if not seq_of_parameters:
            logger.warning('executemany called with no parameter sequences')
            return 0
        return self._executemany(sql, seq_of_parameters)

    @dumpsql
    def _executemany(self, sql: str, seq_of_parameters: Sequence) -> int:
        self._open()
        params = [TypeConverter.convert_params(p) for p in seq_of_parameters]
        try:
            self.dbapi_cursor.executemany(sql, params)
        except NativeError as exc:
            raise self._classify(exc) from exc
        return self.dbapi_cursor.rowcount

    def copy(self, sql: str, stream: Any) -> None:
        """Run a COPY ... FROM STDIN statement, streaming `stream` as its body.

        `stream` is str, bytes or an object with a read() method. The driver
        sends the end-of-data marker once the stream is exhausted.
        """
        self._check_open()
        self._copy(sql, stream=stream)

    @dumpsql
    def _copy(self, sql: str, stream: Any) -> None:
        self._open()
        try:
            self.dbapi_cursor.copy(sql, stream)
        except NativeError as exc:
            raise self._classify(exc) from exc

    def fetch_records(self) -> Iterator[Sequence]:
        """Iterate native records in chunks."""
        while True:
            try:
                chunk = self.dbapi_cursor.fetchmany(FETCH_SIZE)
            except NativeError as exc:
                raise self._classify(exc) from exc
            if not chunk:
                break
            yield from chunk


def _column_name(description_item: Any) -> str:
    name = getattr(description_item, 'name', None)
    if name is None:
        name = description_item[0]
    return name


class ResultSet:
    """Rows of one executed statement.

    Column names are read once from the cursor description. Rows are built
    lazily as dicts; the set can be iterated once.
    """

    def __init__(self, cursor: Cursor) -> None:
        self.cursor = cursor
        cn = cursor.connwrapper
        description = cursor.description
        names = [] if description is None else [_column_name(d) for d in description]
        if cn.identifiers.maps_output:
            names = [cn.identifiers.output_identifier(n) for n in names]
        self.columns: list[str] = names
        self._converter = cn.timestamp_converter
        self._consumed = False

    @property
    def rowcount(self) -> int:
        return self.cursor.rowcount

    def __iter__(self) -> Iterator[dict[str, Any]]:
        if self._consumed:
            raise ValidationError('Result set already consumed, re-execute the statement')
        self._consumed = True
        return self._rows()

    def _rows(self) -> Iterator[dict[str, Any]]:
        try:
            if not self.columns:
                return
            for record in self.cursor.fetch_records():
                yield self._make_row(record)
        finally:
            self.cursor.close()

    def _make_row(self, record: Sequence) -> dict[str, Any]:
        if self._converter is None:
            return dict(zip(self.columns, record))
        convert = self._converter.convert
        return {name: convert(value) for name, value in zip(self.columns, record)}

    def all(self) -> list[dict[str, Any]]:
        return list(self)

    def first(self) -> dict[str, Any] | None:
        """First row, reading (and discarding) the rest."""
        rows = self.all()
        return rows[0] if rows else None
