"""
Vertica connection handling with SQLAlchemy connection pools.

This module provides:
1. The `connect()` function for opening wrapped Vertica sessions
2. The `ConnectionWrapper` class exposing query methods over one session
3. Pool creation and management through a thread-safe registry

The ConnectionWrapper is the primary database client, providing methods like:
- execute(sql, *args) - Execute SQL and return affected row count
- select(sql, *args) - Execute SELECT and return results
- select_row(sql, *args) - Execute SELECT expecting exactly 1 row
- insert_rows(table, rows) - Bulk insert multiple rows
- copy(sql, data) - Stream data through COPY ... FROM STDIN
"""
import atexit
import dataclasses
import hashlib
import logging
import threading
from collections.abc import Callable
from typing import Any, Self

import sqlalchemy as sa
import vertica_python
from sqlalchemy.pool import NullPool, Pool, QueuePool
from verticadb import bulk, schema
from verticadb.cursor import Cursor
from verticadb.exceptions import DatabaseConnectionError, DatabaseError, NativeError
from verticadb.exceptions import ValidationError
from verticadb.options import DatabaseOptions, use_iterdict_data_loader
from verticadb.sink import LoggingSink, StatementSink
from verticadb.sql import IdentifierPolicy, make_placeholders
from verticadb.strategy import DatabaseStrategy, get_strategy
from verticadb.transaction import active_transaction
from verticadb.types import TimestampConverter

__all__ = [
    'ConnectionWrapper',
    'connect',
    'get_pool_for_options',
    'dispose_all_pools',
]

logger = logging.getLogger(__name__)

_pool_registry: dict[str, Pool] = {}
_pool_registry_lock = threading.RLock()

OUTPUT_COLUMN = 'output'


def _pool_key(options: DatabaseOptions) -> str:
    """Pool registry key covering every driver argument and pool setting.

    The password enters as a digest, never in clear text.
    """
    kwargs = get_strategy(options.drivername).build_connect_kwargs(options)
    if kwargs.get('password'):
        kwargs['password'] = hashlib.sha256(str(kwargs['password']).encode()).hexdigest()
    connect_args = '&'.join(f'{k}={kwargs[k]!r}' for k in sorted(kwargs))
    return (f'{options.drivername}?{connect_args}_{options.use_pool}'
            f'_{options.pool_max_connections}_{options.pool_max_idle_time}'
            f'_{options.pool_wait_timeout}')


def get_pool_for_options(options: DatabaseOptions,
                         connect_func: Callable[..., Any] | None = None) -> Pool:
    """Get or create the connection pool for the given options.

    Without `use_pool` the pool is a NullPool, so every checkout opens a new
    native session and every release closes it.
    """
    key = _pool_key(options)

    with _pool_registry_lock:
        if key in _pool_registry:
            logger.debug(f'Using existing pool for {options.drivername}')
            return _pool_registry[key]

        strategy = get_strategy(options.drivername)
        connect_kwargs = strategy.build_connect_kwargs(options)
        connect_func = connect_func or vertica_python.connect

        def creator():
            return connect_func(**connect_kwargs)

        if not options.use_pool:
            pool = NullPool(creator, reset_on_return='rollback')
        else:
            pool = QueuePool(
                creator,
                pool_size=options.pool_max_connections,
                max_overflow=10,
                timeout=options.pool_wait_timeout,
                recycle=options.pool_max_idle_time,
                reset_on_return='rollback',
            )

        def on_connect(dbapi_connection, connection_record):
            strategy.configure_connection(dbapi_connection)

        sa.event.listen(pool, 'connect', on_connect)

        _pool_registry[key] = pool
        logger.debug(f'Created new pool for {options.drivername}')

        return pool


def dispose_all_pools() -> None:
    """Dispose all pools in the registry.
    """
    with _pool_registry_lock:
        for pool in _pool_registry.values():
            pool.dispose()
        _pool_registry.clear()
        logger.debug('All connection pools disposed')


atexit.register(dispose_all_pools)


def _query_args(args: tuple) -> Any:
    """Accept both execute(sql, a, b) and execute(sql, (a, b)) / execute(sql, {...})."""
    if len(args) == 1 and isinstance(args[0], (list, tuple, dict)):
        return args[0]
    return args or None


def _first_value(row: dict[str, Any]) -> Any:
    return next(iter(row.values()))


class ConnectionWrapper:
    """Wraps one native Vertica session to run statements and track calls

    This class:
    1. Tracks query execution counts and timing
    2. Checks the native session is open before every statement
    3. Returns the session to its pool exactly once on close
    4. Supports context manager protocol for explicit resource management
    5. Provides access to the native connection via driver_connection

    `handle` is either a pool checkout (SQLAlchemy proxied connection) or a
    bare native connection.
    """

    def __init__(self, handle: Any, options: DatabaseOptions,
                 strategy: DatabaseStrategy | None = None,
                 sink: StatementSink | None = None) -> None:
        self.handle = handle
        self.options = options
        self.strategy = strategy or get_strategy(options.drivername)
        self.sink = sink or LoggingSink()
        self.identifiers = IdentifierPolicy.from_options(options, self.strategy)
        self.timestamp_converter = TimestampConverter.from_options(options)
        self.autocommit = True
        self.in_transaction = False
        self.calls = 0
        self.time = 0
        self._released = False

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None,
                 exc_tb: Any | None) -> None:
        """Return the session to the pool when exiting the context manager
        """
        self.close()

    @property
    def driver_connection(self) -> Any:
        """The native vertica_python connection."""
        return getattr(self.handle, 'driver_connection', self.handle)

    @property
    def closed(self) -> bool:
        """Whether the session is unusable.

        Asks the native connection, the server may have ended the session.
        """
        if self._released:
            return True
        native = self.driver_connection
        return native is None or native.closed()

    @property
    def dialect(self) -> str:
        return self.strategy.dialect_name

    def close(self) -> None:
        """Release the session, only the first call has any effect.

        A session still in a transaction or in manual commit mode is rolled
        back and switched to autocommit before it goes back to the pool.
        When that fails the session is invalidated instead of reused.
        """
        if self._released:
            return
        try:
            self._reset_session()
        finally:
            self._released = True
            self.handle.close()
        logger.debug(f'Connection closed: {self.calls} queries in {self.time:.2f}s '
                     f'(avg: {self.time/max(1,self.calls):.3f}s per query)')

    def _reset_session(self) -> None:
        if self.autocommit and not self.in_transaction:
            return
        try:
            tx = active_transaction(self)
            if tx is not None:
                logger.warning(f'Closing connection {id(self)} with an open transaction, rolling back')
                tx.rollback()
            else:
                if self.in_transaction:
                    self.strategy.rollback_transaction(self)
                    self.in_transaction = False
                self.strategy.enable_autocommit(self)
        except DatabaseError as exc:
            logger.error(f'Could not restore autocommit, discarding session: {exc}')
            self._invalidate(exc)

    def _invalidate(self, exc: BaseException | None = None) -> None:
        # Pool checkouts are discarded on close, bare native sessions just close
        invalidate = getattr(self.handle, 'invalidate', None)
        if invalidate is not None:
            invalidate(exc)

    def addcall(self, elapsed: float) -> None:
        """Track execution statistics
        """
        self.time += elapsed
        self.calls += 1

    def cursor(self) -> Cursor:
        return Cursor(self)

    def execute(self, sql: str, *args: Any) -> int:
        """Execute a statement and return the affected row count.

        Vertica reports DML counts as a one-row result with an OUTPUT column.
        """
        with self.cursor() as cursor:
            result = cursor.run(sql, _query_args(args))
            if [c.lower() for c in result.columns] == [OUTPUT_COLUMN]:
                row = result.first()
                return _first_value(row) if row else 0
            return result.rowcount

    def execute_insert(self, sql: str, *args: Any) -> Any:
        """Run an INSERT and return the identity value it generated.

        LAST_INSERT_ID() is session-wide, the value is only meaningful while
        no other statement inserts on this session in between.
        """
        self.execute(sql, *args)
        return self.select_scalar(self.strategy.last_insert_id_sql)

    def execute_dui(self, sql: str, *args: Any) -> Any:
        """Run a DELETE/UPDATE/INSERT and return the first row's OUTPUT value.

        Falls back to the first column, None when no row comes back.
        """
        with self.cursor() as cursor:
            row = cursor.run(sql, _query_args(args)).first()
        if row is None:
            return None
        for name, value in row.items():
            if name.lower() == OUTPUT_COLUMN:
                return value
        return _first_value(row)

    def select(self, sql: str, *args: Any, **kwargs: Any) -> Any:
        """Execute a SELECT and load the rows with the configured data loader.
        """
        with self.cursor() as cursor:
            result = cursor.run(sql, _query_args(args))
            rows = result.all()
        logger.debug(f'Select query returned {len(rows)} rows')
        return self.options.data_loader(rows, result.columns, **kwargs)

    @use_iterdict_data_loader
    def select_column(self, sql: str, *args: Any) -> list[Any]:
        """Execute a query and return a single column as a list.
        """
        return [_first_value(row) for row in self.select(sql, *args)]

    @use_iterdict_data_loader
    def select_row(self, sql: str, *args: Any) -> dict[str, Any]:
        """Execute a query and return its single row.

        Raises ValidationError if the query returns zero or multiple rows.
        """
        data = self.select(sql, *args)
        if len(data) != 1:
            raise ValidationError(f'Expected one row, got {len(data)}')
        return data[0]

    @use_iterdict_data_loader
    def select_row_or_none(self, sql: str, *args: Any) -> dict[str, Any] | None:
        data = self.select(sql, *args)
        if len(data) == 1:
            return data[0]
        return None

    def select_scalar(self, sql: str, *args: Any) -> Any:
        """Execute a query and return a single scalar value.

        Raises ValidationError if the query returns zero or multiple rows.
        """
        return _first_value(self.select_row(sql, *args))

    def select_scalar_or_none(self, sql: str, *args: Any) -> Any | None:
        row = self.select_row_or_none(sql, *args)
        if row is None:
            return None
        return _first_value(row)

    def _insert_sql(self, table: str, columns: list[str] | tuple[str, ...]) -> str:
        quote = self.strategy.quote_identifier
        quoted_table = quote(self.identifiers.input_identifier(table))
        quoted_columns = ', '.join(quote(self.identifiers.input_identifier(c)) for c in columns)
        return f'INSERT INTO {quoted_table} ({quoted_columns}) VALUES ({make_placeholders(len(columns))})'

    def insert_row(self, table: str, fields: list[str], values: list[Any]) -> int:
        """Insert a row into a table using the supplied list of fields and values.
        """
        if len(fields) != len(values):
            raise ValidationError('fields must be same length as values')
        return self.execute(self._insert_sql(table, fields), tuple(values))

    def insert_rows(self, table: str, rows: list[dict[str, Any]] | tuple[dict[str, Any], ...]) -> int:
        """Insert multiple rows into a table.

        Columns are taken from the first row, missing keys insert NULL.
        """
        if not rows:
            logger.debug('Skipping insert of empty rows')
            return 0
        cols = tuple(rows[0].keys())
        params = [tuple(row.get(col) for col in cols) for row in rows]
        with self.cursor() as cursor:
            return cursor.executemany(self._insert_sql(table, cols), params)

    def list_tables(self, schema_name: str | None = None) -> list[str]:
        return schema.list_tables(self, schema_name)

    def describe_table(self, table: str, schema_name: str | None = None,
                       bypass_cache: bool = False) -> dict[str, 'schema.ColumnSchema']:
        return schema.describe_table(self, table, schema_name, bypass_cache=bypass_cache)

    def copy(self, sql: str, data: Any, allow_rejected: bool = False) -> int:
        """Bulk load `data` with a COPY ... FROM STDIN statement."""
        return bulk.copy(self, sql, data, allow_rejected=allow_rejected)


def _resolve_options(options: DatabaseOptions | dict[str, Any] | None,
                     kw: dict[str, Any]) -> DatabaseOptions:
    if options is None:
        return DatabaseOptions(**kw)
    if isinstance(options, dict):
        return DatabaseOptions(**(options | kw))
    if kw:
        return dataclasses.replace(options, **kw)
    return options


def connect(options: DatabaseOptions | dict[str, Any] | None = None, *,
            sink: StatementSink | None = None, **kw: Any) -> ConnectionWrapper:
    """Connect to Vertica

    Args:
        options: Can be:
                - DatabaseOptions object
                - Dictionary of options
                - None, with options specified as keyword arguments
        sink: Statement sink for this connection (defaults to LoggingSink)
        **kw: Additional keyword arguments to override options

    Connection pooling options:
        use_pool: Whether to use connection pooling (default: False)
        pool_max_connections: Maximum connections in pool (default: 5)
        pool_max_idle_time: Maximum seconds a connection can be idle (default: 300)
        pool_wait_timeout: Maximum seconds to wait for a connection (default: 30)

    Every new session is switched to autocommit before it is handed out.

    Returns
        ConnectionWrapper object for the session

    Raises
        DatabaseConnectionError: the session could not be opened
    """
    options = _resolve_options(options, kw)
    pool = get_pool_for_options(options)

    try:
        handle = pool.connect()
    except (NativeError, OSError) as exc:
        logger.error(f'Could not connect to {options.hostname}:{options.port}: {exc}')
        raise DatabaseConnectionError(str(exc), native=exc) from exc

    return ConnectionWrapper(handle, options, sink=sink)
