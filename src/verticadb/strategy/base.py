"""
Base strategy interface for database operations.

Defines the abstract base class that a database-specific strategy implements.
The strategy is the adapter's capability set: the executor, transaction
controller, schema introspector and DDL generator are generic and ask the
strategy for every dialect-specific statement, default and type literal.
"""
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

from verticadb.sql import quote_identifier as sql_quote_identifier

if TYPE_CHECKING:
    from verticadb.connection import ConnectionWrapper
    from verticadb.options import DatabaseOptions
    from verticadb.types import ColumnSpec

# Registry of dialect name -> strategy class
# Defined here to avoid circular imports (concrete strategies import from base)
_STRATEGY_REGISTRY: dict[str, type['DatabaseStrategy']] = {}


def register_strategy(dialect: str):
    """Decorator to register a strategy class for a dialect.

    Usage:
        @register_strategy('vertica')
        class VerticaStrategy(DatabaseStrategy):
            ...
    """
    def decorator(cls: type['DatabaseStrategy']) -> type['DatabaseStrategy']:
        _STRATEGY_REGISTRY[dialect] = cls
        return cls
    return decorator


class DatabaseStrategy(ABC):
    """Base class for database-specific operations.
    """

    identifier_input_default: str | None = None
    identifier_output_default: str | None = None
    supports_create_table_if_not_exists: bool = False
    supports_drop_table_if_exists: bool = False
    supports_transaction_isolation_levels: bool = False

    @contextmanager
    def _cursor(self, raw_conn: Any, sql: str):
        """Context manager for a raw native cursor, used before a wrapper exists.
        """
        cursor = raw_conn.cursor()
        try:
            cursor.execute(sql)
            yield cursor
        finally:
            cursor.close()

    def _execute_raw(self, raw_conn: Any, sql: str) -> None:
        with self._cursor(raw_conn, sql):
            pass

    @property
    @abstractmethod
    def dialect_name(self) -> str:
        """Return the dialect identifier (e.g., 'vertica')."""

    @classmethod
    @abstractmethod
    def get_required_options(cls) -> list[str]:
        """Return list of required option field names for this dialect.
        """

    @classmethod
    def validate_options(cls, options: 'DatabaseOptions') -> None:
        """Validate options for this dialect.

        Raises
            ValueError: If any required field is None or 0
        """
        for field in cls.get_required_options():
            if not getattr(options, field):
                raise ValueError(f'field {field} cannot be None or 0')

    @abstractmethod
    def build_connect_kwargs(self, options: 'DatabaseOptions') -> dict[str, Any]:
        """Return keyword arguments for the native driver's connect().
        """

    @abstractmethod
    def configure_connection(self, raw_conn: Any) -> None:
        """Configure a freshly opened native session.

        Args:
            raw_conn: The raw native connection (not wrapped)
        """

    @abstractmethod
    def enable_autocommit(self, cn: 'ConnectionWrapper') -> None:
        """Turn session autocommit on.
        """

    @abstractmethod
    def disable_autocommit(self, cn: 'ConnectionWrapper') -> None:
        """Turn session autocommit off.
        """

    @abstractmethod
    def begin_transaction(self, cn: 'ConnectionWrapper', isolation: str | None = None) -> None:
        """Start a transaction on the connection.
        """

    @abstractmethod
    def commit_transaction(self, cn: 'ConnectionWrapper') -> None:
        """Commit the current transaction.
        """

    @abstractmethod
    def rollback_transaction(self, cn: 'ConnectionWrapper') -> None:
        """Roll back the current transaction.
        """

    @property
    @abstractmethod
    def error_patterns(self) -> list[tuple[Any, type]]:
        """Ordered (regex, exception class) rules used to classify native errors.
        """

    @property
    @abstractmethod
    def last_insert_id_sql(self) -> str:
        """Query returning the last generated identity value of the session.
        """

    @abstractmethod
    def type_literal(self, column: 'ColumnSpec') -> str:
        """Render the column's type as a dialect type literal.
        """

    @abstractmethod
    def literal(self, value: Any) -> str:
        """Render a Python value as a SQL literal.
        """

    @abstractmethod
    def tables_sql(self, schema: str | None = None) -> tuple[str, tuple]:
        """Catalog query listing table names.

        Returns
            (sql, params) tuple
        """

    @abstractmethod
    def columns_sql(self, table: str, schema: str | None = None) -> tuple[str, tuple]:
        """Catalog query describing a table's columns.

        Returns
            (sql, params) tuple
        """

    @abstractmethod
    def create_table_suffix_sql(self, **options: Any) -> str:
        """Dialect clauses appended after the column definition list.
        """

    @abstractmethod
    def alter_column_type_sql(self, table: str, column: 'ColumnSpec') -> str:
        """ALTER TABLE statement changing a column's data type.
        """

    def quote_identifier(self, identifier: str) -> str:
        """Quote a database identifier.

        Default implementation uses standard SQL double-quote escaping.
        """
        return sql_quote_identifier(identifier)

    @property
    @abstractmethod
    def copy_stats_sql(self) -> str:
        """Query returning (accepted, rejected) row counts of the last bulk load.
        """
