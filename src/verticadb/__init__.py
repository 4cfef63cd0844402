"""
Vertica database access module.

All query/data operations can be called either as:
- Module functions: db.select(cn, sql, *args)
- ConnectionWrapper methods: cn.select(sql, *args)
"""
__version__ = '0.1.0'

from typing import Any

from verticadb.bulk import copy
from verticadb.connection import ConnectionWrapper, connect, dispose_all_pools
from verticadb.ddl import TableGenerator, alter_column_type, create_table
from verticadb.ddl import create_table_sql, drop_table
from verticadb.exceptions import CheckConstraintViolation, ConnectionClosedError
from verticadb.exceptions import ConstraintViolation, CopyRejectedError
from verticadb.exceptions import DatabaseConnectionError, DatabaseError
from verticadb.exceptions import ErrorKind, ForeignKeyConstraintViolation
from verticadb.exceptions import GenericDatabaseError, NotNullConstraintViolation
from verticadb.exceptions import SerializationFailure, TransactionError
from verticadb.exceptions import UniqueConstraintViolation, ValidationError
from verticadb.exceptions import register_error_pattern
from verticadb.options import DatabaseOptions, iterdict_data_loader
from verticadb.options import pandas_data_loader
from verticadb.schema import ColumnSchema, describe_table, get_table_columns
from verticadb.schema import get_table_primary_keys, list_tables, table_exists
from verticadb.sink import CaptureSink, LoggingSink, StatementRecord
from verticadb.transaction import Transaction as transaction
from verticadb.transaction import begin_transaction, commit_transaction
from verticadb.transaction import rollback_transaction
from verticadb.types import ColumnSpec


def execute(cn: ConnectionWrapper, sql: str, *args: Any) -> int:
    """Execute a SQL statement and return affected row count.
    """
    return cn.execute(sql, *args)


delete = execute
insert = execute
update = execute


def execute_insert(cn: ConnectionWrapper, sql: str, *args: Any) -> Any:
    """Execute an INSERT and return the generated identity value.
    """
    return cn.execute_insert(sql, *args)


def execute_dui(cn: ConnectionWrapper, sql: str, *args: Any) -> Any:
    """Execute a DELETE/UPDATE/INSERT and return its OUTPUT value.
    """
    return cn.execute_dui(sql, *args)


def select(cn: ConnectionWrapper, sql: str, *args: Any, **kwargs: Any) -> Any:
    """Execute a SELECT query.
    """
    return cn.select(sql, *args, **kwargs)


def select_column(cn: ConnectionWrapper, sql: str, *args: Any) -> list[Any]:
    """Execute a query and return a single column as a list.
    """
    return cn.select_column(sql, *args)


def select_row(cn: ConnectionWrapper, sql: str, *args: Any) -> dict[str, Any]:
    """Execute a query and return a single row.

    Raises ValidationError if the query returns zero or multiple rows.
    """
    return cn.select_row(sql, *args)


def select_row_or_none(cn: ConnectionWrapper, sql: str, *args: Any) -> dict[str, Any] | None:
    """Execute a query and return a single row or None if no rows found.
    """
    return cn.select_row_or_none(sql, *args)


def select_scalar(cn: ConnectionWrapper, sql: str, *args: Any) -> Any:
    """Execute a query and return a single scalar value.

    Raises ValidationError if the query returns zero or multiple rows.
    """
    return cn.select_scalar(sql, *args)


def select_scalar_or_none(cn: ConnectionWrapper, sql: str, *args: Any) -> Any | None:
    """Execute a query and return a single scalar value or None if no rows found.
    """
    return cn.select_scalar_or_none(sql, *args)


def insert_row(cn: ConnectionWrapper, table: str, fields: list[str],
               values: list[Any]) -> int:
    """Insert a row into a table using the supplied list of fields and values.
    """
    return cn.insert_row(table, fields, values)


def insert_rows(cn: ConnectionWrapper, table: str,
                rows: list[dict[str, Any]] | tuple[dict[str, Any], ...]) -> int:
    """Insert multiple rows into a table.
    """
    return cn.insert_rows(table, rows)


def type_literal(cn: ConnectionWrapper, column: ColumnSpec) -> str:
    """Vertica type literal for a column definition.
    """
    return cn.strategy.type_literal(column)


__all__ = [
    'connect',
    'ConnectionWrapper',
    'dispose_all_pools',
    'transaction',
    'begin_transaction',
    'commit_transaction',
    'rollback_transaction',
    'DatabaseOptions',
    'iterdict_data_loader',
    'pandas_data_loader',
    'execute',
    'delete',
    'insert',
    'update',
    'execute_insert',
    'execute_dui',
    'select',
    'select_column',
    'select_row',
    'select_row_or_none',
    'select_scalar',
    'select_scalar_or_none',
    'insert_row',
    'insert_rows',
    'copy',
    'list_tables',
    'describe_table',
    'table_exists',
    'get_table_columns',
    'get_table_primary_keys',
    'ColumnSchema',
    'ColumnSpec',
    'TableGenerator',
    'create_table',
    'create_table_sql',
    'drop_table',
    'alter_column_type',
    'type_literal',
    'LoggingSink',
    'CaptureSink',
    'StatementRecord',
    'register_error_pattern',
    'ErrorKind',
    'DatabaseError',
    'GenericDatabaseError',
    'DatabaseConnectionError',
    'ConnectionClosedError',
    'ConstraintViolation',
    'NotNullConstraintViolation',
    'UniqueConstraintViolation',
    'ForeignKeyConstraintViolation',
    'CheckConstraintViolation',
    'SerializationFailure',
    'CopyRejectedError',
    'TransactionError',
    'ValidationError',
]
