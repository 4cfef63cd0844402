"""
CREATE/DROP/ALTER TABLE generation for Vertica.

Examples
    gen = TableGenerator()
    gen.primary_key('id')
    gen.column('name', str, null=False)
    gen.column('body', str, text=True)
    create_table(cn, 'items', gen, segmented_by='HASH(id) ALL NODES')
"""
import logging
from typing import TYPE_CHECKING, Any

from verticadb.cache import Cache
from verticadb.types import ColumnSpec

if TYPE_CHECKING:
    from verticadb.connection import ConnectionWrapper
    from verticadb.strategy import DatabaseStrategy

logger = logging.getLogger(__name__)


class TableGenerator:
    """Collects column definitions for a CREATE TABLE statement."""

    def __init__(self) -> None:
        self.columns: list[ColumnSpec] = []

    def column(self, name: str, type: Any, **options: Any) -> 'TableGenerator':
        """Add a column; options are ColumnSpec fields (null, default, unique, text, size ...)."""
        self.columns.append(ColumnSpec(name, type, **options))
        return self

    def primary_key(self, name: str, type: Any = int, auto_increment: bool = True) -> 'TableGenerator':
        self.columns.append(ColumnSpec(name, type, primary_key=True, auto_increment=auto_increment))
        return self


def type_literal(strategy: 'DatabaseStrategy', column: ColumnSpec) -> str:
    return strategy.type_literal(column)


def column_definition_sql(strategy: 'DatabaseStrategy', column: ColumnSpec) -> str:
    """Column definition: name, type, DEFAULT, NULL/NOT NULL, UNIQUE, PRIMARY KEY."""
    parts = [strategy.quote_identifier(column.name), type_literal(strategy, column)]
    if column.default is not None:
        parts.append(f'DEFAULT {strategy.literal(column.default)}')
    if column.null is True:
        parts.append('NULL')
    elif column.null is False:
        parts.append('NOT NULL')
    if column.unique:
        parts.append('UNIQUE')
    if column.primary_key:
        parts.append('PRIMARY KEY')
    return ' '.join(parts)


def create_table_sql(strategy: 'DatabaseStrategy', name: str, generator: TableGenerator, *,
                     if_not_exists: bool = False, **table_options: Any) -> str:
    """CREATE TABLE statement with the dialect's clauses after the column list.

    >>> from verticadb.strategy import get_strategy
    >>> gen = TableGenerator().column('requested_day', 'varchar', null=False)
    >>> create_table_sql(get_strategy('vertica'), 'items', gen,
    ...                  segmented_by='HASH(requested_day) ALL NODES',
    ...                  partition_by='requested_day')
    'CREATE TABLE "items" ("requested_day" varchar(255) NOT NULL) SEGMENTED BY HASH(requested_day) ALL NODES PARTITION BY requested_day'
    """
    if not generator.columns:
        raise ValueError(f'Table {name} has no columns')
    exists = ' IF NOT EXISTS' if if_not_exists and strategy.supports_create_table_if_not_exists else ''
    columns = ', '.join(column_definition_sql(strategy, c) for c in generator.columns)
    suffix = strategy.create_table_suffix_sql(**table_options)
    return f'CREATE TABLE{exists} {strategy.quote_identifier(name)} ({columns}){suffix}'


def drop_table_sql(strategy: 'DatabaseStrategy', name: str, if_exists: bool = False) -> str:
    exists = ' IF EXISTS' if if_exists and strategy.supports_drop_table_if_exists else ''
    return f'DROP TABLE{exists} {strategy.quote_identifier(name)}'


def create_table(cn: 'ConnectionWrapper', name: str, generator: TableGenerator, *,
                 if_not_exists: bool = False, **table_options: Any) -> None:
    """Create a table.

    Vertica options: order_by, segmented_by, partition_by (raw SQL clauses).
    """
    table = cn.identifiers.input_identifier(name)
    cn.execute(create_table_sql(cn.strategy, table, generator,
                                if_not_exists=if_not_exists, **table_options))
    Cache.get_instance().clear_for_table(name)


def drop_table(cn: 'ConnectionWrapper', name: str, if_exists: bool = False) -> None:
    table = cn.identifiers.input_identifier(name)
    cn.execute(drop_table_sql(cn.strategy, table, if_exists))
    Cache.get_instance().clear_for_table(name)


def alter_column_type(cn: 'ConnectionWrapper', table: str, column: str, type: Any,
                      **options: Any) -> None:
    """Change a column's data type (ALTER COLUMN ... SET DATA TYPE)."""
    spec = ColumnSpec(cn.identifiers.input_identifier(column), type, **options)
    cn.execute(cn.strategy.alter_column_type_sql(cn.identifiers.input_identifier(table), spec))
    Cache.get_instance().clear_for_table(table)
