"""
Schema introspection through the Vertica v_catalog views.
"""
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from verticadb.cache import cacheable
from verticadb.strategy.vertica import PRIMARY_KEY_CONSTRAINT
from verticadb.types import schema_column_type

if TYPE_CHECKING:
    from verticadb.connection import ConnectionWrapper

logger = logging.getLogger(__name__)


@dataclass
class ColumnSchema:
    """One column as described by the catalog.

    `type` is the generic tag derived from `db_type` (see schema_column_type).
    """
    name: str
    db_type: str
    allow_null: bool
    default: Any
    primary_key: bool
    auto_increment: bool
    type: str | None


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _run(cn: 'ConnectionWrapper', sql: str, params: tuple) -> list[tuple]:
    """Catalog rows as value tuples, independent of output column naming."""
    with cn.cursor() as cursor:
        return [tuple(row.values()) for row in cursor.run(sql, params)]


def list_tables(cn: 'ConnectionWrapper', schema: str | None = None) -> list[str]:
    """Table names, optionally restricted to one schema.
    """
    sql, params = cn.strategy.tables_sql(schema)
    return [cn.identifiers.output_identifier(name) for (name,) in _run(cn, sql, params)]


@cacheable('describe_table')
def describe_table(cn: 'ConnectionWrapper', table: str,
                   schema: str | None = None) -> dict[str, ColumnSchema]:
    """Describe a table's columns, keyed by column name in catalog order.

    Returns an empty mapping when the table does not exist.
    """
    table_name = cn.identifiers.input_identifier(table)
    sql, params = cn.strategy.columns_sql(table_name, schema)

    columns: dict[str, ColumnSchema] = {}
    for name, constraint_type, is_nullable, default, data_type, is_identity in _run(cn, sql, params):
        name = cn.identifiers.output_identifier(name)
        columns[name] = ColumnSchema(
            name=name,
            db_type=data_type,
            allow_null=bool(is_nullable),
            default=_blank_to_none(default),
            primary_key=constraint_type == PRIMARY_KEY_CONSTRAINT,
            auto_increment=bool(is_identity),
            type=schema_column_type(data_type),
        )
    logger.debug(f'Described {table_name}: {len(columns)} columns')
    return columns


def table_exists(cn: 'ConnectionWrapper', table: str, schema: str | None = None) -> bool:
    return table in list_tables(cn, schema)


def get_table_columns(cn: 'ConnectionWrapper', table: str, schema: str | None = None,
                      bypass_cache: bool = False) -> list[str]:
    """Column names of a table in their defined order."""
    return list(describe_table(cn, table, schema, bypass_cache=bypass_cache))


def get_table_primary_keys(cn: 'ConnectionWrapper', table: str, schema: str | None = None,
                           bypass_cache: bool = False) -> list[str]:
    columns = describe_table(cn, table, schema, bypass_cache=bypass_cache)
    return [name for name, column in columns.items() if column.primary_key]
