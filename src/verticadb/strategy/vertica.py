"""
Vertica-specific strategy implementation.

This module implements the DatabaseStrategy interface for Vertica. It handles
Vertica's particulars such as:
- Session autocommit toggled with SET SESSION AUTOCOMMIT (sessions may
  default to manual commit)
- Case-sensitive identifiers, so no identifier case normalization
- Metadata retrieval from the v_catalog system views
- varbinary/varchar(65000) for file and text columns, AUTO_INCREMENT identity
- SEGMENTED BY / PARTITION BY clauses on CREATE TABLE
"""
import logging
from typing import TYPE_CHECKING, Any

from verticadb.exceptions import DATABASE_ERROR_PATTERNS, TransactionError
from verticadb.sql import literal as sql_literal
from verticadb.strategy.base import DatabaseStrategy, register_strategy
from verticadb.types import default_type_literal, normalize_type
from verticadb.types import specific_type_literal

if TYPE_CHECKING:
    from verticadb.connection import ConnectionWrapper
    from verticadb.options import DatabaseOptions
    from verticadb.types import ColumnSpec

logger = logging.getLogger(__name__)

AUTOCOMMIT_ON = 'SET SESSION AUTOCOMMIT TO ON'
AUTOCOMMIT_OFF = 'SET SESSION AUTOCOMMIT TO OFF'

ISOLATION_LEVELS = {
    'read uncommitted': 'READ UNCOMMITTED',
    'read committed': 'READ COMMITTED',
    'repeatable read': 'REPEATABLE READ',
    'serializable': 'SERIALIZABLE',
}

MAX_VARCHAR_SIZE = 65000
PRIMARY_KEY_CONSTRAINT = 'p'


@register_strategy('vertica')
class VerticaStrategy(DatabaseStrategy):
    """Vertica-specific operations.
    """

    # Vertica is case sensitive, identifiers pass through unchanged
    identifier_input_default = None
    identifier_output_default = None
    supports_create_table_if_not_exists = True
    supports_drop_table_if_exists = True
    supports_transaction_isolation_levels = True

    auto_increment_sql = 'AUTO_INCREMENT'

    @property
    def dialect_name(self) -> str:
        """Return the dialect identifier for Vertica."""
        return 'vertica'

    @classmethod
    def get_required_options(cls) -> list[str]:
        """Return required options for Vertica connections."""
        return ['hostname', 'username', 'database', 'port']

    def build_connect_kwargs(self, options: 'DatabaseOptions') -> dict[str, Any]:
        """Build vertica_python.connect() keyword arguments."""
        kwargs: dict[str, Any] = {
            'host': options.hostname,
            'port': options.port,
            'user': options.username,
            'password': options.password or '',
            'database': options.database,
            'session_label': options.appname,
        }
        if options.timeout:
            kwargs['connection_timeout'] = options.timeout
        kwargs.update(options.connect_args)
        return kwargs

    def configure_connection(self, raw_conn: Any) -> None:
        """Put a new session in autocommit mode.

        Vertica sessions may start in manual commit mode, the wrapper assumes
        autocommit.
        """
        logger.debug(AUTOCOMMIT_ON)
        self._execute_raw(raw_conn, AUTOCOMMIT_ON)

    def enable_autocommit(self, cn: 'ConnectionWrapper') -> None:
        cn.execute(AUTOCOMMIT_ON)
        cn.autocommit = True

    def disable_autocommit(self, cn: 'ConnectionWrapper') -> None:
        cn.execute(AUTOCOMMIT_OFF)
        cn.autocommit = False

    def begin_transaction(self, cn: 'ConnectionWrapper', isolation: str | None = None) -> None:
        """Turn autocommit off, then BEGIN.
        """
        if isolation is not None:
            level = ISOLATION_LEVELS.get(isolation.lower())
            if level is None:
                raise TransactionError(f'Unsupported isolation level: {isolation}')
            begin = f'BEGIN TRANSACTION ISOLATION LEVEL {level}'
        else:
            begin = 'BEGIN'
        self.disable_autocommit(cn)
        cn.execute(begin)

    def commit_transaction(self, cn: 'ConnectionWrapper') -> None:
        cn.execute('COMMIT')

    def rollback_transaction(self, cn: 'ConnectionWrapper') -> None:
        cn.execute('ROLLBACK')

    @property
    def error_patterns(self) -> list[tuple[Any, type]]:
        return DATABASE_ERROR_PATTERNS

    @property
    def last_insert_id_sql(self) -> str:
        return 'SELECT LAST_INSERT_ID()'

    @property
    def copy_stats_sql(self) -> str:
        return 'SELECT GET_NUM_ACCEPTED_ROWS() AS accepted, GET_NUM_REJECTED_ROWS() AS rejected'

    def type_literal(self, column: 'ColumnSpec') -> str:
        """Render a column type.

        File columns become varbinary(65000) and text columns
        varchar(65000); everything else uses the default mapping.
        """
        if column.primary_key and column.auto_increment:
            return self.auto_increment_sql
        generic = normalize_type(column.type, text=column.text, size=column.size)
        if generic is None:
            return specific_type_literal(str(column.type), column.size)
        if generic.name == 'file':
            return f'varbinary({MAX_VARCHAR_SIZE})'
        if generic.name == 'text':
            return f'varchar({MAX_VARCHAR_SIZE})'
        return default_type_literal(generic)

    def literal(self, value: Any) -> str:
        return sql_literal(value)

    def tables_sql(self, schema: str | None = None) -> tuple[str, tuple]:
        """List tables from v_catalog.tables."""
        if schema is None:
            return 'SELECT table_name FROM v_catalog.tables ORDER BY table_name', ()
        sql = """
SELECT table_name
FROM v_catalog.tables
WHERE table_schema = %s
ORDER BY table_name
"""
        return sql, (schema,)

    def columns_sql(self, table: str, schema: str | None = None) -> tuple[str, tuple]:
        """Describe columns, joining primary key constraints.
        """
        params: tuple = (table,)
        schema_filter = ''
        if schema is not None:
            schema_filter = '\n  AND columns.table_schema = %s'
            params = (table, schema)
        sql = f"""
SELECT
    columns.column_name,
    constraint_columns.constraint_type,
    columns.is_nullable,
    columns.column_default,
    columns.data_type,
    columns.is_identity
FROM v_catalog.columns
LEFT OUTER JOIN v_catalog.constraint_columns
    ON constraint_columns.table_id = columns.table_id
    AND constraint_columns.column_name = columns.column_name
    AND constraint_columns.constraint_type = '{PRIMARY_KEY_CONSTRAINT}'
WHERE columns.table_name = %s{schema_filter}
ORDER BY columns.ordinal_position
"""
        return sql, params

    def create_table_suffix_sql(self, order_by: str | None = None,
                                segmented_by: str | None = None,
                                partition_by: str | None = None,
                                **options: Any) -> str:
        """Projection and partition clauses, in Vertica's required order.
        """
        if options:
            raise TypeError(f'Unsupported table options: {sorted(options)}')
        clauses = []
        if order_by:
            clauses.append(f'ORDER BY {order_by}')
        if segmented_by:
            clauses.append(f'SEGMENTED BY {segmented_by}')
        if partition_by:
            clauses.append(f'PARTITION BY {partition_by}')
        return ''.join(f' {clause}' for clause in clauses)

    def alter_column_type_sql(self, table: str, column: 'ColumnSpec') -> str:
        return (f'ALTER TABLE {self.quote_identifier(table)} '
                f'ALTER COLUMN {self.quote_identifier(column.name)} '
                f'SET DATA TYPE {self.type_literal(column)}')
