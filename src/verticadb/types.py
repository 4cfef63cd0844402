"""
Consolidated type handling for database operations.

This module provides:
- TypeConverter: Convert Python values to driver-compatible parameters
- TimestampConverter: Reinterpret naive timestamps read from the database
- Generic column types: normalize builtin/SQLAlchemy types to a generic name
- schema_column_type: Map a declared Vertica type to a generic type tag
"""
import datetime
import decimal
import logging
import math
import re
from dataclasses import dataclass, field
from typing import Any

import numpy as np
import pandas as pd
import sqlalchemy as sa
from dateutil import tz

logger = logging.getLogger(__name__)


# Type Converter - Handles Python -> Database value conversion

class TypeConverter:
    """Universal type conversion for database parameters.

    Handles NumPy and Pandas scalars and missing-value markers.
    """

    @staticmethod
    def convert_value(value: Any) -> Any:
        """Convert a single value to a database-compatible format."""
        if value is None:
            return None

        if isinstance(value, float) and (math.isnan(value) or math.isinf(value)):
            return None

        if isinstance(value, type(pd.NaT)):
            return None

        if isinstance(value, np.datetime64):
            if np.isnat(value):
                return None
            return pd.Timestamp(value).to_pydatetime()

        if isinstance(value, (np.floating, np.integer, np.bool_)):
            if isinstance(value, np.floating) and np.isnan(value):
                return None
            return value.item()

        if isinstance(value, pd.Timestamp):
            return value.to_pydatetime()

        if value is pd.NA:
            return None

        return value

    @staticmethod
    def convert_params(params: Any) -> Any:
        """Convert a collection of parameters for database operations."""
        if params is None:
            return None

        if isinstance(params, dict):
            return {k: TypeConverter.convert_value(v) for k, v in params.items()}

        if isinstance(params, list | tuple):
            if params and all(isinstance(p, (list, tuple)) for p in params):
                return type(params)(TypeConverter.convert_params(p) for p in params)
            return type(params)(TypeConverter.convert_value(v) for v in params)

        return TypeConverter.convert_value(params)


# Timestamp conversion - Database -> Python

class TimestampConverter:
    """Convert naive timestamps from the database zone to the application zone.

    A zone name of None means the local zone.
    """

    def __init__(self, database_timezone: str | None = None,
                 application_timezone: str | None = None) -> None:
        self.source = self._zone(database_timezone)
        self.target = self._zone(application_timezone)

    @staticmethod
    def _zone(name: str | None) -> datetime.tzinfo:
        if name is None:
            return tz.tzlocal()
        zone = tz.gettz(name)
        if zone is None:
            raise ValueError(f'Unknown timezone: {name}')
        return zone

    @classmethod
    def from_options(cls, options: Any) -> 'TimestampConverter | None':
        """Converter for the options, None unless conversion is enabled."""
        if not options.convert_timezones:
            return None
        return cls(options.database_timezone, options.application_timezone)

    def convert(self, value: Any) -> Any:
        """Reinterpret naive datetimes, pass everything else through."""
        if isinstance(value, datetime.datetime) and value.tzinfo is None:
            return value.replace(tzinfo=self.source).astimezone(self.target)
        return value


# Generic column types - Python/SQLAlchemy -> generic name

@dataclass
class GenericType:
    """A normalized column type: generic name plus size options."""
    name: str
    size: int | None = None
    precision: int | None = None
    scale: int | None = None
    options: dict[str, Any] = field(default_factory=dict)


_BUILTIN_TYPES: dict[type, str] = {
    str: 'string',
    int: 'integer',
    float: 'float',
    bool: 'boolean',
    bytes: 'file',
    bytearray: 'file',
    decimal.Decimal: 'decimal',
    datetime.datetime: 'datetime',
    datetime.date: 'date',
    datetime.time: 'time',
    datetime.timedelta: 'interval',
}

# Ordered: subclasses before their bases
_SQLALCHEMY_TYPES: list[tuple[type, str]] = [
    (sa.Text, 'text'),
    (sa.String, 'string'),
    (sa.LargeBinary, 'file'),
    (sa.BigInteger, 'bigint'),
    (sa.SmallInteger, 'smallint'),
    (sa.Integer, 'integer'),
    (sa.Boolean, 'boolean'),
    (sa.Float, 'float'),
    (sa.Numeric, 'decimal'),
    (sa.DateTime, 'datetime'),
    (sa.Date, 'date'),
    (sa.Time, 'time'),
    (sa.Interval, 'interval'),
    (sa.Uuid, 'uuid'),
]


def normalize_type(column_type: Any, text: bool = False, size: int | None = None) -> GenericType | None:
    """Normalize a builtin or SQLAlchemy column type to a GenericType.

    Returns None for values that are not generic types (dialect strings).
    """
    if isinstance(column_type, type) and issubclass(column_type, sa.types.TypeEngine):
        column_type = column_type()

    if isinstance(column_type, sa.types.TypeEngine):
        for sa_type, name in _SQLALCHEMY_TYPES:
            if isinstance(column_type, sa_type):
                generic = GenericType(name)
                if isinstance(column_type, sa.String) and name == 'string':
                    generic.size = column_type.length or size
                if isinstance(column_type, sa.Numeric) and name == 'decimal':
                    generic.precision = column_type.precision
                    generic.scale = column_type.scale
                if isinstance(column_type, sa.DateTime):
                    generic.options['timezone'] = column_type.timezone
                return generic
        raise TypeError(f'Unsupported SQLAlchemy type: {column_type!r}')

    if isinstance(column_type, type):
        for builtin in (bool, *_BUILTIN_TYPES):
            if issubclass(column_type, builtin):
                name = _BUILTIN_TYPES[builtin]
                if name == 'string' and text:
                    name = 'text'
                return GenericType(name, size=size)
        raise TypeError(f'Unsupported column type: {column_type!r}')

    return None


DEFAULT_STRING_COLUMN_SIZE = 255

_SIZED_STRING_TYPES = {'varchar', 'char', 'character', 'character varying'}


def default_type_literal(generic: GenericType) -> str:
    """Dialect-neutral rendering of a generic type."""
    name = generic.name
    if name == 'string':
        return f'varchar({generic.size or DEFAULT_STRING_COLUMN_SIZE})'
    if name == 'text':
        return 'text'
    if name == 'decimal':
        if generic.precision is not None:
            if generic.scale is not None:
                return f'numeric({generic.precision}, {generic.scale})'
            return f'numeric({generic.precision})'
        return 'numeric'
    if name == 'datetime':
        return 'timestamptz' if generic.options.get('timezone') else 'timestamp'
    return {
        'integer': 'integer',
        'bigint': 'bigint',
        'smallint': 'smallint',
        'float': 'double precision',
        'boolean': 'boolean',
        'date': 'date',
        'time': 'time',
        'interval': 'interval',
        'file': 'blob',
        'uuid': 'uuid',
    }[name]


def specific_type_literal(type_name: str, size: int | None = None) -> str:
    """Render a dialect type given by name, sizing bare varchar/char.

    >>> specific_type_literal('varchar')
    'varchar(255)'
    >>> specific_type_literal('int')
    'int'
    """
    if size is not None:
        return f'{type_name}({size})'
    if type_name.lower() in _SIZED_STRING_TYPES:
        return f'{type_name}({DEFAULT_STRING_COLUMN_SIZE})'
    return type_name


# Schema type resolution - declared db type -> generic tag

SCHEMA_TYPE_PATTERNS: list[tuple[re.Pattern, str]] = [
    (re.compile(r'\A(?:long )?(?:character(?: varying)?|n?(?:var)?char|n?text|string|clob)', re.I), 'string'),
    (re.compile(r'\A(?:int(?:eger)?|(?:big|small|tiny)int|int[248])\b', re.I), 'integer'),
    (re.compile(r'\Adate\Z', re.I), 'date'),
    (re.compile(r'\A(?:(?:timestamp|datetime)(?:\(\d+\))?(?: with(?:out)? time zone)?|timestamptz)\Z', re.I), 'datetime'),
    (re.compile(r'\Atime(?:tz)?(?:\(\d+\))?(?: with(?:out)? time zone)?\Z', re.I), 'time'),
    (re.compile(r'\Abool(?:ean)?\Z', re.I), 'boolean'),
    (re.compile(r'\A(?:real|float[48]?|double(?: precision)?)', re.I), 'float'),
    (re.compile(r'\A(?:num(?:ber|eric)?|decimal|money)', re.I), 'decimal'),
    (re.compile(r'(?:long )?(?:var)?binary|bytea|[bc]lob|image|raw', re.I), 'blob'),
    (re.compile(r'\Ainterval', re.I), 'interval'),
    (re.compile(r'\Auuid\Z', re.I), 'uuid'),
]

_ZERO_SCALE_DECIMAL = re.compile(r'\A(?:num(?:ber|eric)?|decimal)\(\d+,\s*0\)\Z', re.I)


def schema_column_type(db_type: str | None) -> str | None:
    """Return the generic type tag for a declared database type.

    >>> schema_column_type('varchar(65000)')
    'string'
    >>> schema_column_type('varbinary(65000)')
    'blob'
    >>> schema_column_type('numeric(10,0)')
    'integer'
    """
    if not db_type:
        return None
    db_type = db_type.strip()
    for regex, tag in SCHEMA_TYPE_PATTERNS:
        if regex.search(db_type):
            if tag == 'decimal' and _ZERO_SCALE_DECIMAL.match(db_type):
                return 'integer'
            return tag
    return None


@dataclass
class ColumnSpec:
    """Column definition handed to the type mapper and DDL generator.

    `type` may be a builtin, a SQLAlchemy type (class or instance) or a
    dialect type name such as 'varchar' or 'int'.
    """
    name: str
    type: Any
    null: bool | None = None
    default: Any = None
    primary_key: bool = False
    auto_increment: bool = False
    unique: bool = False
    text: bool = False
    size: int | None = None
