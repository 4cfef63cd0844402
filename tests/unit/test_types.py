import datetime
import decimal

import numpy as np
import pandas as pd
import pytest
import sqlalchemy as sa
from dateutil import tz
from verticadb.sql import IdentifierPolicy, literal, literal_blob, make_placeholders
from verticadb.sql import quote_identifier
from verticadb.strategy import get_strategy
from verticadb.types import ColumnSpec, TimestampConverter, TypeConverter
from verticadb.types import normalize_type, schema_column_type


@pytest.fixture
def strategy():
    return get_strategy('vertica')


@pytest.mark.parametrize(('column', 'expected'), [
    (ColumnSpec('f', bytes), 'varbinary(65000)'),
    (ColumnSpec('f', sa.LargeBinary), 'varbinary(65000)'),
    (ColumnSpec('t', str, text=True), 'varchar(65000)'),
    (ColumnSpec('t', sa.Text), 'varchar(65000)'),
    (ColumnSpec('s', str), 'varchar(255)'),
    (ColumnSpec('s', str, size=50), 'varchar(50)'),
    (ColumnSpec('s', sa.String(20)), 'varchar(20)'),
    (ColumnSpec('i', int), 'integer'),
    (ColumnSpec('i', sa.BigInteger), 'bigint'),
    (ColumnSpec('b', bool), 'boolean'),
    (ColumnSpec('x', float), 'double precision'),
    (ColumnSpec('n', sa.Numeric(10, 2)), 'numeric(10, 2)'),
    (ColumnSpec('n', decimal.Decimal), 'numeric'),
    (ColumnSpec('ts', datetime.datetime), 'timestamp'),
    (ColumnSpec('ts', sa.DateTime(timezone=True)), 'timestamptz'),
    (ColumnSpec('d', datetime.date), 'date'),
    (ColumnSpec('v', 'varchar'), 'varchar(255)'),
    (ColumnSpec('v', 'int'), 'int'),
])
def test_type_literal(strategy, column, expected):
    assert strategy.type_literal(column) == expected


def test_auto_increment_primary_key(strategy):
    column = ColumnSpec('id', int, primary_key=True, auto_increment=True)
    assert strategy.type_literal(column) == 'AUTO_INCREMENT'
    column = ColumnSpec('id', int, primary_key=True)
    assert strategy.type_literal(column) == 'integer'


def test_text_distinct_from_plain_string(strategy):
    text = strategy.type_literal(ColumnSpec('t', str, text=True))
    plain = strategy.type_literal(ColumnSpec('t', str))
    assert text != plain


def test_normalize_type_dialect_string():
    assert normalize_type('varchar') is None
    assert normalize_type(bool).name == 'boolean'
    with pytest.raises(TypeError):
        normalize_type(list)


def test_literal_blob():
    assert literal_blob(b'\x00\x01\xab') == "HEX_TO_BINARY('0x0001ab')"
    assert literal(b'') == "HEX_TO_BINARY('0x')"
    assert literal(bytearray(b'\xff')) == "HEX_TO_BINARY('0xff')"


@pytest.mark.parametrize(('value', 'expected'), [
    (None, 'NULL'),
    (True, 'TRUE'),
    (False, 'FALSE'),
    (42, '42'),
    (1.5, '1.5'),
    (decimal.Decimal('10.25'), '10.25'),
    ("it's", "'it''s'"),
    (datetime.date(2024, 1, 31), "'2024-01-31'"),
    (datetime.datetime(2024, 1, 31, 8, 30), "'2024-01-31 08:30:00'"),
    (datetime.time(8, 30), "'08:30:00'"),
])
def test_literal(value, expected):
    assert literal(value) == expected


def test_literal_unsupported():
    with pytest.raises(TypeError):
        literal(object())


def test_quote_identifier_and_placeholders():
    assert quote_identifier('MixedCase') == '"MixedCase"'
    assert quote_identifier('a"b') == '"a""b"'
    assert make_placeholders(2) == '%s, %s'


@pytest.mark.parametrize(('db_type', 'tag'), [
    ('varchar(255)', 'string'),
    ('varchar(65000)', 'string'),
    ('char(10)', 'string'),
    ('long varchar(1000000)', 'string'),
    ('int', 'integer'),
    ('integer', 'integer'),
    ('bigint', 'integer'),
    ('numeric(10,0)', 'integer'),
    ('numeric(37,15)', 'decimal'),
    ('float', 'float'),
    ('double precision', 'float'),
    ('boolean', 'boolean'),
    ('date', 'date'),
    ('timestamp', 'datetime'),
    ('timestamptz', 'datetime'),
    ('time', 'time'),
    ('varbinary(65000)', 'blob'),
    ('long varbinary(1000000)', 'blob'),
    ('binary(16)', 'blob'),
    ('interval', 'interval'),
    ('interval day to second', 'interval'),
    ('uuid', 'uuid'),
    ('geometry', None),
    ('', None),
    (None, None),
])
def test_schema_column_type(db_type, tag):
    assert schema_column_type(db_type) == tag


def test_identifier_policy():
    identity = IdentifierPolicy()
    assert identity.input_identifier('MixedCase') == 'MixedCase'
    assert identity.output_identifier('MixedCase') == 'MixedCase'
    assert not identity.maps_output

    policy = IdentifierPolicy(input='upper', output='lower')
    assert policy.input_identifier('items') == 'ITEMS'
    assert policy.output_identifier('ITEMS') == 'items'
    assert policy.maps_output


def test_type_converter():
    assert TypeConverter.convert_value(np.int64(3)) == 3
    assert type(TypeConverter.convert_value(np.int64(3))) is int
    assert TypeConverter.convert_value(float('nan')) is None
    assert TypeConverter.convert_value(pd.NaT) is None
    assert TypeConverter.convert_value(pd.NA) is None
    assert TypeConverter.convert_value(pd.Timestamp('2024-01-01')) == datetime.datetime(2024, 1, 1)
    assert TypeConverter.convert_params((np.float64(1.5), 'a')) == (1.5, 'a')
    assert TypeConverter.convert_params({'a': np.nan}) == {'a': None}


def test_timestamp_converter():
    converter = TimestampConverter('UTC', 'America/New_York')
    converted = converter.convert(datetime.datetime(2024, 1, 15, 12, 0))
    assert converted.tzinfo is not None
    assert converted.utcoffset() == datetime.timedelta(hours=-5)
    assert converted.replace(tzinfo=None) == datetime.datetime(2024, 1, 15, 7, 0)


def test_timestamp_converter_leaves_other_values():
    converter = TimestampConverter('UTC', 'America/New_York')
    aware = datetime.datetime(2024, 1, 15, 12, 0, tzinfo=tz.UTC)
    assert converter.convert(aware) is aware
    assert converter.convert(datetime.date(2024, 1, 15)) == datetime.date(2024, 1, 15)
    assert converter.convert('2024-01-15 12:00') == '2024-01-15 12:00'


def test_timestamp_converter_unknown_zone():
    with pytest.raises(ValueError, match='Unknown timezone'):
        TimestampConverter('Not/AZone', None)
