import datetime

import pytest
from fixtures.mocks import native_error
from verticadb.exceptions import ConnectionClosedError, GenericDatabaseError
from verticadb.exceptions import NotNullConstraintViolation, ValidationError
from verticadb.sink import CaptureSink


def test_run_returns_rows_as_dicts(fake_native, make_wrapper):
    fake_native.respond(r'FROM items', columns=['id', 'Name'], rows=[(1, 'a'), (2, 'b')])
    cn = make_wrapper()

    result = cn.cursor().run('SELECT id, Name FROM items')

    assert result.columns == ['id', 'Name']
    assert result.all() == [{'id': 1, 'Name': 'a'}, {'id': 2, 'Name': 'b'}]


def test_result_set_is_single_pass(fake_native, make_wrapper):
    fake_native.respond(r'FROM items', columns=['id'], rows=[(1,)])
    result = make_wrapper().cursor().run('SELECT id FROM items')

    assert list(result) == [{'id': 1}]
    with pytest.raises(ValidationError):
        list(result)


def test_statement_without_result(make_wrapper):
    result = make_wrapper().cursor().run('CREATE TABLE t (a int)')
    assert result.columns == []
    assert result.all() == []


def test_closed_connection_never_reaches_driver(fake_native, make_wrapper, sink):
    cn = make_wrapper()
    cn.close()
    sent = len(fake_native.executed)

    with pytest.raises(ConnectionClosedError, match='Connection to server was closed.'):
        cn.execute('SELECT 1')
    with pytest.raises(ConnectionClosedError):
        cn.select('SELECT 1')

    assert len(fake_native.executed) == sent
    assert sink.records == []


def test_server_side_close_detected(fake_native, make_wrapper):
    cn = make_wrapper()
    fake_native.drop()

    assert cn.closed
    with pytest.raises(ConnectionClosedError):
        cn.execute('SELECT 1')
    assert fake_native.executed == []


def test_native_errors_are_classified(fake_native, make_wrapper):
    message = 'Severity: ERROR, Message: Cannot set a NOT NULL column, Sqlstate: 22004'
    fake_native.respond(r'INSERT', error=native_error(message))
    fake_native.respond(r'bogus', error=native_error('Syntax error at or near "bogus"'))
    cn = make_wrapper()

    with pytest.raises(NotNullConstraintViolation) as excinfo:
        cn.execute('INSERT INTO items (name) VALUES (NULL)')
    assert excinfo.value.message == message

    with pytest.raises(GenericDatabaseError) as excinfo:
        cn.execute('bogus')
    assert str(excinfo.value) == 'Syntax error at or near "bogus"'


def test_sink_records_success_and_failure(fake_native, make_wrapper, sink):
    fake_native.respond(r'bad', error=native_error('Sqlstate: 42601'))
    cn = make_wrapper()

    cn.execute('SELECT %s', 1)
    with pytest.raises(GenericDatabaseError):
        cn.execute('bad')

    assert sink.sqls == ['SELECT %s', 'bad']
    assert sink.records[0].args == (1,)
    assert sink.records[0].error is None
    assert isinstance(sink.records[1].error, GenericDatabaseError)
    assert cn.calls == 2


def test_sinks_are_per_connection(fake_native, options):
    from verticadb.connection import ConnectionWrapper

    first, second = CaptureSink(), CaptureSink()
    ConnectionWrapper(fake_native, options, sink=first).execute('SELECT 1')
    ConnectionWrapper(fake_native, options, sink=second).execute('SELECT 2')

    assert first.sqls == ['SELECT 1']
    assert second.sqls == ['SELECT 2']


def test_column_names_pass_through_unchanged(fake_native, make_wrapper):
    fake_native.respond(r'FROM t', columns=['MixedCase', 'lower', 'UPPER'], rows=[(1, 2, 3)])
    row = make_wrapper().select_row('SELECT * FROM t')
    assert list(row) == ['MixedCase', 'lower', 'UPPER']


def test_output_identifier_policy(fake_native, make_wrapper):
    fake_native.respond(r'FROM t', columns=['ID', 'Name'], rows=[(1, 'a')])
    row = make_wrapper(identifier_output='lower').select_row('SELECT * FROM t')
    assert row == {'id': 1, 'name': 'a'}


def test_timestamps_untouched_without_conversion(fake_native, make_wrapper):
    ts = datetime.datetime(2024, 1, 15, 12, 0)
    fake_native.respond(r'FROM t', columns=['ts'], rows=[(ts,)])
    assert make_wrapper().select_scalar('SELECT ts FROM t') == ts


def test_timestamps_converted_when_enabled(fake_native, make_wrapper):
    ts = datetime.datetime(2024, 1, 15, 12, 0)
    day = datetime.date(2024, 1, 15)
    fake_native.respond(r'FROM t', columns=['ts', 'day', 'n'], rows=[(ts, day, 5)])
    cn = make_wrapper(convert_timezones=True, database_timezone='UTC',
                      application_timezone='America/New_York')

    row = cn.select_row('SELECT ts, day, n FROM t')

    assert row['ts'].utcoffset() == datetime.timedelta(hours=-5)
    assert row['ts'].replace(tzinfo=None) == datetime.datetime(2024, 1, 15, 7, 0)
    assert row['day'] == day
    assert row['n'] == 5


def test_parameters_converted(fake_native, make_wrapper):
    import numpy as np

    make_wrapper().execute('SELECT %s, %s', np.int64(4), float('nan'))
    assert fake_native.executed[-1] == ('SELECT %s, %s', (4, None))


def test_fetch_in_chunks(fake_native, make_wrapper, mocker):
    mocker.patch('verticadb.cursor.FETCH_SIZE', 2)
    fake_native.respond(r'FROM t', columns=['n'], rows=[(i,) for i in range(5)])
    assert make_wrapper().select_column('SELECT n FROM t') == [0, 1, 2, 3, 4]


def test_result_set_closes_native_cursor_when_exhausted(fake_native, make_wrapper):
    fake_native.respond(r'FROM items', columns=['id'], rows=[(1,), (2,)])
    result = make_wrapper().cursor().run('SELECT id FROM items')

    assert not fake_native.cursors[-1].closed
    assert result.all() == [{'id': 1}, {'id': 2}]
    assert fake_native.cursors[-1].closed


def test_rerun_closes_previous_native_cursor(fake_native, make_wrapper):
    with make_wrapper().cursor() as cursor:
        cursor.run('CREATE TABLE a (x int)')
        cursor.run('CREATE TABLE b (x int)')
        first, second = fake_native.cursors
        assert first.closed
        assert not second.closed
    assert second.closed
