import io

import pytest
import verticadb as db
from fixtures.mocks import native_error
from verticadb.bulk import IterableReader, WriterReader, copy_source
from verticadb.exceptions import ConnectionClosedError, CopyRejectedError

COPY_SQL = "COPY items FROM STDIN DELIMITER ','"
STATS = r'GET_NUM_ACCEPTED_ROWS'


@pytest.fixture
def loaded(fake_native):
    """Script the counters for two accepted rows."""
    fake_native.respond(STATS, columns=['accepted', 'rejected'], rows=[(2, 0)])
    return fake_native


def test_copy_string(loaded, make_wrapper):
    cn = make_wrapper()

    assert db.copy(cn, COPY_SQL, '100500,100600\n100700,100800\n') == 2
    assert loaded.sqls[0] == COPY_SQL
    assert 'GET_NUM_REJECTED_ROWS' in loaded.sqls[1]
    assert loaded.copied == ['100500,100600\n100700,100800\n']


def test_copy_from_writer(loaded, make_wrapper):
    def produce(write):
        write('100500,100600\n')
        write(b'100700,100800\n')

    assert make_wrapper().copy(COPY_SQL, produce) == 2
    assert loaded.copied == [b'100500,100600\n100700,100800\n']


def test_copy_from_iterable_is_lazy(loaded, make_wrapper):
    produced = []

    def rows():
        for line in ('1,2\n', '3,4\n'):
            produced.append(line)
            yield line

    source = rows()
    assert produced == []
    assert db.copy(make_wrapper(), COPY_SQL, source) == 2
    assert loaded.copied == [b'1,2\n3,4\n']


def test_copy_from_file(loaded, make_wrapper):
    make_wrapper().copy(COPY_SQL, io.StringIO('1,2\n'))
    assert loaded.copied == [b'1,2\n']


def test_rejected_rows_raise(fake_native, make_wrapper):
    fake_native.respond(STATS, columns=['accepted', 'rejected'], rows=[(1, 1)])
    cn = make_wrapper()

    with pytest.raises(CopyRejectedError, match='rejected 1'):
        db.copy(cn, COPY_SQL, '1,2\nbad\n')
    assert db.copy(cn, COPY_SQL, '1,2\nbad\n', allow_rejected=True) == 1


def test_server_error_mid_stream(fake_native, make_wrapper):
    fake_native.respond(r'^COPY', error=native_error('Severity: ERROR, Sqlstate: 22V04'))
    with pytest.raises(CopyRejectedError):
        db.copy(make_wrapper(), COPY_SQL, '1,x\n')


def test_copy_on_closed_connection(fake_native, make_wrapper):
    cn = make_wrapper()
    cn.close()
    with pytest.raises(ConnectionClosedError):
        db.copy(cn, COPY_SQL, '1,2\n')
    assert fake_native.copied == []


def test_iterable_reader_sizes():
    reader = IterableReader(['ab', b'cd', 'e'])
    assert reader.read(3) == b'abc'
    assert reader.read(3) == b'de'
    assert reader.read(3) == b''


def test_copy_source_rejects_unknown():
    with pytest.raises(TypeError):
        copy_source(42)


def test_copy_closes_native_cursor(loaded, make_wrapper):
    make_wrapper().copy(COPY_SQL, '1,2\n')
    assert loaded.cursors
    assert all(cursor.closed for cursor in loaded.cursors)


def test_writer_output_is_streamed(loaded, make_wrapper):
    lines = [f'{i},{i * 2}\n' for i in range(50)]

    def produce(write):
        for line in lines:
            write(line)

    source = WriterReader(produce, maxsize=2)
    db.copy(make_wrapper(), COPY_SQL, source)
    assert loaded.copied == [''.join(lines).encode()]


def test_writer_error_aborts_copy(loaded, make_wrapper):
    def produce(write):
        write('1,2\n')
        raise ValueError('bad source')

    with pytest.raises(ValueError, match='bad source'):
        db.copy(make_wrapper(), COPY_SQL, produce)
    assert all(cursor.closed for cursor in loaded.cursors)


def test_writer_reader_close_stops_writer():
    def produce(write):
        while True:
            write('x')

    reader = WriterReader(produce, maxsize=1)
    assert reader.read(4) == b'xxxx'
    reader.close()
    assert not reader._thread.is_alive()
