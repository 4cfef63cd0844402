"""
Bulk loading through COPY ... FROM STDIN.

The data is streamed with vertica_python's cursor copy, which sends the
end-of-data marker once the source is exhausted. Afterwards the session's
accepted/rejected counters tell whether the server dropped any records.
"""
import logging
import queue
import threading
from collections.abc import Callable, Iterable, Iterator
from typing import TYPE_CHECKING, Any

from verticadb.exceptions import CopyRejectedError

if TYPE_CHECKING:
    from verticadb.connection import ConnectionWrapper

logger = logging.getLogger(__name__)

WRITER_QUEUE_SIZE = 64
WRITER_POLL_INTERVAL = 0.1

_END = object()


def _to_bytes(chunk: str | bytes) -> bytes:
    return chunk.encode('utf-8') if isinstance(chunk, str) else bytes(chunk)


class IterableReader:
    """File-like adapter reading lazily from an iterable of str/bytes chunks.

    >>> IterableReader(['100500,', '100600\\n']).read()
    b'100500,100600\\n'
    """

    def __init__(self, chunks: Iterable[str | bytes]) -> None:
        self._chunks = iter(chunks)
        self._buffer = b''

    def read(self, size: int = -1) -> bytes:
        while size is None or size < 0 or len(self._buffer) < size:
            chunk = next(self._chunks, None)
            if chunk is None:
                break
            self._buffer += _to_bytes(chunk)
        if size is None or size < 0:
            data, self._buffer = self._buffer, b''
        else:
            data, self._buffer = self._buffer[:size], self._buffer[size:]
        return data


class _ReaderClosed(Exception):
    """Raised inside a writer once its reader has been closed."""


class WriterReader(IterableReader):
    """File-like adapter streaming the output of a writer callable.

    The writer runs in a background thread and hands chunks over through a
    bounded queue, so at most `maxsize` chunks are held in memory. An
    exception raised by the writer is re-raised from read().
    """

    def __init__(self, writer: Callable[[Callable[[str | bytes], None]], Any],
                 maxsize: int = WRITER_QUEUE_SIZE) -> None:
        self._queue: queue.Queue = queue.Queue(maxsize=maxsize)
        self._stopped = threading.Event()
        self._error: BaseException | None = None
        self._thread = threading.Thread(target=self._produce, args=(writer,),
                                        name='copy-writer', daemon=True)
        self._thread.start()
        super().__init__(self._consume())

    def _put(self, item: Any) -> None:
        while not self._stopped.is_set():
            try:
                self._queue.put(item, timeout=WRITER_POLL_INTERVAL)
                return
            except queue.Full:
                continue
        raise _ReaderClosed

    def _produce(self, writer) -> None:
        try:
            writer(self._put)
        except _ReaderClosed:
            logger.debug('COPY writer stopped, reader closed')
            return
        except Exception as exc:
            self._error = exc
        try:
            self._put(_END)
        except _ReaderClosed:
            logger.debug('COPY writer finished after reader closed')

    def _consume(self) -> Iterator[str | bytes]:
        while True:
            item = self._queue.get()
            if item is _END:
                break
            yield item
        self._thread.join()
        if self._error is not None:
            raise self._error

    def close(self) -> None:
        """Stop the writer thread and wait for it to exit."""
        self._stopped.set()
        self._thread.join()


def copy_source(data: Any) -> Any:
    """Normalize the accepted data shapes to something the driver can stream.

    - str / bytes: sent as is
    - objects with read(): streamed
    - callables: called with a write(chunk) function, chunks streamed
    - other iterables: chunks streamed lazily
    """
    if isinstance(data, (str, bytes)) or hasattr(data, 'read'):
        return data
    if callable(data):
        return WriterReader(data)
    if isinstance(data, Iterable):
        return IterableReader(data)
    raise TypeError(f'Cannot copy from {type(data).__name__}')


def copy(cn: 'ConnectionWrapper', sql: str, data: Any, *, allow_rejected: bool = False) -> int:
    """Run `sql` (a COPY ... FROM STDIN statement) streaming `data` to the server.

    Returns the number of accepted rows. Raises CopyRejectedError when the
    server rejected any record, unless `allow_rejected`.

    Examples
        copy(cn, "COPY items FROM STDIN DELIMITER ','", '100500,100600\\n')

        def produce(write):
            for row in rows:
                write(f'{row.a},{row.b}\\n')
        copy(cn, "COPY items FROM STDIN DELIMITER ','", produce)
    """
    source = copy_source(data)
    try:
        with cn.cursor() as cursor:
            cursor.copy(sql, source)
    finally:
        if isinstance(source, WriterReader):
            source.close()
    stats = list(cn.select_row(cn.strategy.copy_stats_sql).values())
    accepted, rejected = stats[0], stats[1]
    logger.debug(f'COPY accepted {accepted} rows, rejected {rejected}')
    if rejected and not allow_rejected:
        raise CopyRejectedError(f'COPY rejected {rejected} row(s), accepted {accepted}')
    return accepted
