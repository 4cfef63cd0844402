"""
Statement sinks.

Every statement the executor issues is reported to the connection's sink
with its arguments, elapsed time and error (if any), whether or not it
succeeded. The default sink writes to the module logger; CaptureSink also
keeps the records so callers can inspect what was sent.
"""
import logging
from dataclasses import dataclass
from typing import Any, Protocol

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StatementRecord:
    sql: str
    args: Any
    elapsed: float
    error: BaseException | None = None


class StatementSink(Protocol):
    def record(self, record: StatementRecord) -> None: ...


class LoggingSink:
    """Log statements through the standard logging module."""

    def __init__(self, log: logging.Logger | None = None) -> None:
        self.log = log or logger

    def record(self, record: StatementRecord) -> None:
        if record.error is not None:
            self.log.error(f'Error with query:\nSQL:\n{record.sql}\nargs: {record.args}\nerror: {record.error}')
            return
        self.log.debug(f'SQL:\n{record.sql}\nargs: {record.args}')
        self.log.debug(f'Query time: {record.elapsed:.4f}s')


class CaptureSink(LoggingSink):
    """Logging sink that also keeps every record."""

    def __init__(self, log: logging.Logger | None = None) -> None:
        super().__init__(log)
        self.records: list[StatementRecord] = []

    def record(self, record: StatementRecord) -> None:
        self.records.append(record)
        super().record(record)

    @property
    def sqls(self) -> list[str]:
        return [r.sql for r in self.records]

    def clear(self) -> None:
        self.records.clear()
