"""
Transaction handling and session autocommit management.

Vertica sessions run in autocommit mode outside a transaction. A transaction
turns session autocommit off before BEGIN and always turns it back on once
the transaction ends, whether it committed, rolled back or failed.
"""
import enum
import logging
import threading
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from verticadb.exceptions import TransactionError

if TYPE_CHECKING:
    from verticadb.connection import ConnectionWrapper

logger = logging.getLogger(__name__)


_local = threading.local()


def _active_transactions() -> dict[int, 'Transaction']:
    if not hasattr(_local, 'active_transactions'):
        _local.active_transactions = {}
    return _local.active_transactions


def active_transaction(cn: 'ConnectionWrapper') -> 'Transaction | None':
    """Transaction open on the connection in the current thread, if any."""
    return _active_transactions().get(id(cn))


class TransactionState(enum.Enum):
    IDLE = 'idle'
    ACTIVE = 'active'


class Transaction:
    """Explicit transaction on one connection.

    This implementation uses thread-local storage to track active
    transactions. Each thread can have its own transaction for the same
    connection, but nested transactions within the same thread are not
    supported.

    Examples
        with Transaction(cn) as tx:
            tx.execute('delete from ...', args)
            tx.execute('update from ...', args)

        tx = Transaction(cn, isolation='serializable')
        tx.begin()
        ...
        tx.commit()
    """

    def __init__(self, cn: 'ConnectionWrapper', isolation: str | None = None) -> None:
        self.connection = cn
        self.isolation = isolation
        self.state = TransactionState.IDLE
        self._after_commit: list[Callable[[], Any]] = []
        self._after_rollback: list[Callable[[], Any]] = []

    @property
    def strategy(self):
        return self.connection.strategy

    @property
    def active(self) -> bool:
        return self.state is TransactionState.ACTIVE

    def after_commit(self, func: Callable[[], Any]) -> None:
        """Run `func` once the transaction has committed."""
        self._after_commit.append(func)

    def after_rollback(self, func: Callable[[], Any]) -> None:
        """Run `func` once the transaction has rolled back (or failed to commit)."""
        self._after_rollback.append(func)

    def begin(self) -> 'Transaction':
        """Idle -> Active: autocommit off, then BEGIN.
        """
        if self.active:
            raise TransactionError('Transaction already started')
        active = _active_transactions()
        if id(self.connection) in active:
            raise TransactionError('Nested transactions are not supported')

        active[id(self.connection)] = self
        self.connection.in_transaction = True
        self.state = TransactionState.ACTIVE
        logger.debug(f'Beginning transaction for connection {id(self.connection)}')
        try:
            self.strategy.begin_transaction(self.connection, self.isolation)
        except Exception:
            self._teardown(committed=False)
            raise
        return self

    def commit(self) -> None:
        """Active -> Idle: COMMIT, then teardown.
        """
        self._require_active('commit')
        committed = False
        logger.debug(f'Committing transaction for connection {id(self.connection)}')
        try:
            self.strategy.commit_transaction(self.connection)
            committed = True
        finally:
            self._teardown(committed)

    def rollback(self) -> None:
        """Active -> Idle: ROLLBACK, then teardown.
        """
        self._require_active('rollback')
        logger.warning(f'Rolling back transaction for connection {id(self.connection)}')
        try:
            self.strategy.rollback_transaction(self.connection)
        finally:
            self._teardown(committed=False)

    def _require_active(self, action: str) -> None:
        if not self.active:
            raise TransactionError(f'Cannot {action}: no active transaction')

    def _teardown(self, committed: bool) -> None:
        # Autocommit goes back on even when the cleanup below raises
        try:
            self.strategy.enable_autocommit(self.connection)
        finally:
            self._remove_transaction(committed)

    def _remove_transaction(self, committed: bool) -> None:
        self.state = TransactionState.IDLE
        _active_transactions().pop(id(self.connection), None)
        self.connection.in_transaction = False
        logger.debug(f'Transaction cleanup complete for connection {id(self.connection)}')
        hooks = self._after_commit if committed else self._after_rollback
        self._after_commit, self._after_rollback = [], []
        for hook in hooks:
            hook()

    def __enter__(self) -> 'Transaction':
        return self.begin()

    def __exit__(self, exc_type: type | None, value: Exception | None, traceback: Any | None) -> None:
        if not self.active:
            return
        if exc_type is not None:
            self.rollback()
        else:
            self.commit()

    def execute(self, sql: str, *args: Any) -> int:
        """Execute SQL within transaction context"""
        return self.connection.execute(sql, *args)

    def select(self, sql: str, *args: Any, **kwargs: Any) -> Any:
        """Execute SELECT query within transaction context"""
        return self.connection.select(sql, *args, **kwargs)

    def select_row(self, sql: str, *args: Any) -> dict[str, Any]:
        return self.connection.select_row(sql, *args)

    def select_scalar(self, sql: str, *args: Any) -> Any:
        return self.connection.select_scalar(sql, *args)


def begin_transaction(cn: 'ConnectionWrapper', isolation: str | None = None) -> Transaction:
    """Start and return a transaction on the connection."""
    return Transaction(cn, isolation).begin()


def commit_transaction(tx: Transaction) -> None:
    tx.commit()


def rollback_transaction(tx: Transaction) -> None:
    tx.rollback()
