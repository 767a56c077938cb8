"""
Transaction handling.

Connections run in autocommit mode. A `Transaction` switches its connection
out of autocommit until it is committed or rolled back:

    with cn.begin_transaction() as tx:
        DatabaseCommand(cn).set_command_text(...).set_transaction(tx).execute_non_query()
        DatabaseCommand(cn).set_command_text(...).set_transaction(tx).execute_non_query()

Nested transactions on one connection are not supported.
"""
import logging
from typing import TYPE_CHECKING, Any, Self

from sequelocity.exceptions import ConnectionFailure, TransactionError

if TYPE_CHECKING:
    from sequelocity.connection import ConnectionWrapper

logger = logging.getLogger(__name__)

__all__ = ['Transaction']


class Transaction:
    """A database transaction on one `ConnectionWrapper`.

    Used as a context manager it commits on success and rolls back on error.
    """

    def __init__(self, cn: 'ConnectionWrapper') -> None:
        self.connection = cn
        self.is_active = False
        self.completed = False

    def begin(self) -> Self:
        cn = self.connection
        if not cn.is_open:
            raise ConnectionFailure('Cannot begin a transaction on a closed connection')
        if cn.in_transaction:
            raise TransactionError('Nested transactions are not supported')
        if self.completed:
            raise TransactionError('Transaction already completed')

        cn.strategy.disable_autocommit(cn.dbapi_connection)
        cn.transaction = self
        self.is_active = True
        logger.debug(f'Started transaction for connection {id(cn)}')
        return self

    def commit(self) -> None:
        self._require_active()
        try:
            self.connection.dbapi_connection.commit()
            logger.debug(f'Committed transaction for connection {id(self.connection)}')
        finally:
            self._finish()

    def rollback(self) -> None:
        self._require_active()
        try:
            self.connection.dbapi_connection.rollback()
            logger.debug(f'Rolled back transaction for connection {id(self.connection)}')
        finally:
            self._finish()

    def _require_active(self) -> None:
        if not self.is_active:
            raise TransactionError('Transaction is not active')

    def _finish(self) -> None:
        cn = self.connection
        self.is_active = False
        self.completed = True
        if cn.transaction is self:
            cn.transaction = None
        if cn.is_open:
            cn.strategy.enable_autocommit(cn.dbapi_connection)
        logger.debug(f'Transaction cleanup complete for connection {id(cn)}')

    def __enter__(self) -> Self:
        if not self.is_active and not self.completed:
            self.begin()
        return self

    def __exit__(self, exc_type: type | None, value: Exception | None, traceback: Any | None) -> None:
        if not self.is_active:
            return
        if exc_type is not None:
            logger.warning('Rolling back the current transaction')
            self.rollback()
        else:
            self.commit()
