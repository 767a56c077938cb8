"""
Command handle: SQL text, parameters and the DBAPI cursor that runs them.

A `Command` is single-use. It executes its text once (a batch of statements
separated by semicolons runs statement by statement on one cursor), exposes
the resulting cursor for reading, and is then disposed.
"""
import logging
import time
from collections.abc import Iterator
from functools import wraps
from typing import TYPE_CHECKING, Any

from sequelocity.exceptions import ArgumentError, CommandExecutionError
from sequelocity.parameters import Parameter, ParameterSet
from sequelocity.sql import TokenType, split_statements, tokenize_sql
from sequelocity.types import Column, DataRecord, TypeConverter, build_ordinals
from sequelocity.types import columns_from_cursor_description

if TYPE_CHECKING:
    from sequelocity.connection import ConnectionWrapper
    from sequelocity.transaction import Transaction

logger = logging.getLogger(__name__)

__all__ = ['Command', 'IterChunk', 'DEFAULT_FETCH_SIZE']

DEFAULT_FETCH_SIZE = 500

_DML_KEYWORDS = {'insert', 'update', 'delete', 'merge', 'replace', 'upsert'}


def dumpsql(func):
    """Decorator for logging SQL text, parameters and timing."""
    @wraps(func)
    def wrapper(self, *args: Any, **kwargs: Any):
        start = time.time()
        logger.debug(f'SQL:\n{self.text}\nparams: {self.parameters.to_dict()}')
        try:
            result = func(self, *args, **kwargs)
            if hasattr(self.cursor, 'statusmessage'):
                logger.debug(f'Query result: {self.cursor.statusmessage}')
            return result
        except Exception:
            logger.error(f'Error with query:\nSQL:\n{self.text}\nparams: {len(self.parameters)}')
            raise
        finally:
            elapsed = time.time() - start
            self.connection.addcall(elapsed)
            logger.debug(f'Query time: {elapsed:.4f}s')
    return wrapper


def IterChunk(cursor: Any, size: int = DEFAULT_FETCH_SIZE) -> Iterator[tuple]:
    """Iterate through cursor results in chunks."""
    while True:
        chunked = cursor.fetchmany(size)
        if not chunked:
            break
        yield from chunked


def _first_keyword(statement: str) -> str:
    for token in tokenize_sql(statement):
        if token.type == TokenType.SQL_TEXT and token.text.strip():
            return token.text.split()[0].lower()
        if token.type not in {TokenType.COMMENT, TokenType.SQL_TEXT}:
            return ''
    return ''


def _bind(statement: str, named: dict[str, Any], positional: list[Any],
          offset: int) -> tuple[Any, int]:
    """Parameters one statement uses, and the next positional offset.
    """
    names = []
    positions = 0
    for token in tokenize_sql(statement):
        if token.type == TokenType.NAMED_PH:
            names.append(token.name)
        elif token.type == TokenType.POSITIONAL_PH:
            positions += 1
    if names and positions:
        raise CommandExecutionError('Cannot mix named and positional placeholders in one statement')
    if names:
        missing = [n for n in dict.fromkeys(names) if n not in named]
        if missing:
            raise CommandExecutionError(f'No value supplied for parameter(s): {", ".join(missing)}')
        return {n: named[n] for n in names}, offset
    if positions:
        if offset + positions > len(positional):
            raise CommandExecutionError(
                f'Parameter count mismatch: SQL needs {offset + positions} '
                f'but {len(positional)} were provided')
        return tuple(positional[offset:offset + positions]), offset + positions
    return None, offset


class Command:
    """SQL text plus parameters, executed on a `ConnectionWrapper`.

    Parameters are bound by name (`%(name)s`). Text with positional `%s`
    placeholders binds the parameters in the order they were added.
    """

    def __init__(self, connection: 'ConnectionWrapper', text: str = '') -> None:
        self.connection = connection
        self.text = text
        self.parameters = ParameterSet()
        self.timeout: float | None = None
        self.transaction: Transaction | None = None
        self.cursor: Any = None
        self.columns: list[Column] = []
        self.rowcounts: list[int] = []
        self.disposed = False

    def __repr__(self) -> str:
        return f'Command({self.text!r}, parameters={len(self.parameters)})'

    def add_parameter(self, parameter: Parameter) -> Parameter:
        self._check_not_disposed()
        return self.parameters.add(parameter)

    def _check_not_disposed(self) -> None:
        if self.disposed:
            raise ArgumentError('Command has been disposed')

    def _check_transaction(self) -> None:
        tx = self.transaction
        if tx is None:
            return
        if tx.connection is not self.connection:
            raise ArgumentError('Transaction belongs to a different connection')

    @dumpsql
    def execute(self, drain: bool = False) -> list[int]:
        """Run every statement of the text on one cursor.

        Returns the row count reported after each statement. Rows of all but
        the last statement are discarded; the cursor is left positioned on
        the last statement's result unless `drain` is set.
        """
        self._check_not_disposed()
        self._check_transaction()
        statements = split_statements(self.text)
        if not statements:
            raise ArgumentError('Command text is empty')

        values = TypeConverter.convert_params(self.parameters.to_dict())
        positional = list(values.values())
        strategy = self.connection.strategy

        bound = []
        offset = 0
        for statement in statements:
            params, offset = _bind(statement, values, positional, offset)
            dml = _first_keyword(statement) in _DML_KEYWORDS
            bound.append((strategy.standardize_sql(statement), params, dml))

        self.cursor = self.connection.cursor()
        timeout_state = None
        if self.timeout is not None:
            timeout_state = strategy.apply_command_timeout(self.cursor, self.timeout)
        try:
            self.rowcounts = []
            last = len(bound) - 1
            for index, (sql, params, dml) in enumerate(bound):
                if params is None:
                    self.cursor.execute(sql)
                else:
                    self.cursor.execute(sql, params)
                # sqlite3 reports the changes of an INSERT ... RETURNING
                # only once its rows are exhausted
                if self.cursor.description is not None and (drain or index < last):
                    self.cursor.fetchall()
                counted = dml or self.cursor.description is None
                self.rowcounts.append(self.cursor.rowcount if counted else -1)
        finally:
            if timeout_state is not None:
                self._reset_timeout(timeout_state)

        self.columns = columns_from_cursor_description(self.cursor, self.connection.dialect)
        return self.rowcounts

    def _reset_timeout(self, state: Any) -> None:
        # A separate cursor so the result of the command stays readable
        cursor = self.connection.cursor()
        try:
            self.connection.strategy.reset_command_timeout(cursor, state)
        except Exception as err:
            logger.warning(f'Could not restore command timeout: {err}')
        finally:
            cursor.close()

    def execute_non_query(self) -> int:
        """Rows affected: the sum over statements that report a count, else -1.
        """
        counts = [rc for rc in self.execute(drain=True) if rc is not None and rc >= 0]
        return sum(counts) if counts else -1

    def execute_scalar(self) -> Any:
        """First column of the first row, or None.
        """
        self.execute()
        if self.cursor.description is None:
            return None
        row = self.cursor.fetchone()
        if row is None or len(row) == 0:
            return None
        return row[0]

    def execute_reader(self) -> 'Command':
        self.execute()
        return self

    def fetchone(self) -> DataRecord | None:
        """Next row as a DataRecord, or None when exhausted.
        """
        if self.cursor is None or self.cursor.description is None:
            return None
        row = self.cursor.fetchone()
        if row is None:
            return None
        return DataRecord(self.columns, row)

    def records(self, size: int = DEFAULT_FETCH_SIZE) -> Iterator[DataRecord]:
        """Remaining rows as DataRecords, fetched `size` at a time.
        """
        if self.cursor is None or self.cursor.description is None:
            return
        ordinals = build_ordinals(self.columns)
        for row in IterChunk(self.cursor, size):
            yield DataRecord(self.columns, row, ordinals)

    def dispose(self) -> None:
        """Close the cursor. Idempotent.
        """
        if self.disposed:
            return
        self.disposed = True
        cursor, self.cursor = self.cursor, None
        # sqlite3 refuses to close a cursor of a closed connection
        if cursor is not None and self.connection.is_open:
            cursor.close()
