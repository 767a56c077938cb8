"""
The command context.

    with get_database_command_for_sqlite('app.db') as cmd:
        heroes = (cmd.set_command_text('select Id, Name from Hero where Name like %(name)s')
                     .add_parameter('name', 'S%')
                     .execute_to_list(Hero))

A `DatabaseCommand` bundles a connection, at most one live command handle and
an optional transaction. Configuration methods only mutate state and return
the context. Each execution verb (see `sequelocity.pipeline`) consumes the
handle; the next configuration call starts a fresh one, so a context can run
several commands in turn.

If the connection was not open when the context was created, the context owns
it and closes it after each verb (unless asked to keep it open) and on
`dispose()`. A connection that was already open is left alone.
"""
import logging
from collections.abc import Callable, Iterable, Mapping
from functools import wraps
from numbers import Real
from typing import Any, Self

from sequelocity import inserts, pipeline
from sequelocity.connection import ConnectionWrapper
from sequelocity.cursor import Command
from sequelocity.exceptions import ArgumentError
from sequelocity.parameters import Parameter, ParameterDirection, normalize_name
from sequelocity.sql import expand_parameter_list
from sequelocity.transaction import Transaction

logger = logging.getLogger(__name__)

__all__ = ['DatabaseCommand']


def _bind(module: Any, op_name: str) -> Callable[..., Any]:
    """Create a method that forwards to a module function taking the context first.
    """
    op = getattr(module, op_name)
    if not callable(op):
        raise TypeError(f'{op_name!r} is not callable in {module.__name__}')

    @wraps(op)
    def _method(self, *args, **kwargs):
        return op(self, *args, **kwargs)

    return _method


class DatabaseCommand:
    """Command, connection and transaction for one logical unit of work.
    """

    for _name in pipeline.__all__:
        locals()[_name] = _bind(pipeline, _name)
    del _name

    generate_insert = _bind(inserts, 'generate_insert')
    generate_inserts = _bind(inserts, 'generate_inserts')

    def __init__(self, connection: ConnectionWrapper, command_text: str | None = None,
                 transaction: Transaction | None = None) -> None:
        if not isinstance(connection, ConnectionWrapper):
            raise ArgumentError(f'Expected a ConnectionWrapper, got {type(connection).__name__}')
        self.connection = connection
        self.owns_connection = not connection.is_open
        self.command: Command | None = None
        self.transaction: Transaction | None = None
        if command_text:
            self.set_command_text(command_text)
        if transaction is not None:
            self.set_transaction(transaction)

    def __repr__(self) -> str:
        return (f'DatabaseCommand({self.connection!r}, command={self.command!r}, '
                f'owns_connection={self.owns_connection})')

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None,
                 exc_tb: Any | None) -> None:
        self.dispose()

    def _handle(self) -> Command:
        """The live command handle, created on first use."""
        if self.command is None:
            self.command = self.connection.create_command()
            self.command.transaction = self.transaction
        return self.command

    @property
    def command_text(self) -> str:
        return self.command.text if self.command is not None else ''

    @property
    def parameters(self) -> dict[str, Any]:
        return self.command.parameters.to_dict() if self.command is not None else {}

    # Configuration

    def set_command_text(self, text: str) -> Self:
        if not isinstance(text, str):
            raise ArgumentError(f'Command text must be a string, got {type(text).__name__}')
        self._handle().text = text
        return self

    def append_command_text(self, text: str) -> Self:
        if not isinstance(text, str):
            raise ArgumentError(f'Command text must be a string, got {type(text).__name__}')
        handle = self._handle()
        handle.text = (handle.text or '') + text
        return self

    def add_parameter(self, name: str, value: Any, db_type: Any = None,
                      direction: ParameterDirection = ParameterDirection.INPUT) -> Self:
        self._handle().add_parameter(Parameter(name, value, db_type, direction))
        return self

    def add_parameters(self, parameters: Mapping[str, Any] | Iterable[Parameter]) -> Self:
        """Add several parameters from a name -> value mapping or Parameter objects.
        """
        self._handle().parameters.extend(parameters)
        return self

    def add_parameter_list(self, name: str, values: Iterable[Any], db_type: Any = None) -> Self:
        """Bind a list to `%(name)s`, expanding it to one placeholder per value.

            cmd.set_command_text('select * from Hero where Id in (%(ids)s)')
            cmd.add_parameter_list('ids', [1, 2, 3])
        """
        name = normalize_name(name)
        if isinstance(values, (str, bytes)):
            raise ArgumentError(f'Parameter list {name!r} must be an iterable of values, not a string')
        items = list(values)
        if not items:
            raise ArgumentError(f'Parameter list {name!r} is empty')
        handle = self._handle()
        try:
            handle.text, names = expand_parameter_list(handle.text, name, len(items))
        except KeyError:
            raise ArgumentError(f'Command text has no %({name})s placeholder') from None
        for item_name, value in zip(names, items):
            handle.add_parameter(Parameter(item_name, value, db_type))
        return self

    def set_command_timeout(self, seconds: float | None) -> Self:
        """Limit statement run time; None restores the driver default.
        """
        if seconds is not None and (isinstance(seconds, bool) or not isinstance(seconds, Real) or seconds < 0):
            raise ArgumentError(f'Command timeout must be a non-negative number of seconds, got {seconds!r}')
        self._handle().timeout = seconds
        return self

    def set_transaction(self, transaction: Transaction | None) -> Self:
        if transaction is not None and transaction.connection is not self.connection:
            raise ArgumentError('Transaction belongs to a different connection')
        self.transaction = transaction
        if self.command is not None:
            self.command.transaction = transaction
        return self

    def begin_transaction(self) -> Transaction:
        """Open the connection if needed and attach a new transaction.
        """
        transaction = self.connection.begin_transaction()
        self.set_transaction(transaction)
        return transaction

    # Lifecycle

    def release(self, keep_connection_open: bool = False) -> None:
        """Dispose the command handle; close an owned connection unless kept open.

        Called by every verb after it runs, whether it succeeded or not.
        """
        command, self.command = self.command, None
        if command is not None:
            command.dispose()
        if keep_connection_open or not self.owns_connection:
            return
        if self.connection.in_transaction:
            logger.debug('Leaving connection open for the active transaction')
            return
        self.connection.close()

    def dispose(self) -> None:
        """Release the command handle and close the connection if owned.

        Safe to call more than once.
        """
        command, self.command = self.command, None
        if command is not None:
            command.dispose()
        if self.owns_connection:
            self.connection.close()
