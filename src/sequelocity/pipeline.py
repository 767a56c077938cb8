"""
Execution verbs.

Every verb runs the same lifecycle around its own piece of work:

    validate → open connection → pre-execute hooks → run → post-execute hooks
             ↘ (on error) unhandled-exception hooks, then re-raise

and finally disposes the command handle and, unless `keep_connection_open`
is set, closes a connection the command context owns. A connection that
was already open when the context was created, or that has an active
transaction, is never closed here.

Validation errors (`ArgumentError`) are raised before any of this and do not
reach the hooks.

All verbs are also methods of `DatabaseCommand`:

    cmd.execute_to_list(Customer)
    execute_to_list(cmd, Customer)
"""
import enum
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from sequelocity.coercion import coerce, is_scalar_type
from sequelocity.configuration import configuration_settings
from sequelocity.cursor import Command
from sequelocity.exceptions import ArgumentError
from sequelocity.mapping import DynamicRecord, materialize, materialize_dynamic
from sequelocity.mapping import materialize_enum, materialize_primitive
from sequelocity.mapping import to_dynamic, validate_target
from sequelocity.options import pandas_numpy_data_loader
from sequelocity.sql import split_statements
from sequelocity.types import DataRecord

if TYPE_CHECKING:
    from sequelocity.command import DatabaseCommand

logger = logging.getLogger(__name__)

__all__ = [
    'execute_non_query',
    'execute_scalar',
    'execute_reader',
    'execute_to_list',
    'execute_to_object',
    'execute_to_dynamic_list',
    'execute_to_dynamic_object',
    'execute_to_primitive_list',
    'execute_to_enum_list',
    'execute_to_map',
    'execute_to_data_frame',
]


def _validate(cmd: 'DatabaseCommand') -> Command:
    handle = cmd.command
    if handle is None or not split_statements(handle.text or ''):
        raise ArgumentError('Command text has no statement; call set_command_text first')
    return handle


def _run(cmd: 'DatabaseCommand', work: Callable[[Command], Any],
         keep_connection_open: bool) -> Any:
    handle = _validate(cmd)
    handlers = configuration_settings.event_handlers
    try:
        try:
            if not cmd.connection.is_open:
                cmd.connection.open()
            handlers.invoke_pre_execute(cmd)
            result = work(handle)
            handlers.invoke_post_execute(cmd)
            return result
        except Exception as err:
            handlers.invoke_unhandled_exception(err, cmd)
            raise
    finally:
        cmd.release(keep_connection_open)


def execute_non_query(cmd: 'DatabaseCommand', keep_connection_open: bool = False) -> int:
    """Run the command; return the number of rows affected, or -1.
    """
    return _run(cmd, Command.execute_non_query, keep_connection_open)


def execute_scalar(cmd: 'DatabaseCommand', as_type: Any = None,
                   keep_connection_open: bool = False) -> Any:
    """First column of the first row; None for no rows or a NULL.

    With `as_type` a non-NULL value is coerced to that type.
    """
    def work(handle: Command) -> Any:
        value = handle.execute_scalar()
        if value is None or as_type is None:
            return value
        column = handle.columns[0].name if handle.columns else None
        return coerce(value, as_type, column)
    return _run(cmd, work, keep_connection_open)


def execute_reader(cmd: 'DatabaseCommand', callback: Callable[[DataRecord], Any],
                   keep_connection_open: bool = False) -> None:
    """Call `callback(record)` for every row, in order.

    Rows are fetched in chunks; the full result is never held in memory.
    """
    if not callable(callback):
        raise ArgumentError('callback must be callable')

    def work(handle: Command) -> None:
        count = 0
        for record in handle.execute_reader().records():
            callback(record)
            count += 1
        logger.debug(f'Reader processed {count} rows')
    return _run(cmd, work, keep_connection_open)


def execute_to_list(cmd: 'DatabaseCommand', target: type,
                    keep_connection_open: bool = False) -> list[Any]:
    """Materialize every row into a new instance of `target`.
    """
    validate_target(target)

    def work(handle: Command) -> list[Any]:
        return materialize(handle.execute_reader().records(), target)
    return _run(cmd, work, keep_connection_open)


def execute_to_object(cmd: 'DatabaseCommand', target: type,
                      keep_connection_open: bool = False) -> Any | None:
    """First row as an instance of `target`, or None. Reads one row only.
    """
    validate_target(target)

    def work(handle: Command) -> Any | None:
        record = handle.execute_reader().fetchone()
        if record is None:
            return None
        return materialize([record], target)[0]
    return _run(cmd, work, keep_connection_open)


def execute_to_dynamic_list(cmd: 'DatabaseCommand',
                            keep_connection_open: bool = False) -> list[DynamicRecord]:
    """Every row as a `DynamicRecord`.
    """
    def work(handle: Command) -> list[DynamicRecord]:
        return materialize_dynamic(handle.execute_reader().records())
    return _run(cmd, work, keep_connection_open)


def execute_to_dynamic_object(cmd: 'DatabaseCommand',
                              keep_connection_open: bool = False) -> DynamicRecord | None:
    def work(handle: Command) -> DynamicRecord | None:
        record = handle.execute_reader().fetchone()
        return to_dynamic(record) if record is not None else None
    return _run(cmd, work, keep_connection_open)


def execute_to_primitive_list(cmd: 'DatabaseCommand', target: Any,
                              keep_connection_open: bool = False) -> list[Any]:
    """Column 0 of every row, coerced to `target`.
    """
    if not is_scalar_type(target):
        raise ArgumentError(f'{target!r} is not a scalar type; use execute_to_list')

    def work(handle: Command) -> list[Any]:
        return materialize_primitive(handle.execute_reader().records(), target)
    return _run(cmd, work, keep_connection_open)


def execute_to_enum_list(cmd: 'DatabaseCommand', enum_type: type[enum.Enum],
                         keep_connection_open: bool = False) -> list[Any]:
    """Column 0 of every row as a member of `enum_type`.
    """
    if not isinstance(enum_type, type) or not issubclass(enum_type, enum.Enum):
        raise ArgumentError(f'{enum_type!r} is not an Enum type')

    def work(handle: Command) -> list[Any]:
        return materialize_enum(handle.execute_reader().records(), enum_type)
    return _run(cmd, work, keep_connection_open)


def execute_to_map(cmd: 'DatabaseCommand', mapper: Callable[[DataRecord], Any],
                   keep_connection_open: bool = False) -> list[Any]:
    """`mapper(record)` for every row.
    """
    if not callable(mapper):
        raise ArgumentError('mapper must be callable')

    def work(handle: Command) -> list[Any]:
        return [mapper(record) for record in handle.execute_reader().records()]
    return _run(cmd, work, keep_connection_open)


def execute_to_data_frame(cmd: 'DatabaseCommand', data_loader: Callable[..., Any] | None = None,
                          keep_connection_open: bool = False) -> Any:
    """The result loaded through a data loader, a pandas DataFrame by default.

    Uses `data_loader`, else the connection options' loader.
    """
    options = cmd.connection.options
    loader = data_loader or (options.data_loader if options else None) or pandas_numpy_data_loader
    if not callable(loader):
        raise ArgumentError('data_loader must be callable')

    def work(handle: Command) -> Any:
        rows = [record.to_dict() for record in handle.execute_reader().records()]
        return loader(rows, handle.columns)
    return _run(cmd, work, keep_connection_open)
