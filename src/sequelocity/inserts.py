"""
INSERT generation from objects.

Each member with a value becomes a named parameter; members that are None
are left out so column defaults and identities apply. The statement returns
the generated identity (`RETURNING rowid` on SQLite, `RETURNING *` on
PostgreSQL, whose first column is conventionally the key), so

    new_id = cmd.generate_insert(customer).execute_scalar()

yields the new row's id.
"""
import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

from sequelocity.describe import insert_values, is_loosely_typed, table_name_for
from sequelocity.exceptions import ArgumentError
from sequelocity.parameters import Parameter

if TYPE_CHECKING:
    from sequelocity.command import DatabaseCommand

logger = logging.getLogger(__name__)

__all__ = ['generate_insert', 'generate_inserts', 'build_insert']


def _resolve_table(obj: Any, table_name: str | None) -> tuple[str, bool]:
    """Table name and whether it still needs quoting."""
    if table_name:
        return table_name, False
    if is_loosely_typed(obj):
        raise ArgumentError(
            f'A table name is required to insert a {type(obj).__name__}, '
            'which carries no type name to derive one from')
    return table_name_for(obj), True


def build_insert(command: 'DatabaseCommand', obj: Any, table_name: str | None = None,
                 suffix: str = '', taken: set[str] | None = None) -> tuple[str, list[Parameter]]:
    """INSERT text and its parameters for one object.

    `suffix` is appended to every parameter name so several inserts can share
    one batch. Names already in `taken` (by default the command's bound
    parameters) get a further `_n`; `taken` is updated with the names used.
    """
    if obj is None:
        raise ArgumentError('Cannot generate an INSERT for None')
    table, quote = _resolve_table(obj, table_name)
    pairs = [(column, value) for column, value in insert_values(obj) if value is not None]
    columns = [column for column, _ in pairs]
    if taken is None:
        taken = set(command.parameters)
    names = [_unique_name(f'{_parameter_name(column)}{suffix}', taken) for column in columns]
    strategy = command.connection.strategy
    sql = strategy.build_insert_sql(table, columns, names, quote_table=quote)
    parameters = [Parameter(name, value) for name, (_, value) in zip(names, pairs)]
    return sql, parameters


def _parameter_name(column: str) -> str:
    """Column name usable inside a %(name)s placeholder and as a :name."""
    cleaned = ''.join(ch if ch.isalnum() or ch == '_' else '_' for ch in column)
    if not cleaned or cleaned[0].isdigit():
        cleaned = f'p_{cleaned}'
    return cleaned


def _unique_name(name: str, taken: set[str]) -> str:
    unique, n = name, 1
    while unique in taken:
        unique = f'{name}_{n}'
        n += 1
    taken.add(unique)
    return unique


def _append_statement(command: 'DatabaseCommand', sql: str) -> None:
    existing = (command.command_text or '').rstrip()
    if not existing:
        prefix = ''
    elif existing.endswith(';'):
        prefix = '\n'
    else:
        prefix = ';\n'
    command.append_command_text(f'{prefix}{sql};')


def generate_insert(command: 'DatabaseCommand', obj: Any,
                    table_name: str | None = None) -> 'DatabaseCommand':
    """Append an INSERT for `obj` to the command's text.
    """
    sql, parameters = build_insert(command, obj, table_name)
    _append_statement(command, sql)
    command.add_parameters(parameters)
    logger.debug(f'Generated insert into {table_name or type(obj).__name__} '
                 f'with {len(parameters)} parameter(s)')
    return command


def generate_inserts(command: 'DatabaseCommand', objs: Iterable[Any],
                     table_name: str | None = None) -> 'DatabaseCommand':
    """Append one INSERT per object; parameter names are suffixed by position.
    """
    items = list(objs)
    if not items:
        raise ArgumentError('No objects to insert')
    taken = set(command.parameters)
    batch = [build_insert(command, obj, table_name, suffix=f'_{i}', taken=taken)
             for i, obj in enumerate(items)]
    for sql, parameters in batch:
        _append_statement(command, sql)
        command.add_parameters(parameters)
    logger.debug(f'Generated {len(batch)} inserts')
    return command
