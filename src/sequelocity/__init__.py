"""
Data access helpers on top of DB-API drivers, with SQLite and PostgreSQL support.

Commands are configured fluently and run through one execution verb, which
manages the connection, fires lifecycle hooks and materializes the result:

    cmd = get_database_command_for_sqlite('app.db')
    heroes = cmd.set_command_text('select Id, Name from Hero').execute_to_list(Hero)
"""
__version__ = '0.1.0'

import pathlib
from typing import Any

from sequelocity.command import DatabaseCommand
from sequelocity.configuration import clear_default_configuration_settings
from sequelocity.configuration import configuration_settings
from sequelocity.connection import ConnectionWrapper, connect, create_connection
from sequelocity.describe import column, describe
from sequelocity.exceptions import ArgumentError, CoercionError, CommandExecutionError
from sequelocity.exceptions import ConnectionFailure, DatabaseError, DbCommandError
from sequelocity.exceptions import DbConnectionError, IntegrityError, ProgrammingError
from sequelocity.exceptions import TransactionError, UniqueViolation
from sequelocity.hooks import EventHandlers
from sequelocity.mapping import DynamicRecord
from sequelocity.options import DatabaseOptions, iterdict_data_loader
from sequelocity.options import pandas_numpy_data_loader, pandas_pyarrow_data_loader
from sequelocity.parameters import Parameter, ParameterDirection
from sequelocity.pipeline import execute_non_query, execute_reader, execute_scalar
from sequelocity.pipeline import execute_to_data_frame, execute_to_dynamic_list
from sequelocity.pipeline import execute_to_dynamic_object, execute_to_enum_list
from sequelocity.pipeline import execute_to_list, execute_to_map, execute_to_object
from sequelocity.pipeline import execute_to_primitive_list
from sequelocity.transaction import Transaction
from sequelocity.types import Column, DataRecord


def get_database_command(options: DatabaseOptions | ConnectionWrapper | dict[str, Any] | str | None = None,
                         config: Any | None = None, **kw: Any) -> DatabaseCommand:
    """Create a command context for a data source.

    `options` is anything `create_connection` accepts, or an existing
    `ConnectionWrapper`. Without options the default from
    `configuration_settings.default` is used.
    """
    if options is None:
        options = configuration_settings.default.connection
        config = config or configuration_settings.default.config
        if options is None:
            raise ArgumentError('No data source given and no default configured')
    if isinstance(options, ConnectionWrapper):
        return DatabaseCommand(options)
    return DatabaseCommand(create_connection(options, config, **kw))


def get_database_command_for_sqlite(database: str | pathlib.Path, **kw: Any) -> DatabaseCommand:
    """Create a command context for a SQLite database file.
    """
    return get_database_command(DatabaseOptions(drivername='sqlite', database=str(database), **kw))


def get_database_command_for_postgresql(**kw: Any) -> DatabaseCommand:
    """Create a command context for PostgreSQL; keywords are DatabaseOptions fields.
    """
    return get_database_command(DatabaseOptions(drivername='postgresql', **kw))


__all__ = [
    '__version__',
    'ArgumentError',
    'CoercionError',
    'Column',
    'CommandExecutionError',
    'ConnectionFailure',
    'ConnectionWrapper',
    'DataRecord',
    'DatabaseCommand',
    'DatabaseError',
    'DatabaseOptions',
    'DbCommandError',
    'DbConnectionError',
    'DynamicRecord',
    'EventHandlers',
    'IntegrityError',
    'Parameter',
    'ParameterDirection',
    'ProgrammingError',
    'Transaction',
    'TransactionError',
    'UniqueViolation',
    'clear_default_configuration_settings',
    'column',
    'configuration_settings',
    'connect',
    'create_connection',
    'describe',
    'execute_non_query',
    'execute_reader',
    'execute_scalar',
    'execute_to_data_frame',
    'execute_to_dynamic_list',
    'execute_to_dynamic_object',
    'execute_to_enum_list',
    'execute_to_list',
    'execute_to_map',
    'execute_to_object',
    'execute_to_primitive_list',
    'get_database_command',
    'get_database_command_for_postgresql',
    'get_database_command_for_sqlite',
    'iterdict_data_loader',
    'pandas_numpy_data_loader',
    'pandas_pyarrow_data_loader',
]
