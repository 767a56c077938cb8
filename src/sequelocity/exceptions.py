"""
Exception classes and driver exception groups.

Errors raised by database drivers are never wrapped: the pipeline re-raises
the original exception. The tuples at the bottom of this module group driver
exceptions with our own classes so callers can branch on the kind of failure:

    try:
        cmd.execute_non_query()
    except DbCommandError:
        ...
"""
import sqlite3
from typing import Any

import psycopg
import sqlalchemy as sa


class DatabaseError(Exception):
    """Base class for all sequelocity errors.
    """


class ConnectionFailure(DatabaseError):
    """Error establishing or using a database connection.
    """


class CommandExecutionError(DatabaseError):
    """Error running a command that the driver did not report itself.
    """


class TransactionError(DatabaseError, RuntimeError):
    """Misuse of a transaction: nesting, or use after completion.
    """


class ArgumentError(DatabaseError, ValueError):
    """Invalid call-time input, detected before any I/O.
    """


class CoercionError(DatabaseError, TypeError):
    """A result value could not be converted to the requested type.
    """

    def __init__(self, value: Any, target: Any, column: str | None = None,
                 reason: str | None = None) -> None:
        self.value = value
        self.target = target
        self.column = column
        target_name = getattr(target, '__name__', repr(target))
        message = f'Cannot convert {value!r} ({type(value).__name__}) to {target_name}'
        if column is not None:
            message += f' for column {column!r}'
        if reason:
            message += f': {reason}'
        super().__init__(message)


DbConnectionError = (
    psycopg.OperationalError,
    psycopg.InterfaceError,
    sqlite3.OperationalError,
    sqlite3.InterfaceError,
    sa.exc.OperationalError,
    sa.exc.InterfaceError,
    ConnectionFailure,
    )

DbCommandError = (
    psycopg.DatabaseError,
    sqlite3.DatabaseError,
    sa.exc.DBAPIError,
    CommandExecutionError,
    )

IntegrityError = (
    psycopg.IntegrityError,
    sqlite3.IntegrityError,
    )

ProgrammingError = (
    psycopg.ProgrammingError,
    sqlite3.ProgrammingError,
    )

UniqueViolation = (
    psycopg.errors.UniqueViolation,
    sqlite3.IntegrityError,
    )
