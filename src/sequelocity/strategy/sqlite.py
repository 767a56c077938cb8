"""
sqlite3 driver.

Statements are written with pyformat placeholders and rewritten to `:name`
before execution. Dates are stored as ISO 8601 text and read back through
declared-type converters, so a `DATE` column yields `datetime.date`.
"""
import datetime
import json
import logging
import sqlite3
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

import sqlalchemy as sa
from sequelocity.sql import standardize_placeholders
from sequelocity.strategy.base import DatabaseStrategy, register_strategy
from sequelocity.types import adapt_date, adapt_datetime, convert_date
from sequelocity.types import convert_datetime

if TYPE_CHECKING:
    from sequelocity.options import DatabaseOptions

logger = logging.getLogger(__name__)

_adapters: dict[type, Callable[[Any], str]] = {
    dict: json.dumps,
    list: json.dumps,
    datetime.date: adapt_date,
    datetime.datetime: adapt_datetime,
}

_converters: dict[str, Callable[[bytes], Any]] = {
    'date': convert_date,
    'datetime': convert_datetime,
    'timestamp': convert_datetime,
}


def register_type_adapters() -> None:
    for python_type, adapter in _adapters.items():
        sqlite3.register_adapter(python_type, adapter)
    for declared, converter in _converters.items():
        sqlite3.register_converter(declared, converter)


@register_strategy('sqlite')
class SQLiteStrategy(DatabaseStrategy):

    @property
    def dialect_name(self) -> str:
        return 'sqlite'

    def build_connection_url(self, options: 'DatabaseOptions',
                             url_creator: Callable[..., sa.URL] = sa.URL.create) -> sa.URL:
        return url_creator(drivername='sqlite', database=options.database)

    def get_engine_kwargs(self, options: 'DatabaseOptions') -> dict[str, Any]:
        connect_args = {'detect_types': sqlite3.PARSE_DECLTYPES | sqlite3.PARSE_COLNAMES}
        if options.timeout:
            connect_args['timeout'] = options.timeout
        return {'connect_args': connect_args}

    @classmethod
    def get_required_options(cls) -> list[str]:
        return ['database']

    def configure_connection(self, raw_conn: Any) -> None:
        """Enforce foreign keys and start in autocommit mode."""
        register_type_adapters()
        raw_conn.execute('PRAGMA foreign_keys = ON')
        self.enable_autocommit(raw_conn)

    def enable_autocommit(self, raw_conn: Any) -> None:
        raw_conn.isolation_level = None

    def disable_autocommit(self, raw_conn: Any) -> None:
        raw_conn.isolation_level = 'DEFERRED'

    def apply_command_timeout(self, cursor: Any, seconds: float) -> Any:
        """SQLite has no statement timeout; bound the lock wait instead.
        """
        previous = cursor.execute('PRAGMA busy_timeout').fetchone()[0]
        cursor.execute(f'PRAGMA busy_timeout = {int(seconds * 1000)}')
        return previous

    def reset_command_timeout(self, cursor: Any, state: Any) -> None:
        cursor.execute(f'PRAGMA busy_timeout = {int(state)}')

    def returning_clause(self) -> str:
        return 'RETURNING rowid'

    def standardize_sql(self, sql: str) -> str:
        return standardize_placeholders(sql, dialect='sqlite')
