"""
psycopg 3 driver.

psycopg speaks pyformat natively, so statements only need literal `%` signs
doubled when they carry parameters. The command timeout maps onto the
session's `statement_timeout`.
"""
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

import sqlalchemy as sa
from sequelocity.sql import standardize_placeholders
from sequelocity.strategy.base import DatabaseStrategy, register_strategy

if TYPE_CHECKING:
    from sequelocity.options import DatabaseOptions

logger = logging.getLogger(__name__)


@register_strategy('postgresql')
class PostgresStrategy(DatabaseStrategy):

    @property
    def dialect_name(self) -> str:
        return 'postgresql'

    def build_connection_url(self, options: 'DatabaseOptions',
                             url_creator: Callable[..., sa.URL] = sa.URL.create) -> sa.URL:
        query = {'connect_timeout': str(options.timeout) if options.timeout else None,
                 'application_name': options.appname}
        return url_creator('postgresql+psycopg',
                           username=options.username,
                           password=options.password,
                           host=options.hostname,
                           port=options.port,
                           database=options.database,
                           query={k: v for k, v in query.items() if v})

    def get_engine_kwargs(self, options: 'DatabaseOptions') -> dict[str, Any]:
        return {}

    @classmethod
    def get_required_options(cls) -> list[str]:
        return ['hostname', 'username', 'password', 'database', 'port', 'timeout']

    def configure_connection(self, raw_conn: Any) -> None:
        self.enable_autocommit(raw_conn)

    def enable_autocommit(self, raw_conn: Any) -> None:
        raw_conn.autocommit = True

    def disable_autocommit(self, raw_conn: Any) -> None:
        raw_conn.autocommit = False

    def apply_command_timeout(self, cursor: Any, seconds: float) -> Any:
        cursor.execute('SHOW statement_timeout')
        previous = cursor.fetchone()[0]
        cursor.execute(f"SET statement_timeout = '{int(seconds * 1000)}ms'")
        return previous

    def reset_command_timeout(self, cursor: Any, state: Any) -> None:
        value = str(state).replace("'", "''")
        cursor.execute(f"SET statement_timeout = '{value}'")

    def returning_clause(self) -> str:
        return 'RETURNING *'

    def standardize_sql(self, sql: str) -> str:
        return standardize_placeholders(sql, dialect='postgresql')
