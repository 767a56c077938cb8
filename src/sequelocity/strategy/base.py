"""
What a database driver has to provide.

Everything dialect-specific lives behind `DatabaseStrategy`: building the
engine URL, preparing a fresh connection, switching autocommit, rewriting
placeholders, command timeouts and generated INSERTs.
"""
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

import sqlalchemy as sa
from sequelocity.sql import quote_identifier as sql_quote_identifier

if TYPE_CHECKING:
    from sequelocity.options import DatabaseOptions

# dialect name -> strategy class, filled by @register_strategy
_STRATEGY_REGISTRY: dict[str, type['DatabaseStrategy']] = {}


def register_strategy(dialect: str):
    """Class decorator making a strategy available under `dialect`."""
    def decorator(cls: type['DatabaseStrategy']) -> type['DatabaseStrategy']:
        _STRATEGY_REGISTRY[dialect] = cls
        return cls
    return decorator


class DatabaseStrategy(ABC):
    """Dialect-specific operations. Methods taking `raw_conn` expect the
    driver connection, not the SQLAlchemy wrapper.
    """

    @property
    @abstractmethod
    def dialect_name(self) -> str:
        """SQLAlchemy dialect name."""

    @abstractmethod
    def build_connection_url(self, options: 'DatabaseOptions',
                             url_creator: Callable[..., sa.URL] = sa.URL.create) -> sa.URL:
        ...

    @abstractmethod
    def get_engine_kwargs(self, options: 'DatabaseOptions') -> dict[str, Any]:
        """Extra `create_engine` arguments, pooling excluded."""

    @abstractmethod
    def configure_connection(self, raw_conn: Any) -> None:
        """Prepare a freshly opened connection; it must end up in autocommit.
        """

    @abstractmethod
    def enable_autocommit(self, raw_conn: Any) -> None:
        ...

    @abstractmethod
    def disable_autocommit(self, raw_conn: Any) -> None:
        ...

    @abstractmethod
    def apply_command_timeout(self, cursor: Any, seconds: float) -> Any:
        """Bound how long statements run on `cursor`'s session.

        Returns
            The previous setting, handed back to `reset_command_timeout`
        """

    @abstractmethod
    def reset_command_timeout(self, cursor: Any, state: Any) -> None:
        ...

    @abstractmethod
    def returning_clause(self) -> str:
        """Appended to a generated INSERT so it returns the new identity."""

    @classmethod
    @abstractmethod
    def get_required_options(cls) -> list[str]:
        """Option fields that must be set (non-empty, non-zero)."""

    @classmethod
    def validate_options(cls, options: 'DatabaseOptions') -> None:
        """Raise ValueError naming the first required field left unset.
        """
        for field in cls.get_required_options():
            if not getattr(options, field):
                raise ValueError(f'field {field} cannot be None or 0')

    def quote_identifier(self, identifier: str) -> str:
        return sql_quote_identifier(identifier, self.dialect_name)

    def standardize_sql(self, sql: str) -> str:
        """Rewrite pyformat placeholders into the driver's style."""
        return sql

    def build_insert_sql(self, table: str, columns: list[str],
                         parameter_names: list[str], quote_table: bool = True) -> str:
        """INSERT of `columns` bound to `parameter_names`, returning the identity.

        `table` is quoted unless `quote_table` is False, which is how a table
        name supplied by the caller is used verbatim.
        """
        target = self.quote_identifier(table) if quote_table else table
        returning = self.returning_clause()
        if not columns:
            return f'INSERT INTO {target} DEFAULT VALUES {returning}'.rstrip()
        column_list = ', '.join(self.quote_identifier(col) for col in columns)
        values = ', '.join(f'%({name})s' for name in parameter_names)
        return f'INSERT INTO {target} ({column_list}) VALUES ({values}) {returning}'.rstrip()
