"""
Dialect strategies, looked up by SQLAlchemy dialect name.

    get_strategy('sqlite').standardize_sql('select %(id)s')
"""
from functools import cache

from sequelocity.strategy.base import _STRATEGY_REGISTRY
from sequelocity.strategy.base import DatabaseStrategy as DatabaseStrategy
from sequelocity.strategy.base import register_strategy as register_strategy
from sequelocity.strategy.postgres import PostgresStrategy as PostgresStrategy
from sequelocity.strategy.sqlite import SQLiteStrategy as SQLiteStrategy


def get_available_dialects() -> list[str]:
    return sorted(_STRATEGY_REGISTRY)


def is_supported_dialect(dialect: str) -> bool:
    return dialect in _STRATEGY_REGISTRY


def get_strategy_class(dialect: str) -> type[DatabaseStrategy]:
    """Registered strategy class; ValueError for an unknown dialect."""
    try:
        return _STRATEGY_REGISTRY[dialect]
    except KeyError:
        raise ValueError(f'Unsupported dialect: {dialect}. '
                         f'Available: {get_available_dialects()}') from None


@cache
def get_strategy(dialect: str) -> DatabaseStrategy:
    """Shared strategy instance for a dialect."""
    return get_strategy_class(dialect)()
