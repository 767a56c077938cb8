"""
Connections: a SQLAlchemy engine per data source, one wrapped DBAPI
connection per command context.

    cn = create_connection({'drivername': 'sqlite', 'database': 'app.db'})
    cn.open()
    ...
    cn.close()

Engines are built once per distinct `DatabaseOptions` and kept in a locked
registry until interpreter exit. Without `use_pool` they use `NullPool`, so
closing a connection really closes it.

SQLAlchemy only manages engines and pooling here; commands talk to the
driver connection (`sqlite3` or `psycopg`) directly so placeholders, cursors
and type conversion stay driver-native.
"""
import atexit
import logging
import threading
from dataclasses import fields
from typing import TYPE_CHECKING, Any, Self

import sqlalchemy as sa
from sequelocity.exceptions import ConnectionFailure
from sequelocity.options import DatabaseOptions
from sequelocity.strategy import DatabaseStrategy, get_strategy
from sqlalchemy.engine import Engine
from sqlalchemy.pool import NullPool

from libb import load_options

if TYPE_CHECKING:
    from sequelocity.cursor import Command
    from sequelocity.transaction import Transaction

__all__ = [
    'ConnectionWrapper',
    'ConnectionState',
    'connect',
    'create_connection',
    'create_url_from_options',
    'get_engine_for_options',
    'dispose_all_engines',
]

logger = logging.getLogger(__name__)

_engines: dict[str, Engine] = {}
_engines_lock = threading.RLock()


class ConnectionState:
    CLOSED = 'closed'
    OPEN = 'open'


def create_url_from_options(options: DatabaseOptions) -> sa.URL:
    """SQLAlchemy URL for the options' dialect."""
    return get_strategy(options.drivername).build_connection_url(options)


def _pool_kwargs(options: DatabaseOptions) -> dict[str, Any]:
    if not options.use_pool:
        return {'poolclass': NullPool}
    return {
        'pool_size': options.pool_max_connections,
        'pool_recycle': options.pool_max_idle_time,
        'pool_timeout': options.pool_wait_timeout,
        'pool_pre_ping': True,
        'pool_reset_on_return': 'rollback',
    }


def get_engine_for_options(options: DatabaseOptions) -> Engine:
    """Engine for `options`, created on first request and reused afterwards.
    """
    key = str(options)
    with _engines_lock:
        engine = _engines.get(key)
        if engine is not None:
            return engine
        strategy = get_strategy(options.drivername)
        engine = sa.create_engine(create_url_from_options(options),
                                  **strategy.get_engine_kwargs(options),
                                  **_pool_kwargs(options))
        _engines[key] = engine
        logger.debug(f'Created {options.drivername} engine (pooled={options.use_pool})')
        return engine


def dispose_all_engines() -> None:
    with _engines_lock:
        while _engines:
            _, engine = _engines.popitem()
            engine.dispose()
    logger.debug('Disposed all engines')


atexit.register(dispose_all_engines)


class ConnectionWrapper:
    """A DBAPI connection checked out from an engine, opened on demand.

    Keeps the state a command context needs: whether the connection is open,
    the active transaction, and how many statements ran for how long.
    """

    def __init__(self, engine: Engine | None = None,
                 options: DatabaseOptions | None = None,
                 sa_connection: sa.engine.Connection | None = None) -> None:
        if engine is None and sa_connection is None:
            raise ConnectionFailure('A ConnectionWrapper needs an engine or a SQLAlchemy connection')
        self.engine = engine if engine is not None else sa_connection.engine
        self.options = options
        self.sa_connection = sa_connection
        self.dbapi_connection = sa_connection.connection.driver_connection if sa_connection else None
        self.transaction: Transaction | None = None
        self.calls = 0
        self.time = 0.0

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None,
                 exc_tb: Any | None) -> None:
        self.close()

    def __repr__(self) -> str:
        return f'ConnectionWrapper({self.dialect}, {self.state})'

    @property
    def dialect(self) -> str:
        """'postgresql' or 'sqlite'."""
        return self.engine.dialect.name

    @property
    def strategy(self) -> DatabaseStrategy:
        return get_strategy(self.dialect)

    @property
    def is_open(self) -> bool:
        return self.sa_connection is not None and not self.sa_connection.closed

    @property
    def state(self) -> str:
        return ConnectionState.OPEN if self.is_open else ConnectionState.CLOSED

    @property
    def in_transaction(self) -> bool:
        return self.transaction is not None and self.transaction.is_active

    @property
    def is_pooled(self) -> bool:
        return not isinstance(self.engine.pool, NullPool)

    def open(self) -> Self:
        """Check out a driver connection and configure it. No-op when open.
        """
        if self.is_open:
            return self
        self.sa_connection = self.engine.connect()
        self.dbapi_connection = self.sa_connection.connection.driver_connection
        self.strategy.configure_connection(self.dbapi_connection)
        logger.debug(f'Opened {self.dialect} connection')
        return self

    def close(self) -> None:
        """Close the connection; an active transaction is rolled back first.
        """
        if not self.is_open:
            return
        if self.in_transaction:
            logger.warning('Closing connection with an active transaction, rolling back')
            self.transaction.rollback()
        self.sa_connection.close()
        self.dbapi_connection = None
        logger.debug(f'Closed {self.dialect} connection after {self.calls} '
                     f'commands in {self.time:.2f}s')

    def addcall(self, elapsed: float) -> None:
        self.calls += 1
        self.time += elapsed

    def cursor(self) -> Any:
        """New driver cursor on the open connection."""
        if not self.is_open:
            raise ConnectionFailure('Connection is not open')
        return self.dbapi_connection.cursor()

    def create_command(self, text: str = '') -> 'Command':
        from sequelocity.cursor import Command
        return Command(self, text)

    def begin_transaction(self) -> 'Transaction':
        """Open the connection if needed and start a transaction on it.
        """
        from sequelocity.transaction import Transaction
        self.open()
        return Transaction(self).begin()


def _resolve_options(options: DatabaseOptions | dict[str, Any] | str,
                     config: Any | None, kw: dict[str, Any]) -> DatabaseOptions:
    if isinstance(options, DatabaseOptions):
        for field in fields(options):
            kw.pop(field.name, None)
        return options
    options_func = load_options(cls=DatabaseOptions)(lambda o, c: o)
    return options_func(options, config, **kw)


@load_options(cls=DatabaseOptions)
def create_connection(options: DatabaseOptions | dict[str, Any] | str,
                      config: Any | None = None, **kw: Any) -> ConnectionWrapper:
    """Create a connection for a data source without opening it.

    Args:
        options: DatabaseOptions, a dict of option fields, or the name of a
            `Setting` in `config`
        config: Module holding named settings
        **kw: Option fields overriding those in `options`

    Returns
        An unopened ConnectionWrapper
    """
    options = _resolve_options(options, config, kw)
    return ConnectionWrapper(get_engine_for_options(options), options)


def connect(options: DatabaseOptions | dict[str, Any] | str,
            config: Any | None = None, **kw: Any) -> ConnectionWrapper:
    """Create and open a connection; arguments as for `create_connection`.
    """
    return create_connection(options, config, **kw).open()
