"""
Connection options and the loaders `execute_to_data_frame` hands rows to.

A data loader is called as `loader(rows, columns)` where `rows` is a list of
dicts keyed by column name and `columns` the `Column` metadata of the result.
"""
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import pandas as pd
import pyarrow as pa
from sequelocity.strategy import get_available_dialects, get_strategy_class
from sequelocity.strategy import is_supported_dialect
from sequelocity.types import Column

from libb import ConfigOptions, scriptname

__all__ = [
    'DatabaseOptions',
    'pandas_numpy_data_loader',
    'pandas_pyarrow_data_loader',
    'iterdict_data_loader',
]


def iterdict_data_loader(data, columns, **kwargs) -> list[dict]:
    """Rows as they came, a list of dicts."""
    return list(data or [])


def _with_column_types(df: pd.DataFrame, columns) -> pd.DataFrame:
    df.attrs['column_types'] = Column.get_column_types_dict(columns)
    return df


def pandas_numpy_data_loader(data, columns, **kwargs) -> pd.DataFrame:
    """NumPy-backed DataFrame; column order follows the result set.

    An empty result still yields the columns. Column metadata is kept in
    `df.attrs['column_types']`.
    """
    names = Column.get_names(columns)
    if not data:
        return _with_column_types(pd.DataFrame(columns=names), columns)
    return _with_column_types(pd.DataFrame.from_records(list(data), columns=names), columns)


def pandas_pyarrow_data_loader(data, columns, **kwargs) -> pd.DataFrame:
    """Arrow-backed DataFrame (`pd.ArrowDtype` columns)."""
    names = Column.get_names(columns)
    if not data:
        return _with_column_types(pd.DataFrame(columns=names), columns)
    table = pa.Table.from_pylist([{name: row[name] for name in names} for row in data])
    return _with_column_types(table.to_pandas(types_mapper=pd.ArrowDtype), columns)


@dataclass
class DatabaseOptions(ConfigOptions):
    """How to reach one data source.

    `drivername` is `postgresql` or `sqlite`; which other fields are required
    depends on it (a SQLite source only needs `database`, the file path).

    With `use_pool` the engine keeps up to `pool_max_connections` connections,
    recycles them after `pool_max_idle_time` seconds and waits at most
    `pool_wait_timeout` seconds for one. Otherwise every open is a fresh
    connection.
    """
    drivername: str = 'postgresql'
    hostname: str = None
    username: str = None
    password: str = None
    database: str = None
    port: int = 0
    timeout: int = 0
    appname: str = None
    data_loader: Callable[..., Any] | None = None
    use_pool: bool = False
    pool_max_connections: int = 5
    pool_max_idle_time: int = 300
    pool_wait_timeout: int = 30

    def __post_init__(self):
        if not is_supported_dialect(self.drivername):
            raise ValueError(f'drivername must be one of: {get_available_dialects()}')
        get_strategy_class(self.drivername).validate_options(self)
        if not self.appname:
            self.appname = scriptname() or 'python_console'
        if self.data_loader is None:
            self.data_loader = pandas_numpy_data_loader
