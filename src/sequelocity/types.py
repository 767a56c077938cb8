"""
Values crossing the driver boundary in either direction.

Parameters go through `TypeConverter` before they are bound, so NumPy,
pandas and Arrow scalars (typically taken from a DataFrame) arrive at the
driver as plain Python values, and NaN/NaT/NA as NULL.

Results are described by `Column` and read through `DataRecord`.
"""
import datetime
import math
from collections.abc import Iterator, Sequence
from dataclasses import asdict, dataclass
from typing import Any, Self

import dateutil.parser
import numpy as np
import pandas as pd
import pyarrow as pa
from psycopg.postgres import types as pg_types


class TypeConverter:
    """Parameter values to what the DBAPI drivers accept."""

    @staticmethod
    def convert_value(value: Any) -> Any:
        if value is None or value is pd.NaT or value is pd.NA:
            return None
        if isinstance(value, np.datetime64):
            return None if np.isnat(value) else pd.Timestamp(value).to_pydatetime()
        if isinstance(value, np.generic):
            value = value.item()
        if isinstance(value, float):
            return None if math.isnan(value) or math.isinf(value) else value
        if isinstance(value, pa.Scalar):
            return value.as_py() if value.is_valid else None
        if isinstance(value, pd.Timestamp):
            return value.to_pydatetime()
        return value

    @staticmethod
    def convert_params(params: Any) -> Any:
        """Convert every value of a dict, list or tuple (or a lone value)."""
        if params is None:
            return None
        if isinstance(params, dict):
            return {k: TypeConverter.convert_value(v) for k, v in params.items()}
        if isinstance(params, list | tuple):
            return type(params)(TypeConverter.convert_value(v) for v in params)
        return TypeConverter.convert_value(params)


_postgres_names: dict[type, tuple[str, ...]] = {
    str: ('"char"', 'bpchar', 'character varying', 'character', 'name', 'text', 'varchar'),
    int: ('bigint', 'int2', 'int4', 'int8', 'integer'),
    float: ('float4', 'float8', 'double precision'),
    bool: ('bool', 'boolean'),
    bytes: ('bytea',),
    datetime.date: ('date',),
    datetime.datetime: ('timestamp', 'timestamptz', 'timestamp with time zone',
                        'timestamp without time zone'),
    datetime.time: ('time', 'timetz', 'time without time zone'),
}

# type oid -> python type
postgres_types: dict[int, type] = {
    pg_types.get(name).oid: python_type
    for python_type, names in _postgres_names.items()
    for name in names
}

# declared column type -> python type
sqlite_types: dict[str, type] = {
    'INTEGER': int, 'INT': int, 'BIGINT': int,
    'REAL': float, 'DOUBLE': float, 'FLOAT': float,
    'TEXT': str, 'VARCHAR': str, 'NVARCHAR': str,
    'BLOB': bytes,
    'BOOLEAN': bool,
    'DATE': datetime.date,
    'DATETIME': datetime.datetime, 'TIMESTAMP': datetime.datetime,
    'TIME': datetime.time,
}


def resolve_type(db_type: str, type_code: Any) -> type | None:
    """Python type for a driver type code, None when unknown or unreported.
    """
    if type_code is None:
        return None
    if isinstance(type_code, type):
        return type_code
    if db_type == 'postgresql':
        return postgres_types.get(type_code)
    if db_type == 'sqlite' and isinstance(type_code, str):
        return sqlite_types.get(type_code.split('(')[0].strip().upper())
    return None


@dataclass
class Column:
    """Metadata of one result column, from a DB-API cursor description.

    sqlite3 only reports names, so `python_type` is None there and values
    are taken as the driver returns them.
    """
    name: str
    type_code: Any
    python_type: type | None = None
    display_size: int | None = None
    internal_size: int | None = None
    precision: int | None = None
    scale: int | None = None
    nullable: bool | None = None

    @classmethod
    def from_cursor_description(cls, description_item: Sequence, connection_type: str) -> Self:
        name, type_code, display_size, internal_size, precision, scale, null_ok = \
            (tuple(description_item) + (None,) * 7)[:7]
        return cls(str(name), type_code, resolve_type(connection_type, type_code),
                   display_size, internal_size, precision, scale,
                   None if null_ok is None else bool(null_ok))

    def to_dict(self) -> dict:
        d = asdict(self)
        d['python_type'] = self.python_type.__name__ if self.python_type else None
        return d

    @staticmethod
    def get_names(columns: list[Self]) -> list[str]:
        return [col.name for col in columns]

    @staticmethod
    def get_column_types_dict(columns: list[Self]) -> dict[str, dict]:
        return {col.name: col.to_dict() for col in columns}


def columns_from_cursor_description(cursor: Any, connection_type: str) -> list[Column]:
    """Create Column objects from cursor description."""
    if cursor.description is None:
        return []
    return [Column.from_cursor_description(desc, connection_type)
            for desc in cursor.description]


class DataRecord:
    """One result row, accessible by ordinal or by column name.

    Name lookup is exact first, then case-insensitive.
    """

    __slots__ = ('columns', 'values', '_ordinals')

    def __init__(self, columns: list[Column], values: Sequence[Any],
                 ordinals: tuple[dict[str, int], dict[str, int]] | None = None) -> None:
        self.columns = columns
        self.values = tuple(values)
        self._ordinals = ordinals if ordinals is not None else build_ordinals(columns)

    @property
    def field_count(self) -> int:
        return len(self.columns)

    def get_name(self, ordinal: int) -> str:
        return self.columns[ordinal].name

    def get_ordinal(self, name: str) -> int:
        try:
            return self._ordinals[0][name]
        except KeyError:
            pass
        try:
            return self._ordinals[1][name.casefold()]
        except KeyError:
            raise IndexError(f'No column named {name!r}') from None

    def get_value(self, key: int | str) -> Any:
        if isinstance(key, str):
            key = self.get_ordinal(key)
        return self.values[key]

    def is_db_null(self, key: int | str) -> bool:
        return self.get_value(key) is None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {}
        for col, value in zip(self.columns, self.values):
            result.setdefault(col.name, value)
        return result

    __getitem__ = get_value

    def __len__(self) -> int:
        return len(self.values)

    def __iter__(self) -> Iterator[Any]:
        return iter(self.values)

    def __repr__(self) -> str:
        return f'DataRecord({self.to_dict()!r})'


def build_ordinals(columns: list[Column]) -> tuple[dict[str, int], dict[str, int]]:
    """First ordinal per column name, and per casefolded column name."""
    exact: dict[str, int] = {}
    folded: dict[str, int] = {}
    for i, col in enumerate(columns):
        exact.setdefault(col.name, i)
        folded.setdefault(col.name.casefold(), i)
    return exact, folded


# SQLite converters - Database value converters

def convert_date(val: bytes) -> datetime.date:
    """Convert ISO 8601 date string to date object."""
    return dateutil.parser.isoparse(val.decode()).date()


def convert_datetime(val: bytes) -> datetime.datetime:
    """Convert ISO 8601 datetime string to datetime object."""
    return dateutil.parser.isoparse(val.decode())


def adapt_date(val: datetime.date) -> str:
    return val.isoformat()


def adapt_datetime(val: datetime.datetime) -> str:
    return val.isoformat(' ')
