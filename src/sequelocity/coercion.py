"""
Conversion of result values to requested Python types.

This is the Database -> Python direction. Parameters going the other way
are handled by `sequelocity.types.TypeConverter`.

    >>> coerce('42', int)
    42
    >>> coerce(None, int)
    0
    >>> coerce(None, int | None) is None
    True
"""
import datetime
import decimal
import enum
import logging
import types
import typing
import uuid
from collections.abc import Callable
from typing import Any, Union

import dateutil.parser

from sequelocity.exceptions import CoercionError

logger = logging.getLogger(__name__)

__all__ = [
    'coerce',
    'default_value',
    'unwrap_optional',
    'is_nullable',
    'is_scalar_type',
    'to_enum',
    'ZERO_VALUES',
]

NoneType = type(None)

ZERO_VALUES: dict[type, Any] = {
    int: 0,
    float: 0.0,
    bool: False,
    complex: 0j,
    decimal.Decimal: decimal.Decimal(0),
}

TRUE_STRINGS = {'true', 't', 'yes', 'y', '1', 'on'}
FALSE_STRINGS = {'false', 'f', 'no', 'n', '0', 'off'}

_PASSTHROUGH = {Any, object, None}


def unwrap_optional(target: Any) -> tuple[Any, bool]:
    """Split ``X | None`` into ``(X, True)``.

    Unions of several non-None types are returned whole.
    """
    if target is None or target is NoneType:
        return Any, True
    origin = typing.get_origin(target)
    if origin is Union or origin is types.UnionType:
        args = typing.get_args(target)
        rest = tuple(a for a in args if a is not NoneType)
        nullable = len(rest) != len(args)
        if len(rest) == 1:
            return rest[0], nullable
        return Union[rest], nullable
    return target, False


def is_nullable(target: Any) -> bool:
    return unwrap_optional(target)[1]


def is_scalar_type(target: Any) -> bool:
    """True for types a single cell converts into directly."""
    inner, _ = unwrap_optional(target)
    if inner in _PASSTHROUGH or inner in _CONVERTERS:
        return True
    if typing.get_origin(inner) is not None:
        return True
    if not isinstance(inner, type):
        return True
    return issubclass(inner, (enum.Enum, *_CONVERTERS)) or inner.__module__ == 'builtins'


def _enum_zero(enum_type: type[enum.Enum]) -> enum.Enum | None:
    for member in enum_type:
        if member.value == 0:
            return member
    return None


def default_value(target: Any) -> Any:
    """Value a member of type `target` takes for a database NULL.

    None for nullable and reference types, the zero value for numeric and
    boolean types, the zero-valued member for enums that have one.
    """
    inner, nullable = unwrap_optional(target)
    if nullable or not isinstance(inner, type):
        return None
    if issubclass(inner, enum.Enum):
        return _enum_zero(inner)
    for zero_type, zero in ZERO_VALUES.items():
        if issubclass(inner, zero_type):
            return inner(zero) if inner is not zero_type else zero
    return None


def _to_int(value: Any) -> int:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError('fractional value would be truncated')
        return int(value)
    if isinstance(value, decimal.Decimal):
        if value != value.to_integral_value():
            raise ValueError('fractional value would be truncated')
        return int(value)
    if isinstance(value, str):
        return int(value.strip())
    if isinstance(value, enum.Enum):
        return _to_int(value.value)
    raise TypeError('not a number')


def _to_float(value: Any) -> float:
    if isinstance(value, (int, float, decimal.Decimal)):
        return float(value)
    if isinstance(value, str):
        return float(value.strip())
    raise TypeError('not a number')


def _to_decimal(value: Any) -> decimal.Decimal:
    if isinstance(value, decimal.Decimal):
        return value
    if isinstance(value, float):
        return decimal.Decimal(str(value))
    if isinstance(value, (int, str)):
        return decimal.Decimal(value.strip() if isinstance(value, str) else value)
    raise TypeError('not a number')


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float, decimal.Decimal)):
        return value != 0
    if isinstance(value, str):
        text = value.strip().lower()
        if text in TRUE_STRINGS:
            return True
        if text in FALSE_STRINGS:
            return False
        raise ValueError('not a boolean literal')
    raise TypeError('not a boolean')


def _to_str(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).decode()
    if isinstance(value, enum.Enum):
        return value.name
    return str(value)


def _to_bytes(value: Any) -> bytes:
    if isinstance(value, bytes):
        return value
    if isinstance(value, (bytearray, memoryview)):
        return bytes(value)
    if isinstance(value, str):
        return value.encode()
    raise TypeError('not binary data')


def _parse_datetime(text: str) -> datetime.datetime:
    """ISO 8601 first, then free-form text that names a full date."""
    text = text.strip()
    try:
        return dateutil.parser.isoparse(text)
    except ValueError:
        pass
    # parse() fills missing fields from `default`; two defaults expose them
    first = dateutil.parser.parse(text, default=datetime.datetime(2000, 1, 1))
    second = dateutil.parser.parse(text, default=datetime.datetime(2001, 2, 2))
    if first.date() != second.date():
        raise ValueError(f'{text!r} does not name a full date')
    return first


def _to_datetime(value: Any) -> datetime.datetime:
    if isinstance(value, datetime.datetime):
        return value
    if isinstance(value, datetime.date):
        return datetime.datetime.combine(value, datetime.time())
    if isinstance(value, (str, bytes)):
        text = value.decode() if isinstance(value, bytes) else value
        return _parse_datetime(text)
    raise TypeError('not a datetime')


def _to_date(value: Any) -> datetime.date:
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    if isinstance(value, (str, bytes)):
        text = value.decode() if isinstance(value, bytes) else value
        return _parse_datetime(text).date()
    raise TypeError('not a date')


def _to_time(value: Any) -> datetime.time:
    if isinstance(value, datetime.time):
        return value
    if isinstance(value, datetime.datetime):
        return value.timetz()
    if isinstance(value, (str, bytes)):
        text = value.decode() if isinstance(value, bytes) else value
        return datetime.time.fromisoformat(text.strip())
    raise TypeError('not a time')


def _to_uuid(value: Any) -> uuid.UUID:
    if isinstance(value, uuid.UUID):
        return value
    if isinstance(value, (bytes, bytearray)) and len(value) == 16:
        return uuid.UUID(bytes=bytes(value))
    if isinstance(value, str):
        return uuid.UUID(value)
    raise TypeError('not a uuid')


_CONVERTERS: dict[type, Callable[[Any], Any]] = {
    bool: _to_bool,
    int: _to_int,
    float: _to_float,
    decimal.Decimal: _to_decimal,
    str: _to_str,
    bytes: _to_bytes,
    datetime.datetime: _to_datetime,
    datetime.date: _to_date,
    datetime.time: _to_time,
    uuid.UUID: _to_uuid,
}

_CONVERSION_ERRORS = (TypeError, ValueError, ArithmeticError, OverflowError,
                      UnicodeDecodeError, dateutil.parser.ParserError)


def to_enum(value: Any, enum_type: type[enum.Enum], column: str | None = None) -> enum.Enum:
    """Convert a stored value to a member of `enum_type`.

    Names are matched exactly first, then case-insensitively; otherwise the
    value is matched against member values (numeric text included).
    """
    if isinstance(value, enum_type):
        return value
    if isinstance(value, (bytes, bytearray)):
        value = bytes(value).decode()
    if isinstance(value, str):
        name = value.strip()
        if name in enum_type.__members__:
            return enum_type.__members__[name]
        folded = name.casefold()
        for member_name, member in enum_type.__members__.items():
            if member_name.casefold() == folded:
                return member
    try:
        return enum_type(value)
    except (ValueError, TypeError):
        pass
    try:
        numeric = _to_int(value)
    except _CONVERSION_ERRORS:
        pass
    else:
        try:
            return enum_type(numeric)
        except (ValueError, TypeError):
            pass
    raise CoercionError(value, enum_type, column, 'no matching member name or value')


def _coerce_union(value: Any, members: tuple, column: str | None) -> Any:
    for member in members:
        if isinstance(member, type) and isinstance(value, member):
            return value
    for member in members:
        try:
            return coerce(value, member, column)
        except CoercionError:
            continue
    raise CoercionError(value, Union[members], column)


def coerce(value: Any, target: Any, column: str | None = None) -> Any:
    """Convert `value` to `target`.

    A NULL (None) becomes `default_value(target)`. Raises CoercionError when
    the value cannot be represented as `target`.
    """
    if value is None:
        return default_value(target) if target not in _PASSTHROUGH else None
    inner, _ = unwrap_optional(target)
    if inner in _PASSTHROUGH:
        return value

    origin = typing.get_origin(inner)
    if origin is Union or origin is types.UnionType:
        return _coerce_union(value, typing.get_args(inner), column)
    if origin is typing.Literal:
        if value in typing.get_args(inner):
            return value
        raise CoercionError(value, inner, column, 'not one of the allowed literals')
    if origin is not None:
        if isinstance(value, origin):
            return value
        raise CoercionError(value, inner, column)

    if not isinstance(inner, type):
        return value

    if issubclass(inner, enum.Enum):
        return to_enum(value, inner, column)

    converter = _CONVERTERS.get(inner)
    if converter is None:
        for base, candidate in _CONVERTERS.items():
            if issubclass(inner, base):
                converter = candidate
                break

    if converter is not None:
        try:
            converted = converter(value)
        except CoercionError:
            raise
        except _CONVERSION_ERRORS as err:
            raise CoercionError(value, inner, column, str(err)) from err
        if type(converted) is not inner and inner not in _CONVERTERS:
            return inner(converted)
        return converted

    if isinstance(value, inner):
        return value
    raise CoercionError(value, inner, column)
