"""
Runtime description of the members of a target type.

`describe(cls)` answers, for any class, the ordered set of members a result
row can be mapped into. The order is deterministic:

1. Dataclasses and named tuples: fields in field order.
2. Other classes: walking the MRO from the most basic class, annotated public
   names in annotation order, then unannotated public class attributes and
   settable properties in class-body order.

`ClassVar` annotations and names starting with an underscore are skipped.

Members may name the column they map from, either with `column()`:

    @dataclass
    class Customer:
        customer_id: int | None = column('CustomerId', default=None)

or with a `__columns__` mapping on the class:

    class Customer:
        __columns__ = {'customer_id': 'CustomerId'}
        customer_id: int | None = None
"""
import dataclasses
import inspect
import logging
import types
import typing
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from sequelocity.cache import cached_by_type
from sequelocity.coercion import is_scalar_type, unwrap_optional
from sequelocity.exceptions import ArgumentError

logger = logging.getLogger(__name__)

__all__ = [
    'Member',
    'column',
    'describe',
    'is_complex_type',
    'insert_values',
    'is_loosely_typed',
    'is_named_tuple',
    'table_name_for',
    'COLUMN_METADATA_KEY',
]

COLUMN_METADATA_KEY = 'sequelocity.column'

MISSING = dataclasses.MISSING


@dataclass(frozen=True, slots=True)
class Member:
    """A settable member of a target type."""
    name: str
    annotation: Any = Any
    column: str | None = None
    kind: str = 'attribute'     # 'field', 'attribute' or 'property'
    init: bool = True
    has_default: bool = False

    @property
    def target(self) -> Any:
        """Annotation without its ``| None`` part."""
        return unwrap_optional(self.annotation)[0]

    @property
    def nullable(self) -> bool:
        return unwrap_optional(self.annotation)[1]

    @property
    def is_complex(self) -> bool:
        return is_complex_type(self.annotation)


def column(name: str, **kwargs: Any) -> Any:
    """Declare a dataclass field that maps from column `name`.

    Accepts the same keyword arguments as `dataclasses.field`.
    """
    metadata = dict(kwargs.pop('metadata', None) or {})
    metadata[COLUMN_METADATA_KEY] = name
    return dataclasses.field(metadata=metadata, **kwargs)


def _is_classvar(annotation: Any) -> bool:
    if annotation is typing.ClassVar:
        return True
    if typing.get_origin(annotation) is typing.ClassVar:
        return True
    return isinstance(annotation, str) and annotation.startswith(('ClassVar', 'typing.ClassVar'))


def _type_hints(cls: type) -> dict[str, Any]:
    """Resolved annotations, falling back to raw ones when forward refs fail."""
    try:
        return typing.get_type_hints(cls)
    except (NameError, TypeError) as err:
        logger.debug(f'Could not resolve annotations of {cls.__name__}: {err}')
        hints: dict[str, Any] = {}
        for klass in reversed(cls.__mro__):
            hints.update(inspect.get_annotations(klass))
        return hints


def _return_hint(func: Any) -> Any:
    try:
        return typing.get_type_hints(func).get('return', Any)
    except (NameError, TypeError):
        return Any


def _column_overrides(cls: type) -> dict[str, str]:
    overrides = getattr(cls, '__columns__', None) or {}
    if not isinstance(overrides, Mapping):
        raise ArgumentError(f'{cls.__name__}.__columns__ must be a mapping of member to column')
    return dict(overrides)


def _describe_dataclass(cls: type, hints: dict[str, Any],
                        overrides: dict[str, str]) -> tuple[Member, ...]:
    members = []
    for field in dataclasses.fields(cls):
        has_default = field.default is not MISSING or field.default_factory is not MISSING
        members.append(Member(
            name=field.name,
            annotation=hints.get(field.name, field.type),
            column=field.metadata.get(COLUMN_METADATA_KEY, overrides.get(field.name)),
            kind='field',
            init=field.init,
            has_default=has_default,
            ))
    return tuple(members)


def is_named_tuple(cls: Any) -> bool:
    return isinstance(cls, type) and issubclass(cls, tuple) and hasattr(cls, '_fields')


def _describe_named_tuple(cls: type, hints: dict[str, Any],
                          overrides: dict[str, str]) -> tuple[Member, ...]:
    return tuple(Member(name=name,
                        annotation=hints.get(name, Any),
                        column=overrides.get(name),
                        kind='field',
                        has_default=name in cls._field_defaults)
                 for name in cls._fields)


def _describe_class(cls: type, hints: dict[str, Any],
                    overrides: dict[str, str]) -> tuple[Member, ...]:
    seen: dict[str, Member] = {}
    classvars: set[str] = set()
    for klass in reversed(cls.__mro__):
        if klass is object:
            continue
        namespace = vars(klass)
        for name, raw in inspect.get_annotations(klass).items():
            if _is_classvar(hints.get(name, raw)):
                classvars.add(name)
                continue
            if name.startswith('_') or name in seen:
                continue
            seen[name] = Member(name=name, annotation=hints.get(name, raw),
                                column=overrides.get(name),
                                has_default=name in namespace
                                and not inspect.isdatadescriptor(namespace[name]))
        for name, value in namespace.items():
            if name.startswith('_') or name in seen or name in classvars:
                continue
            if isinstance(value, property):
                if value.fset is None:
                    continue
                returns = _return_hint(value.fget) if value.fget else Any
                seen[name] = Member(name=name, annotation=returns,
                                    column=overrides.get(name), kind='property',
                                    has_default=True)
            elif not callable(value) and not inspect.isdatadescriptor(value) \
                    and not isinstance(value, (classmethod, staticmethod)):
                annotation = type(value) if value is not None else Any
                seen[name] = Member(name=name, annotation=annotation,
                                    column=overrides.get(name), has_default=True)
    return tuple(seen.values())


def describe(cls: type) -> tuple[Member, ...]:
    """Return the ordered members of `cls`.
    """
    if not isinstance(cls, type):
        raise ArgumentError(f'Expected a class to describe, got {cls!r}')
    return _describe(cls)


@cached_by_type('members')
def _describe(cls: type) -> tuple[Member, ...]:
    hints = _type_hints(cls)
    overrides = _column_overrides(cls)
    if dataclasses.is_dataclass(cls):
        members = _describe_dataclass(cls, hints, overrides)
    elif is_named_tuple(cls):
        members = _describe_named_tuple(cls, hints, overrides)
    else:
        members = _describe_class(cls, hints, overrides)
    logger.debug(f'Described {cls.__name__}: {[m.name for m in members]}')
    return members


def is_complex_type(annotation: Any) -> bool:
    """True when a member of this type is built from several columns."""
    inner, _ = unwrap_optional(annotation)
    if is_scalar_type(inner):
        return False
    return isinstance(inner, type) and bool(describe(inner))


# Instance side, used when an object is the source of parameters


def is_loosely_typed(obj: Any) -> bool:
    """Mappings and namespaces carry no type name to derive a table from."""
    return isinstance(obj, (Mapping, types.SimpleNamespace))


def table_name_for(obj: Any) -> str:
    cls = type(obj)
    return getattr(cls, '__tablename__', None) or cls.__name__


def insert_values(obj: Any) -> list[tuple[str, Any]]:
    """(column, value) pairs of a source object, in member order.
    """
    if isinstance(obj, Mapping):
        return [(str(key), value) for key, value in obj.items()]
    if isinstance(obj, types.SimpleNamespace):
        return list(vars(obj).items())
    members = describe(type(obj))
    pairs = [(m.column or m.name, getattr(obj, m.name, None))
             for m in members if not m.is_complex]
    known = {m.name for m in members}
    extra = [(name, value) for name, value in getattr(obj, '__dict__', {}).items()
             if name not in known and not name.startswith('_')]
    return pairs + extra
