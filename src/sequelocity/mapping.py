"""
Result materialization: rows into typed objects, dynamic records and lists.

Column to member resolution for a concrete target happens once per result
(a `MappingPlan`) and is reused for every row. Tiers, each evaluated column
by column in result order:

1. Explicit column override on the member (case-insensitive)
2. Exact member name
3. Case-insensitive member name

A member with an override only takes part in tier 1. Each member binds at
most one column and each column at most one member; the first declared
member wins. A member whose type is itself a class with members (a complex
member) binds the dotted columns `member.sub` instead, recursively.

A NULL cell becomes None for nullable members and the zero value for
numeric, boolean and enum members.
"""
import dataclasses
import enum
import inspect
import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any

from sequelocity.coercion import coerce, default_value, is_scalar_type, to_enum
from sequelocity.describe import Member, describe, is_named_tuple
from sequelocity.exceptions import ArgumentError
from sequelocity.types import Column, DataRecord

from libb import attrdict

logger = logging.getLogger(__name__)

__all__ = [
    'DynamicRecord',
    'MappingPlan',
    'validate_target',
    'materialize',
    'materialize_dynamic',
    'materialize_primitive',
    'materialize_enum',
]


class DynamicRecord(attrdict):
    """One row as an ordered mapping with attribute access.

        >>> row = DynamicRecord(CustomerId=1, FirstName='Clark')
        >>> row.FirstName
        'Clark'
    """

    def __repr__(self) -> str:
        return f'DynamicRecord({dict.__repr__(self)})'


# Plan construction

_EXACT = 'exact'
_FOLDED = 'folded'


def _matches(tier: str, member_name: str, column_name: str) -> bool:
    if tier == _EXACT:
        return member_name == column_name
    return member_name.casefold() == column_name.casefold()


@dataclass(slots=True)
class Binding:
    ordinal: int
    member: Member


@dataclass(slots=True)
class NestedBinding:
    member: Member
    plan: 'MappingPlan'


@dataclass
class MappingPlan:
    """Resolved column -> member bindings for one (result, target) pair.
    """
    target: type
    bindings: list[Binding] = field(default_factory=list)
    nested: list[NestedBinding] = field(default_factory=list)
    members: tuple[Member, ...] = ()

    @classmethod
    def build(cls, target: type, columns: Sequence[tuple[int, str]]) -> 'MappingPlan':
        """Build a plan from (ordinal, column name) pairs in result order.
        """
        members = describe(target)
        plan = cls(target, members=members)
        scalars = [m for m in members if not m.is_complex]
        complexes = [m for m in members if m.is_complex]

        bound: dict[str, int] = {}
        used: set[int] = set()

        def bind(tier_match: Callable[[Member, str], bool], candidates: list[Member]) -> None:
            for ordinal, name in columns:
                if ordinal in used:
                    continue
                for member in candidates:
                    if member.name in bound:
                        continue
                    if tier_match(member, name):
                        bound[member.name] = ordinal
                        used.add(ordinal)
                        break

        overridden = [m for m in scalars if m.column]
        named = [m for m in scalars if not m.column]
        bind(lambda m, name: m.column.casefold() == name.casefold(), overridden)
        bind(lambda m, name: _matches(_EXACT, m.name, name), named)
        bind(lambda m, name: _matches(_FOLDED, m.name, name), named)

        by_name = {m.name: m for m in scalars}
        plan.bindings = sorted((Binding(ordinal, by_name[name]) for name, ordinal in bound.items()),
                               key=lambda b: b.ordinal)

        if complexes:
            plan.nested = cls._build_nested(complexes, [(o, n) for o, n in columns if o not in used])

        return plan

    @classmethod
    def _build_nested(cls, complexes: list[Member],
                      columns: Sequence[tuple[int, str]]) -> list[NestedBinding]:
        heads: dict[str, None] = {}
        for _, name in columns:
            if '.' in name:
                heads.setdefault(name.split('.', 1)[0], None)

        assigned: dict[str, str] = {}      # head -> member name
        taken: set[str] = set()

        def assign(match: Callable[[Member, str], bool], candidates: list[Member]) -> None:
            for head in heads:
                if head in assigned:
                    continue
                for member in candidates:
                    if member.name in taken:
                        continue
                    if match(member, head):
                        assigned[head] = member.name
                        taken.add(member.name)
                        break

        overridden = [m for m in complexes if m.column]
        named = [m for m in complexes if not m.column]
        assign(lambda m, head: m.column.casefold() == head.casefold(), overridden)
        assign(lambda m, head: _matches(_EXACT, m.name, head), named)
        assign(lambda m, head: _matches(_FOLDED, m.name, head), named)

        nested = []
        by_name = {m.name: m for m in complexes}
        for member in complexes:
            member_heads = [h for h, name in assigned.items() if name == member.name]
            if not member_heads:
                continue
            head = member_heads[0]
            sub_columns = [(o, n.split('.', 1)[1]) for o, n in columns
                           if '.' in n and n.split('.', 1)[0] == head]
            sub_plan = cls.build(by_name[member.name].target, sub_columns)
            if sub_plan.is_empty:
                continue
            nested.append(NestedBinding(member, sub_plan))
        return nested

    @property
    def is_empty(self) -> bool:
        return not self.bindings and not self.nested

    @property
    def ordinals(self) -> list[int]:
        result = [b.ordinal for b in self.bindings]
        for n in self.nested:
            result.extend(n.plan.ordinals)
        return result

    def materialize(self, values: Sequence[Any], names: Sequence[str] | None = None) -> Any:
        """Build one instance of the target from a row's values.
        """
        assigned: dict[str, Any] = {}
        for binding in self.bindings:
            member = binding.member
            column = names[binding.ordinal] if names else member.name
            assigned[member.name] = coerce(values[binding.ordinal], member.annotation, column)
        for nested in self.nested:
            member = nested.member
            if member.nullable and all(values[o] is None for o in nested.plan.ordinals):
                assigned[member.name] = None
            else:
                assigned[member.name] = nested.plan.materialize(values, names)
        return construct(self.target, self.members, assigned)


# Instance construction


def _set(instance: Any, name: str, value: Any) -> None:
    try:
        setattr(instance, name, value)
    except dataclasses.FrozenInstanceError:
        object.__setattr__(instance, name, value)


def construct(target: type, members: tuple[Member, ...], assigned: dict[str, Any]) -> Any:
    """Create `target` from assigned member values.

    Dataclasses and named tuples are built through their constructor so
    `__post_init__` and immutable instances work; other classes are created
    with no arguments and then have their members set.
    """
    if dataclasses.is_dataclass(target):
        kwargs = {}
        late = {}
        for member in members:
            if member.init:
                if member.name in assigned:
                    kwargs[member.name] = assigned[member.name]
                elif not member.has_default:
                    kwargs[member.name] = default_value(member.annotation)
            elif member.name in assigned:
                late[member.name] = assigned[member.name]
        instance = target(**kwargs)
        for name, value in late.items():
            _set(instance, name, value)
        return instance

    if is_named_tuple(target):
        return target(**{member.name: assigned[member.name] if member.name in assigned
                         else default_value(member.annotation)
                         for member in members
                         if member.name in assigned or not member.has_default})

    instance = target()
    for member in members:
        if member.name in assigned:
            setattr(instance, member.name, assigned[member.name])
        elif not member.has_default:
            setattr(instance, member.name, default_value(member.annotation))
    return instance


def _accepts_no_arguments(target: type) -> bool:
    try:
        signature = inspect.signature(target)
    except (TypeError, ValueError):
        return True
    return all(p.default is not p.empty or p.kind in {p.VAR_POSITIONAL, p.VAR_KEYWORD}
               for p in signature.parameters.values())


def validate_target(target: Any) -> type:
    """Check that rows can be materialized into `target`.

    Raises ArgumentError for anything that is not a class with members, or
    a non-dataclass that cannot be created without arguments.
    """
    if not isinstance(target, type):
        raise ArgumentError(f'Target must be a class, got {target!r}')
    if is_scalar_type(target):
        raise ArgumentError(f'{target.__name__} is a scalar type; use execute_to_primitive_list')
    if not describe(target):
        raise ArgumentError(f'{target.__name__} has no public members to map columns to')
    if dataclasses.is_dataclass(target) or is_named_tuple(target):
        return target
    if not _accepts_no_arguments(target):
        raise ArgumentError(f'{target.__name__} must be constructible without arguments')
    return target


# Materializers; each takes an iterable of DataRecord


def materialize(records: Iterable[DataRecord], target: type) -> list[Any]:
    """Map every record into a new instance of `target`.

    The plan is built lazily from the first record's columns.
    """
    results = []
    plan = None
    names: list[str] = []
    for record in records:
        if plan is None:
            names = Column.get_names(record.columns)
            plan = MappingPlan.build(target, list(enumerate(names)))
            logger.debug(f'Mapping plan for {target.__name__}: '
                         f'{[(names[b.ordinal], b.member.name) for b in plan.bindings]}')
        results.append(plan.materialize(record.values, names))
    return results


def _dynamic_value(value: Any, column: Column) -> Any:
    if value is None or column.python_type is None:
        return value
    return coerce(value, column.python_type, column.name)


def to_dynamic(record: DataRecord) -> DynamicRecord:
    result = DynamicRecord()
    for column, value in zip(record.columns, record.values):
        if column.name in result:
            continue
        result[column.name] = _dynamic_value(value, column)
    return result


def materialize_dynamic(records: Iterable[DataRecord]) -> list[DynamicRecord]:
    return [to_dynamic(record) for record in records]


def materialize_primitive(records: Iterable[DataRecord], target: Any) -> list[Any]:
    results = []
    for record in records:
        name = record.get_name(0) if record.field_count else None
        results.append(coerce(record.values[0], target, name))
    return results


def materialize_enum(records: Iterable[DataRecord], enum_type: type[enum.Enum]) -> list[Any]:
    """Column 0 of each record as a member of `enum_type`; NULL -> zero member."""
    results = []
    for record in records:
        value = record.values[0]
        if value is None:
            results.append(default_value(enum_type))
        else:
            results.append(to_enum(value, enum_type, record.get_name(0)))
    return results
