"""
Command parameters.

Parameters are bound by name. Names may be given with the `@` or `:` prefix
common in other client libraries; the prefix is stripped so that
`add_parameter('@Id', 1)` binds `%(Id)s`.
"""
import enum
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from sequelocity.exceptions import ArgumentError

logger = logging.getLogger(__name__)

__all__ = ['Parameter', 'ParameterDirection', 'normalize_name', 'ParameterSet']


class ParameterDirection(enum.Enum):
    INPUT = 'input'
    OUTPUT = 'output'
    INPUT_OUTPUT = 'input_output'
    RETURN_VALUE = 'return_value'


def normalize_name(name: str) -> str:
    if not isinstance(name, str) or not name.strip():
        raise ArgumentError(f'Parameter name must be a non-empty string, got {name!r}')
    name = name.strip()
    if name[0] in '@:':
        name = name[1:]
    if not name:
        raise ArgumentError('Parameter name must not be only a prefix')
    return name


@dataclass(slots=True)
class Parameter:
    """A named value bound to a command.

    `db_type` is informational; DB-API drivers infer the database type from
    the Python value. DB-API has no output parameters, so INPUT_OUTPUT is
    bound as an input and OUTPUT/RETURN_VALUE are rejected.
    """
    name: str
    value: Any = None
    db_type: Any = None
    direction: ParameterDirection = ParameterDirection.INPUT

    def __post_init__(self):
        self.name = normalize_name(self.name)
        if not isinstance(self.direction, ParameterDirection):
            self.direction = ParameterDirection(self.direction)
        if self.direction not in {ParameterDirection.INPUT, ParameterDirection.INPUT_OUTPUT}:
            raise ArgumentError(
                f'Parameter {self.name!r}: {self.direction.name} parameters are not '
                'supported by DB-API drivers')


class ParameterSet:
    """Ordered name -> Parameter collection.

    Adding a parameter under an existing name replaces it in place.
    """

    def __init__(self) -> None:
        self._items: dict[str, Parameter] = {}

    def add(self, parameter: Parameter) -> Parameter:
        if parameter.name in self._items:
            logger.debug(f'Replacing parameter {parameter.name!r}')
        self._items[parameter.name] = parameter
        return parameter

    def extend(self, parameters: Mapping[str, Any] | Iterable[Parameter]) -> None:
        if isinstance(parameters, Mapping):
            for name, value in parameters.items():
                self.add(value if isinstance(value, Parameter) else Parameter(name, value))
            return
        for parameter in parameters:
            if not isinstance(parameter, Parameter):
                raise ArgumentError(f'Expected a Parameter, got {type(parameter).__name__}')
            self.add(parameter)

    def to_dict(self) -> dict[str, Any]:
        return {name: p.value for name, p in self._items.items()}

    def names(self) -> list[str]:
        return list(self._items)

    def clear(self) -> None:
        self._items.clear()

    def __contains__(self, name: str) -> bool:
        return name in self._items

    def __getitem__(self, name: str) -> Parameter:
        return self._items[name]

    def __iter__(self):
        return iter(self._items.values())

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        return f'ParameterSet({list(self._items.values())!r})'
