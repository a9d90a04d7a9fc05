"""
Typed values exchanged with the engine.

This module provides:
- ColumnType: runtime type tags the engine attaches to result cells
- CloseMode: how a connection is released
- Tagged value variants for parameters (BoundValue) and cells (ColumnValue)
- BoundParameter: a (position, tagged value) pair
- to_bound_value: Python value -> tagged value conversion
- Column: result column metadata
"""
import datetime
import math
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Any, Self

import numpy as np

from typedsqlite.engine import ColumnType
from typedsqlite.exceptions import TypeConversionError


INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1


class CloseMode(Enum):
    """Graceful close fails while statements are live; forceful close defers."""
    GRACEFUL = 'graceful'
    FORCEFUL = 'forceful'

    @classmethod
    def coerce(cls, value: 'CloseMode | str') -> 'CloseMode':
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise ValueError(f'close_mode must be one of: {[m.value for m in cls]}')


@dataclass(frozen=True, slots=True)
class Text:
    value: str


@dataclass(frozen=True, slots=True)
class TextOrNull:
    """Text parameter where None binds SQL NULL."""
    value: str | None


@dataclass(frozen=True, slots=True)
class Int64:
    value: int


@dataclass(frozen=True, slots=True)
class Double:
    value: float


@dataclass(frozen=True, slots=True)
class Blob:
    value: bytes


@dataclass(frozen=True, slots=True)
class Null:
    """A NULL result cell."""

    @property
    def value(self) -> None:
        return None


BoundValue = TextOrNull | Text | Int64 | Double | Blob
ColumnValue = Text | Int64 | Double | Blob | Null


@dataclass(frozen=True, slots=True)
class BoundParameter:
    """Value to marshal into a 1-based parameter slot."""
    position: int
    value: BoundValue

    @classmethod
    def from_value(cls, position: int, value: Any) -> Self:
        """Build a parameter from a plain Python value."""
        return cls(position, to_bound_value(value))


def to_bound_value(value: Any) -> BoundValue:
    """Convert a Python value to the tagged variant used for binding.

    None and float NaN bind NULL. Booleans and NumPy integers bind as
    integers; dates bind as ISO-8601 text.
    """
    if isinstance(value, BoundValue):
        return value
    if value is None:
        return TextOrNull(None)
    if isinstance(value, str):
        return Text(value)
    if isinstance(value, bool | np.bool_):
        return Int64(int(value))
    if isinstance(value, int | np.integer):
        return Int64(int(value))
    if isinstance(value, float | np.floating):
        if math.isnan(value):
            return TextOrNull(None)
        return Double(float(value))
    if isinstance(value, bytes | bytearray | memoryview):
        return Blob(bytes(value))
    if isinstance(value, datetime.date | datetime.time):
        return Text(value.isoformat())
    raise TypeConversionError(f'Cannot bind value of type {type(value).__name__}')


def to_bound_parameters(values: Iterable[Any]) -> list[BoundParameter]:
    """Positional Python values -> parameters numbered from 1."""
    return [BoundParameter.from_value(i, v) for i, v in enumerate(values, start=1)]


class Column:
    """Result column metadata read from a prepared statement.
    """

    def __init__(self, name: str, position: int, decltype: str | None = None) -> None:
        self.name = name
        self.position = position
        self.decltype = decltype

    def __repr__(self) -> str:
        return f'Column(name={self.name!r}, position={self.position}, decltype={self.decltype!r})'

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Column):
            return NotImplemented
        return (self.name, self.position, self.decltype) == (other.name, other.position, other.decltype)

    def to_dict(self) -> dict:
        return {'name': self.name, 'position': self.position, 'decltype': self.decltype}

    @property
    def affinity(self) -> ColumnType | None:
        """Storage class implied by the declared type, None when undeclared or NUMERIC.

        Follows the engine's affinity rules, checked in order: INT, then
        CHAR/CLOB/TEXT, then BLOB, then REAL/FLOA/DOUB.
        """
        if not self.decltype:
            return None
        decltype = self.decltype.upper()
        if 'INT' in decltype:
            return ColumnType.INTEGER
        if any(s in decltype for s in ('CHAR', 'CLOB', 'TEXT')):
            return ColumnType.TEXT
        if 'BLOB' in decltype:
            return ColumnType.BLOB
        if any(s in decltype for s in ('REAL', 'FLOA', 'DOUB')):
            return ColumnType.FLOAT
        return None

    @staticmethod
    def get_names(columns: list[Self]) -> list[str]:
        """Result column names, made unique.

        The engine repeats names freely (`SELECT ?, ?`, self-joins). A repeat
        gets the first free `_1`, `_2`, ... suffix so rows keyed by name keep
        every column.
        """
        names = []
        for c in columns:
            name, n = c.name, 0
            while name in names:
                n += 1
                name = f'{c.name}_{n}'
            names.append(name)
        return names

    @staticmethod
    def get_column_types_dict(columns: list[Self]) -> dict[str, dict]:
        return {name: c.to_dict() for name, c in zip(Column.get_names(columns), columns)}
