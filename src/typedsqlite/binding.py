"""
Parameter binding by 1-based position.

Text and blob values are bound with copy semantics (SQLITE_TRANSIENT): the
engine takes its own copy, so nothing here has to outlive the call.
Positions are passed straight through; an out-of-range position comes back
from the engine as SQLITE_RANGE and is raised as EngineFailure.
"""
import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

import numpy as np

from typedsqlite.engine import SQLITE_TRANSIENT, get_lib
from typedsqlite.exceptions import TypeConversionError, check_result
from typedsqlite.types import INT64_MAX, INT64_MIN, Blob, BoundParameter, Double
from typedsqlite.types import Int64, Text, TextOrNull, to_bound_parameters

if TYPE_CHECKING:
    from typedsqlite.statement import Statement

__all__ = [
    'bind_null',
    'bind_text',
    'bind_text_nullable',
    'bind_int64',
    'bind_double',
    'bind_blob',
    'bind',
    'bind_all',
    'bind_values',
]

logger = logging.getLogger(__name__)


def _check(statement: 'Statement', code: int) -> None:
    check_result(code, db=statement.db_handle)


def bind_null(statement: 'Statement', position: int) -> None:
    _check(statement, get_lib().sqlite3_bind_null(statement.handle, position))


def bind_text(statement: 'Statement', position: int, value: str) -> None:
    """Bind a UTF-8 string; the byte length is explicit so embedded NULs survive.
    """
    if not isinstance(value, str):
        raise TypeConversionError(f'Cannot bind {type(value).__name__} as text')
    try:
        encoded = value.encode('utf-8')
    except UnicodeEncodeError as err:
        raise TypeConversionError(f'Text is not encodable as UTF-8: {value!r}') from err
    code = get_lib().sqlite3_bind_text(statement.handle, position, encoded, len(encoded),
                                       SQLITE_TRANSIENT)
    _check(statement, code)


def bind_text_nullable(statement: 'Statement', position: int, value: str | None) -> None:
    """Bind a string, or SQL NULL when `value` is None.
    """
    if value is None:
        bind_null(statement, position)
    else:
        bind_text(statement, position, value)


def bind_int64(statement: 'Statement', position: int, value: int) -> None:
    """Bind a signed 64-bit integer.

    Accepts Python and numpy integers; anything else, or a value wider
    than 64 bits, raises TypeConversionError.
    """
    if not isinstance(value, int | np.integer):
        raise TypeConversionError(f'Cannot bind {type(value).__name__} as int64')
    value = int(value)
    if not INT64_MIN <= value <= INT64_MAX:
        raise TypeConversionError(f'Integer out of 64-bit range: {value}')
    _check(statement, get_lib().sqlite3_bind_int64(statement.handle, position, value))


def bind_double(statement: 'Statement', position: int, value: float) -> None:
    if not isinstance(value, float | int | np.floating | np.integer):
        raise TypeConversionError(f'Cannot bind {type(value).__name__} as double')
    _check(statement, get_lib().sqlite3_bind_double(statement.handle, position, float(value)))


def bind_blob(statement: 'Statement', position: int, value: bytes | bytearray | memoryview) -> None:
    """Bind raw bytes. Zero-length input binds a zero-length blob, not NULL.
    """
    if not isinstance(value, bytes | bytearray | memoryview):
        raise TypeConversionError(f'Cannot bind {type(value).__name__} as blob')
    data = bytes(value)
    # b'' still yields a non-NULL pointer; a NULL pointer would bind NULL
    code = get_lib().sqlite3_bind_blob(statement.handle, position, data, len(data),
                                       SQLITE_TRANSIENT)
    _check(statement, code)


def bind(statement: 'Statement', parameter: BoundParameter) -> None:
    """Bind one tagged parameter at its position.
    """
    position, value = parameter.position, parameter.value
    match value:
        case TextOrNull():
            bind_text_nullable(statement, position, value.value)
        case Text():
            bind_text(statement, position, value.value)
        case Int64():
            bind_int64(statement, position, value.value)
        case Double():
            bind_double(statement, position, value.value)
        case Blob():
            bind_blob(statement, position, value.value)
        case _:
            raise TypeConversionError(f'Unsupported parameter value: {value!r}')


def bind_all(statement: 'Statement', parameters: Iterable[BoundParameter]) -> None:
    """Bind parameters in order. The first failure stops the sequence.
    """
    count = 0
    for parameter in parameters:
        bind(statement, parameter)
        count += 1
    logger.debug(f'Bound {count} parameters')


def bind_values(statement: 'Statement', values: Iterable[Any]) -> None:
    """Bind plain Python values at positions 1..n.
    """
    bind_all(statement, to_bound_parameters(values))
