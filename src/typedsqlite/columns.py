"""
Column extraction by 0-based position from the current result row.

Each extractor asks the engine for the runtime type of the cell first and
only reads the value when it is the requested type. Nullable variants also
accept NULL and return None. Everything else raises UnexpectedColumnType
carrying the actual type, and TEXT cells that are not valid UTF-8 raise
InvalidText.

`read_column` is the tagged alternative: it never fails on type and returns
one of Text, Int64, Double, Blob or Null for the caller to match on.

Values are only meaningful directly after `step_row` returned True.
"""
import ctypes
import logging
from typing import TYPE_CHECKING

from typedsqlite.engine import ColumnType, get_lib
from typedsqlite.exceptions import EmptyData, InvalidText, UnexpectedColumnType
from typedsqlite.exceptions import UnexpectedNull
from typedsqlite.types import Blob, Column, ColumnValue, Double, Int64
from typedsqlite.types import Null, Text

if TYPE_CHECKING:
    from typedsqlite.statement import Statement

__all__ = [
    'column_type',
    'column_text',
    'column_text_nullable',
    'column_int64',
    'column_int64_nullable',
    'column_double',
    'column_double_nullable',
    'column_blob',
    'column_blob_nullable',
    'read_column',
    'read_row',
    'column_count',
    'column_name',
    'column_decltype',
    'column_info',
]

logger = logging.getLogger(__name__)


def column_type(statement: 'Statement', position: int) -> ColumnType:
    """Runtime type of the cell; out-of-range positions report NULL.
    """
    return ColumnType(get_lib().sqlite3_column_type(statement.handle, position))


def _matches(statement: 'Statement', position: int, expected: ColumnType,
             nullable: bool) -> bool:
    """True when the cell holds `expected`, False for an accepted NULL.
    """
    actual = column_type(statement, position)
    if actual == expected:
        return True
    if nullable and actual == ColumnType.NULL:
        return False
    raise UnexpectedColumnType(actual)


def _read_text(statement: 'Statement', position: int) -> str:
    lib = get_lib()
    # text before bytes: the byte count refers to the UTF-8 form just produced
    pointer = lib.sqlite3_column_text(statement.handle, position)
    size = lib.sqlite3_column_bytes(statement.handle, position)
    if not pointer:
        raise UnexpectedNull()
    data = ctypes.string_at(pointer, size)
    try:
        return data.decode('utf-8')
    except UnicodeDecodeError as err:
        raise InvalidText(data) from err


def _read_blob(statement: 'Statement', position: int) -> tuple[int | None, int]:
    lib = get_lib()
    pointer = lib.sqlite3_column_blob(statement.handle, position)
    size = lib.sqlite3_column_bytes(statement.handle, position)
    return pointer, size


def column_text(statement: 'Statement', position: int) -> str:
    _matches(statement, position, ColumnType.TEXT, nullable=False)
    return _read_text(statement, position)


def column_text_nullable(statement: 'Statement', position: int) -> str | None:
    if not _matches(statement, position, ColumnType.TEXT, nullable=True):
        return None
    return _read_text(statement, position)


def column_int64(statement: 'Statement', position: int) -> int:
    _matches(statement, position, ColumnType.INTEGER, nullable=False)
    return get_lib().sqlite3_column_int64(statement.handle, position)


def column_int64_nullable(statement: 'Statement', position: int) -> int | None:
    if not _matches(statement, position, ColumnType.INTEGER, nullable=True):
        return None
    return get_lib().sqlite3_column_int64(statement.handle, position)


def column_double(statement: 'Statement', position: int) -> float:
    _matches(statement, position, ColumnType.FLOAT, nullable=False)
    return get_lib().sqlite3_column_double(statement.handle, position)


def column_double_nullable(statement: 'Statement', position: int) -> float | None:
    if not _matches(statement, position, ColumnType.FLOAT, nullable=True):
        return None
    return get_lib().sqlite3_column_double(statement.handle, position)


def column_blob(statement: 'Statement', position: int) -> bytes:
    """Read a non-empty blob.

    A zero-length blob counts as absent data and raises EmptyData.
    """
    _matches(statement, position, ColumnType.BLOB, nullable=False)
    pointer, size = _read_blob(statement, position)
    if size <= 0:
        raise EmptyData()
    if not pointer:
        raise UnexpectedNull()
    return ctypes.string_at(pointer, size)


def column_blob_nullable(statement: 'Statement', position: int) -> bytes | None:
    """Read a blob; NULL and zero-length blobs both return None.
    """
    if not _matches(statement, position, ColumnType.BLOB, nullable=True):
        return None
    pointer, size = _read_blob(statement, position)
    if size <= 0 or not pointer:
        return None
    return ctypes.string_at(pointer, size)


def read_column(statement: 'Statement', position: int) -> ColumnValue:
    """Read a cell as whatever type the engine reports.

    Unlike `column_blob`, a zero-length blob reads as Blob(b'').
    """
    lib = get_lib()
    match column_type(statement, position):
        case ColumnType.INTEGER:
            return Int64(lib.sqlite3_column_int64(statement.handle, position))
        case ColumnType.FLOAT:
            return Double(lib.sqlite3_column_double(statement.handle, position))
        case ColumnType.TEXT:
            return Text(_read_text(statement, position))
        case ColumnType.BLOB:
            pointer, size = _read_blob(statement, position)
            return Blob(ctypes.string_at(pointer, size) if pointer and size > 0 else b'')
        case _:
            return Null()


def read_row(statement: 'Statement') -> tuple:
    """Plain Python values for every column of the current row."""
    return tuple(read_column(statement, i).value for i in range(column_count(statement)))


def column_count(statement: 'Statement') -> int:
    return get_lib().sqlite3_column_count(statement.handle)


def column_name(statement: 'Statement', position: int) -> str | None:
    name = get_lib().sqlite3_column_name(statement.handle, position)
    return name.decode('utf-8') if name is not None else None


def column_decltype(statement: 'Statement', position: int) -> str | None:
    """Declared type of a table column; None for expressions."""
    decltype = get_lib().sqlite3_column_decltype(statement.handle, position)
    return decltype.decode('utf-8') if decltype is not None else None


def column_info(statement: 'Statement') -> list[Column]:
    """Metadata for every result column of a statement."""
    return [Column(column_name(statement, i), i, column_decltype(statement, i))
            for i in range(column_count(statement))]
