"""
Typed access layer over the SQLite C API.

The primitive operations work on Connection and Statement handles:

    cn = tsq.open(':memory:')
    stmt = tsq.prepare(cn, 'select ?, ?')
    tsq.bind_text(stmt, 1, 'hello')
    tsq.bind_int64(stmt, 2, 42)
    if tsq.step_row(stmt):
        tsq.column_text(stmt, 0), tsq.column_int64(stmt, 1)
    tsq.finalize(stmt)
    tsq.close(cn)

Every engine result code other than the expected one raises EngineFailure.
Query helpers (execute, select, ...) are available both as module functions
taking a connection and as Connection methods.
"""
__version__ = '0.1.0'

from typedsqlite.binding import bind, bind_all, bind_blob, bind_double
from typedsqlite.binding import bind_int64, bind_null, bind_text
from typedsqlite.binding import bind_text_nullable, bind_values
from typedsqlite.columns import column_blob, column_blob_nullable, column_count
from typedsqlite.columns import column_decltype, column_double
from typedsqlite.columns import column_double_nullable, column_int64
from typedsqlite.columns import column_int64_nullable, column_name, column_text
from typedsqlite.columns import column_text_nullable, column_type, column_info
from typedsqlite.columns import read_column, read_row
from typedsqlite.connection import Connection, close, connect, open, open_v2
from typedsqlite.engine import ColumnType, OpenFlags, ResultCode, libversion
from typedsqlite.exceptions import DatabaseError, EmptyData, EngineFailure
from typedsqlite.exceptions import ExtractionError, HandleClosed, InvalidText
from typedsqlite.exceptions import TypeConversionError, UnexpectedColumnType
from typedsqlite.exceptions import UnexpectedNull, ValidationError
from typedsqlite.exceptions import is_busy_error
from typedsqlite.options import EngineOptions
from typedsqlite.query import execute, select, select_column, select_row
from typedsqlite.query import select_row_or_none, select_scalar
from typedsqlite.query import select_scalar_or_none
from typedsqlite.statement import Statement, finalize, prepare, prepared
from typedsqlite.statement import step_done, step_row
from typedsqlite.types import Blob, BoundParameter, BoundValue, CloseMode
from typedsqlite.types import Column, ColumnValue, Double, Int64
from typedsqlite.types import Null, Text, TextOrNull, to_bound_value

__all__ = [
    # lifecycle
    'Connection',
    'Statement',
    'open',
    'open_v2',
    'close',
    'connect',
    'prepare',
    'prepared',
    'step_done',
    'step_row',
    'finalize',
    # binding
    'bind_null',
    'bind_text',
    'bind_text_nullable',
    'bind_int64',
    'bind_double',
    'bind_blob',
    'bind',
    'bind_all',
    'bind_values',
    # extraction
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
    # query helpers
    'execute',
    'select',
    'select_column',
    'select_row',
    'select_row_or_none',
    'select_scalar',
    'select_scalar_or_none',
    # types
    'BoundParameter',
    'BoundValue',
    'ColumnValue',
    'Text',
    'TextOrNull',
    'Int64',
    'Double',
    'Blob',
    'Null',
    'Column',
    'ColumnType',
    'CloseMode',
    'OpenFlags',
    'ResultCode',
    'EngineOptions',
    'to_bound_value',
    'libversion',
    # errors
    'DatabaseError',
    'EngineFailure',
    'ExtractionError',
    'UnexpectedColumnType',
    'UnexpectedNull',
    'EmptyData',
    'InvalidText',
    'TypeConversionError',
    'ValidationError',
    'HandleClosed',
    'is_busy_error',
]
