"""
ctypes binding to the SQLite C library.

This module is the only place that talks to `libsqlite3` directly. It:
1. Locates and loads the shared library once (see `get_lib`)
2. Declares argument and return types for every consumed symbol
3. Mirrors the engine's numeric constants as enums
4. Looks up engine messages (`errstr`, `errmsg`) so they are never hand-maintained

The library path can be forced with the TYPEDSQLITE_LIBRARY environment variable.
"""
import ctypes
import ctypes.util
import logging
import os
import sys
from enum import IntEnum, IntFlag
from functools import lru_cache

__all__ = [
    'ResultCode',
    'ColumnType',
    'OpenFlags',
    'SQLITE_TRANSIENT',
    'get_lib',
    'errstr',
    'errmsg',
    'libversion',
]

logger = logging.getLogger(__name__)

LIBRARY_ENV = 'TYPEDSQLITE_LIBRARY'

_FALLBACK_NAMES = {
    'darwin': ['libsqlite3.dylib', '/usr/lib/libsqlite3.dylib'],
    'win32': ['sqlite3.dll', 'winsqlite3.dll'],
}
_DEFAULT_NAMES = ['libsqlite3.so.0', 'libsqlite3.so']

# Destructor sentinel: the engine makes its own copy of the bound buffer.
SQLITE_TRANSIENT = ctypes.c_void_p(-1)


class ResultCode(IntEnum):
    """Primary result codes returned by engine calls."""
    OK = 0
    ERROR = 1
    INTERNAL = 2
    PERM = 3
    ABORT = 4
    BUSY = 5
    LOCKED = 6
    NOMEM = 7
    READONLY = 8
    INTERRUPT = 9
    IOERR = 10
    CORRUPT = 11
    NOTFOUND = 12
    FULL = 13
    CANTOPEN = 14
    PROTOCOL = 15
    EMPTY = 16
    SCHEMA = 17
    TOOBIG = 18
    CONSTRAINT = 19
    MISMATCH = 20
    MISUSE = 21
    NOLFS = 22
    AUTH = 23
    FORMAT = 24
    RANGE = 25
    NOTADB = 26
    NOTICE = 27
    WARNING = 28
    ROW = 100
    DONE = 101


class ColumnType(IntEnum):
    """Fundamental datatypes reported by sqlite3_column_type."""
    INTEGER = 1
    FLOAT = 2
    TEXT = 3
    BLOB = 4
    NULL = 5


class OpenFlags(IntFlag):
    """Flags accepted by sqlite3_open_v2."""
    READONLY = 0x00000001
    READWRITE = 0x00000002
    CREATE = 0x00000004
    DELETEONCLOSE = 0x00000008
    EXCLUSIVE = 0x00000010
    URI = 0x00000040
    MEMORY = 0x00000080
    NOMUTEX = 0x00008000
    FULLMUTEX = 0x00010000
    SHAREDCACHE = 0x00020000
    PRIVATECACHE = 0x00040000
    NOFOLLOW = 0x01000000
    EXRESCODE = 0x02000000


_c_db_p = ctypes.c_void_p
_c_stmt_p = ctypes.c_void_p

# symbol -> (argtypes, restype)
_PROTOTYPES = {
    'sqlite3_libversion': ([], ctypes.c_char_p),
    'sqlite3_errstr': ([ctypes.c_int], ctypes.c_char_p),
    'sqlite3_errmsg': ([_c_db_p], ctypes.c_char_p),
    'sqlite3_open': ([ctypes.c_char_p, ctypes.POINTER(_c_db_p)], ctypes.c_int),
    'sqlite3_open_v2': ([ctypes.c_char_p, ctypes.POINTER(_c_db_p), ctypes.c_int,
                         ctypes.c_char_p], ctypes.c_int),
    'sqlite3_close': ([_c_db_p], ctypes.c_int),
    'sqlite3_close_v2': ([_c_db_p], ctypes.c_int),
    'sqlite3_changes': ([_c_db_p], ctypes.c_int),
    'sqlite3_prepare_v2': ([_c_db_p, ctypes.c_void_p, ctypes.c_int,
                            ctypes.POINTER(_c_stmt_p), ctypes.POINTER(ctypes.c_void_p)],
                           ctypes.c_int),
    'sqlite3_step': ([_c_stmt_p], ctypes.c_int),
    'sqlite3_finalize': ([_c_stmt_p], ctypes.c_int),
    'sqlite3_db_handle': ([_c_stmt_p], _c_db_p),
    'sqlite3_bind_parameter_count': ([_c_stmt_p], ctypes.c_int),
    'sqlite3_bind_null': ([_c_stmt_p, ctypes.c_int], ctypes.c_int),
    'sqlite3_bind_text': ([_c_stmt_p, ctypes.c_int, ctypes.c_char_p, ctypes.c_int,
                           ctypes.c_void_p], ctypes.c_int),
    'sqlite3_bind_int64': ([_c_stmt_p, ctypes.c_int, ctypes.c_int64], ctypes.c_int),
    'sqlite3_bind_double': ([_c_stmt_p, ctypes.c_int, ctypes.c_double], ctypes.c_int),
    'sqlite3_bind_blob': ([_c_stmt_p, ctypes.c_int, ctypes.c_char_p, ctypes.c_int,
                           ctypes.c_void_p], ctypes.c_int),
    'sqlite3_column_count': ([_c_stmt_p], ctypes.c_int),
    'sqlite3_column_name': ([_c_stmt_p, ctypes.c_int], ctypes.c_char_p),
    'sqlite3_column_decltype': ([_c_stmt_p, ctypes.c_int], ctypes.c_char_p),
    'sqlite3_column_type': ([_c_stmt_p, ctypes.c_int], ctypes.c_int),
    'sqlite3_column_text': ([_c_stmt_p, ctypes.c_int], ctypes.c_void_p),
    'sqlite3_column_blob': ([_c_stmt_p, ctypes.c_int], ctypes.c_void_p),
    'sqlite3_column_bytes': ([_c_stmt_p, ctypes.c_int], ctypes.c_int),
    'sqlite3_column_int64': ([_c_stmt_p, ctypes.c_int], ctypes.c_int64),
    'sqlite3_column_double': ([_c_stmt_p, ctypes.c_int], ctypes.c_double),
}


def _candidate_names() -> list[str]:
    """Library names to try, most specific first."""
    names = []
    forced = os.environ.get(LIBRARY_ENV)
    if forced:
        names.append(forced)
    found = ctypes.util.find_library('sqlite3')
    if found:
        names.append(found)
    names.extend(_FALLBACK_NAMES.get(sys.platform, _DEFAULT_NAMES))
    return names


def _declare(lib: ctypes.CDLL) -> ctypes.CDLL:
    for name, (argtypes, restype) in _PROTOTYPES.items():
        func = getattr(lib, name)
        func.argtypes = argtypes
        func.restype = restype
    return lib


@lru_cache(maxsize=1)
def get_lib() -> ctypes.CDLL:
    """Load libsqlite3 and declare the consumed symbols.

    Raises OSError listing every name that was tried when none can be loaded.
    """
    tried = []
    for name in _candidate_names():
        try:
            lib = ctypes.CDLL(name)
        except OSError as err:
            tried.append(f'{name} ({err})')
            continue
        _declare(lib)
        logger.debug(f'Loaded SQLite {lib.sqlite3_libversion().decode()} from {name}')
        return lib
    raise OSError(f'Unable to load the SQLite library, tried: {", ".join(tried)}')


def errstr(code: int) -> str:
    """English description of a result code, from the engine."""
    return get_lib().sqlite3_errstr(code).decode('utf-8', 'replace')


def errmsg(db: int | None) -> str:
    """Most recent error message recorded on a database handle."""
    return get_lib().sqlite3_errmsg(db).decode('utf-8', 'replace')


def libversion() -> str:
    return get_lib().sqlite3_libversion().decode()
