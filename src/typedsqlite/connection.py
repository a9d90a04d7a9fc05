"""
Connection lifecycle: open, close, connect.

This module provides:
1. `open()` / `open_v2()` for obtaining a database handle from the engine
2. `close()` with an explicit CloseMode (graceful or forceful)
3. The `Connection` class that owns the handle, tracks call statistics and
   offers the query helpers as methods
4. `connect()`, which builds a Connection from EngineOptions

A Connection must be used from one thread of control at a time; this layer
does no locking of its own.
"""
import ctypes
import logging
import os
from dataclasses import fields
from typing import TYPE_CHECKING, Any, Self

from typedsqlite import query
from typedsqlite.engine import OpenFlags, get_lib
from typedsqlite.exceptions import EngineFailure, HandleClosed, check_result
from typedsqlite.options import EngineOptions
from typedsqlite.statement import Statement, prepare
from typedsqlite.types import CloseMode

from libb import attrdict, load_options

if TYPE_CHECKING:
    import pandas as pd

__all__ = [
    'Connection',
    'open',
    'open_v2',
    'close',
    'connect',
]

logger = logging.getLogger(__name__)


class Connection:
    """Owner of an open database handle.

    Tracks the number of statements run through the query helpers and the
    time spent in them. Supports the context manager protocol; leaving the
    block closes the connection with the configured close mode.
    """

    def __init__(self, handle: int, filename: str,
                 options: EngineOptions | None = None) -> None:
        self._handle = handle
        self.filename = filename
        self.options = options
        self.calls = 0
        self.time = 0

    def __repr__(self) -> str:
        state = 'closed' if self.closed else 'open'
        return f'<Connection {state} {self.filename!r}>'

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None,
                 exc_tb: Any | None) -> None:
        """Close the connection; a close failure never masks the original error.
        """
        try:
            self.close()
        except EngineFailure as err:
            if exc_type is None:
                raise
            logger.error(f'Error closing connection after {exc_type.__name__}: {err}')

    @property
    def handle(self) -> int:
        """Raw engine handle; raises HandleClosed after close."""
        if self._handle is None:
            raise HandleClosed(f'Connection is closed: {self.filename!r}')
        return self._handle

    @property
    def closed(self) -> bool:
        return self._handle is None

    @property
    def close_mode(self) -> CloseMode:
        return self.options.close_mode if self.options else CloseMode.GRACEFUL

    @property
    def changes(self) -> int:
        """Rows modified by the most recent INSERT, UPDATE or DELETE."""
        return get_lib().sqlite3_changes(self.handle)

    def addcall(self, elapsed: float) -> None:
        """Track execution statistics
        """
        self.time += elapsed
        self.calls += 1

    def close(self, mode: CloseMode | str | None = None) -> None:
        close(self, self.close_mode if mode is None else mode)

    def prepare(self, sql: str) -> Statement:
        return prepare(self, sql)

    def execute(self, sql: str, *args: Any) -> int:
        return query.execute(self, sql, *args)

    def select(self, sql: str, *args: Any, **kwargs: Any) -> 'list[dict[str, Any]] | pd.DataFrame':
        return query.select(self, sql, *args, **kwargs)

    def select_column(self, sql: str, *args: Any) -> list[Any]:
        return query.select_column(self, sql, *args)

    def select_row(self, sql: str, *args: Any) -> attrdict:
        return query.select_row(self, sql, *args)

    def select_row_or_none(self, sql: str, *args: Any) -> attrdict | None:
        return query.select_row_or_none(self, sql, *args)

    def select_scalar(self, sql: str, *args: Any) -> Any:
        return query.select_scalar(self, sql, *args)

    def select_scalar_or_none(self, sql: str, *args: Any) -> Any | None:
        return query.select_scalar_or_none(self, sql, *args)


def _opened(code: int, db: ctypes.c_void_p, filename: str,
            options: EngineOptions | None = None) -> Connection:
    """Wrap a freshly opened handle, releasing it when the open failed."""
    try:
        check_result(code, db=db.value)
    except EngineFailure:
        # the engine hands back a handle even on failure
        get_lib().sqlite3_close(db.value)
        raise
    logger.debug(f'Opened database: {filename}')
    return Connection(db.value, filename, options)


def open(filename: str | os.PathLike) -> Connection:
    """Open a database file, creating it if needed.
    """
    filename = os.fspath(filename)
    db = ctypes.c_void_p()
    code = get_lib().sqlite3_open(filename.encode('utf-8'), ctypes.byref(db))
    return _opened(code, db, filename)


def open_v2(filename: str | os.PathLike, flags: int = OpenFlags.READWRITE | OpenFlags.CREATE,
            vfs: str | None = None, options: EngineOptions | None = None) -> Connection:
    """Open a database with explicit open-mode flags and an optional VFS name.
    """
    filename = os.fspath(filename)
    db = ctypes.c_void_p()
    code = get_lib().sqlite3_open_v2(filename.encode('utf-8'), ctypes.byref(db), int(flags),
                                     vfs.encode('utf-8') if vfs is not None else None)
    return _opened(code, db, filename, options)


def close(connection: Connection, mode: CloseMode | str = CloseMode.GRACEFUL) -> None:
    """Release a connection. Closing a closed connection is a no-op.

    GRACEFUL fails with SQLITE_BUSY while statements are unfinalized and
    leaves the connection open. FORCEFUL always releases the Connection; the
    engine frees the handle once the last statement is finalized.
    """
    if connection.closed:
        return
    mode = CloseMode.coerce(mode)
    handle = connection.handle
    if mode is CloseMode.FORCEFUL:
        code = get_lib().sqlite3_close_v2(handle)
    else:
        code = get_lib().sqlite3_close(handle)
    check_result(code, db=handle)
    connection._handle = None
    logger.debug(f'Connection closed ({mode.value}): {connection.calls} queries in {connection.time:.2f}s '
                 f'(avg: {connection.time/max(1, connection.calls):.3f}s per query)')


def connect(options: EngineOptions | dict[str, Any] | str,
            config: Any | None = None, **kw: Any) -> Connection:
    """Open a Connection from options.

    Args:
        options: Can be:
                - EngineOptions object
                - Name of a setting on `config`
                - Dictionary of options
        config: Configuration object (for loading named settings)
        **kw: Additional keyword arguments to override options

    Returns
        Connection opened with the configured flags and VFS
    """
    if isinstance(options, EngineOptions):
        for field in fields(options):
            kw.pop(field.name, None)
    else:
        options_func = load_options(cls=EngineOptions)(lambda o, c: o)
        options = options_func(options, config, **kw)

    return open_v2(options.filename, options.flags, options.vfs, options=options)
