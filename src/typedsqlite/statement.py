"""
Statement lifecycle: prepare, step, finalize.

A `Statement` owns one compiled `sqlite3_stmt*`. The module functions are the
primitive operations; the class methods delegate to them and to the binding
and column modules so a statement can be driven either way:

    stmt = prepare(cn, 'select a, b from t where a = ?')
    try:
        bind_text(stmt, 1, 'hello')
        while step_row(stmt):
            print(column_text(stmt, 0), column_int64(stmt, 1))
    finally:
        finalize(stmt)

    with cn.prepare('select a, b from t') as stmt:
        for row in stmt:
            print(row)
"""
import ctypes
import logging
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Self

from typedsqlite import binding, columns
from typedsqlite.engine import ResultCode, get_lib
from typedsqlite.exceptions import EngineFailure, HandleClosed, ValidationError
from typedsqlite.exceptions import check_result
from typedsqlite.types import BoundParameter, Column, ColumnValue

if TYPE_CHECKING:
    from typedsqlite.connection import Connection

__all__ = [
    'Statement',
    'prepare',
    'prepared',
    'step_done',
    'step_row',
    'finalize',
]

logger = logging.getLogger(__name__)


class Statement:
    """Owner of a compiled SQL statement.

    Bound to exactly one connection and invalid after `finalize`. Using a
    finalized statement raises HandleClosed rather than handing a NULL
    pointer to the engine.
    """

    def __init__(self, handle: int, connection: 'Connection', sql: str,
                 tail: str = '') -> None:
        self._handle = handle
        self.connection = connection
        self.sql = sql
        self.tail = tail

    def __repr__(self) -> str:
        state = 'finalized' if self.finalized else 'prepared'
        return f'<Statement {state} {self.sql!r}>'

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None,
                 exc_tb: Any | None) -> None:
        _finalize_on_exit(self, failed=exc_type is not None)

    def __iter__(self) -> Iterator[tuple]:
        """Step through the remaining rows, yielding plain Python tuples."""
        while step_row(self):
            yield columns.read_row(self)

    @property
    def handle(self) -> int:
        """Raw engine handle; raises HandleClosed after finalize."""
        if self._handle is None:
            raise HandleClosed(f'Statement is finalized: {self.sql!r}')
        return self._handle

    @property
    def finalized(self) -> bool:
        return self._handle is None

    @property
    def db_handle(self) -> int:
        """Handle of the database connection that owns this statement."""
        return get_lib().sqlite3_db_handle(self.handle)

    @property
    def parameter_count(self) -> int:
        return get_lib().sqlite3_bind_parameter_count(self.handle)

    @property
    def column_count(self) -> int:
        return columns.column_count(self)

    @property
    def columns(self) -> list[Column]:
        return columns.column_info(self)

    def step_row(self) -> bool:
        return step_row(self)

    def step_done(self) -> None:
        step_done(self)

    def finalize(self) -> None:
        finalize(self)

    def bind(self, parameter: BoundParameter) -> None:
        binding.bind(self, parameter)

    def bind_all(self, parameters: Iterable[BoundParameter]) -> None:
        binding.bind_all(self, parameters)

    def bind_values(self, values: Iterable[Any]) -> None:
        binding.bind_values(self, values)

    def read_column(self, position: int) -> ColumnValue:
        return columns.read_column(self, position)

    def read_row(self) -> tuple:
        return columns.read_row(self)


def prepare(connection: 'Connection', sql: str) -> Statement:
    """Compile the first statement in `sql` against `connection`.

    Any trailing text after the first statement is not compiled; it is kept
    on `Statement.tail`. Compile errors raise EngineFailure and no statement
    is returned.
    """
    db = connection.handle
    encoded = sql.encode('utf-8')
    buffer = ctypes.create_string_buffer(encoded)
    stmt = ctypes.c_void_p()
    tail = ctypes.c_void_p()
    code = get_lib().sqlite3_prepare_v2(db, buffer, len(encoded), ctypes.byref(stmt),
                                        ctypes.byref(tail))
    check_result(code, db=db)
    if not stmt.value:
        raise ValidationError(f'SQL contains no statement: {sql!r}')

    consumed = (tail.value - ctypes.addressof(buffer)) if tail.value else len(encoded)
    remainder = encoded[consumed:].decode('utf-8').strip()
    if remainder:
        logger.debug(f'Ignoring text after first statement: {remainder!r}')
    logger.debug(f'Prepared statement: {sql!r}')
    return Statement(stmt.value, connection, sql, remainder)


def step_done(statement: Statement) -> None:
    """Advance a statement that produces no rows; anything but DONE fails.
    """
    code = get_lib().sqlite3_step(statement.handle)
    check_result(code, ResultCode.DONE, db=statement.db_handle)


def step_row(statement: Statement) -> bool:
    """Advance a statement; True when a row is available, False when done.
    """
    code = get_lib().sqlite3_step(statement.handle)
    check_result(code, ResultCode.ROW, ResultCode.DONE, db=statement.db_handle)
    return code == ResultCode.ROW


def finalize(statement: Statement) -> None:
    """Release a statement. A second finalize is a no-op.

    The handle is released even when the engine reports a failure, which
    usually repeats the error of a previous failed step.
    """
    if statement.finalized:
        return
    handle, statement._handle = statement._handle, None
    # a forcefully closed connection is freed with its last statement
    db = None if statement.connection.closed else get_lib().sqlite3_db_handle(handle)
    code = get_lib().sqlite3_finalize(handle)
    logger.debug(f'Finalized statement: {statement.sql!r}')
    check_result(code, db=db)


@contextmanager
def prepared(connection: 'Connection', sql: str) -> Iterator[Statement]:
    """Prepare a statement and finalize it on every exit path.
    """
    statement = prepare(connection, sql)
    try:
        yield statement
    except BaseException:
        _finalize_on_exit(statement, failed=True)
        raise
    _finalize_on_exit(statement, failed=False)


def _finalize_on_exit(statement: Statement, failed: bool) -> None:
    """Finalize when leaving a block; a failure already propagating wins.

    After a failed step the engine repeats that step's error from finalize,
    so it is only logged when another exception is on its way out.
    """
    try:
        finalize(statement)
    except EngineFailure as err:
        if not failed:
            raise
        logger.debug(f'Finalize after failure reported: {err}')
