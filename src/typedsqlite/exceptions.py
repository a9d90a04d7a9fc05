"""
Error types raised by the typed access layer.

Every engine call that returns a result code other than the one the
operation expects becomes an `EngineFailure` carrying the raw code and the
engine's own message. Column extraction adds its own layer-level kinds.
"""
from typing import Any

from typedsqlite.engine import ResultCode, errmsg, errstr

__all__ = [
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
    'check_result',
    'is_busy_error',
]

BUSY_CODES = {ResultCode.BUSY, ResultCode.LOCKED}


class DatabaseError(Exception):
    """Base class for all typedsqlite errors.
    """


class EngineFailure(DatabaseError):
    """An engine call returned an unexpected result code.

    `message` is the engine's description of the code. `detail` is the most
    recent error message recorded on the database handle, when one was
    available at the time of failure.
    """

    def __init__(self, code: int, message: str, detail: str | None = None) -> None:
        self.code = code
        self.message = message
        self.detail = detail
        super().__init__(code, message)

    @property
    def primary_code(self) -> int:
        """Result code with any extended bits stripped."""
        return self.code & 0xFF

    def __str__(self) -> str:
        text = f'SQLite3 failure: {self.code} {self.message}'
        if self.detail and self.detail != self.message:
            text = f'{text} ({self.detail})'
        return text


class ExtractionError(DatabaseError):
    """Base class for column extraction errors.
    """


class UnexpectedColumnType(ExtractionError):
    """Runtime column type is not the type that was requested.
    """

    def __init__(self, actual: Any) -> None:
        self.actual = actual
        super().__init__(actual)

    def __str__(self) -> str:
        return f'Unexpected column type {self.actual!r}'


class UnexpectedNull(ExtractionError):
    """Engine returned a null buffer for a non-NULL column.
    """

    def __str__(self) -> str:
        return 'Unexpected nil value'


class EmptyData(ExtractionError):
    """Non-nullable blob extraction found a zero-length blob.
    """

    def __str__(self) -> str:
        return 'Data is empty'


class InvalidText(ExtractionError):
    """TEXT cell holds bytes that are not valid UTF-8.

    The engine stores whatever bytes it is given, e.g. `CAST(x'ff' AS TEXT)`.
    The raw bytes are kept on `data`.
    """

    def __init__(self, data: bytes) -> None:
        self.data = data
        super().__init__(data)

    def __str__(self) -> str:
        return f'Text is not valid UTF-8: {self.data[:32]!r}'


class TypeConversionError(DatabaseError):
    """Python value cannot be marshalled into a parameter slot.
    """


class ValidationError(DatabaseError):
    """Error in input validation.
    """


class HandleClosed(DatabaseError):
    """Connection or statement handle used after close/finalize.
    """


def check_result(code: int, *expected: int, db: int | None = None) -> int:
    """Return `code` when it is one of `expected`, else raise EngineFailure.

    `expected` defaults to SQLITE_OK. When the owning database handle is
    given, its last error message is attached as the failure detail.
    """
    if code in (expected or (ResultCode.OK,)):
        return code
    detail = errmsg(db) if db else None
    raise EngineFailure(code, errstr(code), detail)


def is_busy_error(exc: BaseException) -> bool:
    """Check if an exception reports a busy or locked database.

    The layer itself never retries; callers use this to decide whether the
    surrounding transaction is worth running again.
    """
    return isinstance(exc, EngineFailure) and exc.primary_code in BUSY_CODES
